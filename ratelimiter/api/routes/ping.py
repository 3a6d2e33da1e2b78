from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Ping"])


@router.get("/")
def ping() -> dict:
    """Rate limited sample endpoint."""

    return {"message": "pong"}
