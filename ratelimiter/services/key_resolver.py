"""Rate limit identity resolution.

A request is identified by its API token when one is sent, otherwise by the
client network address. The key type namespaces the identity so an IP and a
token with the same text never share a counter.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from starlette.requests import HTTPConnection

DEFAULT_TOKEN_HEADER = "API_KEY"


class KeyType(str, enum.Enum):
    IP = "ip"
    TOKEN = "api_key"


@dataclass(frozen=True)
class RateLimitKey:
    """Rate limit identity plus its namespace."""

    identity: str
    key_type: KeyType

    @property
    def storage_key(self) -> str:
        """Store key for the counter, prefixed with the key type."""
        return f"{self.key_type.value}:{self.identity}"


def resolve_key(
    request: HTTPConnection,
    token_header: str = DEFAULT_TOKEN_HEADER,
) -> RateLimitKey:
    """Build the rate limit key for a request.

    Args:
        request: Incoming request (or any Starlette connection).
        token_header: Header carrying the API token.

    Returns:
        RateLimitKey: Token identity when the header is present and non-empty,
            client address otherwise.
    """
    token = request.headers.get(token_header)
    if token:
        return RateLimitKey(identity=token, key_type=KeyType.TOKEN)

    client_host = request.client.host if request.client else "unknown"
    return RateLimitKey(identity=client_host, key_type=KeyType.IP)
