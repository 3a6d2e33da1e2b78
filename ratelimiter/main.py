import uvicorn

from ratelimiter.core.app_factory import create_app
from ratelimiter.core.config import settings

app = create_app()


def run() -> None:
    """Serve the app with uvicorn on HOST:PORT."""
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
