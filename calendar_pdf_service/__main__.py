"""
Calendar PDF Service entrypoint - runs uvicorn server.
"""

import uvicorn

from .app import app
from .config import SERVICE_NAME, get_settings


def main() -> None:
    """Run the calendar PDF server."""
    settings = get_settings()

    print(f"Starting {SERVICE_NAME} on http://{settings.host}:{settings.port}")
    print(f"Health: http://{settings.host}:{settings.port}/api/health")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
