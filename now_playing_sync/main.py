"""Main entry point: `python -m now_playing_sync.main` or `now-playing-sync`."""

import os
from pathlib import Path

from dotenv import load_dotenv

from now_playing_sync.config import get_settings
from now_playing_sync.core.app_factory import create_app
from now_playing_sync.exceptions import ConfigError
from now_playing_sync.logging_config import setup_logging


def run() -> None:
    """Load .env, validate configuration, start the server.

    Exits with status 1 when the configuration is incomplete.
    """
    load_dotenv(Path(__file__).parent.parent / ".env")
    setup_logging(os.getenv("LOG_LEVEL", "INFO"))

    try:
        settings = get_settings()
    except ConfigError as e:
        raise SystemExit(f"Configuration error: {e.message}") from e

    import uvicorn

    uvicorn.run(create_app(settings), host=settings.api_host, port=settings.api_port)


if __name__ == "__main__":
    run()
