"""Command line entry point: ``python -m nimbridge``."""

import logging

import uvicorn

from .api import create_app
from .config import load_settings

logger = logging.getLogger("nimbridge")


def main() -> None:
    settings = load_settings()
    app = create_app(settings)

    logger.info(f"Serving on http://{settings.host}:{settings.port} (use /v1 as the API base)")
    logger.info(f"Backend: {settings.base_url}")
    logger.info(f"API key: {'configured' if settings.api_configured else 'NOT SET'}")
    logger.info(f"Reasoning display: {'enabled' if settings.show_reasoning else 'disabled'}")
    logger.info(f"Thinking mode: {'enabled' if settings.thinking_mode else 'disabled'}")
    logger.info(f"Request timeout: {settings.timeout}s")

    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
