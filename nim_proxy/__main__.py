"""Run the proxy with uvicorn: ``python -m nim_proxy``."""

import logging

import uvicorn

from .config_loader import load_settings
from .main import create_app

logger = logging.getLogger("nim-proxy")


def main() -> None:
    settings = load_settings()
    app = create_app(settings)
    logger.info("NIM proxy running on %s:%s", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
