"""Main FastAPI application for the NIM proxy."""

import logging
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import chat_completions, health, list_models, register_exception_handlers
from .config_loader import GatewaySettings, load_settings
from .core import ChatGateway
from .logging import setup_logging

logger = logging.getLogger("nim-proxy")


def create_app(
    settings: Optional[GatewaySettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the proxy application.

    Args:
        settings: Gateway settings. Loaded from the config file and
            environment when omitted.
        transport: Optional httpx transport for backend calls (tests use
            this to plug in a fake backend).

    Returns:
        The configured FastAPI application instance.
    """
    setup_logging()
    if settings is None:
        settings = load_settings()

    app = FastAPI(title="NIM Proxy")
    app.state.settings = settings
    app.state.gateway = ChatGateway(settings, transport=transport)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.get("/health")(health)
    app.get("/v1/models")(list_models)
    app.post("/v1/chat/completions")(chat_completions)

    logger.info(
        "NIM proxy configured for %s (show_reasoning=%s, enable_thinking=%s)",
        settings.api_base,
        settings.show_reasoning,
        settings.enable_thinking,
    )
    return app
