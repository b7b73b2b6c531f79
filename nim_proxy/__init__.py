"""nim-proxy - OpenAI-compatible gateway for NVIDIA NIM

Accepts OpenAI-style chat completion requests, maps the model name to a
NIM model, forwards to the configured backend and reshapes the response,
including SSE streams, back into the OpenAI protocol.

This module provides:
- ChatGateway: Validates, forwards and transcodes chat requests
- StreamTranscoder: Merges the backend reasoning channel into content
- create_app: Builds the FastAPI application

Example:
    >>> from nim_proxy import create_app
    >>> import uvicorn
    >>> uvicorn.run(create_app(), host="0.0.0.0", port=3000)
"""

from .config_loader import GatewaySettings, load_config, load_settings
from .core import ChatGateway, ModelResolver, StreamTranscoder, map_chat_completion
from .logging import logger, setup_logging
from .main import create_app

__all__ = [
    "ChatGateway",
    "GatewaySettings",
    "ModelResolver",
    "StreamTranscoder",
    "create_app",
    "load_config",
    "load_settings",
    "logger",
    "map_chat_completion",
    "setup_logging",
]
