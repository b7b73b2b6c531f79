"""OpenAI-compatible chat completions endpoint."""

import json
import logging
from typing import Mapping

from fastapi import Request, Response

from ...core.exceptions import InvalidRequestError

logger = logging.getLogger("nim-proxy")

# Largest accepted request body
MAX_BODY_BYTES = 10 * 1024 * 1024


async def chat_completions(request: Request) -> Response:
    """Chat completions endpoint - OpenAI compatible.

    POST /v1/chat/completions

    Parses the body, then hands it to the gateway, which validates the
    messages, resolves the model and forwards to the backend. Errors are
    raised as ProxyError subclasses and rendered by the exception handlers.
    """
    logger.info("Received chat completions request")

    body = await request.body()
    if len(body) > MAX_BODY_BYTES:
        raise InvalidRequestError("Request body too large", status_code=413)

    try:
        payload = json.loads(body or b"{}")
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        logger.error("Invalid JSON payload: %s", exc)
        raise InvalidRequestError("Invalid JSON payload") from exc

    if not isinstance(payload, Mapping):
        raise InvalidRequestError("Request body must be a JSON object")

    gateway = request.app.state.gateway
    return await gateway.forward_chat(payload, disconnect_checker=request.is_disconnected)
