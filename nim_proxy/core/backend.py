"""Backend configuration, request shaping and error helpers."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import httpx

logger = logging.getLogger("nim-proxy")

DEFAULT_TIMEOUT = 120
DEFAULT_TEMPERATURE = 0.6
DEFAULT_MAX_TOKENS = 4096
THINKING_TEMPLATE_KWARGS = {"thinking": True}


@dataclass
class Backend:
    """The single NIM-compatible backend the gateway forwards to."""

    name: str
    base_url: str
    api_key: Optional[str]
    timeout: Optional[float] = DEFAULT_TIMEOUT

    def build_url(self, path: str) -> str:
        """Build the full URL for a backend request."""
        base = self.base_url.rstrip("/")
        normalized_path = path or ""
        if not normalized_path.startswith("/"):
            normalized_path = f"/{normalized_path}"
        return f"{base}{normalized_path}"


def build_outbound_headers(backend_api_key: Optional[str]) -> dict[str, str]:
    """Build headers for outbound requests to the backend."""
    headers = {"Content-Type": "application/json"}
    if backend_api_key:
        headers["Authorization"] = f"Bearer {backend_api_key}"
    return headers


def build_backend_body(
    payload: Mapping[str, Any], backend_model: str, enable_thinking: bool = False
) -> dict[str, Any]:
    """Build the backend request body from a caller chat request.

    Messages are copied verbatim. Temperature only falls back to its default
    when missing (an explicit 0 is kept); max_tokens falls back whenever it is
    missing or zero.
    """
    temperature = payload.get("temperature")
    if temperature is None:
        temperature = DEFAULT_TEMPERATURE
    body: dict[str, Any] = {
        "model": backend_model,
        "messages": payload.get("messages"),
        "temperature": temperature,
        "max_tokens": payload.get("max_tokens") or DEFAULT_MAX_TOKENS,
        "stream": bool(payload.get("stream")),
    }
    if enable_thinking:
        body["chat_template_kwargs"] = dict(THINKING_TEMPLATE_KWARGS)
        logger.debug("Enabled thinking for backend model %s", backend_model)
    return body


def format_httpx_error(exc: httpx.HTTPError, backend: Backend) -> str:
    """Produce a user-facing description of an httpx transport error."""
    message = str(exc).strip()
    if isinstance(exc, httpx.TimeoutException):
        timeout = backend.timeout or DEFAULT_TIMEOUT
        return f"{message or exc.__class__.__name__} (timeout={timeout}s)"
    return message or exc.__class__.__name__


def extract_backend_error_message(data: bytes) -> Optional[str]:
    """Pull `error.message` out of a backend error body, if it has one."""
    if not data:
        return None
    try:
        parsed = json.loads(data.decode("utf-8", errors="replace"))
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    error_obj = parsed.get("error")
    if isinstance(error_obj, dict):
        message = error_obj.get("message")
        if isinstance(message, str) and message:
            return message
    return None
