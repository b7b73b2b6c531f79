"""Core module initialization."""

from .backend import (
    Backend,
    build_backend_body,
    build_outbound_headers,
    extract_backend_error_message,
    format_httpx_error,
)
from .exceptions import (
    BackendError,
    ConfigurationError,
    InvalidRequestError,
    ProxyError,
    error_envelope,
)
from .gateway import ChatGateway
from .models import MODEL_MAP, ModelResolver, resolve_fallback
from .sse import SSELineBuffer, encode_sse_data
from .transcoder import ReasoningSpan, StreamTranscoder, map_chat_completion

__all__ = [
    "Backend",
    "BackendError",
    "ChatGateway",
    "ConfigurationError",
    "InvalidRequestError",
    "MODEL_MAP",
    "ModelResolver",
    "ProxyError",
    "ReasoningSpan",
    "SSELineBuffer",
    "StreamTranscoder",
    "build_backend_body",
    "build_outbound_headers",
    "encode_sse_data",
    "error_envelope",
    "extract_backend_error_message",
    "format_httpx_error",
    "map_chat_completion",
    "resolve_fallback",
]
