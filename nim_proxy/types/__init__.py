"""Wire types for the gateway."""

from .chat import (
    AssistantMessage,
    BackendChoice,
    BackendChunk,
    BackendCompletion,
    BackendDelta,
    BackendMessage,
    BackendStreamChoice,
    ChatCompletion,
    ChatMessage,
    ChatRequest,
    CompletionChoice,
    ErrorDetail,
    ErrorEnvelope,
    Usage,
)

__all__ = [
    "AssistantMessage",
    "BackendChoice",
    "BackendChunk",
    "BackendCompletion",
    "BackendDelta",
    "BackendMessage",
    "BackendStreamChoice",
    "ChatCompletion",
    "ChatMessage",
    "ChatRequest",
    "CompletionChoice",
    "ErrorDetail",
    "ErrorEnvelope",
    "Usage",
]
