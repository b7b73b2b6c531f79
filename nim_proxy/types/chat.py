"""Types for the chat-completion shapes the gateway reads and writes.

Types are separated into:
- Caller-facing types: the OpenAI-compatible request and response shapes
- Backend types: the NIM chat-completion shapes, where optional fields may be
  absent, null, or empty and parsing must tolerate all three
"""

from typing import Any, Optional
from typing_extensions import TypedDict


# =============================================================================
# Caller-Facing Types
# =============================================================================


class ChatMessage(TypedDict, total=False):
    """A message in a chat conversation.

    Messages are forwarded to the backend verbatim; only the presence of the
    message list is validated.

    Attributes:
        role: Author role ("system", "user", "assistant", ...).
        content: Message text.
    """
    role: str
    content: Any


class ChatRequest(TypedDict, total=False):
    """An inbound chat completion request.

    Attributes:
        model: Caller-facing model name, resolved to a backend model id.
        messages: Ordered, non-empty list of messages.
        temperature: Sampling temperature. Defaults to 0.6.
        max_tokens: Completion token limit. Defaults to 4096.
        stream: Whether to stream the response as SSE. Defaults to False.
    """
    model: str
    messages: list[ChatMessage]
    temperature: Optional[float]
    max_tokens: Optional[int]
    stream: Optional[bool]


class AssistantMessage(TypedDict):
    role: str
    content: str


class CompletionChoice(TypedDict):
    """A single choice of a buffered completion."""
    index: int
    message: AssistantMessage
    finish_reason: Optional[str]


class Usage(TypedDict, total=False):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletion(TypedDict):
    """The caller-facing buffered response.

    Attributes:
        id: Generated completion id ("chatcmpl-<milliseconds>").
        object: Always "chat.completion".
        created: Unix timestamp in seconds.
        model: The caller's model name, not the backend model id.
        choices: One entry per backend choice.
        usage: Backend usage counters, zero-valued when the backend sent none.
    """
    id: str
    object: str
    created: int
    model: str
    choices: list[CompletionChoice]
    usage: Usage


# =============================================================================
# Backend Types
# =============================================================================


class BackendDelta(TypedDict, total=False):
    """An incremental fragment of the assistant message in one stream event.

    Attributes:
        content: Ordinary answer text.
        reasoning_content: Intermediate "thinking" text on the secondary
            reasoning channel. Never forwarded to the caller as its own field.
        finish_reason: Set on the final event of a choice.
    """
    role: str
    content: Optional[str]
    reasoning_content: Optional[str]
    finish_reason: Optional[str]


class BackendStreamChoice(TypedDict, total=False):
    index: int
    delta: BackendDelta
    finish_reason: Optional[str]


class BackendChunk(TypedDict, total=False):
    """One parsed `data:` payload from the backend stream."""
    id: str
    object: str
    created: int
    model: str
    choices: list[BackendStreamChoice]
    usage: Usage


class BackendMessage(TypedDict, total=False):
    role: str
    content: Optional[str]
    reasoning_content: Optional[str]


class BackendChoice(TypedDict, total=False):
    index: int
    message: BackendMessage
    finish_reason: Optional[str]


class BackendCompletion(TypedDict, total=False):
    """A buffered backend response."""
    id: str
    choices: list[BackendChoice]
    usage: Usage


# =============================================================================
# Errors
# =============================================================================


class ErrorDetail(TypedDict):
    message: str
    type: str
    code: int


class ErrorEnvelope(TypedDict):
    """The uniform error body for every failed request."""
    error: ErrorDetail
