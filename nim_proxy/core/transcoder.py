"""Backend response transcoding into the caller's chat-completion protocol.

The backend can emit text on two channels: `content` and a secondary
`reasoning_content`. Callers only understand `content`, so both channels are
merged into it. With reasoning surfacing enabled, reasoning text is wrapped
in a `<think>` block; otherwise it is dropped.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ..types import BackendCompletion, BackendDelta, ChatCompletion, CompletionChoice, Usage
from .sse import DONE_EVENT, DONE_SENTINEL, SSELineBuffer, encode_sse_data, sse_data

logger = logging.getLogger("nim-proxy")

THINK_OPEN = "<think>\n"
THINK_CLOSE = "\n</think>\n\n"


@dataclass
class ReasoningSpan:
    """Whether the output is currently inside an unclosed `<think>` block.

    Owned by exactly one stream. There is no teardown: a stream that ends
    while the span is open never gets a closing marker.
    """

    in_reasoning: bool = False


def _first_delta(payload: Any) -> Optional[dict[str, Any]]:
    if not isinstance(payload, dict):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, dict):
        return None
    delta = choice.get("delta")
    if isinstance(delta, dict):
        return delta
    return None


def _text(value: Any) -> str:
    """Treat anything that is not a string (absent, null, numbers) as empty."""
    if isinstance(value, str):
        return value
    return ""


class StreamTranscoder:
    """Rewrites a backend SSE byte stream into caller-facing SSE events.

    Feed raw chunks in arrival order; each call returns the encoded events
    completed by that chunk, in input order. One instance per stream.
    """

    def __init__(self, show_reasoning: bool = False) -> None:
        self.show_reasoning = show_reasoning
        self.span = ReasoningSpan()
        self.lines = SSELineBuffer()
        self.dropped_lines = 0

    def feed(self, chunk: bytes) -> list[bytes]:
        output: list[bytes] = []
        for line in self.lines.feed(chunk):
            event = self.transcode_line(line)
            if event is not None:
                output.append(event)
        return output

    def transcode_line(self, line: str) -> Optional[bytes]:
        data = sse_data(line)
        if data is None:
            return None
        if data == DONE_SENTINEL:
            return DONE_EVENT

        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            payload = None
        if not isinstance(payload, dict):
            self.dropped_lines += 1
            logger.debug("Dropping unparseable stream line: %r", line[:200])
            return None

        delta = _first_delta(payload)
        if delta is not None:
            self.merge_delta(delta)
        return encode_sse_data(payload)

    def merge_delta(self, delta: BackendDelta) -> None:
        """Fold reasoning_content into content, in place."""
        reasoning = _text(delta.get("reasoning_content"))
        content = _text(delta.get("content"))
        output = ""

        if self.show_reasoning and reasoning:
            if not self.span.in_reasoning:
                output += THINK_OPEN
                self.span.in_reasoning = True
            output += reasoning

        if content:
            if self.span.in_reasoning:
                output += THINK_CLOSE
                self.span.in_reasoning = False
            output += content

        if output:
            delta["content"] = output
        elif reasoning or content:
            # Reasoning arrived but surfacing is off
            delta["content"] = ""
        # Otherwise a control-only delta (role, finish signal): leave it be
        delta.pop("reasoning_content", None)


def _zero_usage() -> Usage:
    return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def map_chat_completion(
    data: BackendCompletion, model: str, show_reasoning: bool = False
) -> ChatCompletion:
    """Map a buffered backend response to a caller-facing chat completion.

    Args:
        data: Parsed backend response body.
        model: The caller's model name, echoed back instead of the backend id.
        show_reasoning: Prepend the whole reasoning text as a `<think>` block.

    Returns:
        A `chat.completion` object.
    """
    choices: list[CompletionChoice] = []
    raw_choices = data.get("choices") or []
    if not isinstance(raw_choices, list):
        raw_choices = []

    for position, choice in enumerate(raw_choices):
        if not isinstance(choice, Mapping):
            continue
        message = choice.get("message")
        if not isinstance(message, Mapping):
            message = {}
        content = _text(message.get("content"))
        reasoning = _text(message.get("reasoning_content"))
        if show_reasoning and reasoning:
            content = f"{THINK_OPEN}{reasoning}{THINK_CLOSE}{content}"
        index = choice.get("index")
        choices.append(
            {
                "index": index if index is not None else position,
                "message": {"role": "assistant", "content": content},
                "finish_reason": choice.get("finish_reason"),
            }
        )

    now = time.time()
    return {
        "id": f"chatcmpl-{int(now * 1000)}",
        "object": "chat.completion",
        "created": int(now),
        "model": model,
        "choices": choices,
        "usage": data.get("usage") or _zero_usage(),
    }
