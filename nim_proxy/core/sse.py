"""SSE (Server-Sent Events) line buffering and event encoding."""

import codecs
import json
from typing import Any, Optional

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
DONE_EVENT = b"data: [DONE]\n\n"


class SSELineBuffer:
    """Splits a chunked byte stream into complete text lines.

    Transport chunk boundaries don't line up with event boundaries, so the
    trailing fragment of every chunk is held back until the next chunk
    completes it. Bytes are decoded incrementally so a multi-byte character
    split across two chunks still decodes cleanly.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        if not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return [line[:-1] if line.endswith("\r") else line for line in lines]

    @property
    def pending(self) -> str:
        """The incomplete trailing fragment still waiting for a newline."""
        return self._buffer


def sse_data(line: str) -> Optional[str]:
    """Return the payload of a `data:` line, or None for any other line."""
    if not line.startswith(DATA_PREFIX):
        return None
    return line[len(DATA_PREFIX):].strip()


def encode_sse_data(payload: Any) -> bytes:
    data = json.dumps(payload, ensure_ascii=False)
    return f"data: {data}\n\n".encode("utf-8")
