"""Pytest configuration and fixtures for testing."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Generator, Iterable, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from nim_proxy.config_loader import GatewaySettings
from nim_proxy.main import create_app

BACKEND_BASE = "http://nim.local/v1"

GATEWAY_ENV_VARS = (
    "NIM_API_BASE",
    "NIM_API_KEY",
    "HOST",
    "PORT",
    "NIM_PROXY_CONFIG",
    "NIM_PROXY_TIMEOUT",
    "NIM_PROXY_SHOW_REASONING",
    "NIM_PROXY_ENABLE_THINKING",
)


@pytest.fixture(autouse=True)
def clean_gateway_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell environment out of every test."""
    for name in GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Builders
# =============================================================================


def build_settings(**overrides: Any) -> GatewaySettings:
    values: dict[str, Any] = {"api_base": BACKEND_BASE, "api_key": "test-key"}
    values.update(overrides)
    return GatewaySettings(**values)


def sse_line(payload: Any) -> str:
    if isinstance(payload, str):
        return f"data: {payload}\n"
    return f"data: {json.dumps(payload)}\n"


def sse_body(*payloads: Any, done: bool = True) -> bytes:
    """Encode payloads the way NIM does: one data line per event plus a blank line."""
    lines = [sse_line(payload) + "\n" for payload in payloads]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def delta_event(**delta: Any) -> dict[str, Any]:
    return {
        "id": "chatcmpl-backend",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": None}],
    }


def parse_sse_events(body: bytes) -> list[Any]:
    """Decode caller-facing SSE output into JSON payloads and "[DONE]" markers."""
    events: list[Any] = []
    for raw_event in body.decode("utf-8").split("\n\n"):
        if not raw_event.strip():
            continue
        assert raw_event.startswith("data: "), raw_event
        data = raw_event[len("data: "):]
        events.append(data if data == "[DONE]" else json.loads(data))
    return events


def joined_content(events: Iterable[Any]) -> str:
    text = ""
    for event in events:
        if not isinstance(event, dict):
            continue
        for choice in event.get("choices", []):
            content = (choice.get("delta") or {}).get("content")
            if content:
                text += content
    return text


async def iter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


# =============================================================================
# Fake Backend
# =============================================================================


@dataclass
class FakeBackend:
    """httpx MockTransport handler that records requests and replays responses.

    `respond` builds the response for each request; by default it returns a
    minimal buffered completion.
    """

    respond: Optional[Callable[[httpx.Request], httpx.Response]] = None
    requests: list[httpx.Request] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.respond is not None:
            return self.respond(request)
        return httpx.Response(
            200,
            json={
                "choices": [
                    {"index": 0, "message": {"content": "hello"}, "finish_reason": "stop"}
                ]
            },
        )

    @property
    def bodies(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


def streaming_response(chunks: Iterable[bytes], status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        headers={"content-type": "text/event-stream"},
        content=iter_chunks(list(chunks)),
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def make_client(
    fake_backend: FakeBackend,
) -> Generator[Callable[..., TestClient], None, None]:
    """Factory for a TestClient wired to the fake backend."""
    clients: list[TestClient] = []

    def _make(**overrides: Any) -> TestClient:
        app = create_app(build_settings(**overrides), transport=fake_backend.transport())
        client = TestClient(app)
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()
