"""Gateway that validates, reshapes and forwards chat requests to the backend."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, Optional

import httpx
from fastapi import Response
from fastapi.responses import JSONResponse, StreamingResponse

from .backend import (
    Backend,
    build_backend_body,
    build_outbound_headers,
    extract_backend_error_message,
    format_httpx_error,
)
from .exceptions import BackendError, InvalidRequestError
from .models import DEFAULT_REQUEST_MODEL, ModelResolver
from .transcoder import StreamTranscoder, map_chat_completion

if TYPE_CHECKING:
    from ..config_loader import GatewaySettings

logger = logging.getLogger("nim-proxy")

CHAT_COMPLETIONS_PATH = "/chat/completions"
STREAM_HEADERS = {"Cache-Control": "no-cache", "Connection": "keep-alive"}


class ChatGateway:
    """Forwards chat completions to a single backend with one fixed transformation.

    Holds no per-request state: every call builds its own httpx client and,
    for streams, its own transcoder.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self.backend = Backend(
            name="nim",
            base_url=settings.api_base,
            api_key=settings.api_key,
            timeout=settings.timeout,
        )
        self.resolver = ModelResolver(settings.model_map)
        self._transport = transport

    def list_model_names(self) -> list[str]:
        return self.resolver.model_names()

    async def forward_chat(
        self,
        payload: Mapping[str, Any],
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> Response:
        messages = payload.get("messages")
        if not isinstance(messages, list) or not messages:
            raise InvalidRequestError("messages array is required")

        model_name = payload.get("model")
        if not isinstance(model_name, str) or not model_name:
            model_name = DEFAULT_REQUEST_MODEL
        backend_model = self.resolver.resolve(model_name)
        body = build_backend_body(payload, backend_model, self.settings.enable_thinking)
        is_stream = body["stream"]

        logger.info(
            "Forwarding model %s as %s, stream=%s", model_name, backend_model, is_stream
        )

        url = self.backend.build_url(CHAT_COMPLETIONS_PATH)
        headers = build_outbound_headers(self.backend.api_key)
        if is_stream:
            return await self._streaming_request(url, headers, body, disconnect_checker)
        return await self._buffered_request(url, headers, body, model_name)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.backend.timeout), transport=self._transport
        )

    def _transport_error(self, exc: httpx.HTTPError) -> BackendError:
        detail = format_httpx_error(exc, self.backend)
        logger.error("Backend request to %s failed: %s", self.backend.name, detail)
        return BackendError(detail)

    async def _buffered_request(
        self, url: str, headers: dict[str, str], body: dict[str, Any], model_name: str
    ) -> Response:
        try:
            async with self._client() as client:
                resp = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise self._transport_error(exc) from exc

        logger.info("Backend responded with status %s", resp.status_code)
        if not resp.is_success:
            raise _status_error(resp.status_code, resp.content)

        try:
            data = resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise BackendError("Backend returned a non-JSON response", 502) from exc
        if not isinstance(data, dict):
            raise BackendError("Backend returned an unexpected response shape", 502)

        completion = map_chat_completion(data, model_name, self.settings.show_reasoning)
        return JSONResponse(completion)

    async def _streaming_request(
        self,
        url: str,
        headers: dict[str, str],
        body: dict[str, Any],
        disconnect_checker: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> Response:
        client = self._client()
        try:
            request = client.build_request("POST", url, headers=headers, json=body)
            resp = await client.send(request, stream=True)
        except httpx.HTTPError as exc:
            await client.aclose()
            raise self._transport_error(exc) from exc
        except Exception:
            await client.aclose()
            raise

        stream_closed = False

        async def close_stream() -> None:
            nonlocal stream_closed
            if stream_closed:
                return
            stream_closed = True
            await resp.aclose()
            await client.aclose()

        if not resp.is_success:
            try:
                data = await resp.aread()
            except httpx.HTTPError:
                data = b""
            finally:
                await close_stream()
            raise _status_error(resp.status_code, data)

        logger.info("Streaming from backend, status %s", resp.status_code)
        transcoder = StreamTranscoder(show_reasoning=self.settings.show_reasoning)

        async def iterator():
            chunk_count = 0
            try:
                async for chunk in resp.aiter_bytes():
                    if disconnect_checker and await disconnect_checker():
                        raise asyncio.CancelledError("client disconnected")
                    chunk_count += 1
                    for event in transcoder.feed(chunk):
                        yield event
            except asyncio.CancelledError:
                logger.info("Stream cancelled by client")
                raise
            except httpx.HTTPError as exc:
                # Headers are already sent; all we can do is end the stream.
                logger.error(
                    "Backend stream failed: %s", format_httpx_error(exc, self.backend)
                )
            finally:
                if transcoder.lines.pending:
                    logger.debug(
                        "Discarding unterminated stream fragment: %r",
                        transcoder.lines.pending[:200],
                    )
                logger.debug(
                    "Stream finished after %d chunks, %d lines dropped",
                    chunk_count,
                    transcoder.dropped_lines,
                )
                await close_stream()

        return StreamingResponse(
            iterator(),
            status_code=resp.status_code,
            headers=dict(STREAM_HEADERS),
            media_type="text/event-stream",
        )


def _status_error(status_code: int, data: bytes) -> BackendError:
    message = extract_backend_error_message(data) or (
        f"Backend request failed with status code {status_code}"
    )
    logger.warning("Backend returned error status %s: %s", status_code, message)
    return BackendError(message, status_code)
