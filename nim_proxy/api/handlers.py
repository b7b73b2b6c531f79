"""Exception handlers that render every failure as the error envelope."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.exceptions import ProxyError, error_envelope

logger = logging.getLogger("nim-proxy")


def register_exception_handlers(app: FastAPI) -> None:
    """Register the proxy's exception handlers on an app."""

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError) -> JSONResponse:
        logger.error("Proxy error [%s]: %s", exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_envelope())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        status_code = exc.status_code
        headers = getattr(exc, "headers", None)
        # Routes match on method and path together
        if status_code == 405:
            status_code = 404
            headers = None
        message = "Not found" if status_code == 404 else str(exc.detail)
        logger.warning(
            "HTTP error [%s] for %s %s", status_code, request.method, request.url.path
        )
        return JSONResponse(
            status_code=status_code,
            content=error_envelope(message, "invalid_request_error", status_code),
            headers=headers,
        )
