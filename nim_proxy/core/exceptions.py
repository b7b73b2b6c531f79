"""Core exceptions for the proxy."""

from typing import Optional

from ..types import ErrorEnvelope


class ProxyError(Exception):
    """Base exception for proxy errors.

    Every proxy error knows the HTTP status and error type it is reported
    with, so handlers can render the uniform error envelope.
    """

    status_code = 500
    error_type = "proxy_error"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_envelope(self) -> ErrorEnvelope:
        return error_envelope(self.message, self.error_type, self.status_code)


class InvalidRequestError(ProxyError):
    """Raised when an incoming request is invalid."""

    status_code = 400
    error_type = "invalid_request_error"


class BackendError(ProxyError):
    """Raised when the backend call fails or answers with an error status."""


class ConfigurationError(ProxyError):
    """Raised when there's an issue with the configuration."""


def error_envelope(message: str, error_type: str, code: int) -> ErrorEnvelope:
    return {"error": {"message": message, "type": error_type, "code": code}}
