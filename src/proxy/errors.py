"""Proxy failure kinds and their client-visible responses.

Every stage raises a `ProxyError` subclass; `error_response` is the only
place a failure becomes an HTTP response.
"""

from fastapi.responses import JSONResponse


class ProxyError(Exception):
    """Base class for failures surfaced to the client."""

    status_code: int = 500
    error: str = "Proxy failed"

    def __init__(self, details: str | None = None, headers: dict[str, str] | None = None):
        super().__init__(details or self.error)
        self.details = details
        self.headers = headers or {}


class ConfigurationError(ProxyError):
    status_code = 500
    error = "Missing env vars"


class AuthenticationError(ProxyError):
    status_code = 401
    error = "Unauthorized"


class RateLimitExceeded(ProxyError):
    status_code = 429
    error = "Rate limit exceeded"


class PayloadTooLargeError(ProxyError):
    status_code = 413
    error = "Payload too large"


class UpstreamTimeout(ProxyError):
    status_code = 504
    error = "Upstream timed out"


class UpstreamUnreachable(ProxyError):
    status_code = 502
    error = "Upstream unreachable"


class UnexpectedInternalError(ProxyError):
    status_code = 500
    error = "Proxy failed"


def to_proxy_error(exc: Exception) -> ProxyError:
    """Wrap anything that is not already a ProxyError."""
    if isinstance(exc, ProxyError):
        return exc
    return UnexpectedInternalError(details=str(exc) or type(exc).__name__)


def error_response(exc: Exception, headers: dict[str, str] | None = None) -> JSONResponse:
    """Translate a failure into its stable `(status, body)` pair.

    Args:
        exc: Any exception raised by the pipeline.
        headers: Extra headers for the response (CORS, request id).
    """
    err = to_proxy_error(exc)
    content: dict = {"error": err.error}
    if err.details:
        content["details"] = err.details
    return JSONResponse(
        status_code=err.status_code,
        content=content,
        headers={**(headers or {}), **err.headers},
    )
