"""Request gate checks that run before any forwarding work."""

from collections.abc import Mapping

from src.config.settings import ProxyConfig
from src.proxy.errors import ConfigurationError, PayloadTooLargeError


def validate_config(config: ProxyConfig) -> None:
    """Fail every non-preflight request while the proxy is misconfigured."""
    if not config.is_complete:
        raise ConfigurationError(details="UPSTREAM_URL and PROXY_SECRET must both be set")


def declared_length(headers: Mapping[str, str]) -> int | None:
    """Parse Content-Length; None when absent or not a non-negative integer."""
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        value = int(raw.strip())
    except ValueError:
        return None
    return value if value >= 0 else None


def size_guard(headers: Mapping[str, str], ceiling: int) -> None:
    """Reject requests whose declared Content-Length exceeds the ceiling.

    Only the header is inspected. A chunked request, or one that omits
    Content-Length, is not measured here and passes through.
    """
    length = declared_length(headers)
    if length is not None and length > ceiling:
        raise PayloadTooLargeError(details=f"Declared {length} bytes, limit is {ceiling}")
