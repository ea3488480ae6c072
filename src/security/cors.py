"""CORS handling for browser callers.

This is a coarse, demo-grade policy: an origin is either echoed back or the
Access-Control-Allow-Origin header is omitted. There is no per-route or
per-method policy and credentials mode is not supported.
"""

from collections.abc import Sequence

from fastapi import Response

from src.config.settings import ProxyConfig

WILDCARD = "*"
ALLOWED_METHODS = "GET,POST,PUT,PATCH,DELETE,OPTIONS"
ALLOWED_HEADERS = "Content-Type,x-proxy-secret,Authorization"


def resolve_cors_origin(origin: str | None, allowed: Sequence[str]) -> str | None:
    """Return the value for Access-Control-Allow-Origin, or None to omit it."""
    if WILDCARD in allowed:
        return origin or WILDCARD
    if origin and origin in allowed:
        return origin
    return None


def cors_headers(origin: str | None, config: ProxyConfig) -> dict[str, str]:
    """Headers attached to every non-preflight response."""
    resolved = resolve_cors_origin(origin, config.allowed_origins)
    if resolved is None:
        return {}
    headers = {"Access-Control-Allow-Origin": resolved}
    if resolved != WILDCARD:
        headers["Vary"] = "Origin"
    return headers


def preflight_response(origin: str | None, config: ProxyConfig) -> Response:
    """Bodyless 204 answering a CORS preflight."""
    headers = cors_headers(origin, config)
    headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
    headers["Access-Control-Allow-Headers"] = ALLOWED_HEADERS
    return Response(status_code=204, headers=headers)
