"""Shared-secret authentication for proxy callers.

Browsers send the secret in `x-proxy-secret`; `Authorization` is accepted as a
fallback and compared verbatim (no "Bearer " prefix handling).
"""

import hmac
from collections.abc import Mapping

from src.proxy.errors import AuthenticationError

SECRET_HEADER = "x-proxy-secret"
FALLBACK_HEADER = "authorization"


def extract_secret(headers: Mapping[str, str]) -> str:
    """Return the presented secret, or an empty string when none was sent."""
    return headers.get(SECRET_HEADER) or headers.get(FALLBACK_HEADER) or ""


def authenticate(headers: Mapping[str, str], secret: str) -> None:
    """Raise AuthenticationError unless the presented secret matches exactly.

    Args:
        headers: Inbound request headers (case-insensitive mapping).
        secret: The configured shared secret.
    """
    provided = extract_secret(headers)
    if not provided:
        raise AuthenticationError(details="Missing proxy secret")

    # Constant-time comparison; bytes so non-ASCII input cannot raise
    if not hmac.compare_digest(provided.encode("utf-8"), secret.encode("utf-8")):
        raise AuthenticationError(details="Invalid proxy secret")
