"""Inbound body extraction for payload-bearing methods."""

from fastapi import Request

from src.logging.audit import get_audit_logger

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
DEFAULT_BODY = "{}"


def carries_body(method: str) -> bool:
    return method.upper() in BODY_METHODS


async def read_body(request: Request) -> str | None:
    """Read the full inbound body as text.

    Returns None for methods without payload semantics. A failed read or an
    empty body is replaced with "{}" so forwarding still proceeds.
    """
    if not carries_body(request.method):
        return None

    try:
        raw = await request.body()
    except Exception as e:  # client disconnects, stream already consumed, ...
        get_audit_logger().warning(
            "Body read failed, using default",
            extra={"audit_data": {"error": type(e).__name__}},
        )
        return DEFAULT_BODY

    text = raw.decode("utf-8", errors="replace")
    return text or DEFAULT_BODY
