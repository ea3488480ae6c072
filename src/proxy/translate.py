"""Upstream response → client envelope."""

import json

from fastapi import Response
from fastapi.responses import JSONResponse

from src.proxy.forwarder import UpstreamResponse

# Statuses that must not carry a body on the wire
BODYLESS_STATUSES = frozenset({204, 304})


def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant {name}")


def decode_body(text: str):
    """Parse JSON, or wrap the raw text as {"raw": text} when it is not JSON.

    NaN and Infinity are treated as not JSON; they cannot be re-encoded
    in the envelope.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:  # includes json.JSONDecodeError
        return {"raw": text}


def build_envelope(upstream: UpstreamResponse) -> dict:
    return {
        "forwarded": True,
        "status": upstream.status_code,
        "response": decode_body(upstream.text),
    }


def translate_response(upstream: UpstreamResponse, headers: dict[str, str] | None = None) -> Response:
    """Mirror the upstream status; the proxy never rewrites it."""
    if upstream.status_code in BODYLESS_STATUSES:
        return Response(status_code=upstream.status_code, headers=headers)
    return JSONResponse(
        status_code=upstream.status_code,
        content=build_envelope(upstream),
        headers=headers,
    )
