"""Debug introspection route.

Echoes what the proxy received so a browser integration can be checked
without touching the upstream. Shares nothing with the forwarding pipeline
and is only mounted when DEBUG_ENDPOINT_ENABLED is set. Configuration is
reported as presence flags; values are never returned.
"""

from fastapi import APIRouter, Depends, Request

from src.config.settings import Settings, get_settings

REDACTED = "[REDACTED]"
SENSITIVE_HEADERS = frozenset({"x-proxy-secret", "authorization", "cookie"})

debug_router = APIRouter()


@debug_router.api_route("/api/debug-proxy", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def debug_proxy(request: Request, settings: Settings = Depends(get_settings)):
    try:
        raw = (await request.body()).decode("utf-8", errors="replace")
    except Exception:  # introspection only; an unreadable body is reported as empty
        raw = ""

    headers = {
        name: REDACTED if name in SENSITIVE_HEADERS else value
        for name, value in request.headers.items()
    }

    return {
        "debug": True,
        "env_info": {
            "UPSTREAM_URL_SET": bool(settings.upstream_url),
            "PROXY_SECRET_SET": bool(settings.proxy_secret),
            "INTERNAL_AUTH_TOKEN_SET": bool(settings.internal_auth_token),
        },
        "request_url": str(request.url),
        "method": request.method,
        "headers": headers,
        "raw_body": raw,
    }
