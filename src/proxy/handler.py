"""Proxy pipeline — gate, rate limit, read, build, forward, translate.

Pipeline: Config -> Auth -> Size Guard -> Rate Limit -> Body -> Forward -> Envelope

Every stage raises a ProxyError on failure; `handle_proxy_request` is the
single boundary where failures become responses, so nothing escapes to the
ASGI server. There are no retries.
"""

import logging

from fastapi import Request, Response

from src.config.settings import ProxyConfig
from src.logging.audit import (
    RequestTimer,
    audit_event,
    generate_request_id,
    get_audit_logger,
    request_id_var,
)
from src.proxy.body import read_body
from src.proxy.builder import build_outbound
from src.proxy.errors import ProxyError, RateLimitExceeded, error_response
from src.proxy.forwarder import get_forwarder
from src.proxy.translate import translate_response
from src.security.auth import authenticate
from src.security.cors import cors_headers
from src.security.gate import size_guard, validate_config
from src.security.ratelimit import client_identifier, get_rate_limiter


async def handle_proxy_request(request: Request, config: ProxyConfig) -> Response:
    """Run one inbound request through the pipeline and always return a response."""
    rid = generate_request_id()
    request_id_var.set(rid)
    headers = {"X-Request-Id": rid}
    method = request.method
    client_id = "unknown"

    try:
        headers.update(cors_headers(request.headers.get("origin"), config))
        client_id = client_identifier(
            request.headers, request.client.host if request.client else None
        )
        return await _run_pipeline(request, config, client_id, headers)
    except ProxyError as e:
        audit_event(
            logging.ERROR if e.status_code >= 500 else logging.WARNING,
            "Request rejected",
            client_id=client_id,
            method=method,
            status=e.status_code,
            error=e.error,
            details=e.details,
        )
        return error_response(e, headers)
    except Exception as e:
        get_audit_logger().exception(
            "Unexpected proxy failure",
            extra={"audit_data": {"client_id": client_id, "method": method}},
        )
        return error_response(e, headers)


async def _run_pipeline(
    request: Request, config: ProxyConfig, client_id: str, headers: dict[str, str]
) -> Response:
    # --- Gate ---
    validate_config(config)
    authenticate(request.headers, config.proxy_secret)
    size_guard(request.headers, config.max_payload_bytes)

    # --- Rate limiting (per client identifier) ---
    rate_result = await get_rate_limiter(config).check(client_id)
    headers.update(rate_result.headers)
    if not rate_result.allowed:
        raise RateLimitExceeded(
            details=f"Limit of {rate_result.limit} requests per window reached",
            headers={"Retry-After": str(max(1, int(rate_result.reset_seconds)))},
        )

    # --- Forward ---
    body = await read_body(request)
    outbound = build_outbound(
        method=request.method,
        query=request.query_params.multi_items(),
        content_type=request.headers.get("content-type"),
        body=body,
        config=config,
    )

    with RequestTimer() as timer:
        upstream = await get_forwarder().send(outbound, config.forward_timeout_seconds)

    audit_event(
        logging.INFO,
        "Request forwarded",
        client_id=client_id,
        method=outbound.method,
        upstream_status=upstream.status_code,
        latency_ms=timer.elapsed_ms,
        body_bytes=len(body) if body is not None else 0,
        rate_limit_remaining=rate_result.remaining,
    )

    return translate_response(upstream, headers)
