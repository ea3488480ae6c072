"""Outbound request construction.

Only two headers ever leave the proxy: Content-Type and the x-from-proxy
marker. The caller's secret and every other inbound header are dropped.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from src.config.settings import ProxyConfig

DEFAULT_CONTENT_TYPE = "application/json"
MARKER_HEADER = "x-from-proxy"


@dataclass
class OutboundRequest:
    method: str
    url: httpx.URL
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None


def build_upstream_url(
    base_url: str, query: Iterable[tuple[str, str]], config: ProxyConfig | None = None
) -> httpx.URL:
    """Append inbound query parameters to the upstream base URL.

    Parameters already on the base URL are kept; same-named inbound
    parameters are appended after them, not merged.
    """
    base = httpx.URL(base_url)
    params = list(base.params.multi_items())
    params.extend(query)
    if config is not None and config.internal_auth_token and config.internal_auth_mode == "query":
        params.append((config.internal_auth_param, config.internal_auth_token))
    if not params:
        return base
    return base.copy_with(params=httpx.QueryParams(params))


def build_headers(content_type: str | None, config: ProxyConfig) -> dict[str, str]:
    headers = {
        "Content-Type": content_type or DEFAULT_CONTENT_TYPE,
        MARKER_HEADER: config.proxy_marker,
    }
    if config.internal_auth_token and config.internal_auth_mode == "header":
        headers[config.internal_auth_header] = config.internal_auth_token
    return headers


def build_outbound(
    method: str,
    query: Iterable[tuple[str, str]],
    content_type: str | None,
    body: str | None,
    config: ProxyConfig,
) -> OutboundRequest:
    """Assemble the request sent upstream.

    The internal credential, when configured, goes either in a header or in
    the query string according to `internal_auth_mode`, never both.
    """
    return OutboundRequest(
        method=method.upper(),
        url=build_upstream_url(config.upstream_url, query, config),
        headers=build_headers(content_type, config),
        body=body,
    )
