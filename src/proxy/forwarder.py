"""Upstream forwarder — one shared httpx client, one attempt per request."""

import asyncio
from dataclasses import dataclass

import httpx

from src.proxy.builder import OutboundRequest
from src.proxy.errors import UpstreamTimeout, UpstreamUnreachable


@dataclass
class UpstreamResponse:
    status_code: int
    text: str


class Forwarder:
    """Sends OutboundRequests upstream under a hard deadline."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(transport=self._transport, follow_redirects=False)
        return self._client

    async def _send(self, client: httpx.AsyncClient, outbound: OutboundRequest, timeout: float):
        response = await client.request(
            outbound.method,
            outbound.url,
            headers=outbound.headers,
            content=outbound.body.encode("utf-8") if outbound.body is not None else None,
            timeout=httpx.Timeout(timeout),
        )
        return UpstreamResponse(
            status_code=response.status_code,
            text=response.text,
        )

    async def send(self, outbound: OutboundRequest, timeout: float) -> UpstreamResponse:
        """Issue the call and read the full response body.

        On expiry the in-flight call is cancelled, which closes its
        connection; the upstream may still act on bytes already sent.

        Args:
            outbound: Request from `build_outbound`.
            timeout: Deadline in seconds covering connect, send and read.
        """
        client = await self._get_client()
        try:
            return await asyncio.wait_for(self._send(client, outbound, timeout), timeout=timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise UpstreamTimeout(details=f"No response within {timeout:g}s")
        except httpx.TransportError as e:
            raise UpstreamUnreachable(details=f"{type(e).__name__}: {e}")

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None


_forwarder: Forwarder | None = None


def get_forwarder() -> Forwarder:
    """Get or create the process-wide forwarder."""
    global _forwarder
    if _forwarder is None:
        _forwarder = Forwarder()
    return _forwarder


async def close_forwarder() -> None:
    """Gracefully close the shared client on shutdown."""
    global _forwarder
    if _forwarder is not None:
        await _forwarder.close()
        _forwarder = None
