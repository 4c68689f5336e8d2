"""HTTP transport implementation using httpx."""

import asyncio
from typing import Mapping

import httpx

from .protocols import TransportResponse


class HttpxTransport:
    """Async HTTP transport using httpx with connection reuse.

    One client is kept per proxy (``None`` for direct connections), since
    httpx binds the proxy to the client rather than to a request.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_connections: int = 100,
        max_keepalive_connections: int = 20,
        follow_redirects: bool = True,
    ):
        self.timeout = httpx.Timeout(timeout)
        self.limits = httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_keepalive_connections,
        )
        self.follow_redirects = follow_redirects
        self._clients: dict[str | None, httpx.AsyncClient] = {}
        self._lock = asyncio.Lock()

    async def _get_client(self, proxy: str | None = None) -> httpx.AsyncClient:
        """Get or create the client for ``proxy`` with double-checked locking."""
        client = self._clients.get(proxy)
        if client is None:
            async with self._lock:
                client = self._clients.get(proxy)
                if client is None:
                    client = httpx.AsyncClient(
                        timeout=self.timeout,
                        limits=self.limits,
                        follow_redirects=self.follow_redirects,
                        proxy=proxy,
                    )
                    self._clients[proxy] = client
        return client

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: bytes = b"",
        timeout: float | None = None,
        proxy: str | None = None,
    ) -> TransportResponse:
        """Send one request. HTTP error statuses are returned, not raised."""
        client = await self._get_client(proxy)
        kwargs = {"headers": headers, "content": body or None}
        if timeout is not None:
            kwargs["timeout"] = timeout
        resp = await client.request(method, url, **kwargs)
        return TransportResponse(
            url=str(resp.url),
            status=resp.status_code,
            content=resp.content,
            # httpx.Headers keeps repeated fields such as Set-Cookie apart.
            headers=resp.headers,
        )

    async def close(self):
        """Close every HTTP client."""
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()
