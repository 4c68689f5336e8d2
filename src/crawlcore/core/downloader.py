"""Downloader: turns a Request into a Response through a transport."""

import logging
from typing import Sequence

import httpx

from ..config import CrawlerSettings
from ..exceptions import DownloadConnectionError, DownloadError, DownloadTimeout
from ..http import Request, Response
from ..throttle import HostThrottle, RateLimiter
from .fetcher import HttpxTransport
from .protocols import RequestMiddleware, Transport

logger = logging.getLogger(__name__)


class Downloader:
    """Executes one fetch per call. Does not retry and does not look at status codes.

    Headers sent are the configured defaults, then ``User-Agent``, then the
    request's own headers, each layer overriding the previous one. A
    ``proxy`` entry in the request meta routes that request through the proxy.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        *,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        timeout: float | None = None,
        middlewares: Sequence[RequestMiddleware] = (),
        throttle: HostThrottle | None = None,
        rate_limiter: RateLimiter | None = None,
    ):
        self.transport = transport or HttpxTransport(timeout=timeout or 30.0)
        self.user_agent = user_agent
        self.default_headers = dict(default_headers or {})
        self.timeout = timeout
        self.middlewares = list(middlewares)
        self.throttle = throttle or HostThrottle()
        self.rate_limiter = rate_limiter

    @classmethod
    def from_settings(
        cls,
        settings: CrawlerSettings,
        transport: Transport | None = None,
        middlewares: Sequence[RequestMiddleware] = (),
    ) -> "Downloader":
        if transport is None:
            transport = HttpxTransport(
                timeout=settings.timeout,
                max_connections=settings.max_connections,
                max_keepalive_connections=settings.max_keepalive_connections,
                follow_redirects=settings.follow_redirects,
            )
        rate_limiter = None
        if settings.max_requests_per_period is not None:
            rate_limiter = RateLimiter(settings.max_requests_per_period, settings.rate_limit_period)
        return cls(
            transport,
            user_agent=settings.user_agent,
            default_headers=settings.default_headers,
            timeout=settings.timeout,
            middlewares=middlewares,
            throttle=HostThrottle(settings.download_delay),
            rate_limiter=rate_limiter,
        )

    def _build_headers(self, request: Request) -> dict[str, str]:
        headers = dict(self.default_headers)
        if self.user_agent:
            headers["User-Agent"] = self.user_agent
        lowered = {name.lower() for name in request.headers}
        headers = {k: v for k, v in headers.items() if k.lower() not in lowered}
        headers.update(request.headers)
        return headers

    async def fetch(self, request: Request) -> Response:
        """Fetch a request. Raises a DownloadError subclass on transport failure."""
        for middleware in self.middlewares:
            request = middleware.process_request(request)

        await self.throttle.wait(request.url)
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire()

        kwargs = {}
        if request.meta.get("proxy"):
            kwargs["proxy"] = request.meta["proxy"]

        try:
            result = await self.transport.request(
                request.method,
                request.url,
                headers=self._build_headers(request),
                body=request.body,
                timeout=self.timeout,
                **kwargs,
            )
        except httpx.TimeoutException as e:
            raise DownloadTimeout(request, str(e) or type(e).__name__) from e
        except (httpx.ConnectError, httpx.RemoteProtocolError) as e:
            raise DownloadConnectionError(request, str(e) or type(e).__name__) from e
        except (httpx.HTTPError, OSError) as e:
            raise DownloadError(request, str(e) or type(e).__name__) from e

        response = Response(
            url=result.url,
            status=result.status,
            headers=result.headers,
            body=result.content,
            request=request,
        )

        for middleware in self.middlewares:
            process_response = getattr(middleware, "process_response", None)
            if process_response is not None:
                response = process_response(response)

        return response

    async def close(self):
        await self.transport.close()

    async def __aenter__(self) -> "Downloader":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
