"""Request middlewares applied by the downloader."""

import itertools

import httpx

from .http import Request, Response


class UserAgentMiddleware:
    """Rotates User-Agent headers round-robin.

    Requests that already carry a User-Agent header are left alone.
    """

    def __init__(self, user_agents: list[str]):
        if not user_agents:
            raise ValueError("user_agents must not be empty")
        self.user_agents = list(user_agents)
        self._cycle = itertools.cycle(self.user_agents)

    def process_request(self, request: Request) -> Request:
        if any(name.lower() == "user-agent" for name in request.headers):
            return request
        headers = {**request.headers, "User-Agent": next(self._cycle)}
        return request.replace(headers=headers)


class ProxyMiddleware:
    """Routes requests through proxies in turn via ``meta["proxy"]``.

    Requests that already name a proxy keep it.
    """

    def __init__(self, proxies: list[str]):
        if not proxies:
            raise ValueError("proxies must not be empty")
        self.proxies = list(proxies)
        self._cycle = itertools.cycle(self.proxies)

    def process_request(self, request: Request) -> Request:
        if request.meta.get("proxy"):
            return request
        return request.replace(meta={**request.meta, "proxy": next(self._cycle)})


class CookiesMiddleware:
    """Session cookies kept in an ``httpx.Cookies`` jar.

    Domain, Path, Expires and Max-Age are honoured, so a cookie is only sent
    where the server scoped it and disappears once it expires or is deleted.
    """

    def __init__(self):
        self.cookies = httpx.Cookies()

    def _cookie_header(self, method: str, url: str) -> str | None:
        carrier = httpx.Request(method, url)
        self.cookies.set_cookie_header(carrier)
        return carrier.headers.get("cookie")

    def process_request(self, request: Request) -> Request:
        if any(name.lower() == "cookie" for name in request.headers):
            return request
        cookie = self._cookie_header(request.method, request.url)
        if not cookie:
            return request
        return request.replace(headers={**request.headers, "Cookie": cookie})

    def process_response(self, response: Response) -> Response:
        self.cookies.extract_cookies(
            httpx.Response(
                response.status,
                headers=response.headers,
                request=httpx.Request(response.request.method, response.url),
            )
        )
        return response

    def cookies_for(self, url: str) -> dict[str, str]:
        """Cookies that would be sent with a GET to ``url``."""
        header = self._cookie_header("GET", url)
        if not header:
            return {}
        pairs = (part.partition("=") for part in header.split("; "))
        return {name: value for name, _, value in pairs}
