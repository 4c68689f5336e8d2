"""Spider contract."""

from __future__ import annotations

from typing import Any, ClassVar, Iterable
from urllib.parse import urlparse

from .http import HandlerResult, Request, Response


class Spider:
    """Supplies seed URLs and the logic that turns responses into results.

    ``parse`` receives responses for the start URLs. It yields ``Item`` (or
    plain dict) records and further ``Request`` objects; a request's
    ``callback`` may point at any other method with the same shape.

    When ``allowed_domains`` is non-empty, the engine drops requests whose
    host is neither one of those domains nor a subdomain of one.
    """

    name: ClassVar[str] = "spider"
    start_urls: ClassVar[list[str]] = []
    allowed_domains: ClassVar[list[str]] = []
    custom_settings: ClassVar[dict[str, Any]] = {}

    def start_requests(self) -> Iterable[Request]:
        for url in self.start_urls:
            yield Request(url, callback=self.parse)

    def parse(self, response: Response) -> HandlerResult:
        raise NotImplementedError(f"{type(self).__name__}.parse is not defined")

    def is_allowed(self, url: str) -> bool:
        if not self.allowed_domains:
            return True
        host = (urlparse(url).hostname or "").lower()
        for domain in self.allowed_domains:
            domain = domain.lower().lstrip(".")
            if host == domain or host.endswith("." + domain):
                return True
        return False

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"
