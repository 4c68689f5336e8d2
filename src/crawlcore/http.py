"""Value types passed between the scheduler, downloader, handlers and pipeline."""

from __future__ import annotations

import dataclasses
import hashlib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, AsyncIterable, Callable, Iterable, Mapping, Union
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from .extract import Extractor


def canonicalize_url(url: str) -> str:
    """Canonical form of a URL for fingerprinting (lowercase host, sorted query, no fragment)."""
    parsed = urlparse(url)

    query_params = parse_qsl(parsed.query, keep_blank_values=True)
    sorted_query = urlencode(sorted(query_params))

    return urlunparse((
        parsed.scheme.lower(),
        parsed.netloc.lower(),
        parsed.path or "/",
        parsed.params,
        sorted_query,
        "",
    ))


def request_fingerprint(method: str, url: str) -> str:
    """Deduplication key derived from the request method and canonical URL."""
    key = f"{method.upper()} {canonicalize_url(url)}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


class Item(dict):
    """One extracted record. Stages may add, change or delete fields."""

    def to_dict(self) -> dict[str, Any]:
        return dict(self)


@dataclass(frozen=True)
class Request:
    """A resource to fetch plus the handler that receives its response.

    ``callback`` of ``None`` means the spider's ``parse`` method. ``meta`` is
    copied and frozen on construction and is exposed unchanged as
    ``Response.meta``.
    """

    url: str
    callback: Callable[[Response], HandlerResult] | None = None
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    meta: Mapping[str, Any] = field(default_factory=dict)
    priority: int = 0
    fingerprint: str = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "method", self.method.upper())
        object.__setattr__(self, "headers", dict(self.headers))
        object.__setattr__(self, "meta", MappingProxyType(dict(self.meta)))
        object.__setattr__(self, "fingerprint", request_fingerprint(self.method, self.url))

    def replace(self, **changes: Any) -> Request:
        """Copy of this request with ``changes`` applied."""
        return dataclasses.replace(self, **changes)


@dataclass(frozen=True)
class Response:
    """A completed fetch. Any status code, including 4xx/5xx, is a response."""

    url: str
    status: int
    headers: Mapping[str, str]
    body: bytes
    request: Request = field(repr=False)

    @property
    def text(self) -> str:
        """Decode body as UTF-8."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def meta(self) -> Mapping[str, Any]:
        return self.request.meta

    def follow(self, url: str, callback: Callable | None = None, **kwargs: Any) -> Request:
        """Build a request for ``url`` resolved against this response's URL."""
        return Request(urljoin(self.url, url), callback=callback, **kwargs)

    def css(self, selector: str, attribute: str | None = None) -> list[str]:
        return self._extractor().css(selector, attribute)

    def css_first(self, selector: str, attribute: str | None = None) -> str | None:
        return self._extractor().css_first(selector, attribute)

    def links(self) -> list[str]:
        return self._extractor().links(self.url)

    def _extractor(self) -> Extractor:
        # Parsed lazily, once per response.
        extractor = self.__dict__.get("_extractor_cache")
        if extractor is None:
            extractor = Extractor(self.text)
            object.__setattr__(self, "_extractor_cache", extractor)
        return extractor


Result = Union[Request, Item]
HandlerResult = Union[Iterable[Result], AsyncIterable[Result], None]
