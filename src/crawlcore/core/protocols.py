"""Protocol definitions for downloader components."""

from dataclasses import dataclass, field
from typing import Mapping, Protocol

from ..http import Request, Response


@dataclass
class TransportResponse:
    """Raw result of one transport round-trip."""

    url: str
    status: int
    content: bytes
    headers: Mapping[str, str] = field(default_factory=dict)


class Transport(Protocol):
    """Performs the actual network operation for the downloader."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        body: bytes,
        timeout: float | None = None,
    ) -> TransportResponse:
        """Send a request. Raises on transport failure; never on HTTP status.

        Transports that support proxies also accept a ``proxy`` keyword; it is
        only passed when a request asks for one.
        """
        ...

    async def close(self) -> None:
        ...


class Fetcher(Protocol):
    """Anything the engine can hand a request to."""

    async def fetch(self, request: Request) -> Response:
        ...

    async def close(self) -> None:
        ...


class RequestMiddleware(Protocol):
    """Mutates outgoing requests. ``process_response`` is optional."""

    def process_request(self, request: Request) -> Request:
        ...
