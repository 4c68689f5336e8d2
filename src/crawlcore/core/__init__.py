"""Download components: transport, downloader and their protocols."""

from .downloader import Downloader
from .fetcher import HttpxTransport
from .protocols import Fetcher, RequestMiddleware, Transport, TransportResponse

__all__ = [
    "Downloader",
    "Fetcher",
    "HttpxTransport",
    "RequestMiddleware",
    "Transport",
    "TransportResponse",
]
