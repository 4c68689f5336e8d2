"""Exception types raised by crawler components."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .http import Request


class CrawlError(Exception):
    """Base class for all crawler errors."""


class ConfigurationError(CrawlError):
    """Invalid settings. Raised before any request is dispatched."""


class DownloadError(CrawlError):
    """A request could not be fetched by the transport."""

    kind = "download_error"

    def __init__(self, request: Request, message: str):
        super().__init__(message)
        self.request = request
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind} fetching {self.request.url}: {self.message}"


class DownloadTimeout(DownloadError):
    kind = "timeout"


class DownloadConnectionError(DownloadError):
    """DNS resolution, refused connection or TLS handshake failure."""

    kind = "connection_error"


class DropItem(CrawlError):
    """Raised by a pipeline stage to reject an item."""

    def __init__(self, reason: str, stage: str | None = None):
        super().__init__(reason)
        self.reason = reason
        self.stage = stage

    def __str__(self) -> str:
        if self.stage:
            return f"{self.stage}: {self.reason}"
        return self.reason


class PipelineError(CrawlError):
    """Misuse of the item pipeline, e.g. adding a stage mid-run."""
