"""Async crawling engine: scheduler, downloader, engine loop and item pipeline."""

from .config import CrawlerSettings, load_settings
from .engine import CrawlerEngine, CrawlerProcess, CrawlStats, Failure, run_crawl
from .exceptions import (
    ConfigurationError,
    CrawlError,
    DownloadConnectionError,
    DownloadError,
    DownloadTimeout,
    DropItem,
    PipelineError,
)
from .http import Item, Request, Response, request_fingerprint
from .pipeline import DuplicatesPipeline, ItemPipeline, ValidationPipeline
from .scheduler import Scheduler
from .spider import Spider

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "CrawlError",
    "CrawlStats",
    "CrawlerEngine",
    "CrawlerProcess",
    "CrawlerSettings",
    "DownloadConnectionError",
    "DownloadError",
    "DownloadTimeout",
    "DropItem",
    "DuplicatesPipeline",
    "Failure",
    "Item",
    "ItemPipeline",
    "PipelineError",
    "Request",
    "Response",
    "Scheduler",
    "Spider",
    "ValidationPipeline",
    "load_settings",
    "request_fingerprint",
    "run_crawl",
]
