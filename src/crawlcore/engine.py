"""Crawler engine: the concurrency-bounded drain/refill dispatch loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import asdict, dataclass, field
from typing import Iterable

from .config import CrawlerSettings, load_settings
from .core import Downloader, Fetcher, RequestMiddleware, Transport
from .exceptions import ConfigurationError, CrawlError, DownloadError, DropItem
from .http import Item, Request, Response
from .pipeline import ItemPipeline, PipelineStage
from .scheduler import Scheduler
from .spider import Spider

logger = logging.getLogger(__name__)


@dataclass
class Failure:
    """A locally recovered error, kept for reporting."""
    kind: str
    url: str
    message: str


@dataclass
class CrawlStats:
    """Counters for one crawl run."""
    requests_enqueued: int = 0
    requests_filtered: int = 0
    requests_offsite: int = 0
    requests_dispatched: int = 0
    responses_received: int = 0
    download_errors: int = 0
    handler_errors: int = 0
    items_scraped: int = 0
    items_dropped: int = 0
    item_errors: int = 0
    ignored_results: int = 0
    max_active_requests: int = 0
    started_at: float = 0.0
    finished_at: float = 0.0
    failures: list[Failure] = field(default_factory=list)

    @property
    def elapsed(self) -> float:
        if not self.finished_at:
            return 0.0
        return self.finished_at - self.started_at

    def to_dict(self) -> dict:
        data = asdict(self)
        data["elapsed"] = self.elapsed
        return data


class CrawlerEngine:
    """Owns the scheduler, downloader and item pipeline for one crawl.

    All bookkeeping (the scheduler, ``active_requests`` and the pipeline) is
    touched only from the event loop running ``crawl``; fetches overlap, but
    their completions are handled one step at a time. At most
    ``max_concurrent`` fetches are in flight at any moment, and the crawl
    ends exactly when nothing is in flight, nothing is pending and no handler
    is still producing results.
    """

    def __init__(
        self,
        settings: CrawlerSettings | None = None,
        *,
        downloader: Fetcher | None = None,
        pipelines: ItemPipeline | Iterable[PipelineStage] = (),
        middlewares: Iterable[RequestMiddleware] = (),
        transport: Transport | None = None,
    ):
        self.settings = settings if settings is not None else load_settings()
        max_concurrent = self.settings.concurrent_requests
        if not isinstance(max_concurrent, int) or max_concurrent < 1:
            raise ConfigurationError(
                f"concurrent_requests must be a positive integer, got {max_concurrent!r}"
            )

        self.max_concurrent = max_concurrent
        self.downloader = downloader or Downloader.from_settings(
            self.settings, transport=transport, middlewares=list(middlewares)
        )
        if isinstance(pipelines, ItemPipeline):
            self.pipeline = pipelines
        else:
            self.pipeline = ItemPipeline(pipelines)

        self.scheduler = Scheduler()
        self.stats = CrawlStats()
        self.active_requests = 0
        self.spider: Spider | None = None

        self._handling = 0
        self._tasks: set[asyncio.Task] = set()
        self._finished: asyncio.Event | None = None
        self._error: BaseException | None = None
        self._running = False

    @property
    def is_idle(self) -> bool:
        """True when nothing is in flight, pending, or being handled."""
        return (
            self.active_requests == 0
            and self._handling == 0
            and not self.scheduler.has_pending()
        )

    async def crawl(self, spider: Spider) -> CrawlStats:
        """Run a crawl to quiescence and return its statistics."""
        if self._running:
            raise CrawlError("engine is already running a crawl")

        self._running = True
        self.spider = spider
        self.scheduler = Scheduler()
        self.stats = CrawlStats(started_at=time.time())
        self._error = None
        self._finished = asyncio.Event()

        logger.info(
            "Starting crawl %r (concurrent_requests=%d)", spider.name, self.max_concurrent
        )
        try:
            self.pipeline.open(spider)
            for request in spider.start_requests():
                self.schedule(request)

            self._drain()
            self._check_idle()
            await self._finished.wait()
        finally:
            self._running = False
            pending = list(self._tasks)
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            self.pipeline.close(spider)
            self.stats.finished_at = time.time()

        if self._error is not None:
            raise self._error

        logger.info(
            "Finished crawl %r: %d responses, %d items, %d dropped, %d download errors in %.1fs",
            spider.name,
            self.stats.responses_received,
            self.stats.items_scraped,
            self.stats.items_dropped,
            self.stats.download_errors,
            self.stats.elapsed,
        )
        return self.stats

    def schedule(self, request: Request) -> bool:
        """Enqueue a request; duplicates and offsite requests are dropped silently."""
        if self.spider is not None and not self.spider.is_allowed(request.url):
            self.stats.requests_offsite += 1
            logger.debug("Filtered offsite request to %s", request.url)
            return False
        if self.scheduler.enqueue(request):
            self.stats.requests_enqueued += 1
            return True
        self.stats.requests_filtered += 1
        return False

    def _drain(self):
        """Dispatch pending requests until the concurrency limit is reached."""
        if not self._running:
            return
        while self.active_requests < self.max_concurrent and self.scheduler.has_pending():
            request = self.scheduler.dequeue()
            self.active_requests += 1
            self.stats.requests_dispatched += 1
            if self.active_requests > self.stats.max_active_requests:
                self.stats.max_active_requests = self.active_requests

            task = asyncio.create_task(self._process_request(request))
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _check_idle(self):
        if self.is_idle and self._finished is not None:
            self._finished.set()

    def _task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and self._error is None:
            # Engine bug, not a per-request failure: abort the crawl.
            self._error = exc
            if self._finished is not None:
                self._finished.set()

    async def _process_request(self, request: Request):
        try:
            try:
                response = await self.downloader.fetch(request)
            except Exception as e:
                self.active_requests -= 1
                self._on_download_error(request, e)
                return

            self.active_requests -= 1
            self.stats.responses_received += 1
            logger.debug("Fetched (%d) %s", response.status, request.url)
            await self._handle_response(response)
        finally:
            self._drain()
            self._check_idle()

    def _on_download_error(self, request: Request, error: Exception):
        self.stats.download_errors += 1
        kind = error.kind if isinstance(error, DownloadError) else "download_error"
        self.stats.failures.append(Failure(kind, request.url, str(error)))
        logger.warning("Download failed for %s %s: %s", request.method, request.url, error)

    async def _handle_response(self, response: Response):
        callback = response.request.callback or self.spider.parse

        self._handling += 1
        try:
            results = callback(response)
            if inspect.isawaitable(results):
                results = await results
            if results is None:
                return

            if hasattr(results, "__aiter__"):
                async for result in results:
                    self._route(result, response)
            else:
                for result in results:
                    self._route(result, response)
        except Exception as e:
            self.stats.handler_errors += 1
            self.stats.failures.append(Failure("handler_error", response.url, repr(e)))
            logger.exception(
                "Error in handler %s for %s",
                getattr(callback, "__name__", repr(callback)),
                response.url,
            )
        finally:
            self._handling -= 1

    def _route(self, result, response: Response):
        if isinstance(result, Request):
            if self.schedule(result):
                # Use free slots now; the handler may keep running for a while.
                self._drain()
        elif isinstance(result, dict):
            item = result if isinstance(result, Item) else Item(result)
            self._process_item(item, response)
        else:
            self.stats.ignored_results += 1
            logger.warning(
                "Ignoring %s yielded while handling %s: expected Request or Item",
                type(result).__name__,
                response.url,
            )

    def _process_item(self, item: Item, response: Response):
        try:
            self.pipeline.process(item, self.spider)
        except DropItem as e:
            self.stats.items_dropped += 1
            self.stats.failures.append(Failure("item_dropped", response.url, str(e)))
            logger.info("Dropped item from %s: %s", response.url, e)
        except Exception as e:
            self.stats.item_errors += 1
            self.stats.failures.append(Failure("item_error", response.url, repr(e)))
            logger.exception("Error processing item from %s", response.url)
        else:
            self.stats.items_scraped += 1


async def run_crawl(
    spider: Spider,
    settings: CrawlerSettings | None = None,
    pipelines: Iterable[PipelineStage] = (),
    middlewares: Iterable[RequestMiddleware] = (),
    transport: Transport | None = None,
) -> CrawlStats:
    """Run one spider with its ``custom_settings`` applied, then release the downloader."""
    settings = (settings if settings is not None else load_settings()).merged(
        spider.custom_settings
    )
    downloader = Downloader.from_settings(
        settings, transport=transport, middlewares=list(middlewares)
    )
    async with downloader:
        engine = CrawlerEngine(settings, downloader=downloader, pipelines=pipelines)
        return await engine.crawl(spider)


class CrawlerProcess:
    """Synchronous entry point: runs each crawl in its own event loop."""

    def __init__(self, settings: CrawlerSettings | None = None):
        self.settings = settings if settings is not None else load_settings()

    def crawl(
        self,
        spider: Spider,
        pipelines: Iterable[PipelineStage] = (),
        middlewares: Iterable[RequestMiddleware] = (),
    ) -> CrawlStats:
        return asyncio.run(run_crawl(spider, self.settings, pipelines, middlewares))
