"""Request scheduler: a priority queue with fingerprint deduplication."""

import heapq
import itertools
import logging

from .http import Request

logger = logging.getLogger(__name__)


class Scheduler:
    """Pending requests for one crawl run.

    Higher ``priority`` values are dequeued first; requests with equal
    priority come out in insertion order. A fingerprint accepted once is
    rejected for the rest of the run, even after its request was dequeued.
    """

    def __init__(self):
        self._queue: list[tuple[int, int, Request]] = []
        self._seen: set[str] = set()
        self._counter = itertools.count()
        self._enqueued = 0
        self._duplicates = 0

    def enqueue(self, request: Request) -> bool:
        """Add a request. Returns False if its fingerprint was already seen."""
        if request.fingerprint in self._seen:
            self._duplicates += 1
            logger.debug("Filtered duplicate request: %s %s", request.method, request.url)
            return False

        self._seen.add(request.fingerprint)
        heapq.heappush(self._queue, (-request.priority, next(self._counter), request))
        self._enqueued += 1
        return True

    def dequeue(self) -> Request | None:
        """Remove and return the highest-priority request, or None if empty."""
        if not self._queue:
            return None
        _, _, request = heapq.heappop(self._queue)
        return request

    def has_pending(self) -> bool:
        return bool(self._queue)

    def pending_count(self) -> int:
        return len(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def has_seen(self, request: Request | str) -> bool:
        """Check a request (or a raw fingerprint) against the seen-set."""
        fingerprint = request.fingerprint if isinstance(request, Request) else request
        return fingerprint in self._seen

    def stats(self) -> dict:
        """Get queue statistics."""
        return {
            "pending": len(self._queue),
            "seen": len(self._seen),
            "enqueued": self._enqueued,
            "duplicates": self._duplicates,
        }
