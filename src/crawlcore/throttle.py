"""Per-host politeness delay and a global request rate limit."""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from urllib.parse import urlparse


@dataclass
class HostState:
    """Request timing for a single host."""
    host: str
    last_request_time: float = 0.0
    request_count: int = 0


class HostThrottle:
    """Spaces out request starts to the same host by at least ``delay`` seconds.

    A delay of 0 makes ``wait`` return immediately without tracking anything.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self._hosts: dict[str, HostState] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @property
    def enabled(self) -> bool:
        return self.delay > 0

    def _get_host(self, url: str) -> str:
        return urlparse(url).netloc.lower()

    def _get_state(self, host: str) -> HostState:
        if host not in self._hosts:
            self._hosts[host] = HostState(host=host)
        return self._hosts[host]

    def _get_lock(self, host: str) -> asyncio.Lock:
        if host not in self._locks:
            self._locks[host] = asyncio.Lock()
        return self._locks[host]

    async def wait(self, url: str):
        """Sleep until a request to this URL's host may start."""
        if not self.enabled:
            return

        host = self._get_host(url)
        state = self._get_state(host)

        async with self._get_lock(host):
            elapsed = time.monotonic() - state.last_request_time
            wait_time = self.delay - elapsed

            if state.request_count and wait_time > 0:
                await asyncio.sleep(wait_time)

            state.last_request_time = time.monotonic()
            state.request_count += 1

    def get_stats(self) -> dict:
        """Request counts per host."""
        return {
            host: {"request_count": state.request_count}
            for host, state in self._hosts.items()
        }


class RateLimiter:
    """Allows at most ``max_requests`` request starts in any ``period``-second window."""

    def __init__(self, max_requests: int, period: float = 60.0):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.period = period
        self._starts: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float):
        while self._starts and now - self._starts[0] >= self.period:
            self._starts.popleft()

    def can_make_request(self) -> bool:
        self._prune(time.monotonic())
        return len(self._starts) < self.max_requests

    def wait_time(self) -> float:
        """Seconds until the oldest start in the window expires, or 0."""
        now = time.monotonic()
        self._prune(now)
        if len(self._starts) < self.max_requests:
            return 0.0
        return self._starts[0] + self.period - now

    async def acquire(self):
        """Wait for room in the window, then record a request start."""
        async with self._lock:
            delay = self.wait_time()
            while delay > 0:
                await asyncio.sleep(delay)
                delay = self.wait_time()
            self._starts.append(time.monotonic())
