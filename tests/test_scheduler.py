"""Tests for the request scheduler."""

import pytest

from crawlcore.http import Request
from crawlcore.scheduler import Scheduler


class TestScheduler:
    @pytest.fixture
    def scheduler(self):
        return Scheduler()

    def test_enqueue_new_request_returns_true(self, scheduler):
        """Enqueuing a new request should return True."""
        result = scheduler.enqueue(Request("http://example.com"))
        assert result is True

    def test_enqueue_duplicate_returns_false(self, scheduler):
        """Enqueuing the same method+URL twice should return False."""
        scheduler.enqueue(Request("http://example.com"))
        result = scheduler.enqueue(Request("http://example.com"))
        assert result is False
        assert scheduler.pending_count() == 1

    def test_duplicate_rejected_after_dequeue(self, scheduler):
        """The seen-set should outlive the queue entry."""
        scheduler.enqueue(Request("http://example.com"))
        scheduler.dequeue()
        assert scheduler.enqueue(Request("http://example.com")) is False
        assert scheduler.has_pending() is False

    def test_duplicate_rejected_for_every_later_attempt(self, scheduler):
        """A fingerprint accepted once should be refused on every later call."""
        assert scheduler.enqueue(Request("http://example.com/a")) is True
        for _ in range(5):
            assert scheduler.enqueue(Request("http://example.com/a")) is False
        assert scheduler.stats()["duplicates"] == 5

    def test_same_url_different_method_not_duplicate(self, scheduler):
        """Method is part of the fingerprint."""
        scheduler.enqueue(Request("http://example.com/form"))
        result = scheduler.enqueue(Request("http://example.com/form", method="POST"))
        assert result is True

    def test_fragment_only_difference_is_duplicate(self, scheduler):
        """URLs differing only by fragment should share a fingerprint."""
        scheduler.enqueue(Request("http://example.com/page#top"))
        assert scheduler.enqueue(Request("http://example.com/page#bottom")) is False

    def test_dequeue_returns_none_when_empty(self, scheduler):
        """dequeue should return None when nothing is pending."""
        assert scheduler.dequeue() is None

    def test_higher_priority_first(self, scheduler):
        """Higher priority values should be dequeued first."""
        scheduler.enqueue(Request("http://example.com/low", priority=-1))
        scheduler.enqueue(Request("http://example.com/high", priority=10))
        scheduler.enqueue(Request("http://example.com/mid", priority=0))

        urls = [scheduler.dequeue().url for _ in range(3)]
        assert urls == [
            "http://example.com/high",
            "http://example.com/mid",
            "http://example.com/low",
        ]

    def test_fifo_for_equal_priority(self, scheduler):
        """Equal priorities should come out in insertion order."""
        for i in range(5):
            scheduler.enqueue(Request(f"http://example.com/{i}", priority=3))

        urls = [scheduler.dequeue().url for _ in range(5)]
        assert urls == [f"http://example.com/{i}" for i in range(5)]

    def test_priority_with_duplicate(self, scheduler):
        """A, B(5), A should hold two entries and dequeue B then A."""
        a = "http://example.com/a"
        b = "http://example.com/b"
        assert scheduler.enqueue(Request(a, priority=0)) is True
        assert scheduler.enqueue(Request(b, priority=5)) is True
        assert scheduler.enqueue(Request(a, priority=0)) is False

        assert len(scheduler) == 2
        assert scheduler.dequeue().url == b
        assert scheduler.dequeue().url == a
        assert scheduler.dequeue() is None

    def test_has_pending(self, scheduler):
        """has_pending should track queue contents."""
        assert scheduler.has_pending() is False
        scheduler.enqueue(Request("http://example.com"))
        assert scheduler.has_pending() is True
        scheduler.dequeue()
        assert scheduler.has_pending() is False

    def test_has_seen(self, scheduler):
        """has_seen should accept requests or raw fingerprints."""
        request = Request("http://example.com")
        scheduler.enqueue(request)
        assert scheduler.has_seen(request) is True
        assert scheduler.has_seen(request.fingerprint) is True
        assert scheduler.has_seen(Request("http://other.com")) is False

    def test_stats(self, scheduler):
        """stats should return correct counts."""
        scheduler.enqueue(Request("http://example.com/1"))
        scheduler.enqueue(Request("http://example.com/2"))
        scheduler.enqueue(Request("http://example.com/1"))
        scheduler.dequeue()

        assert scheduler.stats() == {
            "pending": 1,
            "seen": 2,
            "enqueued": 2,
            "duplicates": 1,
        }

    def test_independent_instances(self):
        """Schedulers should not share seen-sets."""
        first, second = Scheduler(), Scheduler()
        first.enqueue(Request("http://example.com"))
        assert second.enqueue(Request("http://example.com")) is True
