"""Tests for lazily produced page streams."""

import gc
import threading
import time
from types import SimpleNamespace

import pytest

from pygdrive.exceptions import DriveNetworkError, DriveStreamError
from pygdrive.models import Page
from pygdrive.pager import PageStream, hidden_filter, stream_pages


def paged(*pages):
    """Build a fetch function serving ``pages`` in order, chained by token."""
    calls = []

    def fetch_page(page_token):
        calls.append(page_token)
        index = int(page_token or 0)
        next_token = str(index + 1) if index + 1 < len(pages) else ""
        return Page(items=list(pages[index]), next_page_token=next_token)

    fetch_page.calls = calls
    return fetch_page


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestPageStream:
    """Tests for PageStream iteration."""

    def test_single_page(self):
        """Every item of the only page is delivered in order."""
        stream = stream_pages(paged([1, 2, 3]))
        assert list(stream) == [1, 2, 3]
        assert stream.exhausted
        assert stream.error is None
        assert not stream.cancelled
        assert stream.pages_fetched == 1

    def test_multiple_pages(self):
        """Pages are concatenated and fetched with the previous token."""
        fetch = paged([1, 2], [3], [4, 5])
        stream = stream_pages(fetch)
        assert list(stream) == [1, 2, 3, 4, 5]
        assert fetch.calls == [None, "1", "2"]
        assert stream.items_delivered == 5

    def test_empty_result(self):
        """An empty first page ends the stream immediately."""
        stream = stream_pages(paged([]))
        assert list(stream) == []
        assert stream.exhausted

    def test_empty_middle_page(self):
        """An empty page with a token does not end the stream."""
        assert list(stream_pages(paged([1], [], [2]))) == [1, 2]

    def test_lazy_start(self):
        """Nothing is fetched before the first next()."""
        fetch = paged([1])
        stream = stream_pages(fetch)
        time.sleep(0.05)
        assert fetch.calls == []
        assert next(stream) == 1

    def test_exhausted_stream_stays_done(self):
        stream = stream_pages(paged([1]))
        list(stream)
        assert stream.done
        with pytest.raises(StopIteration):
            next(stream)

    def test_item_filter(self):
        """Filtered items are never delivered."""
        stream = stream_pages(paged([1, 2, 3, 4]), item_filter=lambda n: n % 2 == 0)
        assert list(stream) == [2, 4]

    def test_producer_runs_at_most_one_item_ahead(self):
        """The producer blocks until the consumer takes the next item."""
        produced = []

        def fetch_page(page_token):
            return Page(items=list(range(10)))

        def record(item):
            produced.append(item)
            return True

        stream = stream_pages(fetch_page, item_filter=record)
        assert next(stream) == 0
        time.sleep(0.3)
        # One item in the slot and one waiting to be put
        assert len(produced) <= 3
        stream.close()


class TestPageStreamFailure:
    """Tests for page fetch failures."""

    @staticmethod
    def failing_after_first_page():
        def fetch_page(page_token):
            if page_token is None:
                return Page(items=["a", "b"], next_page_token="next")
            raise DriveNetworkError("connection reset")

        return fetch_page

    def test_failure_ends_silently_by_default(self):
        """Items before the failure are delivered; the error is recorded."""
        stream = stream_pages(self.failing_after_first_page())
        assert list(stream) == ["a", "b"]
        assert not stream.exhausted
        assert isinstance(stream.error, DriveNetworkError)

    def test_failure_raises_when_asked(self):
        """With raise_errors the consumer gets DriveStreamError at the end."""
        stream = stream_pages(self.failing_after_first_page(), raise_errors=True)
        assert next(stream) == "a"
        assert next(stream) == "b"
        with pytest.raises(DriveStreamError) as exc_info:
            next(stream)
        assert exc_info.value.items_delivered == 2
        assert isinstance(exc_info.value.__cause__, DriveNetworkError)

    def test_first_page_failure(self):
        def fetch_page(page_token):
            raise DriveNetworkError("offline")

        stream = stream_pages(fetch_page)
        assert list(stream) == []
        assert stream.error is not None
        assert stream.pages_fetched == 0


class TestPageStreamCancellation:
    """Tests for abandoning a stream early."""

    @staticmethod
    def endless():
        fetched = []

        def fetch_page(page_token):
            fetched.append(page_token)
            index = int(page_token or 0)
            return Page(
                items=[index * 10 + i for i in range(3)],
                next_page_token=str(index + 1),
            )

        fetch_page.fetched = fetched
        return fetch_page

    def test_close_stops_producer(self):
        """After close() no further pages are fetched."""
        fetch = self.endless()
        stream = stream_pages(fetch, name="endless")
        assert next(stream) == 0
        stream.close()

        assert stream.cancelled
        assert stream.done
        assert wait_for(lambda: not stream._thread.is_alive())
        fetched = len(fetch.fetched)
        time.sleep(0.3)
        assert len(fetch.fetched) == fetched
        with pytest.raises(StopIteration):
            next(stream)

    def test_context_manager_cancels(self):
        fetch = self.endless()
        with stream_pages(fetch) as stream:
            assert next(stream) == 0
        assert stream.cancelled
        assert wait_for(lambda: not stream._thread.is_alive())

    def test_close_after_exhaustion_is_noop(self):
        stream = stream_pages(paged([1]))
        list(stream)
        stream.close()
        assert not stream.cancelled
        assert stream.exhausted

    def test_close_before_start(self):
        """Closing an unstarted stream never fetches anything."""
        fetch = paged([1])
        stream = stream_pages(fetch)
        stream.close()
        assert list(stream) == []
        assert fetch.calls == []

    def test_dropping_stream_stops_producer(self):
        """Losing the last reference cancels the producer."""
        fetch = self.endless()
        stream = stream_pages(fetch)
        next(stream)
        thread = stream._thread
        del stream
        gc.collect()
        assert wait_for(lambda: not thread.is_alive())

    def test_concurrent_streams_are_independent(self):
        """Several streams can be consumed from different threads."""
        results = {}

        def consume(key, pages):
            results[key] = list(stream_pages(paged(*pages)))

        threads = [
            threading.Thread(target=consume, args=(i, ([i, i], [i]))) for i in range(5)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == {i: [i, i, i] for i in range(5)}


class TestHiddenFilter:
    """Tests for hidden_filter."""

    def test_include_hidden_has_no_filter(self):
        assert hidden_filter(True) is None

    def test_drops_dot_names(self):
        keep = hidden_filter(False)
        assert keep(SimpleNamespace(name="a.txt"))
        assert not keep(SimpleNamespace(name=".hidden"))

    def test_with_stream(self):
        items = [SimpleNamespace(name=n) for n in (".git", "src", ".env", "README")]
        stream = PageStream(paged(items), item_filter=hidden_filter(False))
        assert [i.name for i in stream] == ["src", "README"]
