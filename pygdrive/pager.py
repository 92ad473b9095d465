"""Turn page-at-a-time queries into lazily produced item streams.

Each stream runs its page-fetch loop on a dedicated daemon thread that hands
items to the single consumer over a one-slot queue, so the producer never
runs more than one item ahead of the consumer. Abandoning a stream (calling
``close()``, leaving a ``with`` block, or dropping the last reference) stops
the producer before its next fetch or hand-off. A fetch already in flight
finishes, and its result is discarded.
"""

from __future__ import annotations

import logging
import queue
import threading
import weakref
from typing import Any, Callable, Generic, Optional, TypeVar

from .exceptions import DriveStreamError
from .models import Page
from .utils import is_hidden

logger = logging.getLogger(__name__)

T = TypeVar("T")

FetchPage = Callable[[Optional[str]], Page[T]]
ItemFilter = Callable[[T], bool]

_END = object()

# Seconds a blocked producer waits before re-checking for cancellation
POLL_INTERVAL = 0.1


class _Producer(Generic[T]):
    """Page-fetch loop state, kept apart from PageStream so the worker
    thread holds no reference to the stream itself."""

    def __init__(
        self,
        fetch_page: FetchPage[T],
        item_filter: Optional[ItemFilter[T]],
        name: str,
    ):
        self.fetch_page = fetch_page
        self.item_filter = item_filter
        self.name = name
        self.channel: queue.Queue[Any] = queue.Queue(maxsize=1)
        self.stopped = threading.Event()
        self.error: Optional[Exception] = None
        self.exhausted = False
        self.pages_fetched = 0

    def run(self) -> None:
        page_token: Optional[str] = None
        try:
            while not self.stopped.is_set():
                page = self.fetch_page(page_token)
                self.pages_fetched += 1
                logger.debug(
                    f"{self.name}: page {self.pages_fetched} "
                    f"with {len(page.items)} item(s)"
                )
                for item in page.items:
                    if self.item_filter is not None and not self.item_filter(item):
                        continue
                    if not self.hand_off(item):
                        return
                page_token = page.next_page_token
                if not page_token:
                    self.exhausted = True
                    break
        except Exception as e:
            # Recorded for the consumer, raised there if it asked for it
            self.error = e
            logger.warning(
                f"{self.name}: stream ended early after "
                f"{self.pages_fetched} page(s), page fetch failed: {e}"
            )
        self.hand_off(_END)

    def hand_off(self, obj: Any) -> bool:
        """Block until the consumer takes ``obj``; False if cancelled first."""
        while not self.stopped.is_set():
            try:
                self.channel.put(obj, timeout=POLL_INTERVAL)
                return True
            except queue.Full:
                continue
        return False

    def cancel(self) -> None:
        self.stopped.set()
        # Free the slot so a blocked producer wakes up and sees the flag
        try:
            while True:
                self.channel.get_nowait()
        except queue.Empty:
            pass


class PageStream(Generic[T]):
    """Single-pass, single-reader iterator over every item of every page.

    The terminal state is explicit once iteration stops:

    * ``exhausted`` is True when the last page was consumed normally.
    * ``error`` holds the exception of a failed page fetch, if any.
    * ``cancelled`` is True when the consumer closed the stream early.

    By default a failed fetch just ends iteration (after logging a warning).
    With ``raise_errors=True`` the consumer receives a ``DriveStreamError``
    instead, once every item fetched before the failure has been delivered.
    """

    def __init__(
        self,
        fetch_page: FetchPage[T],
        item_filter: Optional[ItemFilter[T]] = None,
        raise_errors: bool = False,
        name: str = "stream",
    ):
        self.name = name
        self.raise_errors = raise_errors
        self.items_delivered = 0
        self.cancelled = False
        self._producer: _Producer[T] = _Producer(fetch_page, item_filter, name)
        self._thread: Optional[threading.Thread] = None
        self._ended = False
        self._finalizer = weakref.finalize(self, self._producer.cancel)

    @property
    def error(self) -> Optional[Exception]:
        """Exception of the failed page fetch, None if no fetch failed."""
        return self._producer.error

    @property
    def exhausted(self) -> bool:
        """True if every page was fetched."""
        return self._producer.exhausted

    @property
    def pages_fetched(self) -> int:
        """Number of pages fetched so far."""
        return self._producer.pages_fetched

    @property
    def done(self) -> bool:
        """True once iteration has stopped for any reason."""
        return self._ended or self.cancelled

    def _start(self) -> None:
        self._thread = threading.Thread(
            target=self._producer.run, name=f"pygdrive-{self.name}", daemon=True
        )
        self._thread.start()

    def __iter__(self) -> PageStream[T]:
        return self

    def __next__(self) -> T:
        if self.done:
            raise StopIteration
        if self._thread is None:
            self._start()

        item = self._producer.channel.get()
        if item is _END:
            self._ended = True
            self._finalizer.detach()
            if self._thread is not None:
                self._thread.join()
            error = self._producer.error
            if error is not None and self.raise_errors:
                raise DriveStreamError(
                    f"{self.name}: page fetch failed after "
                    f"{self.items_delivered} item(s): {error}",
                    items_delivered=self.items_delivered,
                ) from error
            raise StopIteration

        self.items_delivered += 1
        return item

    def close(self) -> None:
        """Stop consuming. The producer stops at its next opportunity."""
        if self.done:
            return
        self.cancelled = True
        self._finalizer()
        logger.debug(
            f"{self.name}: cancelled after {self.items_delivered} item(s)"
        )

    def __enter__(self) -> PageStream[T]:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


def stream_pages(
    fetch_page: FetchPage[T],
    item_filter: Optional[ItemFilter[T]] = None,
    raise_errors: bool = False,
    name: str = "stream",
) -> PageStream[T]:
    """Stream every item of a paginated query.

    Args:
        fetch_page: Callable fetching one page given a continuation token
            (None for the first page)
        item_filter: Optional predicate; items for which it returns False
            are dropped
        raise_errors: Raise DriveStreamError on a failed fetch instead of
            ending silently
        name: Name used in log messages and the worker thread name

    Returns:
        A PageStream that starts fetching on the first ``next()``
    """
    return PageStream(
        fetch_page, item_filter=item_filter, raise_errors=raise_errors, name=name
    )


def hidden_filter(include_hidden: bool) -> Optional[Callable[[Any], bool]]:
    """Build the filter that drops dot-prefixed items.

    Args:
        include_hidden: Keep hidden items (no filter)

    Returns:
        None when hidden items are kept, otherwise a predicate on ``.name``
    """
    if include_hidden:
        return None
    return lambda item: not is_hidden(item.name)
