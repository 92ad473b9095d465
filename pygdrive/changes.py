"""Incremental change feed."""

import logging
from typing import Optional

from .api import DriveClient
from .config import config
from .models import About, Change, Page
from .pager import PageStream, stream_pages
from .utils import is_hidden

logger = logging.getLogger(__name__)


def _visible_change(change: Change) -> bool:
    return change.file is None or not is_hidden(change.file.name)


class ChangeFeedReader:
    """Streams change events in change identifier order.

    The reader keeps no checkpoint. Consumers remember the highest change
    identifier they processed and resume from that value plus one.
    """

    def __init__(self, client: DriveClient, page_size: Optional[int] = None):
        """Initialize the reader.

        Args:
            client: Drive API client
            page_size: Changes per page (uses config if not provided)
        """
        self.client = client
        self.page_size = page_size or config.page_size

    def changes(
        self,
        start_change_id: int = -1,
        include_hidden: bool = True,
        raise_errors: bool = False,
    ) -> PageStream[Change]:
        """Stream changes starting at ``start_change_id``.

        Args:
            start_change_id: First change to include; negative means from
                the beginning of the feed
            include_hidden: Keep changes to dot-prefixed objects
            raise_errors: Surface a failed page fetch as DriveStreamError

        Returns:
            Stream of Change objects
        """
        start = start_change_id if start_change_id >= 0 else None

        def fetch_page(page_token: Optional[str]) -> Page[Change]:
            result = self.client.list_changes(
                start_change_id=start,
                page_token=page_token,
                max_results=self.page_size,
            )
            return Page(
                items=[Change.from_api_response(c) for c in result.get("items") or []],
                next_page_token=result.get("nextPageToken") or "",
            )

        logger.debug(f"Streaming changes from {start_change_id}")
        return stream_pages(
            fetch_page,
            item_filter=None if include_hidden else _visible_change,
            raise_errors=raise_errors,
            name="changes",
        )

    def get_change(self, change_id: int) -> Change:
        """Get a single change by identifier."""
        return Change.from_api_response(self.client.get_change(str(change_id)))

    def largest_change_id(self) -> int:
        """Get the identifier of the most recent change."""
        return About.from_api_response(self.client.get_about()).largest_change_id
