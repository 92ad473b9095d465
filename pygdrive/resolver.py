"""Map slash-delimited paths onto the store's parent-reference graph.

The store has no notion of a path: every object only knows the identifiers
of its parents. Paths are resolved by walking from the root one segment at
a time, asking for the single child of the current directory that carries
the segment as its title. Identity is always the opaque identifier; a path
is a derived view and may be ambiguous when two siblings share a name.
"""

from __future__ import annotations

import logging
import posixpath
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from .api import DriveClient
from .config import config
from .exceptions import DrivePreconditionError, PathNotFoundError
from .models import File, Page, UpsertRequest
from .pager import PageStream, hidden_filter, stream_pages
from .utils import ROOT_ID, escape_path_sep, split_path, unescape_path_sep

if TYPE_CHECKING:
    from .upsert import UpsertEngine

logger = logging.getLogger(__name__)


def quote_query_value(value: str) -> str:
    """Quote a string literal for use in a query expression.

    Examples:
        >>> quote_query_value("it's")
        "'it\\\\'s'"
    """
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


class PathResolver:
    """Resolves paths to objects under the active, trashed and shared views."""

    def __init__(
        self,
        client: DriveClient,
        upserter: Optional[UpsertEngine] = None,
        page_size: Optional[int] = None,
    ):
        """Initialize the resolver.

        Args:
            client: Drive API client
            upserter: Engine used to create missing directories
                (a default one is built on first use)
            page_size: Items per page for listings (uses config if not provided)
        """
        self.client = client
        self._upserter = upserter
        self.page_size = page_size or config.page_size

    @property
    def upserter(self) -> UpsertEngine:
        if self._upserter is None:
            from .upsert import UpsertEngine

            self._upserter = UpsertEngine(self.client, resolver=self)
        return self._upserter

    def find_by_id(self, file_id: str) -> File:
        """Get an object by identifier.

        Raises:
            DriveNotFoundError: If the identifier does not resolve
        """
        return File.from_api_response(self.client.get_file(file_id))

    def _find_child(
        self, parent_id: str, segments: list[str], trashed: bool, path: str
    ) -> File:
        """Find ``segments[0]`` under ``parent_id``, then recurse on the rest."""
        title = quote_query_value(unescape_path_sep(segments[0]))
        if trashed:
            # Trashed objects may have lost a meaningful parent linkage
            q = f"title = {title} and trashed = true"
        else:
            q = (
                f"{quote_query_value(parent_id)} in parents "
                f"and title = {title} and trashed = false"
            )

        # Only one object is expected per name and parent
        result = self.client.list_files(q=q, max_results=1)
        items = result.get("items") or []
        if not items:
            logger.debug(f"No match for '{segments[0]}' under {parent_id}")
            raise PathNotFoundError(path)

        first = File.from_api_response(items[0])
        logger.debug(f"Resolved '{segments[0]}' under {parent_id} to {first.id}")
        if len(segments) == 1:
            return first
        return self._find_child(first.id, segments[1:], trashed, path)

    def _find_by_path(self, path: str, trashed: bool) -> File:
        segments = split_path(path)
        if not segments:
            # The root always exists and is addressed by its alias
            return File(name="", id=ROOT_ID, is_dir=True)
        return self._find_child(ROOT_ID, segments, trashed, path)

    def resolve(self, path: str) -> File:
        """Resolve a path in the active (non-trashed) tree.

        Args:
            path: Slash-delimited path such as "/A/b.txt"

        Returns:
            The object at ``path``

        Raises:
            PathNotFoundError: If any segment does not resolve
            DriveAPIError: If a request fails (propagated unchanged)
        """
        return self._find_by_path(path, trashed=False)

    def resolve_trashed(self, path: str) -> File:
        """Resolve a path in the trash.

        Each segment is looked up by title among trashed objects only,
        without the parent clause.

        Raises:
            PathNotFoundError: If any segment does not resolve
        """
        return self._find_by_path(path, trashed=True)

    def resolve_shared(
        self, path: str, include_hidden: bool = False
    ) -> PageStream[File]:
        """Stream the objects shared with the caller.

        The shared view is flat: only the first non-empty segment of
        ``path`` is used, as a title filter. "/" and "root" list everything.

        Args:
            path: Path whose first segment narrows the listing
            include_hidden: Keep dot-prefixed objects

        Returns:
            Stream of shared objects
        """
        expr = "sharedWithMe = true"
        segments = [] if path == ROOT_ID else split_path(path)
        if segments:
            title = quote_query_value(unescape_path_sep(segments[0]))
            expr = f"title = {title} and {expr}"
        return self._stream_query(expr, include_hidden=include_hidden, name="shared")

    def list_children(
        self, parent_id: str, include_hidden: bool = False, trashed: bool = False
    ) -> PageStream[File]:
        """Stream the children of a directory.

        Args:
            parent_id: Identifier of the directory
            include_hidden: Keep dot-prefixed children
            trashed: List trashed children instead of active ones

        Returns:
            Stream of child objects in the store's order
        """
        q = (
            f"{quote_query_value(parent_id)} in parents "
            f"and trashed = {'true' if trashed else 'false'}"
        )
        return self._stream_query(q, include_hidden=include_hidden, name="children")

    def _stream_query(
        self, q: str, include_hidden: bool, name: str
    ) -> PageStream[File]:
        def fetch_page(page_token: Optional[str]) -> Page[File]:
            result = self.client.list_files(
                q=q, max_results=self.page_size, page_token=page_token
            )
            return Page(
                items=[File.from_api_response(f) for f in result.get("items") or []],
                next_page_token=result.get("nextPageToken") or "",
            )

        return stream_pages(
            fetch_page, item_filter=hidden_filter(include_hidden), name=name
        )

    def ensure_directory_path(self, path: str) -> File:
        """Make sure every directory along ``path`` exists.

        Safe to call repeatedly and from several callers at once without any
        lock: the path is looked up again before anything is created, so a
        directory created by another caller in the meantime is reused. Two
        callers that both miss before either create lands can still produce
        duplicate siblings; later lookups then pick one of them.

        Args:
            path: Directory path such as "/A/B/C"

        Returns:
            The directory at ``path``

        Raises:
            DrivePreconditionError: If ``path`` names the root or is relative
            DriveAPIError: If a lookup or create request fails
        """
        try:
            return self.resolve(path)
        except PathNotFoundError:
            pass

        rest, last = posixpath.split(path.rstrip("/"))
        if not rest or not last:
            raise DrivePreconditionError(f"Cannot tamper with root: '{path}'")

        parent = self.ensure_directory_path(rest)
        logger.debug(f"Creating directory '{last}' under {parent.id}")
        directory = File(
            name=last,
            is_dir=True,
            mod_time=datetime.now(timezone.utc).replace(microsecond=0),
        )
        return self.upserter.upsert(UpsertRequest(parent_id=parent.id, src=directory))

    def path_of(self, file: File) -> str:
        """Re-derive a path by walking first parents back to the root.

        Names are escaped the same way local paths are, so the result
        resolves back to an equivalent object.

        Args:
            file: Object to locate

        Returns:
            Absolute path ("/" for the root)
        """
        segments: list[str] = []
        visited: set[str] = set()
        current = file
        while current.parents:
            # Prevent infinite loops on a corrupt graph
            if current.id in visited:
                break
            visited.add(current.id)
            segments.append(escape_path_sep(current.name))
            current = self.find_by_id(current.parents[0])
        return "/" + "/".join(reversed(segments))
