"""Facade over the path, upsert, change and permission primitives."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from .api import DriveClient
from .changes import ChangeFeedReader
from .diff import DiffOracle
from .exceptions import DriveNotFoundError, DrivePreconditionError
from .mime import MimeResolver
from .models import About, Change, File, UpsertRequest
from .pager import PageStream
from .permissions import PermissionManager, public_url
from .resolver import PathResolver
from .upsert import UpsertEngine

logger = logging.getLogger(__name__)


class Remote:
    """One authenticated view of the store as a path namespace.

    All components share the same client, which is used read-only.
    """

    def __init__(
        self,
        client: DriveClient,
        diff_oracle: Optional[DiffOracle] = None,
        mime_resolver: Optional[MimeResolver] = None,
        page_size: Optional[int] = None,
    ):
        self.client = client
        self.mime_resolver = mime_resolver or MimeResolver()
        self.upserter = UpsertEngine(
            client, diff_oracle=diff_oracle, mime_resolver=self.mime_resolver
        )
        self.resolver = PathResolver(
            client, upserter=self.upserter, page_size=page_size
        )
        self.upserter.resolver = self.resolver
        self.change_feed = ChangeFeedReader(client, page_size=page_size)
        self.permissions = PermissionManager(client)

    # =========================
    # Lookup
    # =========================

    def find_by_id(self, file_id: str) -> File:
        return self.resolver.find_by_id(file_id)

    def find_by_path(self, path: str) -> File:
        return self.resolver.resolve(path)

    def find_by_path_trashed(self, path: str) -> File:
        return self.resolver.resolve_trashed(path)

    def find_by_path_shared(
        self, path: str, include_hidden: bool = False
    ) -> PageStream[File]:
        return self.resolver.resolve_shared(path, include_hidden=include_hidden)

    def find_by_parent_id(
        self, parent_id: str, include_hidden: bool = False
    ) -> PageStream[File]:
        return self.resolver.list_children(parent_id, include_hidden=include_hidden)

    def find_by_parent_id_trashed(
        self, parent_id: str, include_hidden: bool = False
    ) -> PageStream[File]:
        return self.resolver.list_children(
            parent_id, include_hidden=include_hidden, trashed=True
        )

    def path_of(self, file: File) -> str:
        return self.resolver.path_of(file)

    # =========================
    # Mutation
    # =========================

    def mkdir_all(self, path: str) -> File:
        return self.resolver.ensure_directory_path(path)

    def upsert(self, request: UpsertRequest) -> File:
        return self.upserter.upsert(request)

    def touch(self, file_id: str) -> File:
        """Set the modification time of an object to now.

        Raises:
            DriveNotFoundError: If the store returns no object
        """
        result = self.client.touch_file(file_id)
        if not result:
            raise DriveNotFoundError(f"Remote object doesn't exist: {file_id}")
        return File.from_api_response(result)

    def trash(self, file_id: str) -> None:
        self.client.trash_file(file_id)

    def untrash(self, file_id: str) -> None:
        self.client.untrash_file(file_id)

    def empty_trash(self) -> None:
        self.client.empty_trash()

    # =========================
    # Changes
    # =========================

    def changes(self, start_change_id: int = -1) -> PageStream[Change]:
        return self.change_feed.changes(start_change_id)

    def change(self, change_id: int) -> Change:
        return self.change_feed.get_change(change_id)

    # =========================
    # Sharing
    # =========================

    def publish(self, file_id: str) -> str:
        return self.permissions.publish(file_id)

    def unpublish(self, file_id: str) -> None:
        self.permissions.unpublish(file_id)

    # =========================
    # Content & account
    # =========================

    def download(
        self,
        file: File,
        output_path: Path,
        export_type: str = "",
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> Path:
        """Download an object's content.

        Args:
            file: Remote snapshot of the object
            output_path: Where to save the content
            export_type: Content type to export a native document as
            progress_callback: Optional callback function(bytes, total)

        Returns:
            Path where the content was saved

        Raises:
            DrivePreconditionError: If the object is a directory, or a native
                document without a matching export link
        """
        if file.is_dir:
            raise DrivePreconditionError(f"'{file.name}' is a directory")
        if file.has_export_links:
            if export_type not in file.export_links:
                available = ", ".join(sorted(file.export_links))
                raise DrivePreconditionError(
                    f"'{file.name}' can only be exported as: {available}"
                )
            url = file.export_links[export_type]
        else:
            url = file.download_url or public_url(file.id)
        logger.debug(f"Downloading {file.id} from {url}")
        return self.client.download(url, output_path, progress_callback)

    def about(self) -> About:
        return About.from_api_response(self.client.get_about())
