"""Create-or-update of a single remote object."""

from __future__ import annotations

import contextlib
import logging
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Optional

from .api import DriveClient
from .diff import DiffOracle, checksum_differs, file_differences
from .exceptions import DrivePreconditionError
from .mime import MimeResolver
from .models import DRIVE_FOLDER_MIME_TYPE, File, UploadOptions, UpsertRequest
from .utils import to_utc_string, unescape_path_sep

if TYPE_CHECKING:
    from .resolver import PathResolver

logger = logging.getLogger(__name__)


def option_params(options: UploadOptions, creating: bool = False) -> dict[str, str]:
    """Translate upload options into per-call query toggles.

    Only options that are switched on are sent; everything else keeps the
    store's default. Create calls do not accept ``new_revision`` or
    ``update_viewed_date``; both are left out when ``creating`` is set.
    """
    params: dict[str, str] = {}
    if options.ocr:
        params["ocr"] = "true"
    if options.convert:
        params["convert"] = "true"
    if options.pinned:
        params["pinned"] = "true"
    if options.content_as_indexable_text:
        params["useContentAsIndexableText"] = "true"
    if creating:
        return params
    if options.new_revision:
        params["newRevision"] = "true"
    if options.update_viewed_date:
        params["updateViewedDate"] = "true"
    return params


class UpsertEngine:
    """Turns one UpsertRequest into exactly one create or update call.

    No retry is attempted; a failed call propagates to the caller.
    """

    def __init__(
        self,
        client: DriveClient,
        diff_oracle: Optional[DiffOracle] = None,
        mime_resolver: Optional[MimeResolver] = None,
        resolver: Optional[PathResolver] = None,
    ):
        """Initialize the engine.

        Args:
            client: Drive API client
            diff_oracle: Snapshot comparison used to decide whether an update
                re-sends content (uses file_differences if not provided)
            mime_resolver: Content type lookup for new files
            resolver: Path resolver used by upsert_into
                (a default one is built on first use)
        """
        self.client = client
        self.diff_oracle: DiffOracle = diff_oracle or file_differences
        self.mime_resolver = mime_resolver or MimeResolver()
        self._resolver = resolver

    @property
    def resolver(self) -> PathResolver:
        if self._resolver is None:
            from .resolver import PathResolver

            self._resolver = PathResolver(self.client, upserter=self)
        return self._resolver

    @resolver.setter
    def resolver(self, resolver: PathResolver) -> None:
        self._resolver = resolver

    def build_metadata(self, request: UpsertRequest, creating: bool) -> dict[str, Any]:
        """Build the file resource sent with the mutation.

        Args:
            request: The upsert request
            creating: True for a create, False for an update

        Returns:
            File resource fields
        """
        src = request.src
        title = unescape_path_sep(src.name)
        metadata: dict[str, Any] = {
            "title": title,
            "parents": [{"id": request.parent_id}],
        }
        if src.is_dir:
            metadata["mimeType"] = DRIVE_FOLDER_MIME_TYPE
        elif creating:
            mime_type = self.mime_resolver.resolve_name(title)
            if mime_type:
                metadata["mimeType"] = mime_type

        # Always the local time, never one derived by the store
        if src.mod_time is not None:
            metadata["modifiedDate"] = to_utc_string(src.mod_time)
        return metadata

    def needs_content(self, request: UpsertRequest) -> bool:
        """Decide whether the mutation must carry the content body.

        Directories never carry content. A create always does. An update does
        when there is no remote snapshot to compare against, or when the diff
        oracle reports different checksums. A rename or option change alone
        never re-uploads.
        """
        if request.src.is_dir:
            return False
        if not request.src.id or request.dest is None:
            return True
        difference = self.diff_oracle(
            request.src, request.dest, request.ignore_checksum
        )
        return checksum_differs(difference)

    @staticmethod
    def _open_source(request: UpsertRequest) -> IO[bytes]:
        source = request.fs_abs_path or request.src.blob_path
        if source is None:
            raise DrivePreconditionError(
                f"No content source for file '{request.src.name}'"
            )
        try:
            return open(source, "rb")
        except OSError as e:
            raise DrivePreconditionError(
                f"Cannot open content source '{source}': {e}"
            ) from e

    def upsert(self, request: UpsertRequest) -> File:
        """Create or update one remote object.

        Args:
            request: What to write and where

        Returns:
            Snapshot of the object as returned by the store

        Raises:
            DrivePreconditionError: If a file's content source is needed but
                cannot be opened
            DriveAPIError: If the create or update call fails
        """
        src = request.src
        creating = not src.id
        metadata = self.build_metadata(request, creating)
        params = option_params(request.options, creating=creating)
        send_content = self.needs_content(request)

        with contextlib.ExitStack() as stack:
            body: Optional[IO[bytes]] = None
            if send_content:
                body = stack.enter_context(self._open_source(request))

            if creating:
                logger.debug(
                    f"Creating '{metadata['title']}' under {request.parent_id} "
                    f"(content: {body is not None})"
                )
                result = self.client.insert_file(
                    metadata, media=body, params=params or None
                )
            else:
                params["setModifiedDate"] = "true"
                logger.debug(
                    f"Updating {src.id} as '{metadata['title']}' "
                    f"(content: {body is not None}, params: {params})"
                )
                result = self.client.update_file(
                    src.id, metadata, media=body, params=params
                )

        return File.from_api_response(result)

    def upsert_into(
        self,
        remote_dir: str,
        src: File,
        fs_abs_path: Optional[Path] = None,
        dest: Optional[File] = None,
        options: Optional[UploadOptions] = None,
        ignore_checksum: bool = False,
    ) -> File:
        """Upsert ``src`` into a directory path, creating missing ancestors.

        Args:
            remote_dir: Directory path such as "/A/B" ("/" for the root)
            src: Local snapshot
            fs_abs_path: Content source (defaults to ``src.blob_path``)
            dest: Current remote snapshot, when updating
            options: Upload options
            ignore_checksum: Skip checksum comparison

        Returns:
            Snapshot of the written object
        """
        parent = self.resolver.ensure_directory_path(remote_dir)
        request = UpsertRequest(
            parent_id=parent.id,
            src=src,
            fs_abs_path=fs_abs_path,
            dest=dest,
            options=options or UploadOptions.none(),
            ignore_checksum=ignore_checksum,
        )
        return self.upsert(request)
