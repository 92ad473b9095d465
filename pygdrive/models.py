"""Data models for objects, changes and permissions."""

import hashlib
from collections.abc import Iterable
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Generic, Optional, TypeVar

from .utils import parse_rfc3339

DRIVE_FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"

T = TypeVar("T")


def _md5_of(path: Path, chunk_size: int = 1024 * 1024) -> str:
    digest = hashlib.md5()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclass(frozen=True)
class File:
    """Metadata snapshot of one object, local or remote.

    Remote snapshots are read-only projections of server state: nothing in
    pygdrive mutates them, every change is a new request that returns a new
    snapshot. Local snapshots use the same shape with an empty ``id`` until
    the object exists remotely.
    """

    name: str
    """Display name (one path segment)"""

    id: str = ""
    """Opaque identifier assigned by the store, empty if not yet created"""

    is_dir: bool = False
    """True for directories"""

    mod_time: Optional[datetime] = None
    """Modification time, UTC, whole seconds"""

    parents: tuple[str, ...] = ()
    """Identifiers of the parent directories"""

    export_links: dict[str, str] = field(default_factory=dict, compare=False)
    """Export URLs keyed by content type (store-native documents only)"""

    trashed: bool = False
    """True if the object is in the trash"""

    mime_type: str = ""
    """Content type reported by the store"""

    size: int = 0
    """Content size in bytes"""

    md5_checksum: str = ""
    """Hex MD5 of the content, empty for directories and native documents"""

    etag: str = ""
    """Entity tag of this revision of the metadata"""

    download_url: str = ""
    """Direct content URL (files with binary content only)"""

    blob_path: Optional[Path] = None
    """Local content source, set on local snapshots only"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "File":
        """Build a snapshot from a Drive file resource.

        Args:
            data: Decoded JSON of a ``drive#file`` resource

        Returns:
            File instance
        """
        mime_type = data.get("mimeType", "") or ""
        labels = data.get("labels") or {}
        parents = tuple(
            p["id"] for p in data.get("parents") or [] if isinstance(p, dict)
        )
        try:
            size = int(data.get("fileSize") or 0)
        except (TypeError, ValueError):
            size = 0

        return cls(
            id=data.get("id", ""),
            name=data.get("title", ""),
            is_dir=mime_type == DRIVE_FOLDER_MIME_TYPE,
            mod_time=parse_rfc3339(data.get("modifiedDate")),
            parents=parents,
            export_links=dict(data.get("exportLinks") or {}),
            trashed=bool(labels.get("trashed", False)),
            mime_type=mime_type,
            size=size,
            md5_checksum=data.get("md5Checksum", "") or "",
            etag=data.get("etag", "") or "",
            download_url=data.get("downloadUrl", "") or "",
        )

    @classmethod
    def from_local_path(
        cls, path: Path, compute_checksum: bool = True, file_id: str = ""
    ) -> "File":
        """Build a local snapshot from a filesystem path.

        Args:
            path: File or directory on disk
            compute_checksum: Hash the content of regular files
            file_id: Remote identifier, when the object already exists remotely

        Returns:
            File instance whose ``blob_path`` points at ``path``
        """
        stat = path.stat()
        is_dir = path.is_dir()
        mod_time = datetime.fromtimestamp(int(stat.st_mtime), tz=timezone.utc)
        checksum = ""
        if compute_checksum and not is_dir:
            checksum = _md5_of(path)

        return cls(
            id=file_id,
            name=path.name,
            is_dir=is_dir,
            mod_time=mod_time,
            size=0 if is_dir else stat.st_size,
            md5_checksum=checksum,
            blob_path=path,
        )

    @property
    def has_export_links(self) -> bool:
        """True for non-directory native documents that can only be exported."""
        if self.is_dir:
            return False
        return len(self.export_links) >= 1

    @property
    def is_root(self) -> bool:
        """True if the object has no parents."""
        return not self.parents


@dataclass(frozen=True)
class Change:
    """One entry of the change feed."""

    id: int
    """Monotonically increasing change identifier"""

    file_id: str
    """Identifier of the affected object"""

    deleted: bool = False
    """True if the object was permanently deleted"""

    file: Optional[File] = None
    """Current state of the object, None when deleted"""

    modification_date: Optional[datetime] = None
    """When the change happened"""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Change":
        """Build a change from a ``drive#change`` resource."""
        file_data = data.get("file")
        return cls(
            id=int(data.get("id", 0)),
            file_id=data.get("fileId", ""),
            deleted=bool(data.get("deleted", False)),
            file=File.from_api_response(file_data) if file_data else None,
            modification_date=parse_rfc3339(data.get("modificationDate")),
        )


class Role(str, Enum):
    """Role granted by a permission."""

    OWNER = "owner"
    WRITER = "writer"
    COMMENTER = "commenter"
    READER = "reader"


class AccountType(str, Enum):
    """Kind of principal a permission applies to."""

    USER = "user"
    GROUP = "group"
    DOMAIN = "domain"
    ANYONE = "anyone"


@dataclass(frozen=True)
class Permission:
    """A sharing grant on an object."""

    id: str
    role: str
    type: str
    value: str = ""
    email_address: str = ""
    name: str = ""

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "Permission":
        return cls(
            id=data.get("id", ""),
            role=data.get("role", ""),
            type=data.get("type", ""),
            value=data.get("value", "") or "",
            email_address=data.get("emailAddress", "") or "",
            name=data.get("name", "") or "",
        )


@dataclass(frozen=True)
class About:
    """Account information relevant to synchronization."""

    root_folder_id: str
    largest_change_id: int
    quota_bytes_total: int = 0
    quota_bytes_used: int = 0

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "About":
        return cls(
            root_folder_id=data.get("rootFolderId", ""),
            largest_change_id=int(data.get("largestChangeId", 0) or 0),
            quota_bytes_total=int(data.get("quotaBytesTotal", 0) or 0),
            quota_bytes_used=int(data.get("quotaBytesUsed", 0) or 0),
        )


@dataclass(frozen=True)
class UploadOptions:
    """Independent processing options applied to an upload.

    Every option defaults to off and none of them affects another.
    """

    convert: bool = False
    """Convert the upload to the store's native document format"""

    ocr: bool = False
    """Run OCR on image and PDF uploads"""

    update_viewed_date: bool = False
    """Bump the viewed timestamp of the object"""

    content_as_indexable_text: bool = False
    """Index the content as plain text"""

    pinned: bool = False
    """Pin the new head revision"""

    new_revision: bool = False
    """Force a new revision instead of replacing the head"""

    @classmethod
    def none(cls) -> "UploadOptions":
        """Options with every flag off."""
        return cls()

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "UploadOptions":
        """Build options from flag names such as ``["ocr", "pinned"]``.

        Raises:
            ValueError: If a name is not a recognized option
        """
        known = {f.name for f in fields(cls)}
        selected = {}
        for name in names:
            key = name.strip().replace("-", "_")
            if key not in known:
                raise ValueError(
                    f"Unknown upload option '{name}'. "
                    f"Valid options: {', '.join(sorted(known))}"
                )
            selected[key] = True
        return cls(**selected)

    @property
    def is_none(self) -> bool:
        """True if no option is set."""
        return not any(getattr(self, f.name) for f in fields(self))


@dataclass(frozen=True)
class UpsertRequest:
    """One desired create-or-update of a remote object."""

    parent_id: str
    """Identifier of the target parent directory"""

    src: File
    """Local snapshot carrying the desired metadata"""

    fs_abs_path: Optional[Path] = None
    """Local content source, None for directories"""

    dest: Optional[File] = None
    """Current remote snapshot, only when updating"""

    options: UploadOptions = field(default_factory=UploadOptions)
    """Processing options"""

    ignore_checksum: bool = False
    """Skip checksum comparison when deciding whether to re-send content"""


@dataclass
class Page(Generic[T]):
    """One page of a list-style query."""

    items: list[T]
    next_page_token: str = ""
