"""Shared fixtures: an in-memory stand-in for the Drive API client."""

import hashlib
import itertools
import re
import threading
from typing import Any, Optional

import pytest

from pygdrive.exceptions import DriveNotFoundError
from pygdrive.models import DRIVE_FOLDER_MIME_TYPE

_QUOTED = r"'((?:[^'\\]|\\.)*)'"


def _unquote(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


class FakeDriveClient:
    """Implements the DriveClient methods used by pygdrive against a dict.

    Understands exactly the query expressions pygdrive builds. Every call is
    recorded in ``calls`` as ``(method_name, args)``.
    """

    ROOT_ID = "root-id"

    def __init__(self) -> None:
        self.files: dict[str, dict[str, Any]] = {
            self.ROOT_ID: {
                "id": self.ROOT_ID,
                "title": "My Drive",
                "mimeType": DRIVE_FOLDER_MIME_TYPE,
                "parents": [],
                "labels": {"trashed": False},
            }
        }
        self.media: dict[str, bytes] = {}
        self.shared: set[str] = set()
        self.calls: list[tuple[str, Any]] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # Helpers for tests

    def add(
        self,
        title: str,
        parent_id: Optional[str] = None,
        is_dir: bool = False,
        trashed: bool = False,
        md5: str = "",
        size: int = 0,
        modified: str = "2024-01-01T00:00:00.000Z",
    ) -> str:
        with self._lock:
            file_id = f"id{next(self._ids)}"
        self.files[file_id] = {
            "id": file_id,
            "title": title,
            "mimeType": DRIVE_FOLDER_MIME_TYPE if is_dir else "text/plain",
            "parents": [{"id": parent_id or self.ROOT_ID}],
            "labels": {"trashed": trashed},
            "md5Checksum": md5,
            "fileSize": str(size),
            "modifiedDate": modified,
        }
        return file_id

    def calls_to(self, name: str) -> list[Any]:
        return [args for method, args in self.calls if method == name]

    def _real_id(self, file_id: str) -> str:
        return self.ROOT_ID if file_id == "root" else file_id

    # DriveClient surface

    def get_file(self, file_id: str) -> Any:
        self.calls.append(("get_file", file_id))
        try:
            return dict(self.files[self._real_id(file_id)])
        except KeyError:
            raise DriveNotFoundError("Resource not found") from None

    def list_files(
        self,
        q: Optional[str] = None,
        max_results: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> Any:
        self.calls.append(("list_files", q))
        q = q or ""
        parent = re.search(_QUOTED + r" in parents", q)
        title = re.search(r"title = " + _QUOTED, q)
        trashed = re.search(r"trashed = (true|false)", q)
        shared_only = "sharedWithMe = true" in q

        with self._lock:
            candidates = list(self.files.values())

        matches = []
        for f in candidates:
            if f["id"] == self.ROOT_ID:
                continue
            if parent:
                parent_id = self._real_id(_unquote(parent.group(1)))
                if parent_id not in [p["id"] for p in f["parents"]]:
                    continue
            if title and f["title"] != _unquote(title.group(1)):
                continue
            if trashed and f["labels"]["trashed"] != (trashed.group(1) == "true"):
                continue
            if shared_only and f["id"] not in self.shared:
                continue
            matches.append(dict(f))

        start = int(page_token or 0)
        size = max_results or len(matches) or 1
        page = matches[start : start + size]
        result: dict[str, Any] = {"items": page}
        if start + size < len(matches):
            result["nextPageToken"] = str(start + size)
        return result

    def _read(self, media: Any) -> Optional[bytes]:
        if media is None:
            return None
        return media if isinstance(media, bytes) else media.read()

    def insert_file(
        self, metadata: dict[str, Any], media: Any = None, params: Any = None
    ) -> Any:
        content = self._read(media)
        self.calls.append(("insert_file", (metadata, content, params)))
        with self._lock:
            file_id = f"id{next(self._ids)}"
            resource = {
                "id": file_id,
                "title": metadata["title"],
                "mimeType": metadata.get("mimeType", "application/octet-stream"),
                "parents": [
                    {"id": self._real_id(p["id"])}
                    for p in metadata.get("parents", [{"id": "root"}])
                ],
                "labels": {"trashed": False},
                "modifiedDate": metadata.get("modifiedDate"),
            }
            if content is not None:
                self.media[file_id] = content
                resource["fileSize"] = str(len(content))
                resource["md5Checksum"] = hashlib.md5(content).hexdigest()
            self.files[file_id] = resource
        return dict(resource)

    def update_file(
        self,
        file_id: str,
        metadata: dict[str, Any],
        media: Any = None,
        params: Any = None,
    ) -> Any:
        content = self._read(media)
        self.calls.append(("update_file", (file_id, metadata, content, params)))
        with self._lock:
            resource = self.files[file_id]
            resource.update(
                {k: v for k, v in metadata.items() if k != "parents"}
            )
            if "parents" in metadata:
                resource["parents"] = [
                    {"id": self._real_id(p["id"])} for p in metadata["parents"]
                ]
            if content is not None:
                self.media[file_id] = content
                resource["fileSize"] = str(len(content))
                resource["md5Checksum"] = hashlib.md5(content).hexdigest()
        return dict(resource)

    def _set_trashed(self, file_id: str, trashed: bool) -> Any:
        try:
            resource = self.files[file_id]
        except KeyError:
            raise DriveNotFoundError("Resource not found") from None
        resource["labels"] = {"trashed": trashed}
        return dict(resource)

    def trash_file(self, file_id: str) -> Any:
        self.calls.append(("trash_file", file_id))
        return self._set_trashed(file_id, True)

    def untrash_file(self, file_id: str) -> Any:
        self.calls.append(("untrash_file", file_id))
        return self._set_trashed(file_id, False)

    def touch_file(self, file_id: str) -> Any:
        self.calls.append(("touch_file", file_id))
        resource = self.files[file_id]
        resource["modifiedDate"] = "2030-01-01T00:00:00.000Z"
        return dict(resource)

    def insert_permission(
        self, file_id: str, permission: dict[str, Any], email_message: Any = None
    ) -> Any:
        self.calls.append(("insert_permission", (file_id, permission, email_message)))
        return {"id": permission.get("value") or permission["type"], **permission}

    def delete_permission(self, file_id: str, permission_id: str) -> Any:
        self.calls.append(("delete_permission", (file_id, permission_id)))
        return {}

    def close(self) -> None:
        pass


@pytest.fixture
def fake_client():
    """Provide an empty in-memory store."""
    return FakeDriveClient()
