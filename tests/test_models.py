"""Tests for pygdrive data models."""

import hashlib
import os
from datetime import datetime, timezone

import pytest

from pygdrive.models import (
    DRIVE_FOLDER_MIME_TYPE,
    About,
    Change,
    File,
    Permission,
    UploadOptions,
    UpsertRequest,
)


class TestFileFromApiResponse:
    """Tests for building File snapshots from API resources."""

    def test_regular_file(self):
        """All relevant fields are read from the resource."""
        f = File.from_api_response(
            {
                "id": "abc",
                "title": "b.txt",
                "mimeType": "text/plain",
                "modifiedDate": "2024-01-15T10:30:00.000Z",
                "parents": [{"id": "p1"}, {"id": "p2"}],
                "labels": {"trashed": True},
                "fileSize": "42",
                "md5Checksum": "d41d8cd98f00b204e9800998ecf8427e",
                "etag": '"e1"',
                "downloadUrl": "https://example.com/dl",
            }
        )
        assert f.id == "abc"
        assert f.name == "b.txt"
        assert not f.is_dir
        assert f.mod_time == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert f.parents == ("p1", "p2")
        assert f.trashed
        assert f.size == 42
        assert f.md5_checksum == "d41d8cd98f00b204e9800998ecf8427e"
        assert f.etag == '"e1"'
        assert f.download_url == "https://example.com/dl"
        assert not f.is_root

    def test_folder(self):
        """The folder content type marks a directory."""
        f = File.from_api_response(
            {"id": "d", "title": "A", "mimeType": DRIVE_FOLDER_MIME_TYPE}
        )
        assert f.is_dir
        assert f.is_root
        assert f.size == 0
        assert f.mod_time is None

    def test_native_document_export_links(self):
        """Native documents expose their export links."""
        f = File.from_api_response(
            {
                "id": "doc",
                "title": "Notes",
                "mimeType": "application/vnd.google-apps.document",
                "exportLinks": {"application/pdf": "https://example.com/pdf"},
            }
        )
        assert f.has_export_links
        assert f.export_links["application/pdf"] == "https://example.com/pdf"

    def test_directory_never_has_export_links(self):
        """Directories report no export links even if the store sends some."""
        f = File(name="A", is_dir=True, export_links={"x": "y"})
        assert not f.has_export_links

    def test_bad_size_defaults_to_zero(self):
        f = File.from_api_response({"id": "x", "title": "x", "fileSize": "n/a"})
        assert f.size == 0

    def test_snapshots_are_immutable(self):
        """Snapshots cannot be modified in place."""
        f = File(name="a")
        with pytest.raises(AttributeError):
            f.name = "b"  # type: ignore[misc]


class TestFileFromLocalPath:
    """Tests for building File snapshots from the filesystem."""

    def test_regular_file(self, tmp_path):
        """Size, checksum and whole-second UTC mtime are captured."""
        path = tmp_path / "b.txt"
        path.write_bytes(b"hello")
        os.utime(path, (1_700_000_000.75, 1_700_000_000.75))

        f = File.from_local_path(path)

        assert f.id == ""
        assert f.name == "b.txt"
        assert not f.is_dir
        assert f.size == 5
        assert f.md5_checksum == hashlib.md5(b"hello").hexdigest()
        assert f.mod_time == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert f.blob_path == path

    def test_directory(self, tmp_path):
        """Directories carry no size or checksum."""
        f = File.from_local_path(tmp_path, file_id="remote-id")
        assert f.is_dir
        assert f.id == "remote-id"
        assert f.size == 0
        assert f.md5_checksum == ""

    def test_skip_checksum(self, tmp_path):
        path = tmp_path / "big.bin"
        path.write_bytes(b"x" * 10)
        assert File.from_local_path(path, compute_checksum=False).md5_checksum == ""


class TestChange:
    """Tests for Change.from_api_response."""

    def test_change_with_file(self):
        change = Change.from_api_response(
            {
                "id": "17",
                "fileId": "f1",
                "file": {"id": "f1", "title": "a.txt"},
                "modificationDate": "2024-01-15T10:30:00Z",
            }
        )
        assert change.id == 17
        assert change.file_id == "f1"
        assert not change.deleted
        assert change.file is not None and change.file.name == "a.txt"
        assert change.modification_date is not None

    def test_deleted_change(self):
        change = Change.from_api_response({"id": "18", "fileId": "f2", "deleted": True})
        assert change.deleted
        assert change.file is None


class TestPermissionAndAbout:
    """Tests for Permission and About."""

    def test_permission(self):
        p = Permission.from_api_response(
            {"id": "anyone", "role": "reader", "type": "anyone"}
        )
        assert p.id == "anyone"
        assert p.role == "reader"
        assert p.value == ""

    def test_about(self):
        about = About.from_api_response(
            {"rootFolderId": "r", "largestChangeId": "99", "quotaBytesUsed": "10"}
        )
        assert about.root_folder_id == "r"
        assert about.largest_change_id == 99
        assert about.quota_bytes_used == 10
        assert about.quota_bytes_total == 0


class TestUploadOptions:
    """Tests for UploadOptions."""

    def test_none(self):
        """The empty option set has every flag off."""
        assert UploadOptions.none().is_none
        assert UploadOptions.none() == UploadOptions()

    def test_flags_are_independent(self):
        """Setting one option leaves the others off."""
        opts = UploadOptions(ocr=True)
        assert opts.ocr
        assert not opts.convert
        assert not opts.pinned
        assert not opts.is_none

    def test_from_names(self):
        """Names accept dashes as well as underscores."""
        opts = UploadOptions.from_names(["pinned", "content-as-indexable-text"])
        assert opts == UploadOptions(pinned=True, content_as_indexable_text=True)

    def test_from_names_unknown(self):
        with pytest.raises(ValueError, match="Unknown upload option 'turbo'"):
            UploadOptions.from_names(["turbo"])


class TestUpsertRequest:
    """Tests for UpsertRequest defaults."""

    def test_defaults(self):
        request = UpsertRequest(parent_id="p", src=File(name="a"))
        assert request.options.is_none
        assert request.dest is None
        assert request.fs_abs_path is None
        assert not request.ignore_checksum
