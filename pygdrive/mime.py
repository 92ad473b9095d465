"""Content type lookup by file extension."""

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Optional

from .models import DRIVE_FOLDER_MIME_TYPE

# Patterns are matched case-insensitively against the whole extension.
DEFAULT_EXTENSION_TABLE: Mapping[str, str] = MappingProxyType(
    {
        "csv": "text/csv",
        "html?": "text/html",
        "te?xt": "text/plain",
        "gif": "image/gif",
        "png": "image/png",
        "svg": "image/svg+xml",
        "jpe?g": "image/jpeg",
        "odt": "application/vnd.oasis.opendocument.text",
        "rtf": "application/rtf",
        "pdf": "application/pdf",
        "docx?": (
            "application/vnd.openxmlformats-officedocument"
            ".wordprocessingml.document"
        ),
        "pptx?": (
            "application/vnd.openxmlformats-officedocument"
            ".presentationml.presentation"
        ),
        "xlsx?": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    }
)

__all__ = ["DEFAULT_EXTENSION_TABLE", "DRIVE_FOLDER_MIME_TYPE", "MimeResolver"]


class MimeResolver:
    """Resolves a file extension to a content type.

    The table is compiled once at construction and never changes afterwards.
    When several patterns match, which one wins is unspecified.
    """

    def __init__(self, table: Optional[Mapping[str, str]] = None):
        """Compile the extension table.

        Args:
            table: Mapping of extension pattern to content type
                (uses DEFAULT_EXTENSION_TABLE if not provided)

        Raises:
            re.error: If a pattern does not compile
        """
        source = DEFAULT_EXTENSION_TABLE if table is None else table
        self._patterns: tuple[tuple[re.Pattern[str], str], ...] = tuple(
            (re.compile(pattern, re.IGNORECASE), mime_type)
            for pattern, mime_type in source.items()
        )

    def resolve(self, ext: str) -> str:
        """Get the content type for an extension.

        Args:
            ext: Extension with or without the leading dot (e.g. ".DOCX")

        Returns:
            Content type, or an empty string if no pattern matches
        """
        ext = ext.lstrip(".")
        if not ext:
            return ""
        for pattern, mime_type in self._patterns:
            if pattern.fullmatch(ext):
                return mime_type
        return ""

    def resolve_name(self, name: str) -> str:
        """Get the content type for a file name by its last extension."""
        _, dot, ext = name.rpartition(".")
        if not dot:
            return ""
        return self.resolve(ext)

    def __len__(self) -> int:
        return len(self._patterns)
