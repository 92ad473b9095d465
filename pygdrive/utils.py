"""Utility functions for pygdrive."""

import os
import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote_plus

# =============================================================================
# Constants
# =============================================================================

# Identifier of the namespace root
ROOT_ID: str = "root"

# Prefix that marks a hidden entry
HIDDEN_PREFIX: str = "."

# Default number of items requested per page for list-style queries
DEFAULT_PAGE_SIZE: int = 100

# Chunk size used when streaming downloads to disk
DEFAULT_DOWNLOAD_CHUNK_SIZE: int = 8192

# Chunk size used when streaming upload content
DEFAULT_UPLOAD_CHUNK_SIZE: int = 64 * 1024

UNESCAPED_PATH_SEP: str = os.sep
ESCAPED_PATH_SEP: str = quote_plus(os.sep)


# =============================================================================
# Path separator escaping
# =============================================================================


def escape_path_sep(name: str) -> str:
    """Escape the platform path separator inside a single name.

    Args:
        name: Name as stored remotely (may contain the separator)

    Returns:
        Name safe to use as one local path segment

    Examples:
        >>> escape_path_sep("a/b")
        'a%2Fb'
    """
    return name.replace(UNESCAPED_PATH_SEP, ESCAPED_PATH_SEP)


def unescape_path_sep(name: str) -> str:
    """Reverse :func:`escape_path_sep`.

    Examples:
        >>> unescape_path_sep("a%2Fb")
        'a/b'
    """
    return name.replace(ESCAPED_PATH_SEP, UNESCAPED_PATH_SEP)


def url_to_path(p: str, fs_bound: bool) -> str:
    """Project a name onto the local filesystem or back onto the store.

    Args:
        p: The name to convert
        fs_bound: True when the name is headed for the local filesystem

    Returns:
        The escaped (fs_bound) or un-escaped name
    """
    if fs_bound:
        return escape_path_sep(p)
    return unescape_path_sep(p)


def split_path(path: str) -> list[str]:
    """Split a slash-delimited remote path into its non-empty segments.

    Examples:
        >>> split_path("/A//b.txt")
        ['A', 'b.txt']
        >>> split_path("/")
        []
    """
    return [part for part in path.split("/") if part]


def is_hidden(name: str) -> bool:
    """Check whether a name follows the hidden-entry naming convention."""
    return name.startswith(HIDDEN_PREFIX)


# =============================================================================
# Timestamp utilities
# =============================================================================


def to_utc_string(dt: datetime) -> str:
    """Format a timestamp the way the store expects modification dates.

    Naive datetimes are taken to be UTC. The value is rounded to the
    nearest second.

    Args:
        dt: Timestamp to format

    Returns:
        RFC 3339 string such as ``2024-01-15T10:30:00.000Z``

    Examples:
        >>> to_utc_string(datetime(2024, 1, 15, 10, 30, 0, 600000))
        '2024-01-15T10:30:01.000Z'
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    utc = dt.astimezone(timezone.utc)
    seconds = round(utc.timestamp())
    utc = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.000Z")


def parse_rfc3339(timestamp_str: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp returned by the store.

    Args:
        timestamp_str: Timestamp string (e.g., "2024-01-15T10:30:00.000Z")

    Returns:
        Timezone-aware UTC datetime truncated to whole seconds, or None if
        the value is empty or cannot be parsed
    """
    if not timestamp_str:
        return None

    try:
        if timestamp_str.endswith("Z"):
            timestamp_str = timestamp_str[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(timestamp_str)
        except ValueError:
            # Try without fractional seconds
            dt = datetime.fromisoformat(re.sub(r"\.\d+", "", timestamp_str))
    except (ValueError, AttributeError):
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).replace(microsecond=0)


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
