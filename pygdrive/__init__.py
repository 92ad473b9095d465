"""pygdrive - Drive objects addressed by path."""

from .api import DriveClient
from .changes import ChangeFeedReader
from .diff import DiffOracle, Difference, checksum_differs, file_differences
from .exceptions import (
    DriveAPIError,
    DriveAuthenticationError,
    DriveConfigError,
    DriveDownloadError,
    DriveInvalidResponseError,
    DriveNetworkError,
    DriveNotFoundError,
    DrivePermissionError,
    DrivePreconditionError,
    DriveRateLimitError,
    DriveStreamError,
    DriveUploadError,
    PathNotFoundError,
)
from .mime import MimeResolver
from .models import (
    About,
    AccountType,
    Change,
    File,
    Permission,
    Role,
    UploadOptions,
    UpsertRequest,
)
from .pager import PageStream, stream_pages
from .permissions import PermissionManager
from .remote import Remote
from .resolver import PathResolver
from .upsert import UpsertEngine

__all__ = [
    "About",
    "AccountType",
    "Change",
    "ChangeFeedReader",
    "DiffOracle",
    "Difference",
    "DriveAPIError",
    "DriveAuthenticationError",
    "DriveClient",
    "DriveConfigError",
    "DriveDownloadError",
    "DriveInvalidResponseError",
    "DriveNetworkError",
    "DriveNotFoundError",
    "DrivePermissionError",
    "DrivePreconditionError",
    "DriveRateLimitError",
    "DriveStreamError",
    "DriveUploadError",
    "File",
    "MimeResolver",
    "PageStream",
    "PathNotFoundError",
    "PathResolver",
    "Permission",
    "PermissionManager",
    "Remote",
    "Role",
    "UploadOptions",
    "UpsertEngine",
    "UpsertRequest",
    "checksum_differs",
    "file_differences",
    "stream_pages",
]
