"""Exceptions raised by pygdrive."""


class DriveAPIError(Exception):
    """Base exception for all Drive errors."""


class DriveConfigError(DriveAPIError):
    """Configuration is missing or invalid."""


class DriveAuthenticationError(DriveAPIError):
    """The access token was rejected (HTTP 401)."""


class DrivePermissionError(DriveAPIError):
    """The caller may not access the resource (HTTP 403)."""


class DriveNotFoundError(DriveAPIError):
    """An identifier does not resolve to an object (HTTP 404)."""


class PathNotFoundError(DriveNotFoundError):
    """A slash-delimited path does not resolve to an object.

    Raised only by path resolution, never by the transport, so callers can
    tell "absent" apart from a network or auth failure.
    """

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Remote path doesn't exist: {path}")


class DrivePreconditionError(DriveAPIError):
    """An operation was refused before any request was issued.

    Examples are creating or modifying the root path, or creating a file
    whose local content source cannot be opened.
    """


class DriveRateLimitError(DriveAPIError):
    """Rate limit exceeded (HTTP 429)."""


class DriveNetworkError(DriveAPIError):
    """The request never produced an HTTP response."""


class DriveInvalidResponseError(DriveAPIError):
    """The server answered with something that is not the expected JSON."""


class DriveUploadError(DriveAPIError):
    """Media upload failed."""


class DriveDownloadError(DriveAPIError):
    """Download failed."""


class DriveStreamError(DriveAPIError):
    """A paginated stream stopped because a page fetch failed."""

    def __init__(self, message: str, items_delivered: int = 0):
        self.items_delivered = items_delivered
        super().__init__(message)
