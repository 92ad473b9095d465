"""API client for the Drive v2 REST surface."""

from __future__ import annotations

import io
import json
import logging
import random
import time
import uuid
from pathlib import Path
from typing import IO, Any, Callable, Iterator

import httpx

from .config import config
from .exceptions import (
    DriveAPIError,
    DriveAuthenticationError,
    DriveConfigError,
    DriveDownloadError,
    DriveInvalidResponseError,
    DriveNetworkError,
    DriveNotFoundError,
    DrivePermissionError,
    DriveRateLimitError,
    DriveUploadError,
)
from .utils import DEFAULT_DOWNLOAD_CHUNK_SIZE, DEFAULT_UPLOAD_CHUNK_SIZE

logger = logging.getLogger(__name__)


class MultipartRelatedBody:
    """A ``multipart/related`` upload body: JSON metadata, then the media.

    The media is read in chunks while the request is sent, never as a
    whole. Each iteration seeks a seekable source back to where it started,
    so a retried request sends the same content again.
    """

    def __init__(
        self,
        metadata: dict[str, Any],
        media: IO[bytes] | bytes,
        media_type: str,
        chunk_size: int = DEFAULT_UPLOAD_CHUNK_SIZE,
    ):
        boundary = f"pygdrive-{uuid.uuid4().hex}"
        self.content_type = f"multipart/related; boundary={boundary}"
        self.media = media
        self.chunk_size = chunk_size
        self._head = (
            f"--{boundary}\r\n"
            "Content-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{boundary}\r\n"
            f"Content-Type: {media_type}\r\n\r\n"
        ).encode("utf-8")
        self._tail = f"\r\n--{boundary}--\r\n".encode()
        self._start: int | None = None
        if not isinstance(media, bytes) and media.seekable():
            self._start = media.tell()

    @property
    def replayable(self) -> bool:
        return isinstance(self.media, bytes) or self._start is not None

    def content_length(self) -> int | None:
        """Total body size, or None when the media size is unknown."""
        if isinstance(self.media, bytes):
            size = len(self.media)
        elif self._start is not None:
            size = self.media.seek(0, io.SEEK_END) - self._start
            self.media.seek(self._start)
        else:
            return None
        return len(self._head) + size + len(self._tail)

    def __iter__(self) -> Iterator[bytes]:
        yield self._head
        if isinstance(self.media, bytes):
            yield self.media
        else:
            if self._start is not None:
                self.media.seek(self._start)
            while True:
                chunk = self.media.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        yield self._tail


class DriveClient:
    """Client for the Drive v2 REST API.

    The client either builds its own ``httpx.Client`` around a bearer token
    or wraps a caller-supplied client that already authenticates (and
    refreshes) every request. It never inspects or refreshes credentials
    itself.
    """

    def __init__(
        self,
        access_token: str | None = None,
        api_url: str | None = None,
        upload_url: str | None = None,
        http_client: httpx.Client | None = None,
        max_retries: int = 0,
        retry_delay: float = 1.0,
        timeout: float = 30.0,
    ):
        """Initialize the Drive API client.

        Args:
            access_token: Optional bearer token (uses config if not provided)
            api_url: Optional metadata API URL (uses config if not provided)
            upload_url: Optional media upload URL (uses config if not provided)
            http_client: Optional pre-authenticated client; when given the
                access token is not required
            max_retries: Retry attempts for transient failures (default: 0)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Request timeout in seconds (default: 30.0)
        """
        self.access_token = access_token or config.access_token
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.upload_url = (upload_url or config.upload_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        if http_client is None and not self.access_token:
            raise DriveConfigError(
                "Access token not configured. "
                "Please set PYGDRIVE_ACCESS_TOKEN environment variable."
            )

        self._client: httpx.Client | None = http_client
        self._owns_client = http_client is None

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.access_token}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
            self._owns_client = True
        return self._client

    def close(self) -> None:
        """Close the client if this instance created it."""
        if self._owns_client and self._client is not None:
            if not self._client.is_closed:
                self._client.close()
            self._client = None

    def __enter__(self) -> DriveClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _should_retry(self, exception: Exception, attempt: int) -> bool:
        """Determine if a request should be retried.

        Args:
            exception: The exception that occurred
            attempt: Current attempt number (0-based)

        Returns:
            True if the request should be retried, False otherwise
        """
        if attempt >= self.max_retries:
            return False
        return isinstance(exception, (DriveNetworkError, DriveRateLimitError))

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return base_delay + jitter

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[Exception, bool]:
        """Map an HTTP error to a Drive exception.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code == 401:
            raise DriveAuthenticationError(
                "Invalid access token or unauthorized access"
            ) from e
        elif status_code == 403:
            raise DrivePermissionError(
                "Access forbidden - check your permissions"
            ) from e
        elif status_code == 404:
            raise DriveNotFoundError("Resource not found") from e
        elif status_code == 429:
            error = DriveRateLimitError("Rate limit exceeded - please try again later")
            return (error, attempt < self.max_retries)

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    # Drive wraps errors as {"error": {"message": ...}}
                    err = error_data.get("error")
                    msg = err.get("message") if isinstance(err, dict) else err
                    msg = msg or error_data.get("message")
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            pass

        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (DriveAPIError(error_msg), should_retry)

    def _request(
        self,
        method: str,
        endpoint: str,
        base_url: str | None = None,
        **kwargs: Any,
    ) -> Any:
        """Make an API request.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            base_url: Base URL (defaults to the metadata API URL)
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data ({} for empty bodies)

        Raises:
            DriveAPIError: If the request fails
        """
        url = f"{base_url or self.api_url}/{endpoint.lstrip('/')}"
        last_exception: Exception | None = None
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(f"{method} {url} params={kwargs.get('params')}")
                response = client.request(method, url, **kwargs)
                response.raise_for_status()

                content_type = response.headers.get("Content-Type", "")
                if response.content and "application/json" not in content_type:
                    raise DriveInvalidResponseError(
                        f"Unexpected response type: {content_type}"
                    )

                if response.content:
                    try:
                        return response.json()
                    except ValueError as e:
                        raise DriveInvalidResponseError(
                            "Invalid JSON response from server"
                        ) from e
                return {}

            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                last_exception = error

                if should_retry:
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                    else:
                        delay = self._calculate_retry_delay(attempt)
                    logger.debug(f"Retrying {method} {url} in {delay:.1f}s")
                    time.sleep(delay)
                    continue
                raise error from e
            except DriveAPIError:
                raise
            except httpx.RequestError as e:
                error = DriveNetworkError(f"Network error: {e}")
                last_exception = error
                if self._should_retry(error, attempt):
                    delay = self._calculate_retry_delay(attempt)
                    logger.debug(f"Retrying {method} {url} in {delay:.1f}s")
                    time.sleep(delay)
                    continue
                raise error from e

        if last_exception:
            raise last_exception
        raise DriveAPIError("Request failed after all retry attempts")

    def _upload(
        self,
        method: str,
        endpoint: str,
        metadata: dict[str, Any],
        media: IO[bytes] | bytes,
        params: dict[str, Any],
    ) -> Any:
        media_type = metadata.get("mimeType") or "application/octet-stream"
        try:
            body = MultipartRelatedBody(metadata, media, media_type)
            content_length = body.content_length()
        except OSError as e:
            raise DriveUploadError(f"Failed to read upload content: {e}") from e
        if self.max_retries > 0 and not body.replayable:
            raise DriveUploadError(
                "Upload content cannot be rewound for a retry; "
                "pass a seekable source or use max_retries=0"
            )

        headers = {"Content-Type": body.content_type}
        if content_length is not None:
            headers["Content-Length"] = str(content_length)
        params = {**params, "uploadType": "multipart"}
        try:
            return self._request(
                method,
                endpoint,
                base_url=self.upload_url,
                params=params,
                content=body,
                headers=headers,
            )
        except OSError as e:
            raise DriveUploadError(f"Failed to read upload content: {e}") from e

    # =========================
    # File Operations
    # =========================

    def get_file(self, file_id: str) -> Any:
        """Get a file resource by identifier.

        Args:
            file_id: Identifier of the file, or "root"

        Returns:
            File resource
        """
        return self._request("GET", f"/files/{file_id}")

    def list_files(
        self,
        q: str | None = None,
        max_results: int | None = None,
        page_token: str | None = None,
    ) -> Any:
        """List files matching a query (one page).

        Args:
            q: Query expression (e.g. "'root' in parents and trashed = false")
            max_results: Maximum number of items on the page
            page_token: Continuation token of the page to fetch

        Returns:
            Response with 'items' and, when more remain, 'nextPageToken'
        """
        params: dict[str, Any] = {}
        if q:
            params["q"] = q
        if max_results is not None:
            params["maxResults"] = max_results
        if page_token:
            params["pageToken"] = page_token
        return self._request("GET", "/files", params=params)

    def insert_file(
        self,
        metadata: dict[str, Any],
        media: IO[bytes] | bytes | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Create a file, optionally uploading its content.

        Args:
            metadata: File resource fields (title, parents, mimeType, ...)
            media: Content to upload (None for metadata-only creation)
            params: Extra query parameters

        Returns:
            The created file resource
        """
        if media is None:
            return self._request("POST", "/files", params=params, json=metadata)
        return self._upload("POST", "/files", metadata, media, params or {})

    def update_file(
        self,
        file_id: str,
        metadata: dict[str, Any],
        media: IO[bytes] | bytes | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Update a file's metadata and optionally replace its content.

        Args:
            file_id: Identifier of the file to update
            metadata: File resource fields to write
            media: New content (None to leave content untouched)
            params: Extra query parameters (setModifiedDate, ocr, ...)

        Returns:
            The updated file resource
        """
        endpoint = f"/files/{file_id}"
        if media is None:
            return self._request("PUT", endpoint, params=params, json=metadata)
        return self._upload("PUT", endpoint, metadata, media, params or {})

    def touch_file(self, file_id: str) -> Any:
        """Set a file's modified date to the server's current time."""
        return self._request("POST", f"/files/{file_id}/touch")

    def trash_file(self, file_id: str) -> Any:
        """Move a file to the trash."""
        return self._request("POST", f"/files/{file_id}/trash")

    def untrash_file(self, file_id: str) -> Any:
        """Restore a file from the trash."""
        return self._request("POST", f"/files/{file_id}/untrash")

    def empty_trash(self) -> Any:
        """Permanently delete every trashed file."""
        return self._request("DELETE", "/files/trash")

    # =========================
    # Change Operations
    # =========================

    def list_changes(
        self,
        start_change_id: int | None = None,
        page_token: str | None = None,
        max_results: int | None = None,
    ) -> Any:
        """List changes (one page).

        Args:
            start_change_id: First change identifier to include
            page_token: Continuation token of the page to fetch
            max_results: Maximum number of changes on the page

        Returns:
            Response with 'items', 'largestChangeId' and maybe 'nextPageToken'
        """
        params: dict[str, Any] = {}
        if start_change_id is not None:
            params["startChangeId"] = start_change_id
        if page_token:
            params["pageToken"] = page_token
        if max_results is not None:
            params["maxResults"] = max_results
        return self._request("GET", "/changes", params=params)

    def get_change(self, change_id: str) -> Any:
        """Get a single change by identifier."""
        return self._request("GET", f"/changes/{change_id}")

    # =========================
    # Permission Operations
    # =========================

    def list_permissions(self, file_id: str) -> Any:
        """List the permissions of a file."""
        return self._request("GET", f"/files/{file_id}/permissions")

    def insert_permission(
        self,
        file_id: str,
        permission: dict[str, Any],
        email_message: str | None = None,
    ) -> Any:
        """Grant a permission on a file.

        Args:
            file_id: Identifier of the file
            permission: Permission resource (role, type, value)
            email_message: Optional message sent to the grantee

        Returns:
            The created permission resource
        """
        params: dict[str, Any] = {}
        if email_message:
            params["emailMessage"] = email_message
        return self._request(
            "POST",
            f"/files/{file_id}/permissions",
            params=params or None,
            json=permission,
        )

    def delete_permission(self, file_id: str, permission_id: str) -> Any:
        """Remove a permission from a file."""
        return self._request("DELETE", f"/files/{file_id}/permissions/{permission_id}")

    def get_id_for_email(self, email: str) -> Any:
        """Look up the permission identifier of an email address."""
        return self._request("GET", f"/permissionIds/{email}")

    # =========================
    # Account Operations
    # =========================

    def get_about(self) -> Any:
        """Get account information (root folder id, largest change id)."""
        return self._request("GET", "/about")

    # =========================
    # Download Operations
    # =========================

    def download(
        self,
        url: str,
        output_path: Path,
        progress_callback: Callable[[int, int], None] | None = None,
        timeout: float = 60,
    ) -> Path:
        """Stream a URL to a local file.

        Args:
            url: Absolute download or export URL
            output_path: Where to save the content
            progress_callback: Optional callback function(bytes_downloaded, total)
            timeout: Request timeout in seconds (default: 60)

        Returns:
            Path where the file was saved

        Raises:
            DriveDownloadError: If the download or the write fails
        """
        client = self._get_client()
        try:
            with client.stream("GET", url, timeout=timeout) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))
                bytes_downloaded = 0
                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(
                        chunk_size=DEFAULT_DOWNLOAD_CHUNK_SIZE
                    ):
                        if chunk:
                            f.write(chunk)
                            bytes_downloaded += len(chunk)
                            if progress_callback:
                                progress_callback(bytes_downloaded, total_size)
            return output_path
        except httpx.HTTPStatusError as e:
            raise DriveDownloadError(f"Download failed: {e}") from e
        except httpx.RequestError as e:
            raise DriveNetworkError(f"Network error during download: {e}") from e
        except OSError as e:
            raise DriveDownloadError(f"Failed to write file: {e}") from e
