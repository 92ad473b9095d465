"""Configuration management for pygdrive."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from .exceptions import DriveConfigError
from .utils import DEFAULT_PAGE_SIZE

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://www.googleapis.com/drive/v2"
DEFAULT_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v2"


class Config:
    """Configuration resolved from the environment and the config file.

    Precedence: environment variables, then ``~/.config/pygdrive/config``
    (a JSON document), then built-in defaults. ``PYGDRIVE_CONFIG`` points
    at an alternative config file.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self._config_path = config_path
        self._data: dict[str, Any] = self._load()

    def get_config_path(self) -> Path:
        """Get the path of the config file."""
        if self._config_path is not None:
            return self._config_path
        env_path = os.environ.get("PYGDRIVE_CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        return Path.home() / ".config" / "pygdrive" / "config"

    def _load(self) -> dict[str, Any]:
        path = self.get_config_path()
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable config file {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {path}: expected a JSON object")
            return {}
        return data

    def _save(self) -> None:
        path = self.get_config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(self._data, indent=2), encoding="utf-8")
            path.chmod(0o600)
        except OSError as e:
            raise DriveConfigError(f"Could not write config file {path}: {e}") from e

    def reload(self) -> None:
        """Re-read the config file."""
        self._data = self._load()

    @property
    def access_token(self) -> Optional[str]:
        """OAuth bearer token used for every request."""
        return os.environ.get("PYGDRIVE_ACCESS_TOKEN") or self._data.get(
            "access_token"
        )

    @property
    def api_url(self) -> str:
        """Base URL of the metadata endpoints."""
        return (
            os.environ.get("PYGDRIVE_API_URL")
            or self._data.get("api_url")
            or DEFAULT_API_URL
        )

    @property
    def upload_url(self) -> str:
        """Base URL of the media upload endpoints."""
        return (
            os.environ.get("PYGDRIVE_UPLOAD_URL")
            or self._data.get("upload_url")
            or DEFAULT_UPLOAD_URL
        )

    @property
    def page_size(self) -> int:
        """Number of items requested per page."""
        value = self._data.get("page_size", DEFAULT_PAGE_SIZE)
        try:
            return max(1, int(value))
        except (TypeError, ValueError):
            return DEFAULT_PAGE_SIZE

    def is_configured(self) -> bool:
        """Check whether an access token is available."""
        return bool(self.access_token)

    def save_access_token(self, access_token: str) -> None:
        """Persist the access token to the config file."""
        self._data["access_token"] = access_token
        self._save()

    def save_page_size(self, page_size: int) -> None:
        """Persist the page size to the config file."""
        if page_size < 1:
            raise DriveConfigError("Page size must be a positive integer")
        self._data["page_size"] = page_size
        self._save()


config = Config()
