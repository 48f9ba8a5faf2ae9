"""Runtime settings for drivesync, resolved from environment variables."""

import os
from pathlib import Path
from typing import Optional

from .exceptions import ConfigError

DEFAULT_MAP_FILE = "dir_map.json"
DEFAULT_CREDENTIALS_FILE = "service-account.json"
DEFAULT_API_URL = "https://www.googleapis.com"
DEFAULT_MAX_RETRIES = 0
DEFAULT_TIMEOUT = 60.0


class Config:
    """Settings lookup.

    Values are read from the environment on every access so that tests and
    long-running processes always see the current environment.
    """

    @property
    def map_file(self) -> Path:
        """Path to the JSON mapping document."""
        return Path(os.environ.get("DRIVESYNC_MAP_FILE", DEFAULT_MAP_FILE))

    @property
    def credentials_file(self) -> Path:
        """Path to the credential artifact."""
        return Path(
            os.environ.get("DRIVESYNC_CREDENTIALS_FILE", DEFAULT_CREDENTIALS_FILE)
        )

    @property
    def api_url(self) -> str:
        """Base URL of the remote store API."""
        return os.environ.get("DRIVESYNC_API_URL", DEFAULT_API_URL).rstrip("/")

    @property
    def access_token(self) -> Optional[str]:
        """Access token overriding the credential file, if set."""
        token = os.environ.get("DRIVESYNC_ACCESS_TOKEN", "").strip()
        return token or None

    @property
    def max_retries(self) -> int:
        """Retry attempts for transient remote failures."""
        value = self._get_number("DRIVESYNC_MAX_RETRIES", DEFAULT_MAX_RETRIES, int)
        if value < 0:
            raise ConfigError("DRIVESYNC_MAX_RETRIES must not be negative")
        return int(value)

    @property
    def timeout(self) -> float:
        """Request timeout in seconds."""
        value = self._get_number("DRIVESYNC_TIMEOUT", DEFAULT_TIMEOUT, float)
        if value <= 0:
            raise ConfigError("DRIVESYNC_TIMEOUT must be positive")
        return float(value)

    @staticmethod
    def _get_number(name: str, default: float, cast: type) -> float:
        raw = os.environ.get(name)
        if raw is None or raw.strip() == "":
            return default
        try:
            return cast(raw)
        except ValueError as e:
            raise ConfigError(f"{name} must be a number, got {raw!r}") from e


config = Config()
