"""drivesync - mirror local directory trees into a remote file store."""

from .api import DriveClient
from .exceptions import (
    AuthError,
    ConfigError,
    DriveSyncError,
    FilesystemError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RemoteAPIError,
    SyncCancelledError,
)
from .models import RemoteEntry
from .utils import calculate_md5

__version__ = "0.1.0"

__all__ = [
    "DriveClient",
    "RemoteEntry",
    "AuthError",
    "ConfigError",
    "DriveSyncError",
    "FilesystemError",
    "InvalidResponseError",
    "NetworkError",
    "NotFoundError",
    "PermissionDeniedError",
    "RateLimitError",
    "RemoteAPIError",
    "SyncCancelledError",
    "calculate_md5",
]
