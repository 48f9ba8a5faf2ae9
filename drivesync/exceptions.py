"""Exceptions raised by drivesync."""


class DriveSyncError(Exception):
    """Base exception for all drivesync errors."""


class ConfigError(DriveSyncError):
    """Mapping document or settings are missing or malformed."""


class AuthError(DriveSyncError):
    """An authenticated remote session could not be established."""


class FilesystemError(DriveSyncError):
    """A local directory could not be listed or a file could not be read."""


class SyncCancelledError(DriveSyncError):
    """A mapping's reconciliation was stopped by a cancellation request."""


class RemoteAPIError(DriveSyncError):
    """A call to the remote store failed."""


class NetworkError(RemoteAPIError):
    """The remote store could not be reached."""


class NotFoundError(RemoteAPIError):
    """The requested remote object does not exist."""


class PermissionDeniedError(RemoteAPIError):
    """The remote store rejected the credentials or the operation."""


class RateLimitError(RemoteAPIError):
    """The remote store asked the client to slow down."""


class InvalidResponseError(RemoteAPIError):
    """The remote store returned a body that could not be interpreted."""
