"""Remote write operations used by the sync engine."""

from ..api import DriveClient
from ..models import RemoteEntry
from ..utils import guess_content_type, read_file_bytes, split_relative_path
from .folders import FolderResolver
from .scanner import LocalFile


class SyncOperations:
    """Create/update/delete wrappers that read local content as needed."""

    def __init__(self, client: DriveClient):
        """Initialize sync operations.

        Args:
            client: API client
        """
        self.client = client

    def create_remote(self, local_file: LocalFile, resolver: FolderResolver) -> str:
        """Upload a local file at its relative path, creating parent folders.

        Args:
            local_file: Local file to upload
            resolver: The run's folder resolver

        Returns:
            ID of the new remote file

        Raises:
            FilesystemError: If the local file cannot be read
            RemoteAPIError: If resolving folders or uploading fails
        """
        parent_path, name = split_relative_path(local_file.relative_path)
        content = read_file_bytes(local_file.path)
        parent_id = resolver.resolve(parent_path)
        return self.client.create_file(
            parent_id, name, content, content_type=guess_content_type(name)
        )

    def update_remote(self, local_file: LocalFile, remote_entry: RemoteEntry) -> None:
        """Replace a remote file's content in place (its ID is preserved).

        Raises:
            FilesystemError: If the local file cannot be read
            RemoteAPIError: If the update fails
        """
        content = read_file_bytes(local_file.path)
        self.client.update_file(
            remote_entry.id,
            content,
            content_type=guess_content_type(remote_entry.name),
        )

    def delete_remote(self, remote_entry: RemoteEntry) -> None:
        """Delete a remote file.

        Raises:
            RemoteAPIError: If the delete fails
        """
        self.client.delete_file(remote_entry.id)
