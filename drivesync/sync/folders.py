"""Resolution of relative directory paths to remote folder IDs."""

import logging
from typing import Optional

from ..api import DriveClient
from ..file_entries_manager import FileEntriesManager, RemoteIndex

logger = logging.getLogger(__name__)


class FolderResolver:
    """Maps relative directory paths to remote folder IDs for one run.

    Missing folders are created on demand. Every resolved prefix is cached,
    so each distinct directory path costs at most one remote lookup (and at
    most one create) per run, however many files live below it. The cache
    is owned by a single reconciliation run and must not be shared between
    mappings or threads.
    """

    def __init__(
        self,
        client: DriveClient,
        root_id: str,
        manager: Optional[FileEntriesManager] = None,
        remote_index: Optional[RemoteIndex] = None,
    ):
        """Initialize the resolver.

        Args:
            client: API client used to create folders
            root_id: Remote root folder ID (resolves the empty path)
            manager: Entries manager used for folder lookups
            remote_index: Index from the run's remote scan; its folder
                entries seed the cache
        """
        self.client = client
        self.root_id = root_id
        self.manager = manager or FileEntriesManager(client)
        self.cache: dict[str, str] = {}
        self.lookups = 0
        self.created = 0

        if remote_index:
            for path, entry in remote_index.items():
                if entry.is_folder:
                    self.cache[path] = entry.id

    def resolve(self, dir_path: str) -> str:
        """Return the folder ID for a relative directory path.

        Args:
            dir_path: Forward-slash path relative to the root ("" for the root)

        Returns:
            Remote folder ID

        Raises:
            RemoteAPIError: If a lookup or create call fails. Prefixes
                resolved before the failure stay cached.
        """
        parent_id = self.root_id
        prefix = ""

        for segment in (s for s in dir_path.split("/") if s):
            prefix = f"{prefix}/{segment}" if prefix else segment

            cached = self.cache.get(prefix)
            if cached is not None:
                parent_id = cached
                continue

            self.lookups += 1
            folder_id = self.manager.find_folder(parent_id, segment)
            if folder_id is None:
                logger.info("Creating folder: %s", prefix)
                folder_id = self.client.create_folder(parent_id, segment)
                self.created += 1

            self.cache[prefix] = folder_id
            parent_id = folder_id

        return parent_id
