"""Manager for enumerating remote folders with automatic pagination."""

import logging
from collections.abc import Iterator
from typing import Optional

from .api import DriveClient
from .models import RemoteEntry
from .utils import join_relative_path

logger = logging.getLogger(__name__)

RemoteIndex = dict[str, RemoteEntry]


class FileEntriesManager:
    """Lists remote folders page by page and builds flat path indices."""

    def __init__(self, client: DriveClient, per_page: int = 1000):
        """Initialize the file entries manager.

        Args:
            client: API client
            per_page: Number of entries requested per page
        """
        self.client = client
        self.per_page = per_page

    def get_all_in_folder(
        self, folder_id: str, path_prefix: str = ""
    ) -> list[RemoteEntry]:
        """Get all direct children of a folder, following every page.

        Args:
            folder_id: Folder ID to list
            path_prefix: Relative path of the folder itself

        Returns:
            List of child entries with relative paths under ``path_prefix``

        Raises:
            RemoteAPIError: If any page cannot be fetched
        """
        entries: list[RemoteEntry] = []
        page_token: Optional[str] = None
        pages = 0

        while True:
            result = self.client.list_children(
                folder_id, page_token=page_token, page_size=self.per_page
            )
            pages += 1
            for item in result.get("files") or []:
                entry_path = join_relative_path(path_prefix, item.get("name", ""))
                entries.append(RemoteEntry.from_api(item, entry_path))

            page_token = result.get("nextPageToken")
            if not page_token:
                break

        logger.debug(
            "Listed folder %s (%s): %d entries in %d page(s)",
            folder_id,
            path_prefix or "/",
            len(entries),
            pages,
        )
        return entries

    def iter_recursive(self, root_id: str) -> Iterator[RemoteEntry]:
        """Iterate every entry below a root folder, depth first.

        A folder's children are listed completely (all pages) before any of
        its subfolders is visited. An explicit stack is used so that folder
        depth is not limited by the interpreter's recursion limit.

        Args:
            root_id: Folder ID to start from

        Yields:
            RemoteEntry objects for files and folders
        """
        visited: set[str] = {root_id}
        stack: list[tuple[str, str]] = [(root_id, "")]

        while stack:
            folder_id, path_prefix = stack.pop()
            subfolders: list[tuple[str, str]] = []

            for entry in self.get_all_in_folder(folder_id, path_prefix):
                if "/" in entry.name:
                    # Would collide with the path of a nested entry
                    logger.warning(
                        "Ignoring remote entry %s with '/' in its name: %r",
                        entry.id,
                        entry.relative_path,
                    )
                    continue
                yield entry
                if entry.is_folder:
                    if entry.id in visited:
                        # Folders with several parents can form cycles
                        logger.debug("Skipping already visited folder %s", entry.id)
                        continue
                    visited.add(entry.id)
                    subfolders.append((entry.id, entry.relative_path))

            # Reverse so the first listed subfolder is visited first
            stack.extend(reversed(subfolders))

    def scan(
        self, root_id: str, duplicates: Optional[list[RemoteEntry]] = None
    ) -> RemoteIndex:
        """Build the remote index for one root.

        Args:
            root_id: Remote root folder ID
            duplicates: Optional list that receives every entry whose path
                was already indexed (the remote store allows sibling
                entries with the same name)

        Returns:
            Mapping of relative path to RemoteEntry. Folders are included
            (``is_folder=True``) so that file/folder clashes can be detected.

        Raises:
            RemoteAPIError: If any listing call fails
        """
        index: RemoteIndex = {}
        for entry in self.iter_recursive(root_id):
            existing = index.get(entry.relative_path)
            if existing is not None:
                logger.warning(
                    "Duplicate remote path %s (ids %s and %s), keeping the first",
                    entry.relative_path,
                    existing.id,
                    entry.id,
                )
                if duplicates is not None:
                    duplicates.append(entry)
                continue
            index[entry.relative_path] = entry

        files = sum(1 for e in index.values() if not e.is_folder)
        logger.debug(
            "Remote scan of %s found %d file(s) and %d folder(s)",
            root_id,
            files,
            len(index) - files,
        )
        return index

    def find_folder(self, parent_id: str, name: str) -> Optional[str]:
        """Find a child folder by exact name.

        Args:
            parent_id: Parent folder ID
            name: Folder name

        Returns:
            Folder ID if found, None otherwise

        Raises:
            RemoteAPIError: If the lookup fails
        """
        folder = self.client.find_child_folder(parent_id, name)
        if folder is None:
            return None
        logger.debug("Found folder '%s' under %s (id=%s)", name, parent_id, folder["id"])
        return str(folder["id"])
