"""Local directory scanning for sync operations."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from ..exceptions import FilesystemError
from ..utils import calculate_md5

logger = logging.getLogger(__name__)

LocalIndex = dict[str, str]


@dataclass
class LocalFile:
    """Represents a local file discovered by a scan."""

    path: Path
    """Absolute path to the file"""

    relative_path: str
    """Relative path (using forward slashes for cross-platform compatibility)"""

    size: int
    """File size in bytes"""

    _content_hash: Optional[str] = field(default=None, repr=False, compare=False)

    @classmethod
    def from_path(cls, file_path: Path, base_path: Path) -> "LocalFile":
        """Create LocalFile from a path.

        Args:
            file_path: Absolute path to the file
            base_path: Base path for calculating relative paths

        Returns:
            LocalFile instance
        """
        stat = file_path.stat()
        # as_posix() keeps keys identical to remote paths on every platform
        relative_path = file_path.relative_to(base_path).as_posix()
        return cls(path=file_path, relative_path=relative_path, size=stat.st_size)

    def fingerprint(self) -> str:
        """Return the file's content hash, computing it on first use.

        Raises:
            FilesystemError: If the file cannot be read
        """
        if self._content_hash is None:
            self._content_hash = calculate_md5(self.path)
        return self._content_hash


class DirectoryScanner:
    """Walks a local directory tree and yields its regular files.

    Directories produce no entries of their own. Symbolic links are not
    followed and are skipped.

    Examples:
        >>> scanner = DirectoryScanner()
        >>> index = scanner.scan_local(Path("/sync/folder"))
        >>> index["sub/b.txt"]
        '0cc175b9c0f1b6a831c399e269772661'
    """

    def _list_directory(self, directory: Path) -> list[Path]:
        try:
            return sorted(directory.iterdir())
        except OSError as e:
            raise FilesystemError(f"Unable to list directory {directory}: {e}") from e

    def iter_local(self, directory: Path) -> Iterator[LocalFile]:
        """Lazily walk a local directory, depth first.

        Content hashes are not computed here; call ``LocalFile.fingerprint``.

        Args:
            directory: Root of the walk

        Yields:
            LocalFile objects with paths relative to ``directory``

        Raises:
            FilesystemError: If the root is missing or is not a directory,
                or a directory cannot be listed
        """
        base_path = Path(directory)
        if not base_path.exists():
            raise FilesystemError(f"Local directory does not exist: {base_path}")
        if not base_path.is_dir():
            raise FilesystemError(f"Local path is not a directory: {base_path}")

        stack = [base_path]
        while stack:
            current = stack.pop()
            subdirs: list[Path] = []

            for item in self._list_directory(current):
                if item.is_symlink():
                    logger.debug("Skipping symbolic link: %s", item)
                    continue
                if item.is_dir():
                    subdirs.append(item)
                elif item.is_file():
                    try:
                        local_file = LocalFile.from_path(item, base_path)
                    except OSError as e:
                        raise FilesystemError(f"Unable to stat {item}: {e}") from e
                    yield local_file
                else:
                    logger.debug("Skipping non-regular file: %s", item)

            stack.extend(reversed(subdirs))

    def scan_local(self, directory: Path) -> LocalIndex:
        """Build the local index for a directory.

        Args:
            directory: Directory to scan

        Returns:
            Mapping of relative path to content hash

        Raises:
            FilesystemError: If a directory cannot be listed or a file
                cannot be read
        """
        return {f.relative_path: f.fingerprint() for f in self.iter_local(directory)}
