"""Utility functions for drivesync."""

import hashlib
import mimetypes
from pathlib import Path

from .exceptions import FilesystemError

# =============================================================================
# Constants for file operations
# =============================================================================

# Read size used while hashing local files (1 MB)
HASH_CHUNK_SIZE: int = 1024 * 1024

# Content type used when the file extension is unknown
DEFAULT_CONTENT_TYPE: str = "application/octet-stream"


# =============================================================================
# Hash calculation utilities
# =============================================================================


def calculate_md5(file_path: Path, chunk_size: int = HASH_CHUNK_SIZE) -> str:
    """Calculate the content fingerprint of a local file.

    The fingerprint is the 128-bit MD5 digest rendered as lowercase hex,
    which is the same convention the remote store uses for ``md5Checksum``.

    Args:
        file_path: Path to the file
        chunk_size: Number of bytes read per iteration

    Returns:
        Lowercase hex digest

    Raises:
        FilesystemError: If the file cannot be opened or read

    Examples:
        >>> calculate_md5(Path("empty.txt"))
        'd41d8cd98f00b204e9800998ecf8427e'
    """
    digest = hashlib.md5()
    try:
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(chunk_size), b""):
                digest.update(chunk)
    except OSError as e:
        raise FilesystemError(f"Unable to compute hash for {file_path}: {e}") from e
    return digest.hexdigest()


def read_file_bytes(file_path: Path) -> bytes:
    """Read a local file's content for upload.

    Raises:
        FilesystemError: If the file cannot be read
    """
    try:
        return Path(file_path).read_bytes()
    except OSError as e:
        raise FilesystemError(f"Unable to open file {file_path}: {e}") from e


def guess_content_type(name: str) -> str:
    """Guess the content type of a file from its name."""
    content_type, _ = mimetypes.guess_type(name)
    return content_type or DEFAULT_CONTENT_TYPE


# =============================================================================
# Path utilities
# =============================================================================


def split_relative_path(relative_path: str) -> tuple[str, str]:
    """Split a forward-slash relative path into (parent_dir, name).

    Examples:
        >>> split_relative_path("sub/dir/b.txt")
        ('sub/dir', 'b.txt')
        >>> split_relative_path("a.txt")
        ('', 'a.txt')
    """
    parent, _, name = relative_path.rpartition("/")
    return parent, name


def join_relative_path(prefix: str, name: str) -> str:
    """Join a relative path prefix and an entry name with a forward slash."""
    return f"{prefix}/{name}" if prefix else name


# =============================================================================
# Size formatting utilities
# =============================================================================


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
