"""Data models for remote store entries."""

from dataclasses import dataclass
from typing import Any, Optional

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass
class RemoteEntry:
    """One object in the remote store, positioned relative to a remote root."""

    id: str
    """Opaque identifier, stable across content updates"""

    name: str
    """Entry name (last path segment)"""

    relative_path: str
    """Path relative to the remote root, using forward slashes"""

    content_hash: Optional[str] = None
    """Lowercase hex MD5 of the content (None for folders)"""

    is_folder: bool = False
    """Whether this entry is a folder"""

    mime_type: str = ""
    """Content type reported by the remote store"""

    @classmethod
    def from_api(cls, data: dict[str, Any], relative_path: str) -> "RemoteEntry":
        """Create a RemoteEntry from an API file resource.

        Args:
            data: File resource with ``id``, ``name``, ``mimeType`` and,
                for regular files, ``md5Checksum``
            relative_path: Path of the entry relative to the scanned root

        Returns:
            RemoteEntry instance
        """
        mime_type = data.get("mimeType") or ""
        is_folder = mime_type == FOLDER_MIME_TYPE
        content_hash = None if is_folder else data.get("md5Checksum")
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            relative_path=relative_path,
            content_hash=content_hash.lower() if content_hash else None,
            is_folder=is_folder,
            mime_type=mime_type,
        )
