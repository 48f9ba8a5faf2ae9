"""Decision logic for one-way (local to remote) reconciliation."""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..models import RemoteEntry


class SyncAction(str, Enum):
    """Actions that can be taken for one path."""

    CREATE = "create"
    """Upload a local file that has no remote counterpart"""

    UPDATE = "update"
    """Replace the content of an existing remote file"""

    SKIP = "skip"
    """Content already matches"""

    DELETE = "delete"
    """Remove a remote file that no longer exists locally"""

    CONFLICT = "conflict"
    """Local file and remote folder share a path"""


@dataclass
class SyncDecision:
    """Represents a decision about how to reconcile one path."""

    action: SyncAction
    """Action to take"""

    reason: str
    """Human-readable reason for this decision"""

    relative_path: str
    """Relative path of the file"""

    local_hash: Optional[str] = None
    """Local content hash (if the file exists locally)"""

    remote_entry: Optional[RemoteEntry] = None
    """Remote entry (if one exists at this path)"""


class FileComparator:
    """Compares local fingerprints with the remote index. Local always wins."""

    def compare_local(
        self,
        path: str,
        local_hash: str,
        remote_entry: Optional[RemoteEntry],
    ) -> SyncDecision:
        """Decide what to do with a file that exists locally.

        Args:
            path: Relative path of the file
            local_hash: Fingerprint of the local content
            remote_entry: Remote entry at the same path, if any

        Returns:
            SyncDecision for this file
        """
        if remote_entry is None:
            return SyncDecision(
                action=SyncAction.CREATE,
                reason="New local file",
                relative_path=path,
                local_hash=local_hash,
            )

        if remote_entry.is_folder:
            return SyncDecision(
                action=SyncAction.CONFLICT,
                reason="Local file but remote folder at the same path",
                relative_path=path,
                local_hash=local_hash,
                remote_entry=remote_entry,
            )

        if remote_entry.content_hash == local_hash:
            return SyncDecision(
                action=SyncAction.SKIP,
                reason="File already exists and is identical",
                relative_path=path,
                local_hash=local_hash,
                remote_entry=remote_entry,
            )

        return SyncDecision(
            action=SyncAction.UPDATE,
            reason="Content differs",
            relative_path=path,
            local_hash=local_hash,
            remote_entry=remote_entry,
        )

    def find_orphans(
        self,
        remote_index: dict[str, RemoteEntry],
        seen_local_paths: set[str],
        duplicates: Iterable[RemoteEntry] = (),
    ) -> list[SyncDecision]:
        """Decide which remote files must be deleted.

        Only file entries are considered; folders are never deleted.
        Duplicate files are always deleted: the indexed entry already
        represents their path.

        Args:
            remote_index: Index built at the start of the run
            seen_local_paths: Every path observed during the local walk
            duplicates: Entries left out of the index because their path
                was taken

        Returns:
            DELETE decisions, sorted by path
        """
        decisions = [
            SyncDecision(
                action=SyncAction.DELETE,
                reason="File deleted locally",
                relative_path=path,
                remote_entry=entry,
            )
            for path, entry in remote_index.items()
            if not entry.is_folder and path not in seen_local_paths
        ]
        decisions.extend(
            SyncDecision(
                action=SyncAction.DELETE,
                reason="Duplicate remote file",
                relative_path=entry.relative_path,
                remote_entry=entry,
            )
            for entry in duplicates
            if not entry.is_folder
        )
        decisions.sort(key=lambda d: d.relative_path)
        return decisions
