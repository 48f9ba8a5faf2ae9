"""Core sync engine: reconciles one mapping's remote tree with its local tree."""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional

from ..api import DriveClient
from ..exceptions import DriveSyncError, FilesystemError, SyncCancelledError
from ..file_entries_manager import FileEntriesManager
from ..models import RemoteEntry
from ..output import OutputFormatter
from ..utils import format_size
from .comparator import FileComparator, SyncAction, SyncDecision
from .folders import FolderResolver
from .mapping import SyncMapping
from .operations import SyncOperations
from .scanner import DirectoryScanner, LocalFile

logger = logging.getLogger(__name__)


def create_empty_stats() -> dict[str, int]:
    """Create an empty statistics dictionary."""
    return {
        "creates": 0,
        "updates": 0,
        "skips": 0,
        "deletes": 0,
        "conflicts": 0,
        "errors": 0,
    }


@dataclass
class MappingResult:
    """Outcome of reconciling one mapping."""

    mapping: SyncMapping
    stats: dict[str, int] = field(default_factory=create_empty_stats)
    file_errors: list[str] = field(default_factory=list)
    """Per-file failures that did not stop the mapping"""

    error: Optional[BaseException] = None
    """Failure that aborted the mapping, if any"""

    elapsed: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def write_count(self) -> int:
        """Number of create, update and delete actions."""
        return self.stats["creates"] + self.stats["updates"] + self.stats["deletes"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "local": str(self.mapping.local),
            "remote_root_id": self.mapping.remote_root_id,
            "success": self.success,
            "error": str(self.error) if self.error else None,
            "stats": dict(self.stats),
            "file_errors": list(self.file_errors),
            "elapsed": round(self.elapsed, 3),
        }


class SyncEngine:
    """Reconciles mappings one at a time: local always wins.

    Each call to ``sync_mapping`` owns its remote index, its set of seen
    local paths and its folder cache; nothing is kept between calls, so one
    engine may serve several mappings concurrently.
    """

    def __init__(
        self,
        client: DriveClient,
        output: Optional[OutputFormatter] = None,
    ):
        """Initialize sync engine.

        Args:
            client: API client
            output: Output formatter for displaying progress/status
        """
        self.client = client
        self.output = output or OutputFormatter()
        self.operations = SyncOperations(client)
        self.comparator = FileComparator()
        self.scanner = DirectoryScanner()

    def sync_mapping(
        self,
        mapping: SyncMapping,
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> MappingResult:
        """Reconcile one mapping.

        Steps, in this order:

        1. Scan the remote root into a path index.
        2. Walk the local tree; decide and apply create/update/skip for each
           file as it is discovered.
        3. Delete every remote file whose path was not seen locally.

        Step 3 only runs once step 2 has finished, so a file that moved is
        never deleted before its new path has been created.

        Args:
            mapping: Mapping to reconcile
            dry_run: If True, only report what would be done
            cancel_event: Optional event; when set, the mapping stops at the
                next file boundary

        Returns:
            MappingResult. Errors that abort the mapping (remote failures,
            unlistable directories, cancellation) are stored in ``error``
            rather than raised.
        """
        result = MappingResult(mapping=mapping)
        start = time.time()
        prefix = "[dry-run] " if dry_run else ""
        self.output.info(
            f"{prefix}Syncing {mapping.local} with folder ID {mapping.remote_root_id}"
        )

        try:
            self._reconcile(mapping, result, dry_run, cancel_event)
        except DriveSyncError as e:
            result.error = e
            logger.error("Error syncing files for %s: %s", mapping.local, e)
            self.output.error(f"Error syncing files for {mapping.local}: {e}")
        finally:
            result.elapsed = time.time() - start

        logger.debug(
            "Mapping %s finished in %.2fs: %s", mapping, result.elapsed, result.stats
        )
        return result

    def _reconcile(
        self,
        mapping: SyncMapping,
        result: MappingResult,
        dry_run: bool,
        cancel_event: Optional[threading.Event],
    ) -> None:
        self._check_cancelled(cancel_event, mapping)
        if not mapping.local.is_dir():
            raise FilesystemError(
                f"Local path does not exist or is not a directory: {mapping.local}"
            )

        # Step 1: remote index
        scan_start = time.time()
        manager = FileEntriesManager(self.client)
        duplicates: list[RemoteEntry] = []
        remote_index = manager.scan(mapping.remote_root_id, duplicates=duplicates)
        logger.debug(
            "Remote scan of %s took %.2fs (%d entries)",
            mapping.remote_root_id,
            time.time() - scan_start,
            len(remote_index),
        )

        resolver = FolderResolver(
            self.client,
            mapping.remote_root_id,
            manager=manager,
            remote_index=remote_index,
        )

        # Step 2: walk and apply, interleaved
        seen_local_paths: set[str] = set()
        for local_file in self.scanner.iter_local(mapping.local):
            self._check_cancelled(cancel_event, mapping)
            seen_local_paths.add(local_file.relative_path)

            try:
                local_hash = local_file.fingerprint()
            except FilesystemError as e:
                self._record_file_error(result, local_file.relative_path, e)
                continue

            decision = self.comparator.compare_local(
                local_file.relative_path,
                local_hash,
                remote_index.get(local_file.relative_path),
            )
            self._apply_decision(
                decision, result, resolver, dry_run, local_file=local_file
            )

        # Step 3: orphans
        for decision in self.comparator.find_orphans(
            remote_index, seen_local_paths, duplicates
        ):
            self._check_cancelled(cancel_event, mapping)
            self._apply_decision(decision, result, resolver, dry_run)

        if resolver.lookups or resolver.created:
            logger.debug(
                "Folder resolution for %s: %d lookup(s), %d created",
                mapping,
                resolver.lookups,
                resolver.created,
            )

    def _apply_decision(
        self,
        decision: SyncDecision,
        result: MappingResult,
        resolver: FolderResolver,
        dry_run: bool,
        local_file: Optional[LocalFile] = None,
    ) -> None:
        """Execute one decision and update the mapping's statistics.

        Remote failures propagate and abort the mapping. Local read failures
        are recorded against the file and the mapping carries on.
        """
        path = decision.relative_path
        stats = result.stats
        prefix = "[dry-run] " if dry_run else ""

        if decision.action == SyncAction.SKIP:
            logger.debug("%s: %s", decision.reason, path)
            stats["skips"] += 1
            return

        if decision.action == SyncAction.CONFLICT:
            logger.warning("Conflict for %s: %s", path, decision.reason)
            self.output.warning(f"Skipping {path}: {decision.reason}")
            stats["conflicts"] += 1
            return

        action_start = time.time()
        try:
            if decision.action == SyncAction.CREATE and local_file is not None:
                logger.info(
                    "Uploading new file: %s (%s)", path, format_size(local_file.size)
                )
                self.output.info(f"{prefix}Uploading new file: {path}")
                if not dry_run:
                    self.operations.create_remote(local_file, resolver)
                stats["creates"] += 1

            elif (
                decision.action == SyncAction.UPDATE
                and local_file is not None
                and decision.remote_entry is not None
            ):
                logger.info(
                    "Updating file: %s (%s)", path, format_size(local_file.size)
                )
                self.output.info(f"{prefix}Updating file: {path}")
                if not dry_run:
                    self.operations.update_remote(local_file, decision.remote_entry)
                stats["updates"] += 1

            elif (
                decision.action == SyncAction.DELETE
                and decision.remote_entry is not None
            ):
                logger.info("Deleting remote file: %s", path)
                self.output.info(f"{prefix}Deleting remote file: {path}")
                if not dry_run:
                    self.operations.delete_remote(decision.remote_entry)
                stats["deletes"] += 1

        except FilesystemError as e:
            self._record_file_error(result, path, e)
            return

        logger.debug(
            "%s of %s took %.2fs",
            decision.action.value,
            path,
            time.time() - action_start,
        )

    def _record_file_error(
        self, result: MappingResult, path: str, error: Exception
    ) -> None:
        logger.warning("Skipping %s: %s", path, error)
        self.output.warning(f"Skipping {path}: {error}")
        result.stats["errors"] += 1
        result.file_errors.append(f"{path}: {error}")

    @staticmethod
    def _check_cancelled(
        cancel_event: Optional[threading.Event], mapping: SyncMapping
    ) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise SyncCancelledError(f"Sync of {mapping.local} was cancelled")
