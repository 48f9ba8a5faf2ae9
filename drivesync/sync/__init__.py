"""Sync engine for drivesync - one-way local to remote reconciliation."""

from .comparator import FileComparator, SyncAction, SyncDecision
from .config import load_mappings_from_json, parse_mappings
from .engine import MappingResult, SyncEngine
from .folders import FolderResolver
from .mapping import SyncMapping
from .operations import SyncOperations
from .orchestrator import SyncOrchestrator
from .scanner import DirectoryScanner, LocalFile, LocalIndex

__all__ = [
    "SyncEngine",
    "SyncOrchestrator",
    "SyncMapping",
    "MappingResult",
    "SyncOperations",
    "FolderResolver",
    "load_mappings_from_json",
    "parse_mappings",
    "DirectoryScanner",
    "FileComparator",
    "SyncAction",
    "SyncDecision",
    "LocalFile",
    "LocalIndex",
]
