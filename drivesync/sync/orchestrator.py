"""Concurrent reconciliation of several independent mappings."""

import logging
import threading
import time
from collections.abc import Iterable
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Optional

from .engine import MappingResult, SyncEngine
from .mapping import SyncMapping

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Runs one reconciliation per mapping in parallel and waits for all.

    Mappings share nothing mutable: every run builds its own indices and
    folder cache. A failure in one mapping is recorded in its result and
    never cancels or alters the others.
    """

    def __init__(self, engine: SyncEngine, max_workers: Optional[int] = None):
        """Initialize the orchestrator.

        Args:
            engine: Sync engine used for every mapping
            max_workers: Maximum mappings running at once
                (default: one worker per mapping)
        """
        self.engine = engine
        self.max_workers = max_workers

    def run(
        self,
        mappings: list[SyncMapping],
        dry_run: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> list[MappingResult]:
        """Reconcile all mappings concurrently.

        On KeyboardInterrupt the cancel event is set, in-flight mappings stop
        at their next file boundary and their results carry a
        SyncCancelledError.

        Args:
            mappings: Mappings to reconcile
            dry_run: If True, only report what would be done
            cancel_event: Optional event that stops in-flight mappings

        Returns:
            One MappingResult per mapping, in input order
        """
        if not mappings:
            return []

        if cancel_event is None:
            cancel_event = threading.Event()
        workers = self.max_workers or len(mappings)
        logger.debug("Running %d mapping(s) with %d worker(s)", len(mappings), workers)
        start = time.time()
        results: dict[int, MappingResult] = {}

        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="drivesync"
        ) as executor:
            futures: dict[Future, int] = {
                executor.submit(
                    self.engine.sync_mapping, mapping, dry_run, cancel_event
                ): position
                for position, mapping in enumerate(mappings)
            }

            try:
                self._collect(as_completed(futures), futures, mappings, results)
            except KeyboardInterrupt:
                logger.warning("Interrupted, cancelling in-flight mappings")
                cancel_event.set()
                pending = [f for f in futures if futures[f] not in results]
                self._collect(pending, futures, mappings, results)

        failed = sum(1 for r in results.values() if not r.success)
        logger.debug(
            "All mappings finished in %.2fs (%d failed)", time.time() - start, failed
        )
        return [results[position] for position in range(len(mappings))]

    @staticmethod
    def _collect(
        completed: Iterable[Future],
        futures: dict[Future, int],
        mappings: list[SyncMapping],
        results: dict[int, MappingResult],
    ) -> None:
        for future in completed:
            position = futures[future]
            mapping = mappings[position]
            try:
                results[position] = future.result()
            except Exception as e:
                logger.exception("Unexpected error syncing %s", mapping.local)
                results[position] = MappingResult(mapping=mapping, error=e)
