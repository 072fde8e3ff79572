"""Bounded-concurrency batch scheduler.

:class:`BoundedScheduler` fans a list of work items out to a probe
adapter with at most ``N`` calls in flight and fans the outcomes back
into a pre-sized :class:`~audio_probe.models.ResultSet`.  Each task
writes only its own slot, so the result array needs no lock and its
order is the input order no matter which task finishes first.

Per-item failures are values, never exceptions: a broken file fills its
slot with a :class:`~audio_probe.models.Failure` and the rest of the
batch carries on.  The only error the scheduler raises itself is a
caller-contract violation (``concurrency < 1``).

There is no per-probe timeout.  A probe that hangs holds one admission
permit until it returns, which reduces throughput but not correctness.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, TextIO, Union

from . import tuning
from .models import (
    Failure,
    FailureKind,
    ProbeFailure,
    ResultSet,
    WorkItem,
    make_work_items,
    to_result,
)
from .probe_service import ProbeAdapter
from .progress import AtomicCounter, ProgressTracker

logger = logging.getLogger(__name__)


def clamp_concurrency(requested: int, ceiling: Optional[int] = None) -> int:
    """Return ``requested`` limited to the sanity ceiling.

    Raises ``ValueError`` when ``requested`` is below one.  Exceeding the
    ceiling is a policy matter and only produces a warning.
    """
    if requested < 1:
        raise ValueError(f"concurrency must be at least 1, got {requested}")
    limit = tuning.concurrency_ceiling() if ceiling is None else ceiling
    if requested > limit:
        logger.warning(
            "Concurrency %d exceeds %d x CPU count (%d); using %d",
            requested,
            tuning.MAX_CONCURRENCY_PER_CPU,
            limit,
            limit,
        )
        return limit
    return requested


@dataclass
class BoundedScheduler:
    """Run one probe per work item with at most ``concurrency`` in flight."""

    probe: ProbeAdapter
    progress_stream: Optional[TextIO] = None
    progress_interval: float = tuning.PROGRESS_INTERVAL_SECONDS
    concurrency_ceiling: Optional[int] = None

    def run(
        self,
        items: Sequence[Union[str, Path, WorkItem]],
        concurrency: int,
        progress_enabled: bool = True,
    ) -> ResultSet:
        """Probe every item and return the fully populated result set.

        Blocks until all items have finished.  ``ResultSet[i]`` always
        corresponds to ``items[i]``.
        """
        work_items = make_work_items(items)
        total = len(work_items)
        limit = clamp_concurrency(concurrency, self.concurrency_ceiling)
        results = ResultSet(total)
        results.concurrency = limit
        if total == 0:
            return results

        logger.info("Found %d audio files to process", total)
        logger.info("Processing %d files with max %d concurrent operations", total, limit)

        completed = AtomicCounter()
        tracker: Optional[ProgressTracker] = None
        if progress_enabled:
            tracker = ProgressTracker(
                completed,
                total,
                stream=self.progress_stream,
                interval=self.progress_interval,
            )
            tracker.start()

        started = time.perf_counter()
        admissions = threading.BoundedSemaphore(limit)
        finished = False
        try:
            with ThreadPoolExecutor(max_workers=limit, thread_name_prefix="audio-probe") as executor:
                futures = []
                for item in work_items:
                    # Dispatch of this item waits here until a permit is free.
                    admissions.acquire()
                    futures.append(
                        executor.submit(self._run_one, item, results, admissions, completed)
                    )
                wait(futures)
                for future in futures:
                    # _run_one captures probe errors; anything left is a scheduler bug.
                    future.result()
            finished = True
        finally:
            if tracker is not None:
                tracker.finish(completed=finished)

        results.elapsed_seconds = time.perf_counter() - started
        logger.info("Processing completed in %.2fs", results.elapsed_seconds)

        failed = sum(1 for r in results if not r.ok)
        logger.info("Successfully processed: %d", total - failed)
        if failed:
            logger.info("Failed: %d", failed)
        return results

    def _run_one(
        self,
        item: WorkItem,
        results: ResultSet,
        admissions: threading.BoundedSemaphore,
        completed: AtomicCounter,
    ) -> None:
        try:
            try:
                outcome = self.probe.probe(item.path)
                result = to_result(item.position, outcome)
            except Exception as exc:
                logger.debug("Probe raised for %s", item.path, exc_info=True)
                result = Failure(
                    position=item.position,
                    error=ProbeFailure(FailureKind.UNEXPECTED, f"{type(exc).__name__}: {exc}", item.path),
                )
            results.fill(item.position, result)
        finally:
            admissions.release()
            completed.increment()
