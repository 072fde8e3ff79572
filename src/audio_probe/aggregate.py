"""Summary statistics over a completed result set."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np

from .models import ProbeFailure, ResultSet, Success


@dataclass(frozen=True)
class BatchSummary:
    total: int
    succeeded: int
    failed: int
    total_duration_seconds: float
    total_size_bytes: int
    mean_duration_seconds: float
    longest_duration_seconds: float
    failures: List[ProbeFailure] = field(default_factory=list)


def summarize(results: ResultSet) -> BatchSummary:
    """Count successes and failures and total duration/size of successes.

    Pure function of ``results``; sums are order independent.  Failure
    descriptors are kept in input order so none are dropped from reports.
    """
    successes = [r.info for r in results if isinstance(r, Success)]
    failures = [r.error for r in results if not isinstance(r, Success)]

    durations = np.fromiter((info.duration_seconds for info in successes), dtype=np.float64, count=len(successes))
    sizes = np.fromiter((info.file_size for info in successes), dtype=np.int64, count=len(successes))

    if durations.size:
        mean_duration = float(durations.mean())
        longest = float(durations.max())
    else:
        mean_duration = 0.0
        longest = 0.0

    return BatchSummary(
        total=len(results),
        succeeded=len(successes),
        failed=len(failures),
        total_duration_seconds=float(durations.sum()),
        total_size_bytes=int(sizes.sum()),
        mean_duration_seconds=mean_duration,
        longest_duration_seconds=longest,
        failures=failures,
    )
