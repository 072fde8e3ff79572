"""Audio Probe package

Bulk metadata extraction for audio libraries.  The core is
:class:`BoundedScheduler`, which probes many files in parallel under a
fixed concurrency limit and returns results in input order; the other
modules supply file discovery, probe backends, configuration and report
rendering around it.

Public classes are re‑exported here for convenience.
"""

from .aggregate import BatchSummary, summarize  # noqa: F401
from .config_service import ConfigService, ProbeConfig  # noqa: F401
from .models import (  # noqa: F401
    AudioInfo,
    Failure,
    ProbeFailure,
    ResultSet,
    Success,
    WorkItem,
)
from .probe_service import FFProbeAdapter, SoundfileProbeAdapter, create_adapter  # noqa: F401
from .scheduler import BoundedScheduler  # noqa: F401
from .tuning import VERSION as __version__  # noqa: F401

__all__ = [
    "AudioInfo",
    "BatchSummary",
    "BoundedScheduler",
    "ConfigService",
    "FFProbeAdapter",
    "Failure",
    "ProbeConfig",
    "ProbeFailure",
    "ResultSet",
    "SoundfileProbeAdapter",
    "Success",
    "WorkItem",
    "create_adapter",
    "summarize",
]
