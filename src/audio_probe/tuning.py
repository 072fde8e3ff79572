"""Centralized tuning constants for batch probing.

Concurrency policy, progress cadence and discovery defaults are defined
here and referenced by the scheduler, CLI and config service (single
source of truth).  Runtime overrides travel through
:class:`audio_probe.config_service.ProbeConfig`; nothing here is mutated
at runtime.
"""

from __future__ import annotations

import os
from typing import FrozenSet

VERSION = "0.2.0"

# ---------------------------------------------------------------------------
# Concurrency policy
DEFAULT_CONCURRENCY_PER_CPU = 2
MAX_CONCURRENCY_PER_CPU = 12

# ---------------------------------------------------------------------------
# Progress rendering
PROGRESS_INTERVAL_SECONDS = 0.1

# ---------------------------------------------------------------------------
# Probe backends
FFPROBE_BINARY = "ffprobe"
BACKENDS = ("ffprobe", "soundfile")
DEFAULT_BACKEND = "ffprobe"

DEFAULT_ARTIST = "Unknown Artist"
DEFAULT_ALBUM = "Unknown Album"

# ---------------------------------------------------------------------------
# Discovery
AUDIO_EXTENSIONS: FrozenSet[str] = frozenset(
    {
        ".mp3",
        ".wav",
        ".flac",
        ".aac",
        ".ogg",
        ".m4a",
        ".wma",
        ".opus",
        ".mp2",
        ".ac3",
        ".dts",
        ".ape",
        ".aiff",
        ".au",
        ".ra",
        ".amr",
        ".webm",
        ".mkv",
        ".m4b",
        ".m4p",
    }
)

OUTPUT_FORMATS = ("text", "json")


def cpu_count() -> int:
    return os.cpu_count() or 1


def default_concurrency() -> int:
    """Default number of simultaneous probes (two per CPU)."""
    return cpu_count() * DEFAULT_CONCURRENCY_PER_CPU


def concurrency_ceiling() -> int:
    """Upper sanity bound on simultaneous probes.

    Each ffprobe invocation costs a process and a handful of descriptors,
    so the ceiling scales with hardware parallelism.
    """
    return cpu_count() * MAX_CONCURRENCY_PER_CPU
