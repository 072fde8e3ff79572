"""Data model for batch probing.

Work items are immutable, results are a tagged union of
:class:`Success` and :class:`Failure`, and :class:`ResultSet` is a
pre-sized, positionally indexed container that each slot may be written
to exactly once.  Completion order never affects final order because
results are placed by index rather than appended.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Union


class AudioProbeError(Exception):
    """Base class for errors that stop a run."""


class ProbeUnavailableError(AudioProbeError):
    """The probing capability cannot be used (e.g. ffprobe is missing)."""


class DiscoveryError(AudioProbeError):
    """An input path could not be turned into a list of audio files."""


class ConfigError(AudioProbeError):
    """A configuration file exists but is invalid."""


@dataclass(frozen=True)
class WorkItem:
    path: str
    position: int


def make_work_items(paths: Sequence[Union[str, Path, WorkItem]]) -> List[WorkItem]:
    """Wrap an ordered path sequence into work items.

    Existing :class:`WorkItem` instances must already sit at their own
    position; anything else is wrapped using its index.
    """
    items: List[WorkItem] = []
    for index, entry in enumerate(paths):
        if isinstance(entry, WorkItem):
            if entry.position != index:
                raise ValueError(
                    f"WorkItem {entry.path!r} has position {entry.position}, expected {index}"
                )
            items.append(entry)
        else:
            items.append(WorkItem(path=str(entry), position=index))
    return items


@dataclass
class AudioInfo:
    """Metadata extracted from a single audio file."""

    file_path: str
    file_size: int = 0
    duration_seconds: float = 0.0
    bit_rate: int = 0
    sample_rate: int = 0
    channels: int = 0
    codec_name: str = ""
    codec_long_name: str = ""
    format_name: str = ""
    format_long_name: str = ""
    has_video: bool = False
    metadata: Dict[str, str] = field(default_factory=dict)
    processing_time_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class FailureKind(str, Enum):
    UNREADABLE = "unreadable"
    PROBE_FAILED = "probe_failed"
    MALFORMED_OUTPUT = "malformed_output"
    NO_AUDIO_STREAM = "no_audio_stream"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ProbeFailure:
    kind: FailureKind
    message: str
    path: str = ""

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


@dataclass(frozen=True)
class Success:
    position: int
    info: AudioInfo

    ok = True


@dataclass(frozen=True)
class Failure:
    position: int
    error: ProbeFailure

    ok = False


ProbeResult = Union[Success, Failure]


def to_result(position: int, outcome: Union[AudioInfo, ProbeFailure]) -> ProbeResult:
    """Tag a probe outcome with the position of the item that produced it."""
    if isinstance(outcome, ProbeFailure):
        return Failure(position=position, error=outcome)
    if isinstance(outcome, AudioInfo):
        return Success(position=position, info=outcome)
    raise TypeError(f"probe returned {type(outcome).__name__}, expected AudioInfo or ProbeFailure")


class ResultSet(Sequence[ProbeResult]):
    """Fixed-length, write-once, positionally indexed results.

    Slots are filled with :meth:`fill` while a batch runs.  Sequence
    access is only permitted once every slot is populated, so partial
    results are never handed to readers.
    """

    def __init__(self, total: int) -> None:
        if total < 0:
            raise ValueError("total must be non-negative")
        self._slots: List[Optional[ProbeResult]] = [None] * total
        self.concurrency = 0
        self.elapsed_seconds = 0.0

    def fill(self, position: int, result: ProbeResult) -> None:
        if result.position != position:
            raise ValueError(f"result for position {result.position} written to slot {position}")
        if self._slots[position] is not None:
            raise RuntimeError(f"slot {position} written twice")
        self._slots[position] = result

    @property
    def total(self) -> int:
        return len(self._slots)

    def is_complete(self) -> bool:
        return all(slot is not None for slot in self._slots)

    def _require_complete(self) -> None:
        if not self.is_complete():
            missing = sum(1 for slot in self._slots if slot is None)
            raise RuntimeError(f"result set incomplete: {missing} of {len(self._slots)} slots empty")

    def __len__(self) -> int:
        return len(self._slots)

    def __getitem__(self, index):  # type: ignore[override]
        self._require_complete()
        return self._slots[index]

    def __iter__(self) -> Iterator[ProbeResult]:
        self._require_complete()
        return iter(self._slots)  # type: ignore[arg-type]

    def successes(self) -> List[Success]:
        return [r for r in self if isinstance(r, Success)]

    def failures(self) -> List[Failure]:
        return [r for r in self if isinstance(r, Failure)]
