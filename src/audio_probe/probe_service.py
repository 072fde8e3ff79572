"""Probe adapters: extract metadata from a single audio file.

An adapter maps one file path to either an :class:`AudioInfo` or a
:class:`ProbeFailure`.  Adapters hold only immutable configuration, so
one instance may be called from many worker threads at once.

Two backends are provided:

- :class:`FFProbeAdapter` runs ``ffprobe`` once per file and reads its
  JSON report (default; covers every container FFmpeg understands).
- :class:`SoundfileProbeAdapter` reads headers through libsndfile via
  the ``soundfile`` package.  No external process is spawned, but only
  the formats libsndfile supports (WAV, FLAC, OGG, AIFF, ...) can be read.
"""

from __future__ import annotations

import json
import os
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

from . import tuning
from .models import AudioInfo, FailureKind, ProbeFailure, ProbeUnavailableError

ProbeOutcome = Union[AudioInfo, ProbeFailure]


class ProbeAdapter(Protocol):
    def check_available(self) -> None:
        """Raise :class:`ProbeUnavailableError` if the backend cannot run."""
        ...

    def probe(self, path: str) -> ProbeOutcome:
        ...


def _parse_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _parse_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def apply_default_tags(metadata: Dict[str, str], file_path: str) -> Dict[str, str]:
    """Fill in title/artist/album when the file carries none."""
    if "title" not in metadata:
        metadata["title"] = Path(file_path).stem
    if "artist" not in metadata:
        metadata["artist"] = tuning.DEFAULT_ARTIST
    if "album" not in metadata:
        metadata["album"] = tuning.DEFAULT_ALBUM
    return metadata


def _stat_size(path: str) -> Union[int, ProbeFailure]:
    try:
        return os.stat(path).st_size
    except OSError as exc:
        return ProbeFailure(FailureKind.UNREADABLE, f"file not found or unreadable: {exc.strerror or exc}", path)


@dataclass(frozen=True)
class FFProbeAdapter:
    """Extract metadata by running ``ffprobe`` on each file."""

    binary: str = tuning.FFPROBE_BINARY

    def command(self, path: str) -> list[str]:
        return [
            self.binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            path,
        ]

    def check_available(self) -> None:
        try:
            subprocess.run(
                [self.binary, "-version"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=True,
            )
        except (OSError, subprocess.CalledProcessError) as exc:
            raise ProbeUnavailableError(
                f"{self.binary} not found or not runnable ({exc}). Install FFmpeg."
            ) from exc

    def probe(self, path: str) -> ProbeOutcome:
        started = time.perf_counter()
        size = _stat_size(path)
        if isinstance(size, ProbeFailure):
            return size

        try:
            completed = subprocess.run(
                self.command(path),
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            return ProbeFailure(FailureKind.PROBE_FAILED, f"ffprobe could not be started: {exc}", path)
        if completed.returncode != 0:
            return ProbeFailure(
                FailureKind.PROBE_FAILED,
                f"ffprobe exited with status {completed.returncode}",
                path,
            )

        try:
            payload = json.loads(completed.stdout or b"")
        except ValueError as exc:
            return ProbeFailure(FailureKind.MALFORMED_OUTPUT, f"could not parse ffprobe output: {exc}", path)
        if not isinstance(payload, dict):
            return ProbeFailure(FailureKind.MALFORMED_OUTPUT, "ffprobe output is not a JSON object", path)

        info = parse_ffprobe_payload(payload, path, size)
        if isinstance(info, AudioInfo):
            info.processing_time_ms = _elapsed_ms(started)
        return info


def parse_ffprobe_payload(payload: Dict[str, Any], path: str, file_size: int = 0) -> ProbeOutcome:
    """Map an ffprobe ``-show_format -show_streams`` report to :class:`AudioInfo`.

    The first audio stream supplies codec, sample rate and channels.  Any
    video stream (cover art counts) sets ``has_video``.  Numeric fields
    that are missing or malformed read as zero.
    """
    fmt = payload.get("format")
    streams = payload.get("streams")
    if fmt is not None and not isinstance(fmt, dict):
        return ProbeFailure(FailureKind.MALFORMED_OUTPUT, "unexpected ffprobe report layout", path)
    if streams is not None and not isinstance(streams, list):
        return ProbeFailure(FailureKind.MALFORMED_OUTPUT, "unexpected ffprobe report layout", path)
    fmt = fmt or {}
    streams = streams or []

    audio_stream: Optional[Dict[str, Any]] = None
    has_video = False
    for stream in streams:
        if not isinstance(stream, dict):
            continue
        codec_type = stream.get("codec_type")
        if codec_type == "audio" and audio_stream is None:
            audio_stream = stream
        elif codec_type == "video":
            has_video = True

    if audio_stream is None:
        return ProbeFailure(FailureKind.NO_AUDIO_STREAM, "no audio stream found", path)

    bit_rate = _parse_int(fmt.get("bit_rate"))
    stream_bit_rate = _parse_int(audio_stream.get("bit_rate"))
    if bit_rate == 0 and stream_bit_rate > 0:
        bit_rate = stream_bit_rate

    tags = fmt.get("tags") or {}
    metadata = {str(k).lower(): str(v) for k, v in tags.items()} if isinstance(tags, dict) else {}

    return AudioInfo(
        file_path=path,
        file_size=file_size,
        duration_seconds=_parse_float(fmt.get("duration")),
        bit_rate=bit_rate,
        sample_rate=_parse_int(audio_stream.get("sample_rate")),
        channels=_parse_int(audio_stream.get("channels")),
        codec_name=str(audio_stream.get("codec_name") or ""),
        codec_long_name=str(audio_stream.get("codec_long_name") or ""),
        format_name=str(fmt.get("format_name") or ""),
        format_long_name=str(fmt.get("format_long_name") or ""),
        has_video=has_video,
        metadata=apply_default_tags(metadata, path),
    )


@dataclass(frozen=True)
class SoundfileProbeAdapter:
    """Extract metadata from file headers through libsndfile."""

    def check_available(self) -> None:
        try:
            import soundfile  # noqa: F401
        except (ImportError, OSError) as exc:
            # OSError: the wheel is present but libsndfile could not be loaded.
            raise ProbeUnavailableError(f"soundfile backend unavailable: {exc}") from exc

    def probe(self, path: str) -> ProbeOutcome:
        import soundfile as sf

        started = time.perf_counter()
        size = _stat_size(path)
        if isinstance(size, ProbeFailure):
            return size

        try:
            with sf.SoundFile(path) as handle:
                frames = handle.frames
                sample_rate = handle.samplerate
                channels = handle.channels
                fmt = handle.format
                subtype = handle.subtype
                tags = handle.copy_metadata()
        except RuntimeError as exc:
            return ProbeFailure(FailureKind.PROBE_FAILED, f"libsndfile could not read file: {exc}", path)

        duration = frames / sample_rate if sample_rate else 0.0
        bit_rate = int(size * 8 / duration) if duration > 0 else 0
        format_info = sf.available_formats().get(fmt, fmt)
        subtype_info = sf.available_subtypes(fmt).get(subtype, subtype)
        metadata = {str(k).lower(): str(v) for k, v in tags.items() if v}

        return AudioInfo(
            file_path=path,
            file_size=size,
            duration_seconds=duration,
            bit_rate=bit_rate,
            sample_rate=int(sample_rate),
            channels=int(channels),
            codec_name=subtype.lower(),
            codec_long_name=subtype_info,
            format_name=fmt.lower(),
            format_long_name=format_info,
            has_video=False,
            metadata=apply_default_tags(metadata, path),
            processing_time_ms=_elapsed_ms(started),
        )


def create_adapter(backend: str = tuning.DEFAULT_BACKEND, ffprobe_path: Optional[str] = None) -> ProbeAdapter:
    backend = (backend or tuning.DEFAULT_BACKEND).lower().strip()
    if backend == "ffprobe":
        return FFProbeAdapter(binary=ffprobe_path or tuning.FFPROBE_BINARY)
    if backend == "soundfile":
        return SoundfileProbeAdapter()
    raise ValueError(f"unknown probe backend {backend!r} (expected one of {', '.join(tuning.BACKENDS)})")
