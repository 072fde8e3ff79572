"""Render a completed batch as text or JSON and write it out.

The JSON form lists successful files only, one object per
:class:`~audio_probe.models.AudioInfo`.  The text form starts with the
batch totals and then shows every result in input order, failures
included.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from .aggregate import BatchSummary, summarize
from .models import ResultSet, Success

KB = 1024
MB = KB * 1024
GB = MB * 1024


def format_bytes(size: int) -> str:
    if size >= GB:
        return f"{size / GB:.2f} GB"
    if size >= MB:
        return f"{size / MB:.2f} MB"
    if size >= KB:
        return f"{size / KB:.2f} KB"
    return f"{size} bytes"


def format_duration(seconds: float) -> str:
    whole = int(seconds)
    hours = whole // 3600
    minutes = (whole % 3600) // 60
    secs = whole % 60
    if hours > 0:
        return f"{hours}h{minutes}m{secs}s"
    if minutes > 0:
        return f"{minutes}m{secs}s"
    return f"{seconds:.1f}s"


def format_bit_rate(bit_rate: int) -> str:
    if bit_rate >= 1_000_000:
        return f"{bit_rate / 1_000_000:.1f} Mbps"
    if bit_rate >= 1000:
        return f"{bit_rate // 1000} kbps"
    return f"{bit_rate} bps"


def format_bool(value: bool) -> str:
    return "yes" if value else "no"


def render_json(results: ResultSet) -> str:
    payload = [r.info.to_dict() for r in results if isinstance(r, Success)]
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def render_text(results: ResultSet, summary: Optional[BatchSummary] = None) -> str:
    summary = summary or summarize(results)
    lines: List[str] = ["=== Audio file analysis ==="]
    lines.append(f"Succeeded: {summary.succeeded}, Failed: {summary.failed}")
    lines.append(f"Total duration: {format_duration(summary.total_duration_seconds)}")
    lines.append(f"Total size: {format_bytes(summary.total_size_bytes)}")
    if results.concurrency:
        lines.append(f"Concurrency: {results.concurrency}, elapsed: {results.elapsed_seconds:.2f}s")

    for result in results:
        if not isinstance(result, Success):
            lines.append("")
            lines.append(f"✗ Error: {result.error}")
            continue
        info = result.info
        lines.append("")
        lines.append(f"File: {info.file_path}")
        lines.append(f"   Size: {format_bytes(info.file_size)}")
        lines.append(f"   Duration: {format_duration(info.duration_seconds)}")
        lines.append(f"   Bit rate: {format_bit_rate(info.bit_rate)}")
        lines.append(f"   Sample rate: {info.sample_rate} Hz")
        lines.append(f"   Channels: {info.channels}")
        lines.append(f"   Codec: {info.codec_name} ({info.codec_long_name})")
        lines.append(f"   Format: {info.format_name} ({info.format_long_name})")
        lines.append(f"   Has video: {format_bool(info.has_video)}")
        lines.append(f"   Processing time: {info.processing_time_ms}ms")
        tags = [(k, v) for k, v in sorted(info.metadata.items()) if v]
        if tags:
            lines.append("   Metadata:")
            for key, value in tags:
                lines.append(f"     {key}: {value}")
    return "\n".join(lines) + "\n"


def render(results: ResultSet, output_format: str = "text") -> str:
    if output_format == "json":
        return render_json(results)
    return render_text(results)


def write_report(text: str, output_file: Optional[str] = None, stream: Optional[TextIO] = None) -> None:
    """Write ``text`` to ``output_file``, or to ``stream`` (stdout) if none is given."""
    if output_file:
        path = Path(output_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        return
    out = stream if stream is not None else sys.stdout
    out.write(text)
    out.flush()
