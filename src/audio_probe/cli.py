"""Command‑line interface for Audio Probe.

Collects audio files from the given paths, probes them in parallel and
prints a report.  Run ``python -m audio_probe --help`` for usage.

Examples::

    audio-probe song.mp3
    audio-probe -j 100 /path/to/music/
    audio-probe --json -r /path/to/music/ > results.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from . import tuning
from .config_service import ConfigService, ProbeConfig
from .discovery import collect_audio_files
from .models import AudioProbeError
from .probe_service import create_adapter
from .report import render, write_report
from .scheduler import BoundedScheduler

logger = logging.getLogger("audio_probe")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="audio-probe",
        description="Audio Probe – fast batch metadata extraction for audio files",
        epilog="Example: audio-probe --json -r /path/to/music/ > results.json",
    )
    parser.add_argument("paths", nargs="*", help="Audio files or directories to analyse")
    parser.add_argument(
        "-j",
        "--concurrency",
        type=int,
        default=None,
        help=f"Maximum simultaneous probes (default: {tuning.default_concurrency()}, 2 x CPU count)",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=tuning.OUTPUT_FORMATS,
        default=None,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Shortcut for --format json",
    )
    parser.add_argument("-o", "--output", dest="output_file", default=None, help="Write the report to this file")
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        default=None,
        help="Search directories recursively",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=None,
        help="Disable the progress display",
    )
    parser.add_argument(
        "--backend",
        choices=tuning.BACKENDS,
        default=None,
        help="Probe backend (default: ffprobe)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a config.json file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="store_true", help="Show version information and exit")
    return parser


def _setup_logging(verbose: bool) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def _overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    output_format = "json" if args.json else args.output_format
    return {
        "concurrency": args.concurrency,
        "output_format": output_format,
        "output_file": args.output_file,
        "recursive": args.recursive,
        "quiet": args.quiet,
        "backend": args.backend,
    }


def run(paths: List[str], config: ProbeConfig) -> int:
    """Probe ``paths`` with ``config`` and write the report."""
    adapter = create_adapter(config.backend, config.ffprobe_path)
    adapter.check_available()

    audio_files = collect_audio_files(paths, recursive=config.recursive, extensions=config.extensions)
    if not audio_files:
        logger.info("No audio files found")
        return 0

    logger.info("Audio Probe v%s (%s backend)", tuning.VERSION, config.backend)
    scheduler = BoundedScheduler(adapter, progress_interval=config.progress_interval)
    results = scheduler.run(audio_files, config.concurrency, progress_enabled=config.progress_enabled)

    try:
        write_report(render(results, config.output_format), config.output_file)
    except OSError as exc:
        print(f"Error: could not write report: {exc}", file=sys.stderr)
        return 1
    if config.output_file:
        logger.info("Results written to %s", config.output_file)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Audio Probe v{tuning.VERSION}")
        return 0
    if not args.paths:
        parser.print_help(sys.stderr)
        return 1

    _setup_logging(args.verbose)
    config_service = ConfigService()
    try:
        config = config_service.build_config(_overrides_from_args(args), config_path=args.config)
        return run(args.paths, config)
    except AudioProbeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
