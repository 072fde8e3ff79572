"""Collect audio files from command-line paths.

Files named directly are kept when their extension is a known audio
extension.  Directories contribute their direct children, or with
``recursive=True`` every file underneath them.  The returned order is
deterministic: arguments in the order given, directory contents sorted.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Optional

from . import tuning
from .models import DiscoveryError


def is_audio_file(path: Path, extensions: Iterable[str] = tuning.AUDIO_EXTENSIONS) -> bool:
    return path.suffix.lower() in extensions


def _walk_files(root: Path) -> List[Path]:
    """Every file under ``root``, entries of each directory visited in name order."""
    try:
        entries = sorted(root.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        raise DiscoveryError(f"cannot read directory {root}: {exc.strerror}") from exc
    found: List[Path] = []
    for entry in entries:
        if entry.is_dir() and not entry.is_symlink():
            found.extend(_walk_files(entry))
        elif entry.is_file():
            found.append(entry)
    return found


def collect_audio_files(
    paths: Iterable[str],
    recursive: bool = False,
    extensions: Optional[Iterable[str]] = None,
) -> List[str]:
    """Expand ``paths`` into an ordered list of audio file paths.

    Raises :class:`DiscoveryError` when a path does not exist or a
    directory cannot be listed.
    """
    wanted = frozenset(e.lower() for e in extensions) if extensions is not None else tuning.AUDIO_EXTENSIONS
    audio_files: List[str] = []
    for raw in paths:
        path = Path(raw)
        if not path.exists():
            raise DiscoveryError(f"path does not exist: {raw}")
        if path.is_dir():
            if recursive:
                candidates = _walk_files(path)
            else:
                try:
                    candidates = sorted(p for p in path.iterdir() if p.is_file())
                except OSError as exc:
                    raise DiscoveryError(f"cannot read directory {path}: {exc.strerror}") from exc
            audio_files.extend(str(p) for p in candidates if is_audio_file(p, wanted))
        elif is_audio_file(path, wanted):
            audio_files.append(str(path))
    return audio_files
