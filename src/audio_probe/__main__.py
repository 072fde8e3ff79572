# src/audio_probe/__main__.py
from __future__ import annotations

from audio_probe.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
