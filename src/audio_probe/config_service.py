"""Configuration management for Audio Probe.

Settings come from three layers, later layers winning:

1. Built-in defaults (see :mod:`audio_probe.tuning`).
2. An optional ``config.json`` in the platform configuration directory,
   or the file passed with ``--config``.  The file is validated against
   ``schemas/config.schema.json`` with :mod:`jsonschema`.
3. Command-line flags.

The result is a :class:`ProbeConfig` record that is passed explicitly
to the scheduler and report layer; nothing is kept in module globals.

Example usage::

    from audio_probe.config_service import ConfigService

    config_service = ConfigService()
    cfg = config_service.build_config({"concurrency": 8, "quiet": True})
"""

from __future__ import annotations

import json
import os
import platform
from dataclasses import dataclass, field, fields
from json import JSONDecodeError
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import jsonschema

from . import tuning
from .models import ConfigError

SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"


def _get_appdata_root(app_name: str = "AudioProbe") -> Path:
    """Return the platform‑specific base directory for config files."""
    system = platform.system().lower()
    if system == "windows":
        appdata = os.environ.get("APPDATA")
        if appdata:
            return Path(appdata) / app_name
        return Path.home() / f"AppData/Roaming/{app_name}"
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / app_name
    return Path.home() / ".config" / app_name


def _validate_config(data: Any, schema_path: Path) -> None:
    with open(schema_path, "r", encoding="utf-8") as f:
        schema = json.load(f)
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise ConfigError(f"Invalid configuration at {location}: {exc.message}") from exc


@dataclass
class ProbeConfig:
    """Resolved settings for one run."""

    concurrency: int = field(default_factory=tuning.default_concurrency)
    output_format: str = "text"
    output_file: Optional[str] = None
    recursive: bool = False
    quiet: bool = False
    backend: str = tuning.DEFAULT_BACKEND
    ffprobe_path: str = tuning.FFPROBE_BINARY
    progress_interval: float = tuning.PROGRESS_INTERVAL_SECONDS
    extensions: Tuple[str, ...] = field(default_factory=lambda: tuple(sorted(tuning.AUDIO_EXTENSIONS)))

    @property
    def progress_enabled(self) -> bool:
        return not self.quiet


@dataclass
class ConfigService:
    """Resolve, load and validate Audio Probe configuration."""

    config_dir: Optional[Path] = None
    config_filename: str = "config.json"
    schema_name: str = "config.schema.json"

    def get_config_dir(self) -> Path:
        if self.config_dir is not None:
            return Path(self.config_dir)
        return _get_appdata_root()

    def get_config_path(self) -> Path:
        return self.get_config_dir() / self.config_filename

    def get_schema_path(self) -> Path:
        return SCHEMA_DIR / self.schema_name

    def load_config(self, config_path: Optional[Path] = None) -> Dict[str, Any]:
        """Load and validate the config file; a missing file yields ``{}``.

        An explicitly requested ``config_path`` must exist.
        """
        path = Path(config_path) if config_path is not None else self.get_config_path()
        if not path.exists():
            if config_path is not None:
                raise ConfigError(f"Config file not found: {path}")
            return {}
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except JSONDecodeError as exc:
            raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
        _validate_config(data, self.get_schema_path())
        return data

    def build_config(
        self,
        overrides: Optional[Dict[str, Any]] = None,
        config_path: Optional[Path] = None,
    ) -> ProbeConfig:
        """Merge defaults, the config file and ``overrides`` (``None`` values ignored)."""
        merged: Dict[str, Any] = dict(self.load_config(config_path))
        for key, value in (overrides or {}).items():
            if value is not None:
                merged[key] = value
        known = {f.name for f in fields(ProbeConfig)}
        unknown = sorted(set(merged) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")
        if "extensions" in merged:
            merged["extensions"] = tuple(str(e).lower() for e in merged["extensions"])
        cfg = ProbeConfig(**merged)
        if cfg.concurrency < 1:
            raise ConfigError(f"Concurrency must be at least 1, got {cfg.concurrency}")
        if cfg.output_format not in tuning.OUTPUT_FORMATS:
            raise ConfigError(f"Unknown output format: {cfg.output_format}")
        if cfg.backend not in tuning.BACKENDS:
            raise ConfigError(f"Unknown probe backend: {cfg.backend}")
        return cfg
