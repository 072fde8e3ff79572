"""
Configuration layering and end-to-end CLI behaviour.

The CLI tests replace the probe backend with an in-process fake so they
run without FFmpeg installed.

Run with: pytest tests/test_config_cli.py -v
"""

import json
import logging
from pathlib import Path
from unittest.mock import patch

import pytest

import sys
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))

from audio_probe import cli, tuning
from audio_probe.config_service import ConfigService
from audio_probe.models import AudioInfo, ConfigError, FailureKind, ProbeFailure, ProbeUnavailableError


class StubProbe:
    def __init__(self, unavailable=False):
        self.unavailable = unavailable
        self.calls = []

    def check_available(self):
        if self.unavailable:
            raise ProbeUnavailableError("ffprobe not found. Install FFmpeg.")

    def probe(self, path):
        self.calls.append(path)
        if path.endswith("broken.mp3"):
            return ProbeFailure(FailureKind.PROBE_FAILED, "ffprobe exited with status 1", path)
        return AudioInfo(file_path=path, file_size=10, duration_seconds=3.0, sample_rate=48000, channels=2)


@pytest.fixture(autouse=True)
def isolated_config_dir(tmp_path: Path, monkeypatch):
    """Keep the user's real config.json out of the tests."""
    config_home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setenv("APPDATA", str(config_home))
    yield config_home / "AudioProbe"
    # main() binds a handler to the captured stderr of this test.
    logging.getLogger("audio_probe").handlers.clear()


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    root = tmp_path / "music"
    (root / "sub").mkdir(parents=True)
    (root / "one.mp3").write_text("dummy", encoding="utf-8")
    (root / "two.flac").write_text("dummy", encoding="utf-8")
    (root / "broken.mp3").write_text("dummy", encoding="utf-8")
    (root / "sub" / "three.wav").write_text("dummy", encoding="utf-8")
    (root / "readme.txt").write_text("dummy", encoding="utf-8")
    return root


# ============================================================================
# ConfigService
# ============================================================================

def test_defaults_without_config_file(isolated_config_dir: Path):
    cfg = ConfigService().build_config()

    assert cfg.concurrency == tuning.default_concurrency()
    assert cfg.output_format == "text"
    assert cfg.backend == "ffprobe"
    assert cfg.progress_enabled is True
    assert ".flac" in cfg.extensions


def test_config_file_then_overrides(isolated_config_dir: Path):
    isolated_config_dir.mkdir(parents=True)
    (isolated_config_dir / "config.json").write_text(
        json.dumps({"concurrency": 5, "recursive": True, "output_format": "json"}), encoding="utf-8"
    )

    cfg = ConfigService().build_config({"concurrency": 9, "recursive": None})

    assert cfg.concurrency == 9
    assert cfg.recursive is True
    assert cfg.output_format == "json"


def test_invalid_config_file_raises(isolated_config_dir: Path):
    isolated_config_dir.mkdir(parents=True)
    (isolated_config_dir / "config.json").write_text(json.dumps({"concurrency": 0}), encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigService().build_config()


def test_unknown_key_in_config_file_raises(isolated_config_dir: Path):
    isolated_config_dir.mkdir(parents=True)
    (isolated_config_dir / "config.json").write_text(json.dumps({"threads": 4}), encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigService().load_config()


def test_broken_json_raises(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("{oops", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigService().load_config(path)


def test_explicit_config_path_must_exist(tmp_path: Path):
    with pytest.raises(ConfigError):
        ConfigService().load_config(tmp_path / "missing.json")


def test_config_extensions_are_lowercased(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"extensions": [".MP3", ".Wav"]}), encoding="utf-8")

    cfg = ConfigService().build_config(config_path=path)

    assert cfg.extensions == (".mp3", ".wav")


def test_non_positive_concurrency_override_rejected():
    with pytest.raises(ConfigError):
        ConfigService().build_config({"concurrency": 0})


def test_config_null_document_rejected(tmp_path: Path):
    path = tmp_path / "config.json"
    path.write_text("null", encoding="utf-8")

    with pytest.raises(ConfigError):
        ConfigService().load_config(path)


# ============================================================================
# CLI
# ============================================================================

def test_version_flag(capsys):
    assert cli.main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == f"Audio Probe v{tuning.VERSION}"


def test_no_paths_prints_usage_and_fails(capsys):
    assert cli.main([]) == 1
    assert "usage:" in capsys.readouterr().err


def test_json_report_to_file(music_dir: Path, tmp_path: Path):
    out = tmp_path / "results.json"
    stub = StubProbe()

    with patch("audio_probe.cli.create_adapter", return_value=stub):
        code = cli.main(["--json", "-q", "-j", "2", "-o", str(out), str(music_dir)])

    assert code == 0
    payload = json.loads(out.read_text(encoding="utf-8"))
    # broken.mp3 fails and is omitted; results keep discovery order.
    assert [Path(e["file_path"]).name for e in payload] == ["one.mp3", "two.flac"]
    assert sorted(Path(p).name for p in stub.calls) == ["broken.mp3", "one.mp3", "two.flac"]


def test_recursive_text_report_to_stdout(music_dir: Path, capsys):
    with patch("audio_probe.cli.create_adapter", return_value=StubProbe()):
        code = cli.main(["-r", "-q", str(music_dir)])

    out = capsys.readouterr().out
    assert code == 0
    assert "Succeeded: 3, Failed: 1" in out
    assert "three.wav" in out
    assert "✗ Error:" in out


def test_progress_goes_to_stderr(music_dir: Path, capsys):
    with patch("audio_probe.cli.create_adapter", return_value=StubProbe()):
        code = cli.main(["--json", str(music_dir)])

    captured = capsys.readouterr()
    assert code == 0
    assert "files processed" in captured.err
    assert "files processed" not in captured.out
    json.loads(captured.out)


def test_missing_probe_tool_aborts_before_scheduling(music_dir: Path, capsys):
    stub = StubProbe(unavailable=True)

    with patch("audio_probe.cli.create_adapter", return_value=stub):
        code = cli.main(["-q", str(music_dir)])

    assert code == 1
    assert stub.calls == []
    assert "ffprobe not found" in capsys.readouterr().err


def test_missing_input_path_fails(tmp_path: Path, capsys):
    with patch("audio_probe.cli.create_adapter", return_value=StubProbe()):
        code = cli.main(["-q", str(tmp_path / "nowhere")])

    assert code == 1
    assert "path does not exist" in capsys.readouterr().err


def test_no_audio_files_is_not_an_error(tmp_path: Path, capsys):
    (tmp_path / "notes.txt").write_text("dummy", encoding="utf-8")
    stub = StubProbe()

    with patch("audio_probe.cli.create_adapter", return_value=stub):
        code = cli.main(["-q", str(tmp_path)])

    assert code == 0
    assert stub.calls == []
    assert capsys.readouterr().out == ""


def test_backend_flag_reaches_adapter_factory(music_dir: Path):
    with patch("audio_probe.cli.create_adapter", return_value=StubProbe()) as factory:
        cli.main(["-q", "--backend", "soundfile", str(music_dir)])

    assert factory.call_args[0][0] == "soundfile"
