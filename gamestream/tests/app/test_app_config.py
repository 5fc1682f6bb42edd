from __future__ import annotations

from pathlib import Path
import textwrap

import pytest

from gamestream.app.config import AppConfig
from gamestream.core.errors import ConfigError


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text).lstrip(), encoding="utf-8")
    return path


def test_load_builds_app_config(tmp_path: Path):
    cfg_path = _write(
        tmp_path / "config.yml",
        """
        hosts: [10.0.0.2]
        input_poll_hz: 250
        stream:
          fps: 30
        """,
    )

    cfg = AppConfig.load(cfg_path)

    assert cfg.hosts == ("10.0.0.2",)
    assert cfg.stream.fps == 30
    assert cfg.input_poll_hz == 250.0
    assert cfg.engine == "sim"
    assert cfg.default_timeout_s == 5.0
    assert cfg.pair_timeout_s == 60.0
    assert Path(cfg.key_dir).parent == tmp_path


def test_missing_file_is_config_error(tmp_path: Path):
    with pytest.raises(ConfigError) as ei:
        AppConfig.load(tmp_path / "missing.yml")
    assert ei.value.code == "config_error"
    assert ei.value.details["path"].endswith("missing.yml")


def test_bad_yaml_is_config_error(tmp_path: Path):
    cfg_path = _write(tmp_path / "config.yml", "hosts: [unterminated\n")
    with pytest.raises(ConfigError):
        AppConfig.load(cfg_path)


def test_host_override_loader_wraps_errors(tmp_path: Path):
    cfg_path = _write(tmp_path / "config.yml", "hosts: [h1]\n")
    _write(tmp_path / "hosts" / "h1.yml", "stream: {bitrate: 20000}\n")
    cfg = AppConfig.load(cfg_path)
    load = cfg.host_override_loader()

    assert load("h1") == {"bitrate": 20000}
    assert load("other") == {}

    _write(tmp_path / "hosts" / "h1.yml", "stream: {bogus: 1}\n")
    with pytest.raises(ConfigError) as ei:
        load("h1")
    assert "bogus" in ei.value.hint
    assert ei.value.details["path"].endswith("h1.yml")
