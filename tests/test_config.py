"""
tests/test_config.py — Tests for the YAML configuration loader.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from eyetalk.core.config import EyeTalkConfig, load_config

_REPO_CONFIG = Path(__file__).resolve().parent.parent / "config" / "eyetalk.yaml"


def _write(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "eyetalk.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_repo_config_loads() -> None:
    config = load_config(_REPO_CONFIG)
    assert isinstance(config, EyeTalkConfig)
    assert config.dwell.window_ms == 600
    assert config.dwell.consec_frames_required == 36
    assert config.smoothing.window_size == 12
    assert [p.id for p in config.phrases] == ["thirsty", "hungry", "help", "pain"]


def test_defaults_without_overrides(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, {}))
    assert config.dwell.occupancy_threshold == 0.8
    assert config.dwell.frame_interval_ms == pytest.approx(1000.0 / 24.0)
    assert config.input.coordinate_space == "percent"
    assert (config.input.reference_width, config.input.reference_height) == (1920, 1080)
    assert config.phrases is None


def test_partial_section_override(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, {"dwell": {"sample_rate_hz": 30}}))
    assert config.dwell.sample_rate_hz == 30
    assert config.dwell.window_ms == 600.0
    assert config.dwell.consec_frames_required == 45


def test_env_var_points_to_config(tmp_path: Path, monkeypatch) -> None:
    path = _write(tmp_path, {"smoothing": {"window_size": 5}})
    monkeypatch.setenv("EYETALK_CONFIG", str(path))
    assert load_config().smoothing.window_size == 5


def test_missing_explicit_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_missing_env_path_raises(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("EYETALK_CONFIG", str(tmp_path / "nope.yaml"))
    with pytest.raises(FileNotFoundError):
        load_config()


@pytest.mark.parametrize("data", [
    {"dwell": {"occupancy_threshold": 1.5}},
    {"dwell": {"occupancy_threshold": 0}},
    {"dwell": {"sample_rate_hz": 0}},
    {"dwell": {"window_ms": -1}},
    {"dwell": {"consec_ms": 0}},
    {"dwell": {"unknown_key": 1}},
    {"smoothing": {"window_size": 0}},
    {"input": {"coordinate_space": "inches"}},
    {"input": {"reference_width": 0}},
    {"tts": {"volume": 2.0}},
    {"dwell": {"occupancy_threshold": "high"}},
    {"dwell": {"sample_rate_hz": True}},
    {"dwell": {"window_ms": "600"}},
    {"smoothing": {"window_size": True}},
    {"layout": {"lock_radius": "big"}},
    {"input": {"coordinate_space": ["percent"]}},
    {"input": {"reference_width": "wide"}},
    {"input": {"tick_poll_ms": "5"}},
    {"tts": {"volume": "loud"}},
    {"tts": {"rate": None}},
    {"logging": {"level": 10}},
    {"dwell": None},
    {"phrases": {"id": "a"}},
    {"phrases": [{"id": "a", "label": ""}]},
    {"phrases": [{"id": "a", "label": "A"}, {"id": "a", "label": "B"}]},
])
def test_invalid_values_rejected(tmp_path: Path, data: dict) -> None:
    with pytest.raises(ValueError):
        load_config(_write(tmp_path, data))


def test_non_mapping_file_rejected(tmp_path: Path) -> None:
    path = tmp_path / "eyetalk.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_malformed_yaml_rejected(tmp_path: Path) -> None:
    path = tmp_path / "eyetalk.yaml"
    path.write_text("dwell: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_empty_phrase_list_is_kept_empty(tmp_path: Path) -> None:
    config = load_config(_write(tmp_path, {"phrases": []}))
    assert config.phrases == ()
