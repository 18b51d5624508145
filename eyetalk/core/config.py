"""
eyetalk/core/config.py — Typed configuration loader for EyeTalk.

Loads config/eyetalk.yaml and validates all values into typed dataclasses.
All downstream modules import from this module; never read YAML directly.
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from eyetalk.board.phrases import PhraseRecord

logger = logging.getLogger(__name__)

COORDINATE_SPACES: frozenset[str] = frozenset({"percent", "pixels"})


# ──────────────────────────────────────────────
# Dataclass hierarchy — mirrors eyetalk.yaml
# ──────────────────────────────────────────────


@dataclass(frozen=True)
class DwellConfig:
    """Dual-criterion dwell confirmation parameters."""

    window_ms: float = 600.0
    sample_rate_hz: float = 24.0
    occupancy_threshold: float = 0.8
    consec_ms: float = 1500.0

    @property
    def frame_interval_ms(self) -> float:
        """Minimum spacing between two accepted ticks."""
        return 1000.0 / self.sample_rate_hz

    @property
    def consec_frames_required(self) -> int:
        """Unbroken run of inside-ticks needed before a selection can fire."""
        return max(1, round((self.consec_ms / 1000.0) * self.sample_rate_hz))


@dataclass(frozen=True)
class SmoothingConfig:
    """Moving-average smoothing of raw gaze samples."""

    window_size: int = 12


@dataclass(frozen=True)
class LayoutConfig:
    """Geometry parameters for packing targets onto the board (percent units)."""

    edge_pad_pct: float = 6.0
    gap_pct: float = 4.0
    min_radius: float = 6.0
    legible_radius: float = 10.0
    dense_legible_radius: float = 8.0
    dense_threshold: int = 12
    radius_inset: float = 2.0
    lock_center_x: float = 50.0
    lock_center_y: float = 96.0
    lock_radius: float = 12.0
    unlock_radius: float = 14.0


@dataclass(frozen=True)
class InputConfig:
    """Inbound gaze sample contract and tick scheduling."""

    coordinate_space: str = "percent"
    reference_width: int = 1920
    reference_height: int = 1080
    tick_poll_ms: float = 5.0


@dataclass(frozen=True)
class AudioConfig:
    """Recorded phrase playback configuration."""

    audio_dir: str = "assets/audio"
    use_tts_fallback: bool = True

    @property
    def resolved_audio_dir(self) -> Path:
        """Return audio directory as an absolute Path."""
        return Path(os.path.expanduser(self.audio_dir)).resolve()


@dataclass(frozen=True)
class TTSConfig:
    """Text-to-speech fallback configuration."""

    rate: int = 150
    volume: float = 1.0
    voice_id: Optional[str] = None


@dataclass(frozen=True)
class LoggingConfig:
    """Logging and session recording configuration."""

    level: str = "INFO"
    log_dir: str = "logs"
    log_sessions: bool = True


@dataclass(frozen=True)
class EyeTalkConfig:
    """Root configuration object — single source of truth for all settings."""

    dwell: DwellConfig = field(default_factory=DwellConfig)
    smoothing: SmoothingConfig = field(default_factory=SmoothingConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    input: InputConfig = field(default_factory=InputConfig)
    audio: AudioConfig = field(default_factory=AudioConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    # None means "use the built-in phrase set"; an empty tuple is an empty board
    phrases: Optional[tuple[PhraseRecord, ...]] = None


# ──────────────────────────────────────────────
# Loader
# ──────────────────────────────────────────────


def _resolve_path(config_path: Path | str | None) -> Path | None:
    """
    Find the config file to load, or None to use built-in defaults.

    Raises:
        FileNotFoundError: If an explicit path or EYETALK_CONFIG is missing.
    """
    if config_path is not None:
        resolved = Path(config_path)
        if not resolved.exists():
            raise FileNotFoundError(f"Config file not found: {resolved}")
        return resolved

    if "EYETALK_CONFIG" in os.environ:
        resolved = Path(os.environ["EYETALK_CONFIG"])
        if not resolved.exists():
            raise FileNotFoundError(
                f"EYETALK_CONFIG points to missing file: {resolved}"
            )
        return resolved

    # Auto-discover: walk up from this file to find config/eyetalk.yaml
    here = Path(__file__).resolve()
    for parent in [here.parent.parent.parent, here.parent.parent]:
        candidate = parent / "config" / "eyetalk.yaml"
        if candidate.exists():
            return candidate
    return None


def _parse_phrases(raw: Any) -> Optional[tuple[PhraseRecord, ...]]:
    """Validate the ``phrases`` list into PhraseRecord objects (None if absent)."""
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ValueError(f"phrases must be a list, got: {type(raw).__name__}")
    try:
        records = tuple(PhraseRecord(**entry) for entry in raw)
    except (TypeError, ValidationError) as exc:
        raise ValueError(f"Invalid phrase entry: {exc}") from exc

    ids = [r.id for r in records]
    if len(ids) != len(set(ids)):
        raise ValueError(f"Duplicate phrase ids in config: {ids}")
    return records


def load_config(config_path: Path | str | None = None) -> EyeTalkConfig:
    """
    Load, validate, and return an EyeTalkConfig from a YAML file.

    The search order for the config file is:
    1. *config_path* argument (if provided)
    2. EYETALK_CONFIG environment variable
    3. ``config/eyetalk.yaml`` relative to the project root
    4. Built-in defaults (no file required)

    Args:
        config_path: Optional path to an ``eyetalk.yaml`` file.

    Returns:
        A fully populated and frozen :class:`EyeTalkConfig` instance.

    Raises:
        ValueError: If a YAML field has an invalid type or value.
        FileNotFoundError: If *config_path* is explicitly given but does not exist.
    """
    resolved_path = _resolve_path(config_path)

    raw: dict = {}
    if resolved_path is not None:
        logger.info("Loading config from: %s", resolved_path)
        with resolved_path.open("r", encoding="utf-8") as fh:
            try:
                loaded = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Malformed YAML in {resolved_path}: {exc}") from exc
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file must be a YAML mapping, got: {type(loaded)}")
        raw = loaded
    else:
        logger.info("No config file found — using built-in defaults")

    try:
        dwell_cfg = DwellConfig(**raw.get("dwell", {}))
        smoothing_cfg = SmoothingConfig(**raw.get("smoothing", {}))
        layout_cfg = LayoutConfig(**raw.get("layout", {}))
        input_cfg = InputConfig(**raw.get("input", {}))
        audio_cfg = AudioConfig(**raw.get("audio", {}))
        tts_cfg = TTSConfig(**raw.get("tts", {}))
        log_cfg = LoggingConfig(**raw.get("logging", {}))
    except TypeError as exc:
        raise ValueError(f"Invalid config value: {exc}") from exc

    phrases = _parse_phrases(raw.get("phrases"))

    _validate_config(
        dwell_cfg, smoothing_cfg, layout_cfg, input_cfg, audio_cfg, tts_cfg, log_cfg
    )

    config = EyeTalkConfig(
        dwell=dwell_cfg,
        smoothing=smoothing_cfg,
        layout=layout_cfg,
        input=input_cfg,
        audio=audio_cfg,
        tts=tts_cfg,
        logging=log_cfg,
        phrases=phrases,
    )
    logger.debug("Config loaded: %s", config)
    return config


def _is_number(value: Any) -> bool:
    """True for finite ints/floats; bools are rejected."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _validate_config(
    dwell: DwellConfig,
    smoothing: SmoothingConfig,
    layout: LayoutConfig,
    input_cfg: InputConfig,
    audio: AudioConfig,
    tts: TTSConfig,
    log_cfg: LoggingConfig,
) -> None:
    """
    Validate types and cross-field constraints on the loaded configuration.

    Raises:
        ValueError: If any configured value has the wrong type or violates
            a hard constraint.
    """
    for name in ("window_ms", "sample_rate_hz", "consec_ms"):
        value = getattr(dwell, name)
        if not _is_number(value) or value <= 0:
            raise ValueError(f"dwell.{name} must be a positive number, got {value!r}")
    threshold = dwell.occupancy_threshold
    if not _is_number(threshold) or not (0.0 < threshold <= 1.0):
        raise ValueError(f"dwell.occupancy_threshold must be in (0, 1], got {threshold!r}")
    window_size = smoothing.window_size
    if not isinstance(window_size, int) or isinstance(window_size, bool) or window_size < 1:
        raise ValueError(f"smoothing.window_size must be an integer ≥ 1, got {window_size!r}")
    for name in LayoutConfig.__dataclass_fields__:
        value = getattr(layout, name)
        if not _is_number(value) or value < 0:
            raise ValueError(f"layout.{name} must be a non-negative number, got {value!r}")
    if not isinstance(input_cfg.coordinate_space, str) or (
        input_cfg.coordinate_space not in COORDINATE_SPACES
    ):
        raise ValueError(
            "input.coordinate_space must be 'percent' or 'pixels', "
            f"got {input_cfg.coordinate_space!r}"
        )
    for name in ("reference_width", "reference_height", "tick_poll_ms"):
        value = getattr(input_cfg, name)
        if not _is_number(value) or value <= 0:
            raise ValueError(f"input.{name} must be a positive number, got {value!r}")
    if not isinstance(audio.audio_dir, str):
        raise ValueError(f"audio.audio_dir must be a string, got {audio.audio_dir!r}")
    if not _is_number(tts.rate) or tts.rate <= 0:
        raise ValueError(f"tts.rate must be a positive number, got {tts.rate!r}")
    if not _is_number(tts.volume) or not (0.0 <= tts.volume <= 1.0):
        raise ValueError(f"tts.volume must be in [0, 1], got {tts.volume!r}")
    if not isinstance(log_cfg.level, str) or not isinstance(log_cfg.log_dir, str):
        raise ValueError(
            f"logging.level and logging.log_dir must be strings, got "
            f"{log_cfg.level!r} and {log_cfg.log_dir!r}"
        )
