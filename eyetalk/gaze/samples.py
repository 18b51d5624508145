"""
eyetalk/gaze/samples.py — Gaze sample types, coordinate normalisation and wire parsing.

Every sample that reaches the smoother is in percent of the board
(0–100 on both axes). Sources that report pixels must declare the
reference resolution they are measured against.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GazeSample:
    """
    One raw gaze observation.

    Attributes:
        x: Horizontal position, percent of board width [0, 100].
        y: Vertical position, percent of board height [0, 100].
        t: Monotonic timestamp in milliseconds.
    """

    x: float
    y: float
    t: float


@dataclass(frozen=True)
class SmoothedPoint:
    """Moving-average gaze position; same units as :class:`GazeSample`."""

    x: float
    y: float
    t: float


def _clamp(value: float) -> float:
    return max(0.0, min(100.0, value))


def to_percent(
    x: float,
    y: float,
    coordinate_space: str = "percent",
    reference_width: int = 1920,
    reference_height: int = 1080,
) -> Optional[tuple[float, float]]:
    """
    Normalise a raw coordinate pair into clamped board percentages.

    Args:
        x: Raw horizontal coordinate.
        y: Raw vertical coordinate.
        coordinate_space: ``'percent'`` (already 0–100) or ``'pixels'``.
        reference_width: Pixel width the source measures against.
        reference_height: Pixel height the source measures against.

    Returns:
        ``(x, y)`` clamped into [0, 100], or None if either value is not a
        finite number.
    """
    try:
        fx = float(x)
        fy = float(y)
    except (TypeError, ValueError):
        return None
    if not (math.isfinite(fx) and math.isfinite(fy)):
        return None

    if coordinate_space == "pixels":
        fx = fx / reference_width * 100.0
        fy = fy / reference_height * 100.0
    return _clamp(fx), _clamp(fy)


def _pair(a: Any, b: Any) -> Optional[tuple[float, float]]:
    if isinstance(a, bool) or isinstance(b, bool):
        return None
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return float(a), float(b)
    return None


def parse_wire_message(raw: str | bytes) -> Optional[tuple[float, float]]:
    """
    Extract an ``(x, y)`` pair from a tracker message.

    Accepted forms, tried in order:

    - ``"x,y"`` plain text (e.g. ``"960,540"``)
    - ``{"x": .., "y": ..}``
    - ``{"coordinates": {"x": .., "y": ..}}``
    - ``{"type": "gaze_data", "data": {"x": .., "y": ..}}``
    - ``[x, y, ...]``

    Returns:
        The coordinate pair in the source's own units, or None if the
        message is not recognised. Malformed messages are logged and dropped.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("Dropping undecodable gaze message")
            return None

    text = raw.strip()
    if "," in text and not text.startswith(("{", "[")):
        parts = text.split(",")
        if len(parts) >= 2:
            try:
                return float(parts[0]), float(parts[1])
            except ValueError:
                pass

    try:
        data = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        logger.debug("Dropping unparseable gaze message: %r", text[:80])
        return None

    if isinstance(data, list) and len(data) >= 2:
        return _pair(data[0], data[1])
    if not isinstance(data, dict):
        return None

    for container in (data, data.get("coordinates"), data.get("data")):
        if isinstance(container, dict) and "x" in container and "y" in container:
            pair = _pair(container["x"], container["y"])
            if pair is not None:
                return pair

    logger.debug("Unknown gaze message format: %r", text[:80])
    return None
