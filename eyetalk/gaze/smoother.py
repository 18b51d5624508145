"""
eyetalk/gaze/smoother.py — Moving-average smoothing of raw gaze samples.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import Deque, Optional

from eyetalk.gaze.samples import GazeSample, SmoothedPoint

logger = logging.getLogger(__name__)


class SampleSmoother:
    """
    Fixed-capacity ring buffer of the last *window_size* samples.

    :meth:`push` returns the arithmetic mean of the buffered positions,
    stamped with the newest sample's time. The mean is taken relative to
    the oldest buffered sample, so a buffer of identical samples averages
    back to exactly that position.

    Args:
        window_size: Number of samples averaged (K).
    """

    def __init__(self, window_size: int = 12) -> None:
        if window_size < 1:
            raise ValueError(f"window_size must be ≥ 1, got {window_size}")
        self._buffer: Deque[GazeSample] = deque(maxlen=window_size)
        self._latest: Optional[SmoothedPoint] = None

    def __len__(self) -> int:
        return len(self._buffer)

    @property
    def window_size(self) -> int:
        return self._buffer.maxlen or 0

    @property
    def latest(self) -> Optional[SmoothedPoint]:
        """Most recent smoothed point, or None before the first push."""
        return self._latest

    def push(self, sample: GazeSample) -> SmoothedPoint:
        """
        Add a sample (evicting the oldest when full) and return the new mean.

        Args:
            sample: Raw sample in percent coordinates.

        Returns:
            The smoothed point over all buffered samples.
        """
        self._buffer.append(sample)
        n = len(self._buffer)
        ref = self._buffer[0]
        x = ref.x + math.fsum(s.x - ref.x for s in self._buffer) / n
        y = ref.y + math.fsum(s.y - ref.y for s in self._buffer) / n
        self._latest = SmoothedPoint(x=x, y=y, t=sample.t)
        return self._latest

    def clear(self) -> None:
        """Drop all buffered samples."""
        self._buffer.clear()
        self._latest = None
