"""
eyetalk/dwell/state_machine.py — Dual-criterion dwell confirmation.

Turns a stream of smoothed gaze points into at most one confirmed
selection per visit to a target. A selection fires only when both hold
for the current candidate:

- occupancy: more than ``occupancy_threshold`` of the ticks in the last
  ``window_ms`` were inside the candidate, and
- persistence: at least ``consec_frames_required`` consecutive ticks were
  inside it.

After a selection the machine drops back to Idle, so the user has to leave
and re-enter the target before it can fire again.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Optional, Sequence

from eyetalk.board.hit_test import is_inside, locate
from eyetalk.board.registry import Target
from eyetalk.core.config import DwellConfig
from eyetalk.gaze.samples import SmoothedPoint

logger = logging.getLogger(__name__)

# Absorbs float error when tick times are multiples of a fractional interval
_RATE_EPSILON_MS: float = 1e-6


class DwellPhase(Enum):
    """Observable phase of the dwell machine."""

    IDLE = "IDLE"
    TRACKING = "TRACKING"


@dataclass(frozen=True)
class WindowEntry:
    """One evaluated tick for the current candidate."""

    t: float
    inside: bool


@dataclass
class DwellState:
    """
    Mutable dwell bookkeeping, owned by a single :class:`DwellStateMachine`.

    Attributes:
        candidate_id: Target currently accumulating evidence, or None.
        window: Ticks within the sliding window, oldest first.
        consecutive_inside: Unbroken run of inside-ticks.
        progress: Last computed progress in [0, 100].
    """

    candidate_id: Optional[str] = None
    window: Deque[WindowEntry] = field(default_factory=deque)
    consecutive_inside: int = 0
    progress: float = 0.0

    @property
    def phase(self) -> DwellPhase:
        return DwellPhase.IDLE if self.candidate_id is None else DwellPhase.TRACKING

    def reset(self, candidate_id: Optional[str] = None) -> None:
        """Clear all evidence and start tracking *candidate_id* (None = Idle)."""
        self.candidate_id = candidate_id
        self.window.clear()
        self.consecutive_inside = 0
        self.progress = 0.0


@dataclass(frozen=True)
class TickResult:
    """
    Outcome of one call to :meth:`DwellStateMachine.tick`.

    Attributes:
        accepted: False if the tick was skipped by the rate limiter.
        candidate: Target under the gaze this tick, if any.
        candidate_changed: True if the candidate differs from the previous tick.
        occupancy: Inside ratio over the window (0 when Idle).
        progress: Progress shown to the user this tick, in [0, 100].
        triggered: The confirmed target, if a selection fired this tick.
    """

    accepted: bool
    candidate: Optional[Target] = None
    candidate_changed: bool = False
    occupancy: float = 0.0
    progress: float = 0.0
    triggered: Optional[Target] = None


_SKIPPED = TickResult(accepted=False)


class DwellStateMachine:
    """
    Per-tick dwell evaluator over an ordered target list.

    The machine never performs the selection side effect itself; a
    confirmed target is returned in :attr:`TickResult.triggered` and the
    caller dispatches it.

    Args:
        config: Dwell window, tick rate, occupancy threshold and run length.
    """

    def __init__(self, config: DwellConfig) -> None:
        self._window_ms = config.window_ms
        self._interval_ms = config.frame_interval_ms
        self._theta = config.occupancy_threshold
        self._frames_required = config.consec_frames_required
        self._state = DwellState()
        self._last_tick_ms: Optional[float] = None

        logger.info(
            "DwellStateMachine ready: T=%.0fms F=%.1fHz θ=%.2f M=%d",
            self._window_ms, config.sample_rate_hz, self._theta, self._frames_required,
        )

    @property
    def state(self) -> DwellState:
        return self._state

    @property
    def frames_required(self) -> int:
        return self._frames_required

    def reset(self) -> None:
        """Return to Idle and forget the rate limiter's last tick."""
        self._state.reset()
        self._last_tick_ms = None

    def tick(
        self,
        point: Optional[SmoothedPoint],
        targets: Sequence[Target],
        now_ms: float,
    ) -> TickResult:
        """
        Evaluate one frame.

        Args:
            point: Latest smoothed gaze point; None before any sample arrived.
            targets: Hit-testable targets in priority order.
            now_ms: Monotonic time of this frame in milliseconds.

        Returns:
            A :class:`TickResult` describing what happened.
        """
        if (
            self._last_tick_ms is not None
            and now_ms - self._last_tick_ms < self._interval_ms - _RATE_EPSILON_MS
        ):
            return _SKIPPED
        self._last_tick_ms = now_ms

        if point is None:
            return TickResult(accepted=True)

        state = self._state
        candidate = locate(point, targets)
        candidate_id = candidate.id if candidate is not None else None

        changed = candidate_id != state.candidate_id
        if changed:
            state.reset(candidate_id)
            logger.debug("Dwell candidate → %s", candidate_id)

        if candidate is None:
            return TickResult(accepted=True, candidate_changed=changed)

        inside = is_inside(point.x, point.y, candidate)
        state.window.append(WindowEntry(t=now_ms, inside=inside))
        cutoff = now_ms - self._window_ms
        while state.window and state.window[0].t < cutoff:
            state.window.popleft()

        state.consecutive_inside = state.consecutive_inside + 1 if inside else 0

        total = len(state.window)
        inside_count = sum(1 for entry in state.window if entry.inside)
        occupancy = inside_count / total if total else 0.0

        ratio_occupancy = min(1.0, occupancy / self._theta) if self._theta > 0 else 1.0
        ratio_run = min(1.0, state.consecutive_inside / self._frames_required)
        progress = min(ratio_occupancy, ratio_run) * 100.0
        state.progress = progress

        if occupancy > self._theta and state.consecutive_inside >= self._frames_required:
            logger.info(
                "Dwell confirmed on %s (occupancy=%.2f, run=%d)",
                candidate.id, occupancy, state.consecutive_inside,
            )
            state.reset()
            return TickResult(
                accepted=True,
                candidate=candidate,
                candidate_changed=changed,
                occupancy=occupancy,
                progress=progress,
                triggered=candidate,
            )

        return TickResult(
            accepted=True,
            candidate=candidate,
            candidate_changed=changed,
            occupancy=occupancy,
            progress=progress,
        )
