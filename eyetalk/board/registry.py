"""
eyetalk/board/registry.py — Active set of selectable circular targets.

The registry turns the phrase book into positioned :class:`Target` objects
plus the lock/unlock toggle, and answers which of them are hit-testable in
the current interaction mode.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from eyetalk.board.layout import compute_layout
from eyetalk.board.phrases import PhraseRecord
from eyetalk.core.config import LayoutConfig

logger = logging.getLogger(__name__)

LOCK_TARGET_ID: str = "lock-control"
UNLOCK_TARGET_ID: str = "unlock-control"


class TargetKind(Enum):
    """What a confirmed selection of the target does."""

    STANDARD = "standard"
    MODE_TOGGLE = "mode_toggle"


@dataclass(frozen=True)
class Target:
    """
    A selectable circle on the board, in percent coordinates.

    Attributes:
        id: Target identifier (phrase id, or the lock/unlock control id).
        center_x: Horizontal centre [0, 100].
        center_y: Vertical centre [0, 100].
        radius: Circle radius in the same units.
        kind: Standard phrase button or lock-mode toggle.
        label: Text shown on the button.
        audio_ref: Recorded audio for standard targets, empty otherwise.
        color: Display colour.
    """

    id: str
    center_x: float
    center_y: float
    radius: float
    kind: TargetKind = TargetKind.STANDARD
    label: str = ""
    audio_ref: str = ""
    color: str = ""


class TargetRegistry:
    """
    Holds the laid-out standard targets and builds the mode toggle.

    Standard targets are rebuilt as a whole and swapped in with a single
    assignment, so a tick never sees a half-updated set.

    Args:
        config: Layout parameters.
        phrases: Initial phrases to lay out.
    """

    def __init__(self, config: LayoutConfig, phrases: Iterable[PhraseRecord] = ()) -> None:
        self._cfg = config
        self._standard: tuple[Target, ...] = ()
        self.rebuild(phrases)

    @property
    def standard_targets(self) -> tuple[Target, ...]:
        return self._standard

    def rebuild(self, phrases: Iterable[PhraseRecord]) -> None:
        """Recompute standard target geometry from the phrase list."""
        records = list(phrases)
        slots = compute_layout(len(records), self._cfg)
        self._standard = tuple(
            Target(
                id=record.id,
                center_x=slot.center_x,
                center_y=slot.center_y,
                radius=slot.radius,
                kind=TargetKind.STANDARD,
                label=record.label,
                audio_ref=record.resolved_audio_ref,
                color=record.resolved_color,
            )
            for record, slot in zip(records, slots)
        )
        logger.info("TargetRegistry rebuilt: %d standard targets", len(self._standard))

    def toggle_target(self, locked: bool) -> Target:
        """The lock affordance; its id, label and size reflect the current mode."""
        return Target(
            id=UNLOCK_TARGET_ID if locked else LOCK_TARGET_ID,
            center_x=self._cfg.lock_center_x,
            center_y=self._cfg.lock_center_y,
            radius=self._cfg.unlock_radius if locked else self._cfg.lock_radius,
            kind=TargetKind.MODE_TOGGLE,
            label="Open" if locked else "Lock",
            color="#16a34a" if locked else "#111827",
        )

    def active_targets(self, lock_mode_on: bool) -> tuple[Target, ...]:
        """
        Targets that may be hit-tested right now, in priority order.

        When locked only the unlock control is returned. Otherwise the
        standard targets come first and the toggle last, so a standard
        target wins wherever the two overlap.
        """
        toggle = self.toggle_target(lock_mode_on)
        if lock_mode_on:
            return (toggle,)
        return self._standard + (toggle,)

    def get(self, target_id: str) -> Optional[Target]:
        for target in self._standard:
            if target.id == target_id:
                return target
        return None
