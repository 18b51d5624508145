"""
tests/test_registry_hit_test.py — Tests for the target registry and hit testing.
"""

from __future__ import annotations

import unittest

from eyetalk.board.hit_test import is_inside, locate
from eyetalk.board.phrases import DEFAULT_PHRASES, PhraseRecord
from eyetalk.board.registry import (
    LOCK_TARGET_ID,
    UNLOCK_TARGET_ID,
    Target,
    TargetKind,
    TargetRegistry,
)
from eyetalk.core.config import LayoutConfig
from eyetalk.gaze.samples import SmoothedPoint


def _pt(x: float, y: float) -> SmoothedPoint:
    return SmoothedPoint(x=x, y=y, t=0.0)


class TestHitTest(unittest.TestCase):
    """Tests for is_inside() and locate()."""

    def test_point_on_circle_edge_is_inside(self) -> None:
        target = Target(id="a", center_x=50.0, center_y=50.0, radius=10.0)
        self.assertTrue(is_inside(60.0, 50.0, target))
        self.assertFalse(is_inside(60.001, 50.0, target))

    def test_locate_returns_none_outside_all_targets(self) -> None:
        targets = (Target(id="a", center_x=20.0, center_y=20.0, radius=5.0),)
        self.assertIsNone(locate(_pt(80.0, 80.0), targets))

    def test_first_listed_target_wins_overlap(self) -> None:
        """Overlapping circles resolve to the earlier target in the list."""
        a = Target(id="a", center_x=45.0, center_y=50.0, radius=10.0)
        b = Target(id="b", center_x=55.0, center_y=50.0, radius=10.0)
        self.assertEqual(locate(_pt(50.0, 50.0), (a, b)).id, "a")
        self.assertEqual(locate(_pt(50.0, 50.0), (b, a)).id, "b")

    def test_empty_target_list(self) -> None:
        self.assertIsNone(locate(_pt(50.0, 50.0), ()))


class TestTargetRegistry(unittest.TestCase):
    """Tests for TargetRegistry.active_targets() and rebuild()."""

    def setUp(self) -> None:
        self.cfg = LayoutConfig()
        self.registry = TargetRegistry(self.cfg, DEFAULT_PHRASES)

    def test_unlocked_targets_are_standard_then_toggle(self) -> None:
        targets = self.registry.active_targets(lock_mode_on=False)
        self.assertEqual(len(targets), len(DEFAULT_PHRASES) + 1)
        self.assertEqual([t.id for t in targets[:-1]], [p.id for p in DEFAULT_PHRASES])
        self.assertEqual(targets[-1].id, LOCK_TARGET_ID)
        self.assertIs(targets[-1].kind, TargetKind.MODE_TOGGLE)
        self.assertEqual(targets[-1].radius, self.cfg.lock_radius)

    def test_locked_exposes_only_unlock_control(self) -> None:
        targets = self.registry.active_targets(lock_mode_on=True)
        self.assertEqual(len(targets), 1)
        self.assertEqual(targets[0].id, UNLOCK_TARGET_ID)
        self.assertEqual(targets[0].radius, self.cfg.unlock_radius)
        self.assertEqual(targets[0].label, "Open")

    def test_locked_locate_never_returns_standard_target(self) -> None:
        """Scan the whole board: while locked only the unlock control is hit."""
        targets = self.registry.active_targets(lock_mode_on=True)
        for xi in range(0, 101, 2):
            for yi in range(0, 101, 2):
                hit = locate(_pt(float(xi), float(yi)), targets)
                if hit is not None:
                    self.assertEqual(hit.id, UNLOCK_TARGET_ID)

    def test_standard_target_centre_misses_while_locked(self) -> None:
        first = self.registry.standard_targets[0]
        point = _pt(first.center_x, first.center_y)
        self.assertEqual(locate(point, self.registry.active_targets(False)).id, first.id)
        self.assertIsNone(locate(point, self.registry.active_targets(True)))

    def test_standard_targets_carry_phrase_fields(self) -> None:
        pain = self.registry.get("pain")
        self.assertIsNotNone(pain)
        self.assertEqual(pain.label, "I am in pain")
        self.assertEqual(pain.audio_ref, "/audio/pain.wav")
        self.assertEqual(pain.color, "#EF4444")

    def test_zero_phrases_leaves_toggle_reachable(self) -> None:
        registry = TargetRegistry(self.cfg, ())
        self.assertEqual(registry.standard_targets, ())
        targets = registry.active_targets(lock_mode_on=False)
        self.assertEqual([t.id for t in targets], [LOCK_TARGET_ID])

    def test_rebuild_swaps_standard_targets(self) -> None:
        self.registry.rebuild([PhraseRecord(id="yes", label="Yes")])
        self.assertEqual([t.id for t in self.registry.standard_targets], ["yes"])
        self.assertEqual(self.registry.standard_targets[0].center_x, 50.0)
        self.assertIsNone(self.registry.get("pain"))


if __name__ == "__main__":
    unittest.main()
