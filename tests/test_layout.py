"""
tests/test_layout.py — Unit tests for deterministic target layout.
"""

from __future__ import annotations

import math

import pytest

from eyetalk.board.layout import Slot, compute_layout, fill_factor
from eyetalk.core.config import LayoutConfig

CFG = LayoutConfig()


def test_seven_targets_layout_is_deterministic() -> None:
    first = compute_layout(7, CFG)
    second = compute_layout(7, CFG)
    assert first == second
    assert len(first) == 7


def test_seven_targets_packed_in_three_column_grid() -> None:
    slots = compute_layout(7, CFG)
    cell = 88.0 / 3.0
    assert slots[0].center_x == pytest.approx(6.0 + cell / 2.0)
    assert slots[0].center_y == pytest.approx(6.0 + cell / 2.0)
    # Row-major: the fourth target starts the second row
    assert slots[3].center_x == pytest.approx(slots[0].center_x)
    assert slots[3].center_y == pytest.approx(6.0 + cell * 1.5)
    assert all(slot.radius == pytest.approx(8.0) for slot in slots)


def test_single_target_is_centred() -> None:
    assert compute_layout(1, CFG) == (Slot(50.0, 50.0, 24.0),)


@pytest.mark.parametrize("count", [2, 3, 5])
def test_curated_counts_use_fixed_slots(count: int) -> None:
    slots = compute_layout(count, CFG)
    assert len(slots) == count
    assert slots == compute_layout(count, LayoutConfig(edge_pad_pct=20.0))


def test_zero_targets_yields_empty_layout() -> None:
    assert compute_layout(0, CFG) == ()


@pytest.mark.parametrize("count", range(1, 31))
def test_targets_do_not_overlap_and_stay_on_board(count: int) -> None:
    slots = compute_layout(count, CFG)
    for i, a in enumerate(slots):
        assert a.radius >= CFG.min_radius
        assert 0.0 <= a.center_x - a.radius and a.center_x + a.radius <= 100.0
        assert 0.0 <= a.center_y - a.radius and a.center_y + a.radius <= 100.0
        for b in slots[i + 1:]:
            distance = math.hypot(a.center_x - b.center_x, a.center_y - b.center_y)
            assert distance >= a.radius + b.radius


def test_fill_factor_shrinks_with_density() -> None:
    assert fill_factor(4) > fill_factor(9) > fill_factor(16) > fill_factor(17)
