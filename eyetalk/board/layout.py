"""
eyetalk/board/layout.py — Deterministic packing of circular targets.

Target geometry is a pure function of the target count and the layout
parameters, so the same inputs always produce bit-identical slots.
All values are percentages of the board (0–100 on both axes).
"""

from __future__ import annotations

import math
from typing import NamedTuple

from eyetalk.core.config import LayoutConfig


class Slot(NamedTuple):
    """Centre and radius of one target on the board."""

    center_x: float
    center_y: float
    radius: float


# Hand-placed layouts for counts where a grid looks unbalanced
_CURATED: dict[int, tuple[Slot, ...]] = {
    1: (Slot(50.0, 50.0, 24.0),),
    2: (Slot(25.0, 50.0, 20.0), Slot(75.0, 50.0, 20.0)),
    3: (Slot(50.0, 30.0, 12.0), Slot(30.0, 70.0, 12.0), Slot(70.0, 70.0, 12.0)),
    5: (
        Slot(25.0, 25.0, 12.0),
        Slot(75.0, 25.0, 12.0),
        Slot(50.0, 50.0, 12.0),
        Slot(25.0, 75.0, 12.0),
        Slot(75.0, 75.0, 12.0),
    ),
}


def fill_factor(count: int) -> float:
    """Fraction of a grid cell a target may fill; shrinks as the board gets busier."""
    if count <= 4:
        return 0.44
    if count <= 9:
        return 0.40
    if count <= 16:
        return 0.36
    return 0.32


def grid_radius(count: int, cell: float, cfg: LayoutConfig) -> float:
    """
    Radius shared by all targets of a packed grid.

    The fill-factor radius is capped so neighbours keep a visible gap, and
    floored so labels stay legible.
    """
    target = (cell * fill_factor(count)) / 2.0
    ceiling = max(cfg.dense_legible_radius, cell / 2.0 - cfg.gap_pct)
    floor = cfg.dense_legible_radius if count > cfg.dense_threshold else cfg.legible_radius
    return max(cfg.min_radius, max(floor, min(target, ceiling)) - cfg.radius_inset)


def compute_layout(count: int, cfg: LayoutConfig) -> tuple[Slot, ...]:
    """
    Lay out *count* standard targets.

    Args:
        count: Number of standard targets (0 yields an empty layout).
        cfg: Layout parameters.

    Returns:
        One :class:`Slot` per target, in row-major order.
    """
    if count <= 0:
        return ()
    if count in _CURATED:
        return _CURATED[count]

    cols = math.ceil(math.sqrt(count))
    rows = math.ceil(count / cols)

    usable = 100.0 - cfg.edge_pad_pct * 2.0
    cell_w = usable / cols
    cell_h = usable / rows
    radius = grid_radius(count, min(cell_w, cell_h), cfg)

    slots: list[Slot] = []
    for index in range(count):
        row, col = divmod(index, cols)
        slots.append(
            Slot(
                center_x=cfg.edge_pad_pct + col * cell_w + cell_w / 2.0,
                center_y=cfg.edge_pad_pct + row * cell_h + cell_h / 2.0,
                radius=radius,
            )
        )
    return tuple(slots)
