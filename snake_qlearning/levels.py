"""
Obstacle layouts per difficulty level.

Levels 1-3 are hand-made; from level 4 on the walls are scattered with a
sine hash so the same level always produces the same board.
"""

import numpy as np
from typing import FrozenSet, Tuple

from .config import (
    GRID_SIZE, SAFE_ZONE,
    WALL_DENSITY_BASE, WALL_DENSITY_PER_LEVEL, WALL_DENSITY_MAX,
)

Point = Tuple[int, int]


def wall_density(level: int) -> float:
    return min(WALL_DENSITY_MAX, WALL_DENSITY_BASE + level * WALL_DENSITY_PER_LEVEL)


def _ring_walls():
    """Hollow box around the centre with a gap in both side columns."""
    walls = set()
    for i in range(10, 20):
        walls.add((i, 10))
        walls.add((i, 20))
        if i > 10 and i != 15:
            walls.add((10, i))
            walls.add((20, i))
    return walls


def _cross_walls():
    """Plus shape through the centre, open in the middle."""
    walls = set()
    for i in range(12):
        walls.add((15, i))
        walls.add((15, GRID_SIZE - i - 1))
        walls.add((i, 15))
        walls.add((GRID_SIZE - i - 1, 15))
    return walls


def _procedural_walls(level: int):
    seed = level * 1.618  # Golden ratio offset avoids periodic patterns between levels
    ys, xs = np.mgrid[0:GRID_SIZE, 0:GRID_SIZE]

    values = np.abs(np.sin(seed + xs * 12.9898 + ys * 78.233) * 43758.5453) % 1.0
    blocked = values < wall_density(level)

    lo, hi = SAFE_ZONE
    blocked[lo:hi, lo:hi] = False

    return {(int(x), int(y)) for y, x in zip(*np.nonzero(blocked))}


def level_walls(level: int) -> FrozenSet[Point]:
    """Return the obstacle cells for a level."""
    if level == 2:
        return frozenset(_ring_walls())
    if level == 3:
        return frozenset(_cross_walls())
    if level >= 4:
        return frozenset(_procedural_walls(level))
    return frozenset()


def build_wall_map(walls) -> np.ndarray:
    """Boolean lookup grid indexed as ``wall_map[y, x]``."""
    wall_map = np.zeros((GRID_SIZE, GRID_SIZE), dtype=bool)
    for x, y in walls:
        if 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE:
            wall_map[y, x] = True
    return wall_map
