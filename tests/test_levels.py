from snake_qlearning.config import GRID_SIZE, SAFE_ZONE, SPAWN_BODY, WALL_DENSITY_MAX
from snake_qlearning.levels import level_walls, wall_density, build_wall_map


def test_level_one_is_open():
    assert level_walls(1) == frozenset()


def test_level_two_ring_has_gaps():
    walls = level_walls(2)
    assert (10, 10) in walls
    assert (19, 20) in walls
    assert (10, 14) in walls
    assert (20, 16) in walls
    assert (10, 15) not in walls
    assert (20, 15) not in walls


def test_level_three_cross_leaves_centre_open():
    walls = level_walls(3)
    assert (15, 0) in walls
    assert (0, 15) in walls
    assert (29, 15) in walls
    assert (15, 29) in walls
    assert (15, 15) not in walls
    assert len(walls) == 48


def test_spawn_is_never_walled():
    for level in range(1, 40):
        walls = level_walls(level)
        assert not walls.intersection(SPAWN_BODY), level


def test_procedural_levels_respect_safe_zone_and_density():
    lo, hi = SAFE_ZONE
    for level in (4, 5, 10, 50, 5000):
        walls = level_walls(level)
        assert walls, level
        for x, y in walls:
            assert 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE
            assert not (lo <= x < hi and lo <= y < hi)
        # Loose bound: the hash is not perfectly uniform
        assert len(walls) / (GRID_SIZE * GRID_SIZE) < WALL_DENSITY_MAX + 0.05


def test_procedural_levels_are_repeatable():
    assert level_walls(7) == level_walls(7)


def test_wall_density_is_capped():
    assert wall_density(4) < wall_density(400)
    assert wall_density(10 ** 6) == WALL_DENSITY_MAX


def test_build_wall_map_ignores_out_of_board_cells():
    wall_map = build_wall_map({(1, 2), (-1, 0), (GRID_SIZE, 3)})
    assert wall_map.shape == (GRID_SIZE, GRID_SIZE)
    assert wall_map[2, 1]
    assert wall_map.sum() == 1
