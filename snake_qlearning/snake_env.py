import logging
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from .config import (
    GRID_SIZE, SPAWN_BODY, MAX_STEPS, STEPS_PER_POINT, LEVEL_GOAL,
    PLACEMENT_ATTEMPTS, FALLBACK_POINT, ITEM_SPAWN_INTERVAL, ITEM_SPAWN_CHANCE,
    ITEM_LIFETIME, MAX_SPECIAL_ITEMS, SHRINK_AMOUNT, SHRINK_MIN_LENGTH,
    SLOW_DURATION, REWARDS, ITEM_SCORES,
)
from .levels import level_walls, build_wall_map

logger = logging.getLogger(__name__)

Point = Tuple[int, int]

DIRECTIONS: Dict[str, Point] = {
    'UP': (0, -1),
    'DOWN': (0, 1),
    'LEFT': (-1, 0),
    'RIGHT': (1, 0),
}

# 4 cardinal rays first, then the diagonals
RAY_DIRECTIONS: List[Point] = [
    (0, -1), (0, 1), (-1, 0), (1, 0),
    (-1, -1), (1, -1), (-1, 1), (1, 1),
]


class ItemType(Enum):
    BONUS = 'bonus'
    SHRINK = 'shrink'
    SLOW = 'slow'


@dataclass
class SpecialItem:
    type: ItemType
    point: Point
    expires: int  # Step count at which the item disappears


@dataclass
class VisionRay:
    direction: Point
    dist: int
    food_found: bool
    item_found: Optional[ItemType]
    item_dist: Optional[int]
    body_found: bool
    wall_found: bool
    point: Point  # Last in-board cell the ray reached


@dataclass
class GameState:
    snake: List[Point]
    food: Point
    walls: FrozenSet[Point]
    level: int = 1
    special_items: List[SpecialItem] = field(default_factory=list)
    score: int = 0
    items_collected_in_level: int = 0
    game_over: bool = False
    steps: int = 0
    slow_effect_steps: int = 0
    portal_open: bool = False
    portal_point: Optional[Point] = None

    def to_dict(self) -> Dict:
        return {
            'snake': [list(p) for p in self.snake],
            'food': list(self.food),
            'special_items': [
                {'type': item.type.value, 'point': list(item.point), 'expires': item.expires}
                for item in self.special_items
            ],
            'walls': sorted(list(p) for p in self.walls),
            'score': self.score,
            'level': self.level,
            'items_collected_in_level': self.items_collected_in_level,
            'game_over': self.game_over,
            'steps': self.steps,
            'slow_effect_steps': self.slow_effect_steps,
            'portal_open': self.portal_open,
            'portal_point': list(self.portal_point) if self.portal_point else None,
        }


class SnakeEnv:
    """
    Snake on a fixed GRID_SIZE x GRID_SIZE board with levels.

    One instance owns one episode. The snake eats food to grow, picks up
    timed special items, and once LEVEL_GOAL food has been eaten a portal
    opens that moves it to the next (harder) level.

    All randomness goes through ``rng`` so episodes can be replayed with a
    seeded ``random.Random``.
    """

    def __init__(self, level: int = 1, rng: Optional[random.Random] = None):
        self.rng = rng if rng is not None else random.Random()
        self.max_steps = MAX_STEPS

        self.state = GameState(snake=list(SPAWN_BODY), food=FALLBACK_POINT, walls=frozenset(), level=level)
        self.set_walls(level_walls(level))
        self.state.food = self.get_random_empty_point()

    # === Queries ===

    @property
    def head(self) -> Point:
        return self.state.snake[0]

    @property
    def target(self) -> Point:
        """Current navigation target: the portal once open, otherwise the food."""
        if self.state.portal_open and self.state.portal_point is not None:
            return self.state.portal_point
        return self.state.food

    @property
    def heading(self) -> Optional[Point]:
        snake = self.state.snake
        if len(snake) < 2:
            return None
        return (snake[0][0] - snake[1][0], snake[0][1] - snake[1][1])

    def is_wall(self, x: int, y: int) -> bool:
        if x < 0 or x >= GRID_SIZE or y < 0 or y >= GRID_SIZE:
            return True
        return bool(self.wall_map[y, x])

    def is_blocked(self, x: int, y: int) -> bool:
        """Boundary, obstacle or own body."""
        return self.is_wall(x, y) or (x, y) in self.state.snake

    def to_dict(self) -> Dict:
        return self.state.to_dict()

    def set_walls(self, walls):
        """Replace the obstacle layout and rebuild the lookup grid."""
        self.state.walls = frozenset(walls)
        self.wall_map = build_wall_map(self.state.walls)

    # === Placement ===

    def get_random_empty_point(self, snake: Optional[List[Point]] = None, occupied=()) -> Point:
        """
        Probe random cells until one is free of walls, snake and ``occupied``.

        Falls back to FALLBACK_POINT after PLACEMENT_ATTEMPTS misses; callers
        accept that degenerate placement instead of failing.
        """
        if snake is None:
            snake = self.state.snake
        taken = set(snake)
        taken.update(occupied)
        taken.update(item.point for item in self.state.special_items)

        for _ in range(PLACEMENT_ATTEMPTS):
            p = (self.rng.randrange(GRID_SIZE), self.rng.randrange(GRID_SIZE))
            if self.wall_map[p[1], p[0]] or p in taken:
                continue
            return p

        logger.debug("[PLACE] No empty cell after %d attempts, using %s", PLACEMENT_ATTEMPTS, FALLBACK_POINT)
        return FALLBACK_POINT

    # === Perception ===

    def get_vision(self) -> List[VisionRay]:
        """
        Cast 8 rays from the head.

        Each ray stops at the first body segment or wall; running off the
        board also counts as hitting a wall. The target and the nearest
        special item are reported if the ray passes over them.
        """
        head = self.head
        target = self.target
        snake = set(self.state.snake)
        items = {item.point: item.type for item in self.state.special_items}

        rays = []
        for dx, dy in RAY_DIRECTIONS:
            x, y = head[0] + dx, head[1] + dy
            dist = 1
            food_found = body_found = wall_found = False
            item_found = None
            item_dist = None
            point = (x, y)

            while 0 <= x < GRID_SIZE and 0 <= y < GRID_SIZE:
                point = (x, y)
                if not food_found and point == target:
                    food_found = True
                if item_found is None and point in items:
                    item_found = items[point]
                    item_dist = dist
                if point in snake:
                    body_found = True
                    break
                if self.wall_map[y, x]:
                    wall_found = True
                    break
                x += dx
                y += dy
                dist += 1

            if not body_found and not wall_found:
                wall_found = True

            rays.append(VisionRay(
                direction=(dx, dy), dist=dist, food_found=food_found,
                item_found=item_found, item_dist=item_dist,
                body_found=body_found, wall_found=wall_found, point=point,
            ))
        return rays

    # === Dynamics ===

    def step(self, direction: str) -> float:
        """
        Move one cell in ``direction`` and return the reward.

        Order inside a step: death check, portal, special item, food,
        tail trim, item spawn, item expiry.
        """
        state = self.state
        if state.game_over:
            return REWARDS['after_game_over']

        try:
            dx, dy = DIRECTIONS[direction]
        except KeyError:
            raise ValueError(f"Unknown direction: {direction!r}")

        state.steps += 1
        if state.slow_effect_steps > 0:
            state.slow_effect_steps -= 1

        head = (state.snake[0][0] + dx, state.snake[0][1] + dy)

        if (self.is_wall(*head)
                or head in state.snake
                or state.steps > self.max_steps + state.score * STEPS_PER_POINT):
            state.game_over = True
            return REWARDS['death']

        if state.portal_open and head == state.portal_point:
            self._advance_level()
            return REWARDS['portal']

        new_snake = [head] + state.snake
        reward = REWARDS['step']

        picked = next((item for item in state.special_items if item.point == head), None)
        if picked is not None:
            state.special_items.remove(picked)
            reward = self._apply_item(picked.type, new_snake)

        ate_food = head == state.food
        if ate_food:
            state.score += 1
            state.items_collected_in_level += 1
            reward = REWARDS['food']
            if state.items_collected_in_level >= LEVEL_GOAL and not state.portal_open:
                state.portal_open = True
                state.portal_point = self.get_random_empty_point(new_snake, occupied=(state.food,))
                logger.debug("[PORTAL] Opened at %s on level %d", state.portal_point, state.level)
            blocked = (state.portal_point,) if state.portal_point is not None else ()
            state.food = self.get_random_empty_point(new_snake, occupied=blocked)
        else:
            new_snake.pop()

        self._maybe_spawn_item(new_snake)

        state.special_items = [item for item in state.special_items if item.expires > state.steps]
        state.snake = new_snake
        return reward

    def _apply_item(self, item_type: ItemType, new_snake: List[Point]) -> float:
        state = self.state
        state.score += ITEM_SCORES[item_type.value]

        if item_type is ItemType.SHRINK:
            excess = max(0, len(new_snake) - SHRINK_MIN_LENGTH)
            for _ in range(min(SHRINK_AMOUNT, excess)):
                new_snake.pop()
        elif item_type is ItemType.SLOW:
            state.slow_effect_steps = SLOW_DURATION

        return REWARDS[item_type.value]

    def _maybe_spawn_item(self, new_snake: List[Point]):
        state = self.state
        if state.steps % ITEM_SPAWN_INTERVAL != 0:
            return
        if self.rng.random() >= ITEM_SPAWN_CHANCE or len(state.special_items) >= MAX_SPECIAL_ITEMS:
            return

        item_type = self.rng.choice(list(ItemType))
        occupied = [state.food]
        if state.portal_point is not None:
            occupied.append(state.portal_point)
        state.special_items.append(SpecialItem(
            type=item_type,
            point=self.get_random_empty_point(new_snake, occupied=occupied),
            expires=state.steps + ITEM_LIFETIME,
        ))

    def _advance_level(self):
        state = self.state
        state.level += 1
        state.items_collected_in_level = 0
        state.portal_open = False
        state.portal_point = None
        self.set_walls(level_walls(state.level))
        state.special_items = []
        state.steps = 0
        state.snake = list(SPAWN_BODY)
        state.food = self.get_random_empty_point()
        logger.debug("[LEVEL] Advanced to level %d (score=%d)", state.level, state.score)
