import json
import logging
import math
import random
from collections import defaultdict

import numpy as np

from .config import (
    ALPHA, GAMMA, EPSILON_START, EPSILON_MIN, EPSILON_DECAY, REWARDS,
)
from .snake_env import SnakeEnv, DIRECTIONS

logger = logging.getLogger(__name__)

NUM_ACTIONS = 4


def _zeros():
    return np.zeros(NUM_ACTIONS)


class QLearningAgent:
    """
    Tabular Q-learning agent that plays SnakeEnv.

    - State is an 11-character fingerprint: target direction, 1- and
      2-step blocked flags in the 4 directions, and the current heading
    - Epsilon-greedy action selection, epsilon decays every decision
    - Manhattan-distance shaping on top of the game reward
    - The Q-table survives episode resets and can be exported/imported
    """

    # Action index i moves in DIRECTIONS[ACTIONS[i]]
    ACTIONS = tuple(DIRECTIONS)

    def __init__(self, alpha=ALPHA, gamma=GAMMA, epsilon=EPSILON_START,
                 epsilon_decay=EPSILON_DECAY, epsilon_min=EPSILON_MIN,
                 rng=None, level=1):
        self.alpha = alpha
        self.gamma = gamma
        self.epsilon = epsilon
        self.epsilon_decay = epsilon_decay
        self.epsilon_min = epsilon_min
        self.rng = rng if rng is not None else random.Random()

        # Q-table: fingerprint -> 4 action values, zero on first visit
        self.Q = defaultdict(_zeros)

        self.env = SnakeEnv(level=level, rng=self.rng)

        # Stats
        self.total_reward = 0.0
        self.total_steps = 0
        self.updates_count = 0

        logger.info("[AGENT] α=%s, γ=%s, ε=%s", alpha, gamma, epsilon)

    def get_state_key(self):
        """
        Fingerprint of the current episode state.

        Layout: target x (L/C/R), target y (U/C/D), blocked flags one step
        away (U D L R), blocked flags two steps away (U D L R), heading
        (U/D/L/R, N when the snake has no neck). Step count, score and
        absolute position are deliberately left out.
        """
        env = self.env
        hx, hy = env.head
        tx, ty = env.target

        target_x = 'L' if tx < hx else 'R' if tx > hx else 'C'
        target_y = 'U' if ty < hy else 'D' if ty > hy else 'C'

        near = ''.join('1' if env.is_blocked(hx + dx, hy + dy) else '0'
                       for dx, dy in DIRECTIONS.values())
        far = ''.join('1' if env.is_blocked(hx + 2 * dx, hy + 2 * dy) else '0'
                      for dx, dy in DIRECTIONS.values())

        heading = 'N'
        vec = env.heading
        if vec is not None:
            for name, d in DIRECTIONS.items():
                if d == vec:
                    heading = name[0]
                    break

        return f"{target_x}{target_y}{near}{far}{heading}"

    def get_q_values(self, state_key):
        return self.Q[state_key]

    def get_current_q_values(self):
        """Q-values for the present fingerprint, without creating an entry."""
        values = self.Q.get(self.get_state_key())
        return values.tolist() if values is not None else [0.0] * NUM_ACTIONS

    def get_action(self, state_key):
        """Epsilon-greedy; ties go to the lowest action index."""
        if self.rng.random() < self.epsilon:
            return self.rng.randrange(NUM_ACTIONS)
        return int(np.argmax(self.Q[state_key]))

    def _target_distance(self):
        (hx, hy), (tx, ty) = self.env.head, self.env.target
        return abs(hx - tx) + abs(hy - ty)

    def update(self):
        """
        Run one decision: act, shape the reward, apply the TD update.

        A finished episode is left alone until reset_episode(); the call
        returns the game-over reward without touching the table or epsilon.
        """
        env = self.env
        if env.state.game_over:
            return REWARDS['after_game_over']

        state_key = self.get_state_key()
        dist_before = self._target_distance()

        action = self.get_action(state_key)
        reward = env.step(self.ACTIONS[action])
        done = env.state.game_over

        # Proximity shaping against whatever the target is now
        if not done:
            dist_after = self._target_distance()
            if dist_after < dist_before:
                reward += REWARDS['closer']
            elif dist_after > dist_before:
                reward += REWARDS['farther']

        self.total_reward += reward
        self.total_steps += 1

        # Q[s'] is created even when the move ended the episode
        next_q = self.Q[self.get_state_key()]
        max_next_q = 0.0 if done else float(np.max(next_q))

        q_values = self.Q[state_key]
        q_values[action] += self.alpha * (reward + self.gamma * max_next_q - q_values[action])
        self.updates_count += 1

        self.decay_epsilon()
        return reward

    advance = update

    def decay_epsilon(self):
        self.epsilon = max(self.epsilon_min, self.epsilon * self.epsilon_decay)

    def reset_episode(self, level=None):
        """Start a fresh episode, by default on the level the last one reached."""
        if level is None:
            level = self.env.state.level
        self.env = SnakeEnv(level=level, rng=self.rng)
        self.total_reward = 0.0

    # === Persistence ===

    def export_state(self):
        return {
            'q_table': {key: values.tolist() for key, values in self.Q.items()},
            'epsilon': self.epsilon,
            'total_steps': self.total_steps,
        }

    def import_state(self, data):
        """
        Replace the Q-table, epsilon and step count from an exported payload.

        The payload is validated completely before anything is assigned, so
        a malformed one leaves the agent as it was. Returns False on failure.
        """
        try:
            table = self._parse_state(data)
        except (TypeError, ValueError, KeyError) as e:
            logger.warning("[LOAD] Rejected saved state: %s", e)
            return False

        self.Q = defaultdict(_zeros, table)
        self.epsilon = float(data['epsilon'])
        self.total_steps = int(data['total_steps'])
        logger.info("[LOAD] %d states, ε=%.3f, %d steps", len(self.Q), self.epsilon, self.total_steps)
        return True

    @staticmethod
    def _parse_state(data):
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")

        epsilon = data['epsilon']
        steps = data['total_steps']
        if isinstance(epsilon, bool) or not isinstance(epsilon, (int, float)) or not 0.0 <= epsilon <= 1.0:
            raise ValueError(f"bad epsilon: {epsilon!r}")
        if isinstance(steps, bool) or not isinstance(steps, int) or steps < 0:
            raise ValueError(f"bad total_steps: {steps!r}")

        raw_table = data['q_table']
        if not isinstance(raw_table, dict):
            raise TypeError("q_table must be a mapping")

        table = {}
        for key, values in raw_table.items():
            if not isinstance(key, str) or not isinstance(values, (list, tuple)) or len(values) != NUM_ACTIONS:
                raise ValueError(f"bad Q entry for {key!r}")
            if any(isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v) for v in values):
                raise ValueError(f"non-numeric or non-finite Q values for {key!r}")
            table[key] = np.array(values, dtype=float)
        return table

    def save(self, filename):
        with open(filename, 'w') as f:
            json.dump(self.export_state(), f)
        logger.info("[SAVE] %d states, %d updates, ε=%.3f", len(self.Q), self.updates_count, self.epsilon)

    def load(self, filename):
        try:
            with open(filename, 'r') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("[LOAD] Could not read %s: %s", filename, e)
            return False
        return self.import_state(data)

    # === Reporting ===

    def snapshot(self):
        """Read-only view for renderers and telemetry."""
        return {
            'state': self.env.to_dict(),
            'q_values': self.get_current_q_values(),
            'total_steps': self.total_steps,
            'epsilon': self.epsilon,
            'q_table_size': len(self.Q),
        }

    def print_stats(self):
        print(f"\n{'='*60}")
        print(f"SNAKE Q-LEARNING STATS")
        print(f"{'='*60}")
        print(f"States: {len(self.Q)}")
        print(f"Updates: {self.updates_count}")
        print(f"Total steps: {self.total_steps}")
        print(f"Epsilon: {self.epsilon:.4f}")

        if self.Q:
            all_q = [(s, self.ACTIONS[a], q) for s, acts in self.Q.items() for a, q in enumerate(acts)]
            all_q.sort(key=lambda x: x[2], reverse=True)

            print(f"\nTop 5 Q-values:")
            for s, a, q in all_q[:5]:
                print(f"  Q={q:8.2f} {a:5s} target={s[:2]} near={s[2:6]} far={s[6:10]} heading={s[10]}")

            print(f"\nBottom 5 Q-values:")
            for s, a, q in all_q[-5:]:
                print(f"  Q={q:8.2f} {a:5s} target={s[:2]} near={s[2:6]} far={s[6:10]} heading={s[10]}")

        print(f"{'='*60}\n")
