#!/usr/bin/env python3
"""
Batched tabular Q-learning training for Snake

Key features:
- Each tick runs thousands of decisions back to back
- Finished episodes restart on the level they reached, so levels carry over
- Q-table and training stats are checkpointed to JSON and resumed on start
"""

import argparse
import json
import logging
import math
import os
import random
from collections import deque
from dataclasses import dataclass, field
from typing import Deque

from tqdm import tqdm

from .config import (
    ALPHA, GAMMA, EPSILON_START, EPSILON_MIN, EPSILON_DECAY,
    BATCH_SIZE, TICKS, SAVE_EVERY, HISTORY_LENGTH, EPSILON_SAMPLE_EVERY,
)
from .qlearn import QLearningAgent

logger = logging.getLogger(__name__)


def _history():
    return deque(maxlen=HISTORY_LENGTH)


@dataclass
class TrainingStats:
    episodes: int = 0
    best_score: int = 0
    level_clears: int = 0
    score_history: Deque[int] = field(default_factory=_history)
    epsilon_history: Deque[float] = field(default_factory=_history)

    def record_episode(self, score, epsilon):
        self.episodes += 1
        self.best_score = max(self.best_score, score)
        self.score_history.append(score)
        if self.episodes % EPSILON_SAMPLE_EVERY == 0:
            self.epsilon_history.append(epsilon)

    @property
    def avg_score_last_100(self):
        recent = list(self.score_history)[-100:]
        if not recent:
            return 0.0
        return round(sum(recent) / len(recent), 2)

    @property
    def level_success_rate(self):
        """Level clears per finished episode, in percent."""
        return round(self.level_clears / max(1, self.episodes) * 100, 2)

    def to_dict(self):
        return {
            'episodes': self.episodes,
            'best_score': self.best_score,
            'level_clears': self.level_clears,
            'avg_score_last_100': self.avg_score_last_100,
            'level_success_rate': self.level_success_rate,
            'score_history': list(self.score_history),
            'epsilon_history': list(self.epsilon_history),
        }

    @classmethod
    def from_dict(cls, data):
        """Rebuild stats from to_dict() output; raises TypeError or ValueError on bad fields."""
        if not isinstance(data, dict):
            raise TypeError(f"expected a mapping, got {type(data).__name__}")

        stats = cls(
            episodes=_count(data, 'episodes'),
            best_score=_count(data, 'best_score'),
            level_clears=_count(data, 'level_clears'),
        )
        stats.score_history.extend(_numbers(data, 'score_history'))
        stats.epsilon_history.extend(_numbers(data, 'epsilon_history'))
        return stats


def _is_number(value):
    return not isinstance(value, bool) and isinstance(value, (int, float)) and math.isfinite(value)


def _count(data, name):
    value = data.get(name, 0)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"bad {name}: {value!r}")
    return value


def _numbers(data, name):
    values = data.get(name, [])
    if not isinstance(values, list) or not all(_is_number(v) for v in values):
        raise ValueError(f"bad {name}: expected a list of numbers")
    return values


def train_batch(agent, stats, iterations):
    """
    Run ``iterations`` decisions, restarting episodes as they end.

    Returns the number of episodes that finished during the batch.
    """
    finished = 0
    for _ in range(iterations):
        state = agent.env.state
        if state.game_over:
            stats.record_episode(state.score, agent.epsilon)
            finished += 1
            agent.reset_episode()

        old_level = agent.env.state.level
        agent.update()
        if agent.env.state.level > old_level:
            stats.level_clears += 1
    return finished


def load_stats(filename):
    try:
        with open(filename, 'r') as f:
            return TrainingStats.from_dict(json.load(f))
    except (OSError, ValueError, TypeError, AttributeError) as e:
        logger.warning("[RESUME] Could not read %s: %s", filename, e)
        return TrainingStats()


def save_stats(stats, filename):
    with open(filename, 'w') as f:
        json.dump(stats.to_dict(), f)


def train(ticks=TICKS, batch_size=BATCH_SIZE, qtable_file="qtable.json",
          stats_file="training.json", save_every=SAVE_EVERY, seed=None,
          level=1, resume=True):
    print(f"\n{'='*60}")
    print(f"SNAKE TABULAR Q-LEARNING")
    print(f"{'='*60}")
    print(f"Ticks: {ticks} x {batch_size} decisions")
    print(f"Start level: {level}")
    print(f"{'='*60}\n")

    agent = QLearningAgent(
        alpha=ALPHA,
        gamma=GAMMA,
        epsilon=EPSILON_START,
        epsilon_decay=EPSILON_DECAY,
        epsilon_min=EPSILON_MIN,
        rng=random.Random(seed),
        level=level,
    )
    stats = TrainingStats()

    if resume and os.path.exists(qtable_file):
        agent.load(qtable_file)
        if os.path.exists(stats_file):
            stats = load_stats(stats_file)
            print(f"[RESUME] {stats.episodes} episodes so far, best score {stats.best_score}")

    try:
        for tick in tqdm(range(1, ticks + 1), desc="Training", unit="tick"):
            train_batch(agent, stats, batch_size)

            if tick % save_every == 0:
                agent.save(qtable_file)
                save_stats(stats, stats_file)
                tqdm.write(f"Tick {tick:5d}: Episodes={stats.episodes} "
                           f"Avg100={stats.avg_score_last_100:6.2f} Best={stats.best_score} "
                           f"Level={agent.env.state.level} LevelRate={stats.level_success_rate:.2f}% "
                           f"States={len(agent.Q)} ε={agent.epsilon:.4f}")

    except KeyboardInterrupt:
        print("\n[INTERRUPTED]")

    agent.save(qtable_file)
    save_stats(stats, stats_file)

    print(f"\n{'='*60}")
    print(f"TRAINING COMPLETE")
    print(f"{'='*60}")
    print(f"Episodes:      {stats.episodes}")
    print(f"Avg Score:     {stats.avg_score_last_100:.2f} (last 100)")
    print(f"Best Score:    {stats.best_score}")
    print(f"Level Clears:  {stats.level_clears} ({stats.level_success_rate:.2f}%)")
    print(f"Total Steps:   {agent.total_steps}")
    print(f"States in Q:   {len(agent.Q)}")
    print(f"{'='*60}")

    agent.print_stats()
    return agent, stats


def main(argv=None):
    parser = argparse.ArgumentParser(description="Train a tabular Q-learning Snake agent")
    parser.add_argument("--ticks", type=int, default=TICKS,
                        help="Number of training ticks")
    parser.add_argument("--batch-size", type=int, default=BATCH_SIZE,
                        help="Decisions per tick")
    parser.add_argument("--qtable", default="qtable.json",
                        help="Q-table checkpoint file")
    parser.add_argument("--stats", default="training.json",
                        help="Training statistics file")
    parser.add_argument("--save-every", type=int, default=SAVE_EVERY,
                        help="Ticks between checkpoints")
    parser.add_argument("--seed", type=int, default=None,
                        help="Seed for the random source")
    parser.add_argument("--level", type=int, default=1,
                        help="Starting level")
    parser.add_argument("--no-resume", action="store_true",
                        help="Ignore existing checkpoints")
    parser.add_argument("--log-level", default="WARNING",
                        help="Logging level (DEBUG, INFO, WARNING, ...)")
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(),
                        format='%(asctime)s [%(levelname)s] %(message)s',
                        datefmt='%H:%M:%S')

    train(ticks=args.ticks, batch_size=args.batch_size, qtable_file=args.qtable,
          stats_file=args.stats, save_every=args.save_every, seed=args.seed,
          level=args.level, resume=not args.no_resume)


if __name__ == "__main__":
    main()
