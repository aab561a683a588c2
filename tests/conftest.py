import random

import pytest

from snake_qlearning.snake_env import SnakeEnv
from snake_qlearning.qlearn import QLearningAgent


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def env(rng):
    env = SnakeEnv(level=1, rng=rng)
    # Park the food in a corner so it is only eaten when a test asks for it
    env.state.food = (0, 0)
    return env


@pytest.fixture
def agent(rng):
    agent = QLearningAgent(alpha=0.5, gamma=0.9, epsilon=0.0, rng=rng)
    agent.env.state.food = (15, 10)
    return agent
