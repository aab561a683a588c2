from .snake_env import SnakeEnv, GameState, ItemType, SpecialItem, VisionRay
from .qlearn import QLearningAgent
from .train import TrainingStats, train_batch

__all__ = [
    "SnakeEnv",
    "GameState",
    "ItemType",
    "SpecialItem",
    "VisionRay",
    "QLearningAgent",
    "TrainingStats",
    "train_batch",
]
