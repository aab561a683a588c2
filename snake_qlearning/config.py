# Board
GRID_SIZE = 30
SPAWN_BODY = [(15, 15), (15, 16), (15, 17)]
SAFE_ZONE = (12, 18)      # [lo, hi) on both axes, kept free of procedural walls

# Episode rules
MAX_STEPS = 3000          # Soft step budget, grows by STEPS_PER_POINT per score point
STEPS_PER_POINT = 50
LEVEL_GOAL = 10           # Food needed before the portal opens
PLACEMENT_ATTEMPTS = 500  # Random probes before falling back to FALLBACK_POINT
FALLBACK_POINT = (0, 0)

# Procedural walls (level >= 4)
WALL_DENSITY_BASE = 0.05
WALL_DENSITY_PER_LEVEL = 0.0001
WALL_DENSITY_MAX = 0.15   # Cap keeps the board traversable

# Special items
ITEM_SPAWN_INTERVAL = 75
ITEM_SPAWN_CHANCE = 0.3
ITEM_LIFETIME = 150
MAX_SPECIAL_ITEMS = 3
SHRINK_AMOUNT = 3
SHRINK_MIN_LENGTH = 5
SLOW_DURATION = 20

# Reward Configuration
REWARDS = {
    # === Core Game Events ===
    'step': -0.05,           # Living penalty
    'food': 30,              # Primary objective
    'death': -100,           # Wall, body or step budget
    'after_game_over': -20,  # Stepping a finished episode
    'portal': 250,           # Entering the open portal (next level)

    # === Special Items ===
    'bonus': 60,
    'shrink': 40,
    'slow': 15,

    # === Shaping ===
    'closer': 0.8,           # Manhattan distance to target decreased
    'farther': -0.8,         # Manhattan distance to target increased
}

# Score gained per pickup (the game score, not the RL reward)
ITEM_SCORES = {
    'bonus': 15,
    'shrink': 5,
    'slow': 2,
}

# Training Hyperparameters
ALPHA = 0.25                # Learning rate
GAMMA = 0.95                # Discount factor
EPSILON_START = 1.0         # Initial exploration rate
EPSILON_MIN = 0.01          # Minimum exploration rate
EPSILON_DECAY = 0.999997    # Per decision, slow so long runs keep exploring

# Training Settings
BATCH_SIZE = 7500           # Decisions per training tick
TICKS = 200
SAVE_EVERY = 20             # Ticks between checkpoints
HISTORY_LENGTH = 500        # Score / epsilon history kept for charts
EPSILON_SAMPLE_EVERY = 8    # Episodes between epsilon history samples
