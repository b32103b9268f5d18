"""Tunable game constants shared by the engine, orchestrator and server."""

# --- Grid ---
HEX_SIZE = 40
COORD_PRECISION = 3
RAY_STEP_LIMIT = 50
CORNER = "corner"
CENTER = "center"

# --- Hazard placement ---
MAX_PLACEMENT_ATTEMPTS = 20
PROXIMITY_DEPTH = 2
SENTRY_BUDGET_PER_SLOT = 3
MAX_VISION_RANGE = 6
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10
DEFAULT_DIFFICULTY = 5

# Board object kinds
OBSTACLE = "obstacle"
BLACK_HOLE = "black_hole"
SENTRY = "sentry"
POWER_UP = "power_up"

# Zone kinds
VISION = "vision"
PROXIMITY = "proximity"

# --- Combat ---
MAX_TURNS = 5
HIT_THRESHOLD = 4
PLAYER_POWER_LIMIT = 7
SENTRY_POWER_LIMIT = 4
REAR_APPROACH_POSITION = 4
REAR_AMBUSH_ROLL_BONUS = 1

# Component kinds
WEAPON = "weapon"
ENGINE = "engine"
BRIDGE = "bridge"

# Sides
PLAYER = "player"
SENTRY_SIDE = "sentry"

# --- Session ---
MOVEMENT_POOL_FACTOR = 5

# --- Galaxy ---
GALAXY_SIZE = 3
SIZE_OPTIONS = [
    {"size": "small", "cols": 5, "rows": 4},
    {"size": "medium", "cols": 7, "rows": 6},
    {"size": "large", "cols": 9, "rows": 8},
]
LOCKED = "locked"
UNLOCKED = "unlocked"
WON = "won"
LOST = "lost"

# --- Server ---
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8765
