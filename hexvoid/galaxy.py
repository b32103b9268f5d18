"""3x3 galaxy of boards for meta-progression, with JSON file persistence."""

import json

from loguru import logger

from .constants import (
    GALAXY_SIZE,
    LOCKED,
    LOST,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
    SIZE_OPTIONS,
    UNLOCKED,
    WON,
)
from .rng import XorShift32

MAX_BOARD_SEED = 2147483647
TERMINAL_STATUSES = (WON, LOST)


def generate_galaxy(seed):
    """Generate a GALAXY_SIZE x GALAXY_SIZE grid of board descriptors.

    Per board three draws are taken from one XorShift32(seed) stream: size
    option, difficulty, board seed. Only (0, 0) starts unlocked.
    """
    rng = XorShift32(seed)
    galaxy = []
    for row in range(GALAXY_SIZE):
        row_boards = []
        for col in range(GALAXY_SIZE):
            option = SIZE_OPTIONS[rng.below(len(SIZE_OPTIONS))]
            difficulty = rng.randint(MIN_DIFFICULTY, MAX_DIFFICULTY)
            board_seed = int(rng.random() * MAX_BOARD_SEED) + 1
            row_boards.append(
                {
                    "row": row,
                    "col": col,
                    "size": option["size"],
                    "cols": option["cols"],
                    "rows": option["rows"],
                    "difficulty": difficulty,
                    "seed": board_seed,
                    "status": UNLOCKED if row == 0 and col == 0 else LOCKED,
                }
            )
        galaxy.append(row_boards)
    return galaxy


def get_board(galaxy, row, col):
    if 0 <= row < len(galaxy) and 0 <= col < len(galaxy[row]):
        return galaxy[row][col]
    return None


def adjacent_boards(row, col, size=GALAXY_SIZE):
    """In-bounds (row, col) pairs of the 8-neighbourhood."""
    neighbours = []
    for dr in (-1, 0, 1):
        for dc in (-1, 0, 1):
            if dr == 0 and dc == 0:
                continue
            nr, nc = row + dr, col + dc
            if 0 <= nr < size and 0 <= nc < size:
                neighbours.append((nr, nc))
    return neighbours


def unlock_adjacent(galaxy, row, col):
    """Unlock locked neighbours; boards already unlocked, won or lost are left alone."""
    unlocked = []
    for nr, nc in adjacent_boards(row, col, len(galaxy)):
        board = galaxy[nr][nc]
        if board["status"] == LOCKED:
            board["status"] = UNLOCKED
            unlocked.append((nr, nc))
    return unlocked


def is_playable(galaxy, row, col):
    board = get_board(galaxy, row, col)
    return board is not None and board["status"] == UNLOCKED


def record_result(galaxy, row, col, won):
    """Mark a board won or lost. A board that already has a terminal status keeps it.

    Returns the list of newly unlocked (row, col) pairs.
    """
    board = get_board(galaxy, row, col)
    if board is None or board["status"] in TERMINAL_STATUSES:
        return []
    board["status"] = WON if won else LOST
    if not won:
        return []
    return unlock_adjacent(galaxy, row, col)


def is_complete(galaxy):
    return not any(board["status"] == UNLOCKED for row in galaxy for board in row)


# --- Persistence ---


def save_galaxy(galaxy, path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(galaxy))


def load_galaxy(path):
    """Load a saved galaxy, or None when the file is missing or unreadable."""
    if not path.exists():
        return None
    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable galaxy save {}: {}", path, exc)
        return None
    if not _looks_like_galaxy(data):
        logger.warning("Ignoring malformed galaxy save {}", path)
        return None
    return data


def clear_galaxy(path):
    if path.exists():
        path.unlink()


def _looks_like_galaxy(data):
    if not isinstance(data, list) or not data:
        return False
    for row in data:
        if not isinstance(row, list):
            return False
        for board in row:
            if not isinstance(board, dict) or "status" not in board:
                return False
    return True
