"""Headless game orchestrator shared by the server and tests.

``build_board`` turns (cols, rows, seed, difficulty) into a playable board and
``GameSession`` drives one play-through of it as a phase machine. Every
session operation returns the resulting ``Phase``; calls made in the wrong
phase leave the session untouched and return the current phase.
"""

import random
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from .battle_resolution import resolve_encounter, steps_used
from .board_objects import HazardLayout, generate_hazards
from .combat import CombatEngine, get_approach_advantage
from .constants import (
    BLACK_HOLE,
    DEFAULT_DIFFICULTY,
    HEX_SIZE,
    MAX_PLACEMENT_ATTEMPTS,
    MOVEMENT_POOL_FACTOR,
    SENTRY,
)
from .hex import build_grid, has_valid_path, pick_start_and_target
from .movement import compute_path, is_trapped
from .rng import XorShift32
from .ships import ShipRegistry, standard_player_ship

# Phases
ROLLING = "rolling"
SELECTING_DIRECTION = "selecting_direction"
ENGAGEMENT = "engagement"
COMBAT = "combat"
WON = "won"
LOST = "lost"

TERMINAL_PHASES = (WON, LOST)

# Lose reasons
TRAPPED = "trapped"
EXHAUSTED = "exhausted"
LOSE_REASONS = (BLACK_HOLE, SENTRY, TRAPPED, EXHAUSTED)


@dataclass(frozen=True)
class Phase:
    name: str
    payload: dict = field(default_factory=dict)

    @property
    def terminal(self):
        return self.name in TERMINAL_PHASES


@dataclass
class Board:
    grid: object
    layout: HazardLayout
    start: str
    target: str
    seed: int
    difficulty: int
    attempts: int

    @property
    def cols(self):
        return self.grid.cols

    @property
    def rows(self):
        return self.grid.rows

    @property
    def rays(self):
        return self.grid.rays

    @property
    def adjacency(self):
        return self.grid.adjacency

    @property
    def vertices(self):
        return self.grid.vertices


def build_board(cols, rows, seed, difficulty=DEFAULT_DIFFICULTY, size=HEX_SIZE):
    """Build a grid and place hazards, retrying until start can still reach target.

    One XorShift32(seed) stream feeds every attempt, so a seed always yields
    the same board. If no attempt keeps a path open the board is left empty.
    """
    grid = build_grid(cols, rows, size)
    start, target = pick_start_and_target(grid.vertices)
    rng = XorShift32(seed)

    layout = None
    attempts = 0
    for attempts in range(1, MAX_PLACEMENT_ATTEMPTS + 1):
        candidate = generate_hazards(
            grid.vertices, start, target, difficulty, rng, grid.rays, grid.adjacency
        )
        if has_valid_path(grid.adjacency, start, target, candidate.blocking):
            layout = candidate
            break
    if layout is None:
        logger.warning(
            "No passable layout for {}x{} board (seed {}) after {} attempts, using empty board",
            cols,
            rows,
            seed,
            attempts,
        )
        layout = HazardLayout()

    logger.info(
        "Board {}x{} seed={} difficulty={}: {} obstacles, {} black holes, {} sentries, {} power-ups",
        cols,
        rows,
        seed,
        difficulty,
        len(layout.obstacles),
        len(layout.black_holes),
        len(layout.sentries),
        len(layout.power_ups),
    )
    return Board(grid, layout, start, target, seed, difficulty, attempts)


@dataclass
class PendingMove:
    origin: str
    direction: int
    steps: int
    result: object = None
    declined: Optional[str] = None


class GameSession:
    def __init__(self, board, rng=None, ship=None):
        self.board = board
        self.rng = rng if rng is not None else XorShift32(board.seed)
        self.ship = ship if ship is not None else standard_player_ship()
        self.registry = ShipRegistry()
        self.inventory = []
        self.collected = []
        self.position = board.start
        self.visited = {board.start}
        self.movement_pool = (board.cols + board.rows) * MOVEMENT_POOL_FACTOR
        self.dice = None
        self.moves_made = 0
        self.pending = None
        self.combat = None
        self.advantage = None
        self.last_encounter = None
        self.lose_reason = None
        self.phase = Phase(ROLLING)

    # --- Phase bookkeeping ---

    def _set(self, name, **payload):
        self.phase = Phase(name, payload)
        return self.phase

    def _lose(self, reason, **payload):
        self.lose_reason = reason
        self.dice = None
        self.pending = None
        return self._set(LOST, reason=reason, **payload)

    def _reject(self, operation):
        logger.debug("Ignoring {} during {} phase", operation, self.phase.name)
        return self.phase

    @property
    def blocking(self):
        return self.board.layout.blocking

    def trapped(self):
        return is_trapped(self.board.rays, self.position, self.blocking)

    # --- Movement ---

    def roll(self):
        if self.phase.name != ROLLING:
            return self._reject("roll")
        if self.trapped():
            return self._lose(TRAPPED)
        value = self.rng.d6()
        if self.ship.is_engine_destroyed:
            value = 1 if value <= 3 else 2
        self.dice = min(value, self.movement_pool)
        return self._set(SELECTING_DIRECTION, dice=self.dice)

    def _trace(self, origin, direction, steps, excluded=None):
        layout = self.board.layout
        return compute_path(
            self.board.rays.get(origin),
            direction,
            steps,
            layout.blocking,
            target=self.board.target,
            black_holes=layout.black_hole_set,
            zone_map=layout.zone_map,
            excluded_entity_id=excluded,
        )

    def preview(self, direction):
        """The path the current roll would take in `direction`, or None outside direction selection."""
        if self.phase.name != SELECTING_DIRECTION:
            self._reject("preview")
            return None
        return self._trace(self.position, direction, self.dice)

    def move(self, direction):
        if self.phase.name != SELECTING_DIRECTION:
            return self._reject("move")
        result = self._trace(self.position, direction, self.dice)
        if not result.path:
            return self.phase
        self.pending = PendingMove(self.position, direction, self.dice)
        return self._follow(result)

    def _follow(self, result):
        self.pending.result = result
        if not result.engaged:
            return self._apply_move(result)
        engagement = result.engagement
        if self.board.layout.sentry_by_id(engagement.entity_id) is None:
            # zone with no owning sentry on the board is lethal on entry
            self._advance_along(result.path)
            return self._lose(SENTRY)
        return self._set(
            ENGAGEMENT,
            sentry_id=engagement.entity_id,
            zone_kind=engagement.zone_kind,
            vertex=engagement.vertex_id,
            can_decline=self.pending.declined is None,
        )

    def _advance_along(self, path):
        self.position = path[-1]
        self.visited.update(path)
        self.movement_pool -= len(path)
        self.moves_made += 1
        self._collect_power_ups(path)

    def _apply_move(self, result):
        self._advance_along(result.path)
        self.pending = None
        self.dice = None
        if result.hit_black_hole:
            return self._lose(BLACK_HOLE)
        return self._after_move()

    def _after_move(self):
        if self.position == self.board.target:
            return self._set(WON)
        if self.movement_pool <= 0:
            return self._lose(EXHAUSTED)
        if self.trapped():
            return self._lose(TRAPPED)
        return self._set(ROLLING)

    def _collect_power_ups(self, path):
        on_path = set(path)
        for power_up in self.board.layout.power_ups:
            if not power_up.destroyed and power_up.vertex_id in on_path:
                power_up.destroyed = True
                self.collected.append(power_up)

    @property
    def power_collected(self):
        return sum(p.value for p in self.collected)

    # --- Engagement ---

    def engage(self):
        if self.phase.name != ENGAGEMENT:
            return self._reject("engage")
        engagement = self.pending.result.engagement
        sentry = self.board.layout.sentry_by_id(engagement.entity_id)
        self.advantage = get_approach_advantage(
            engagement.zone_kind, self.pending.direction, sentry.facing
        )
        self.combat = CombatEngine.from_advantage(
            self.ship, self.registry.get_or_create(sentry.id), self.rng, self.advantage
        )
        self.combat.step()
        if self.combat.over:
            return self._resolve_combat()
        return self._combat_phase()

    def decline(self):
        """Slip past the sentry: re-trace the move ignoring it. Allowed once per move."""
        if self.phase.name != ENGAGEMENT or self.pending.declined is not None:
            return self._reject("decline")
        pending = self.pending
        pending.declined = pending.result.engagement.entity_id
        result = self._trace(pending.origin, pending.direction, pending.steps, pending.declined)
        return self._follow(result)

    # --- Combat ---

    def _combat_phase(self):
        return self._set(
            COMBAT,
            sentry_id=self.pending.result.engagement.entity_id,
            turn=self.combat.current_turn,
            approach_type=self.advantage.approach_type,
        )

    def attack(self, component_name):
        if self.phase.name != COMBAT:
            return self._reject("attack")
        outcome = self.combat.attack(component_name)
        if outcome.attacker is None:
            return self._reject(f"attack on {component_name!r}")
        while self.combat.step():
            if self.combat.is_player_turn:
                break
        if self.combat.over:
            return self._resolve_combat()
        return self._combat_phase()

    def escape(self):
        if self.phase.name != COMBAT:
            return self._reject("escape")
        self.combat.escape()
        if not self.combat.over:
            return self._reject("escape")
        return self._resolve_combat()

    def _resolve_combat(self):
        board = self.board
        engagement = self.pending.result.engagement
        sentry = board.layout.sentry_by_id(engagement.entity_id)
        combat = self.combat
        outcome = resolve_encounter(
            board.layout,
            sentry,
            combat.sentry_ship,
            combat.result,
            self.inventory,
            board.rays,
            board.adjacency,
            excluded=(board.start, board.target),
            registry=self.registry,
        )
        outcome["log"] = list(combat.log)
        self.last_encounter = outcome
        self.combat = None
        self.advantage = None
        logger.debug("Encounter with {} ended: {}", sentry.id, outcome["summary"])

        if outcome["destroyed"]:
            return self._lose(SENTRY, result=combat.result)

        if outcome["stay"]:
            reached = self.pending.result.path[: engagement.index + 1]
            self.position = engagement.vertex_id
            self.visited.update(reached)
            self._collect_power_ups(reached)
        else:
            self.position = self.pending.origin
        self.movement_pool -= steps_used(engagement)
        self.moves_made += 1
        self.pending = None
        self.dice = None
        return self._after_move()

    # --- Loadout ---

    def install(self, component_name):
        """Move a component from the inventory onto the ship.

        Raises ValueError if the ship's power budget or bridge rule refuses it.
        """
        if self.phase.name not in (ROLLING, SELECTING_DIRECTION):
            return self._reject("install")
        component = next((c for c in self.inventory if c.name == component_name), None)
        if component is None:
            return self._reject(f"install of unknown {component_name!r}")
        self.ship.add_component(component)
        self.inventory.remove(component)
        return self.phase

    def uninstall(self, component_name):
        if self.phase.name not in (ROLLING, SELECTING_DIRECTION):
            return self._reject("uninstall")
        component = self.ship.remove_component(component_name)
        if component is None:
            return self._reject(f"uninstall of unknown {component_name!r}")
        self.inventory.append(component)
        return self.phase


def new_session(cols, rows, seed=None, difficulty=DEFAULT_DIFFICULTY, size=HEX_SIZE):
    """Build a board and open a session on it. A missing seed is drawn from the system RNG."""
    if seed is None:
        seed = random.SystemRandom().randint(1, 2**31 - 1)
    return GameSession(build_board(cols, rows, seed, difficulty, size))
