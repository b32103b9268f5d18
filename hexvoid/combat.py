"""Turn-based ship-versus-sentry combat.

An encounter alternates attacks between the player and one sentry. Who opens
and with what bonus depends on how the player entered the sentry's zone (see
``get_approach_advantage``). The engine mutates the two ships it is given; a
sentry's ship is borrowed from the orchestrator's registry so damage carries
over to the next encounter with the same sentry.
"""

from dataclasses import dataclass
from typing import Optional

from .constants import (
    HIT_THRESHOLD,
    MAX_TURNS,
    PLAYER,
    PROXIMITY,
    REAR_AMBUSH_ROLL_BONUS,
    REAR_APPROACH_POSITION,
    SENTRY_SIDE,
)

# Terminal results
PLAYER_WIN = "player_win"
PLAYER_DESTROYED = "player_destroyed"
SENTRY_FLED = "sentry_fled"
PLAYER_LOSE = "player_lose"
ESCAPED = "escaped"

RESULTS = (PLAYER_WIN, PLAYER_DESTROYED, SENTRY_FLED, PLAYER_LOSE, ESCAPED)

# Approach types
SPOTTED = "spotted"
REAR_AMBUSH = "rear_ambush"
SIMPLE = "simple"


def get_approach_position(player_direction, sentry_facing):
    """Clock position 1-6 of the player's approach; 1 is head-on, 4 is directly behind."""
    return ((player_direction - sentry_facing + 3 + 6) % 6) + 1


@dataclass(frozen=True)
class ApproachAdvantage:
    first_attacker: str
    approach_position: int
    approach_type: str
    roll_bonus: int = 0
    bonus_attacks: int = 0


def get_approach_advantage(zone_kind, player_direction, sentry_facing):
    """Vision entry hands the sentry the first shot; proximity entry hands it to the player,
    with a roll bonus when sneaking up from directly behind."""
    position = get_approach_position(player_direction, sentry_facing)
    if zone_kind != PROXIMITY:
        return ApproachAdvantage(SENTRY_SIDE, position, SPOTTED)
    if position == REAR_APPROACH_POSITION:
        return ApproachAdvantage(PLAYER, position, REAR_AMBUSH, roll_bonus=REAR_AMBUSH_ROLL_BONUS)
    return ApproachAdvantage(PLAYER, position, SIMPLE)


@dataclass
class AttackResult:
    attacker: Optional[str]
    target: Optional[str]
    roll: int
    hit: bool
    destroyed: bool
    auto_miss: bool = False
    over: bool = False
    result: Optional[str] = None


class CombatEngine:
    def __init__(
        self,
        player_ship,
        sentry_ship,
        rng,
        first_attacker=PLAYER,
        bonus_attacks=0,
        roll_bonus=0,
        max_turns=MAX_TURNS,
        hit_threshold=HIT_THRESHOLD,
    ):
        self.player_ship = player_ship
        self.sentry_ship = sentry_ship
        self.rng = rng
        self.max_turns = max_turns
        self.hit_threshold = hit_threshold
        self.current_turn = 1
        self.is_player_turn = first_attacker != SENTRY_SIDE
        self.bonus_attacks = bonus_attacks
        self.roll_bonus = roll_bonus
        self.player_attack_count = 0
        self.sentry_attack_count = 0
        self._player_attacks_this_turn = 0
        self.log = []
        self.result = None

    @classmethod
    def from_advantage(cls, player_ship, sentry_ship, rng, advantage, **kwargs):
        return cls(
            player_ship,
            sentry_ship,
            rng,
            first_attacker=advantage.first_attacker,
            bonus_attacks=advantage.bonus_attacks,
            roll_bonus=advantage.roll_bonus,
            **kwargs,
        )

    @property
    def over(self):
        return self.result is not None

    @property
    def whose_turn(self):
        return PLAYER if self.is_player_turn else SENTRY_SIDE

    def _threshold_for(self, ship):
        weapon = ship.active_weapon
        if weapon is None or weapon.accuracy is None:
            return self.hit_threshold
        return weapon.accuracy

    def _noop(self):
        return AttackResult(None, None, 0, False, False, over=self.over, result=self.result)

    def attack(self, target_name=None):
        """Resolve one attack for whoever holds the turn.

        The player must name a component of the sentry ship; the sentry picks a
        random active player component. Returns an AttackResult with roll 0 and
        no state change when the attack is not possible.
        """
        if self.over:
            return self._noop()
        if self.is_player_turn:
            return self._player_attack(target_name)
        return self._sentry_attack()

    def step(self):
        """Run the sentry's turn if it holds the turn. Returns True while combat continues."""
        if not self.over and not self.is_player_turn:
            self._sentry_attack()
        return not self.over

    def escape(self):
        """End combat on the player's turn. Neither a win nor a loss."""
        if not self.over and self.is_player_turn:
            self.result = ESCAPED
            self.log.append({"turn": self.current_turn, "attacker": PLAYER, "escaped": True})
        return self.result

    def _player_attack(self, target_name):
        if not self.player_ship.can_attack:
            return self._noop()
        target = self.sentry_ship.get_component(target_name) if target_name else None
        if target is None or target.destroyed:
            return self._noop()

        weapon = self.player_ship.active_weapon
        roll = self.rng.d6()
        bonus = self.roll_bonus
        self.roll_bonus = 0
        hit = roll + bonus >= self._threshold_for(self.player_ship)
        destroyed = False
        if hit:
            damage = weapon.damage if weapon is not None else 1
            destroyed = target.take_damage(damage)

        self.player_attack_count += 1
        self._player_attacks_this_turn += 1
        self.log.append(
            {
                "turn": self.current_turn,
                "attacker": PLAYER,
                "target": target.name,
                "roll": roll,
                "bonus": bonus,
                "hit": hit,
                "destroyed": destroyed,
            }
        )
        return self._finish(AttackResult(PLAYER, target.name, roll, hit, destroyed), PLAYER)

    def _sentry_attack(self):
        if not self.sentry_ship.can_attack:
            self.sentry_attack_count += 1
            self.log.append(
                {"turn": self.current_turn, "attacker": SENTRY_SIDE, "target": None, "auto_miss": True}
            )
            return self._finish(
                AttackResult(SENTRY_SIDE, None, 0, False, False, auto_miss=True), SENTRY_SIDE
            )

        candidates = self.player_ship.active_components()
        target = candidates[self.rng.below(len(candidates))] if candidates else None
        weapon = self.sentry_ship.active_weapon
        roll = self.rng.d6()
        hit = target is not None and roll >= self._threshold_for(self.sentry_ship)
        destroyed = False
        if hit:
            damage = weapon.damage if weapon is not None else 1
            destroyed = target.take_damage(damage)

        self.sentry_attack_count += 1
        target_name = target.name if target is not None else None
        self.log.append(
            {
                "turn": self.current_turn,
                "attacker": SENTRY_SIDE,
                "target": target_name,
                "roll": roll,
                "hit": hit,
                "destroyed": destroyed,
            }
        )
        return self._finish(AttackResult(SENTRY_SIDE, target_name, roll, hit, destroyed), SENTRY_SIDE)

    def _finish(self, attack, side):
        self.result = self.check_end(side)
        if self.result is None:
            self._advance(side)
        attack.over = self.over
        attack.result = self.result
        return attack

    def check_end(self, side):
        """Return the terminal result after `side` attacked, or None if combat goes on."""
        defender = self.sentry_ship if side == PLAYER else self.player_ship
        if defender.is_bridge_destroyed:
            return PLAYER_WIN if side == PLAYER else PLAYER_DESTROYED
        if self.player_ship.is_bridge_destroyed or self.player_ship.is_destroyed:
            return PLAYER_DESTROYED
        # A sentry that comes in already disarmed only runs once the player has fired.
        if (
            not self.sentry_ship.can_attack
            and self.sentry_ship.can_flee
            and self.player_attack_count > 0
        ):
            return SENTRY_FLED
        if (
            self.player_attack_count >= self.max_turns
            and self.sentry_attack_count >= self.max_turns
        ):
            return PLAYER_LOSE
        return None

    def _advance(self, side):
        if side == PLAYER and self.bonus_attacks > 0 and self._player_attacks_this_turn == 1:
            self.bonus_attacks -= 1
            return
        if side == PLAYER:
            self.is_player_turn = False
        else:
            self.is_player_turn = True
            self.current_turn += 1
            self._player_attacks_this_turn = 0
