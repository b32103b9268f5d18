from hexvoid.combat import (
    ESCAPED,
    PLAYER_DESTROYED,
    PLAYER_LOSE,
    PLAYER_WIN,
    REAR_AMBUSH,
    SENTRY_FLED,
    SIMPLE,
    SPOTTED,
    CombatEngine,
    get_approach_advantage,
    get_approach_position,
)
from hexvoid.constants import PLAYER, PROXIMITY, SENTRY_SIDE, VISION
from hexvoid.rng import XorShift32
from hexvoid.ships import (
    ShipComponent,
    bridge,
    engine,
    player_ship,
    sentry_ship,
    standard_player_ship,
    weapon,
)


class ScriptedRng:
    """Hands out predetermined d6 rolls and target picks."""

    def __init__(self, rolls=(), picks=()):
        self.rolls = list(rolls)
        self.picks = list(picks)

    def d6(self):
        return self.rolls.pop(0)

    def below(self, n):
        return self.picks.pop(0) if self.picks else 0


def make_engine(rolls=(), picks=(), player=None, sentry=None, **kwargs):
    return CombatEngine(
        player or standard_player_ship(),
        sentry or sentry_ship(),
        ScriptedRng(rolls, picks),
        **kwargs,
    )


def fragile_player():
    return player_ship([weapon(max_hp=2, power_cost=2), engine(max_hp=2), bridge()])


# --- Approach ---

class TestApproach:
    def test_same_heading_is_from_behind(self):
        assert get_approach_position(0, 0) == 4
        assert get_approach_position(5, 5) == 4

    def test_opposite_heading_is_head_on(self):
        assert get_approach_position(3, 0) == 1
        assert get_approach_position(0, 3) == 1

    def test_positions_cover_one_to_six(self):
        assert sorted(get_approach_position(d, 2) for d in range(6)) == [1, 2, 3, 4, 5, 6]

    def test_vision_entry_is_spotted(self):
        adv = get_approach_advantage(VISION, 0, 0)
        assert adv.first_attacker == SENTRY_SIDE
        assert adv.approach_type == SPOTTED
        assert adv.roll_bonus == 0

    def test_rear_ambush(self):
        adv = get_approach_advantage(PROXIMITY, 2, 2)
        assert adv.first_attacker == PLAYER
        assert adv.approach_type == REAR_AMBUSH
        assert adv.roll_bonus == 1
        assert adv.approach_position == 4

    def test_rear_ambush_only_from_position_four(self):
        pairs = [(d, f) for d in range(6) for f in range(6)]
        ambushes = [
            (d, f) for d, f in pairs if get_approach_advantage(PROXIMITY, d, f).roll_bonus == 1
        ]
        assert len(ambushes) == 6
        assert all(get_approach_position(d, f) == 4 for d, f in ambushes)
        assert all(get_approach_advantage(VISION, d, f).roll_bonus == 0 for d, f in pairs)

    def test_simple_proximity(self):
        adv = get_approach_advantage(PROXIMITY, 3, 0)
        assert adv.first_attacker == PLAYER
        assert adv.approach_type == SIMPLE
        assert adv.roll_bonus == 0


# --- Player attacks ---

class TestPlayerAttack:
    def test_hit_destroys_bridge_and_wins(self):
        e = make_engine(rolls=[3])
        result = e.attack("Bridge")
        assert result.hit and result.destroyed
        assert result.over
        assert e.result == PLAYER_WIN
        survivors = [e.sentry_ship.get_component(n) for n in ("Weapons", "Engines")]
        assert all(c.current_hp == c.max_hp for c in survivors)

    def test_miss_passes_the_turn(self):
        e = make_engine(rolls=[2])
        result = e.attack("Bridge")
        assert not result.hit
        assert not e.over
        assert not e.is_player_turn
        assert e.player_attack_count == 1

    def test_roll_bonus_only_on_first_attack(self):
        e = make_engine(rolls=[2, 1, 2], roll_bonus=1)
        first = e.attack("Engines")
        assert first.hit
        e.attack()  # sentry misses
        second = e.attack("Weapons")
        assert not second.hit
        assert e.log[0]["bonus"] == 1
        assert e.log[2]["bonus"] == 0

    def test_refused_without_working_weapons(self):
        player = standard_player_ship()
        player.get_component("Weapons").take_damage(4)
        e = make_engine(player=player)
        result = e.attack("Bridge")
        assert result.roll == 0
        assert result.attacker is None
        assert e.log == []
        assert e.is_player_turn

    def test_unknown_or_wrecked_target_refused(self):
        sentry = sentry_ship()
        sentry.get_component("Engines").take_damage(1)
        e = make_engine(sentry=sentry)
        assert e.attack("Shields").attacker is None
        assert e.attack("Engines").attacker is None
        assert e.attack().attacker is None
        assert e.player_attack_count == 0

    def test_untyped_parts_cannot_attack(self):
        player = player_ship(
            [ShipComponent("Weapons", 2), ShipComponent("Engines", 2), ShipComponent("Bridge", 2)]
        )
        e = make_engine(rolls=[6], player=player, hit_threshold=5)
        assert not player.can_attack
        result = e.attack("Bridge")
        assert result.roll == 0
        assert result.attacker is None
        assert e.log == []
        assert e._threshold_for(player) == 5

    def test_bonus_attack_keeps_the_turn(self):
        e = make_engine(rolls=[1, 1], bonus_attacks=1)
        e.attack("Bridge")
        assert e.is_player_turn
        assert e.bonus_attacks == 0
        e.attack("Bridge")
        assert not e.is_player_turn

    def test_disarming_a_sentry_makes_it_flee(self):
        e = make_engine(rolls=[6])
        e.attack("Weapons")
        assert e.result == SENTRY_FLED

    def test_disarmed_and_crippled_sentry_stays(self):
        sentry = sentry_ship()
        sentry.get_component("Engines").take_damage(1)
        e = make_engine(rolls=[6], sentry=sentry)
        e.attack("Weapons")
        assert not e.over
        assert not e.is_player_turn


# --- Sentry attacks ---

class TestSentryAttack:
    def test_sentry_opens_when_it_spots_the_player(self):
        e = make_engine(rolls=[4], first_attacker=SENTRY_SIDE)
        assert not e.is_player_turn
        assert e.step()
        assert e.log[0]["attacker"] == SENTRY_SIDE
        assert e.log[0]["target"] == "Weapons"
        assert e.log[0]["hit"]
        assert e.player_ship.get_component("Weapons").current_hp == 3
        assert e.is_player_turn
        assert e.current_turn == 2

    def test_sentry_picks_target_before_rolling(self):
        e = make_engine(rolls=[3], picks=[2], first_attacker=SENTRY_SIDE)
        result = e.attack()
        assert result.target == "Bridge"
        assert not result.hit

    def test_disarmed_sentry_auto_misses(self):
        sentry = sentry_ship()
        sentry.get_component("Weapons").take_damage(1)
        sentry.get_component("Engines").take_damage(1)
        e = make_engine(sentry=sentry, first_attacker=SENTRY_SIDE)
        result = e.attack()
        assert result.auto_miss
        assert result.roll == 0
        assert e.log[-1]["auto_miss"]
        assert e.is_player_turn

    def test_player_bridge_destroyed(self):
        e = make_engine(rolls=[6], picks=[2], player=fragile_player(), first_attacker=SENTRY_SIDE)
        e.step()
        assert e.result == PLAYER_DESTROYED

    def test_step_does_nothing_on_player_turn(self):
        e = make_engine()
        assert e.step()
        assert e.log == []


# --- Ending ---

class TestCombatEnd:
    def test_turn_limit_means_defeat(self):
        e = make_engine(rolls=[1, 1, 1, 1], max_turns=2)
        for _ in range(4):
            e.attack("Bridge")
        assert e.result == PLAYER_LOSE
        assert e.player_attack_count == 2
        assert e.sentry_attack_count == 2

    def test_escape_on_player_turn(self):
        e = make_engine()
        assert e.escape() == ESCAPED
        assert e.over
        assert e.attack("Bridge").attacker is None

    def test_no_escape_on_sentry_turn(self):
        e = make_engine(first_attacker=SENTRY_SIDE)
        assert e.escape() is None
        assert not e.over

    def test_escape_after_end_keeps_result(self):
        e = make_engine(rolls=[6])
        e.attack("Bridge")
        assert e.escape() == PLAYER_WIN

    def test_turn_counter_advances_on_return_to_player(self):
        e = make_engine(rolls=[1, 1])
        assert e.current_turn == 1
        e.attack("Bridge")
        assert e.current_turn == 1
        e.attack()
        assert e.current_turn == 2

    def test_seeded_duel_is_reproducible(self):
        def duel(seed):
            e = CombatEngine(standard_player_ship(), sentry_ship(), XorShift32(seed))
            while not e.over:
                if e.is_player_turn:
                    target = e.sentry_ship.active_components()[0].name
                    if e.attack(target).attacker is None:
                        e.escape()
                else:
                    e.step()
            return e.result, e.log

        assert duel(99) == duel(99)
