"""Component-based ships.

A ship is a named ``ComponentBag``: an ordered list of components bounded by a
power budget, with at most one bridge. Damage never removes a component; a
component is destroyed when its HP reaches 0 and stays in the list.
"""

import math

from .constants import BRIDGE, ENGINE, PLAYER_POWER_LIMIT, SENTRY_POWER_LIMIT, WEAPON

COMPONENT_KINDS = (WEAPON, ENGINE, BRIDGE)


class ShipComponent:
    def __init__(self, name, max_hp, power_cost=1, kind=None, damage=None):
        if power_cost not in (1, 2):
            raise ValueError(f"Component {name!r} has power cost {power_cost}; expected 1 or 2")
        if kind is not None and kind not in COMPONENT_KINDS:
            raise ValueError(f"Unknown component kind: {kind}")
        self.name = name
        self.kind = kind
        self.power_cost = power_cost
        self.max_hp = max_hp
        self.current_hp = max_hp
        self._damage = damage

    @property
    def destroyed(self):
        return self.current_hp <= 0

    # Kind-specific stats depend only on the power-cost tier.

    @property
    def accuracy(self):
        """Minimum d6 roll to hit; lower is better. None for non-weapons."""
        if self.kind != WEAPON:
            return None
        return 4 if self.power_cost == 1 else 3

    @property
    def damage(self):
        if self.kind != WEAPON:
            return 0
        return 1 if self._damage is None else self._damage

    @damage.setter
    def damage(self, value):
        self._damage = value

    @property
    def speed_bonus(self):
        if self.kind != ENGINE:
            return 0
        return 0 if self.power_cost == 1 else 1

    @property
    def evasion_bonus(self):
        if self.kind != BRIDGE:
            return 0
        return 0 if self.power_cost == 1 else 1

    def take_damage(self, amount):
        """Apply damage. Returns True only when this hit destroyed the component."""
        was_alive = self.current_hp > 0
        self.current_hp = max(0, self.current_hp - amount)
        return was_alive and self.current_hp <= 0

    def salvage(self):
        """Repair to full HP (used when a wreck part enters the inventory)."""
        self.current_hp = self.max_hp
        return self

    def __repr__(self):
        kind = self.kind or "legacy"
        return f"{self.name}({kind} P{self.power_cost} HP:{self.current_hp}/{self.max_hp})"


def weapon(name="Weapons", max_hp=1, power_cost=1, damage=None):
    return ShipComponent(name, max_hp, power_cost, kind=WEAPON, damage=damage)


def engine(name="Engines", max_hp=1, power_cost=1):
    return ShipComponent(name, max_hp, power_cost, kind=ENGINE)


def bridge(name="Bridge", max_hp=1, power_cost=1):
    return ShipComponent(name, max_hp, power_cost, kind=BRIDGE)


class ComponentBag:
    """Ordered components under a power budget with at most one bridge."""

    def __init__(self, power_limit=math.inf, components=None):
        self.power_limit = power_limit
        self._components = []
        for component in components or []:
            self.add(component)

    @property
    def components(self):
        return self._components

    @property
    def total_power(self):
        return sum(c.power_cost for c in self._components)

    @property
    def remaining_power(self):
        return self.power_limit - self.total_power

    def add(self, component):
        if self.total_power + component.power_cost > self.power_limit:
            raise ValueError(
                f"Adding {component.name!r} (power {component.power_cost}) would exceed "
                f"power limit {self.power_limit} (in use: {self.total_power})"
            )
        if component.kind == BRIDGE and self.of_kind(BRIDGE):
            raise ValueError(f"Cannot add {component.name!r}: a bridge is already installed")
        self._components.append(component)
        return component

    def remove(self, name):
        """Remove and return the first component with this name, or None."""
        for i, component in enumerate(self._components):
            if component.name == name:
                return self._components.pop(i)
        return None

    def get(self, name):
        for component in self._components:
            if component.name == name:
                return component
        return None

    def of_kind(self, kind):
        """Components of a kind, destroyed ones included. Untyped components match no kind."""
        return [c for c in self._components if c.kind == kind]

    def has_kind(self, kind):
        return bool(self.of_kind(kind))

    def active(self):
        return [c for c in self._components if not c.destroyed]

    @property
    def all_destroyed(self):
        return bool(self._components) and all(c.destroyed for c in self._components)


class Ship:
    def __init__(self, name, components=None, power_limit=math.inf):
        self.name = name
        self.bag = ComponentBag(power_limit, components)

    @property
    def components(self):
        return self.bag.components

    @property
    def power_limit(self):
        return self.bag.power_limit

    @property
    def total_power(self):
        return self.bag.total_power

    @property
    def remaining_power(self):
        return self.bag.remaining_power

    def add_component(self, component):
        return self.bag.add(component)

    def remove_component(self, name):
        return self.bag.remove(name)

    def get_component(self, name):
        return self.bag.get(name)

    def active_components(self):
        return self.bag.active()

    @property
    def is_destroyed(self):
        return self.bag.all_destroyed

    @property
    def can_attack(self):
        return any(not c.destroyed for c in self.bag.of_kind(WEAPON))

    @property
    def can_flee(self):
        return any(not c.destroyed for c in self.bag.of_kind(ENGINE))

    @property
    def is_engine_destroyed(self):
        return not self.can_flee

    @property
    def is_bridge_destroyed(self):
        bridges = self.bag.of_kind(BRIDGE)
        return bool(bridges) and bridges[0].destroyed

    @property
    def active_weapon(self):
        for c in self.bag.of_kind(WEAPON):
            if not c.destroyed:
                return c
        return None

    def salvageable_components(self):
        return self.active_components()

    def __repr__(self):
        return f"{self.name}({self.total_power}/{self.power_limit} power, {len(self.components)} parts)"


def player_ship(components=None, power_limit=PLAYER_POWER_LIMIT):
    return Ship("Player Ship", components, power_limit)


def standard_player_ship():
    """The starting loadout: power-2 weapons, engines and bridge (6 of 7 power)."""
    return player_ship(
        [
            weapon("Weapons", max_hp=4, power_cost=2),
            engine("Engines", max_hp=4, power_cost=2),
            bridge("Bridge", max_hp=3, power_cost=2),
        ]
    )


def sentry_ship(components=None, power_limit=SENTRY_POWER_LIMIT):
    if components is None:
        components = [weapon(), engine(), bridge()]
    return Ship("Sentry Ship", components, power_limit)


class ShipRegistry:
    """Sentry ships keyed by sentry id, created on first engagement and kept for later ones."""

    def __init__(self, factory=sentry_ship):
        self._factory = factory
        self._ships = {}

    def get_or_create(self, sentry_id):
        ship = self._ships.get(sentry_id)
        if ship is None:
            ship = self._factory()
            self._ships[sentry_id] = ship
        return ship

    def get(self, sentry_id):
        return self._ships.get(sentry_id)

    def discard(self, sentry_id):
        return self._ships.pop(sentry_id, None)

    def __contains__(self, sentry_id):
        return sentry_id in self._ships

    def __len__(self):
        return len(self._ships)
