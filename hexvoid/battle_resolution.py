"""Apply finished encounters to the board and the player's inventory."""

from .board_objects import add_sentry_zones, remove_entity_zones
from .combat import ESCAPED, PLAYER_DESTROYED, PLAYER_LOSE, PLAYER_WIN, SENTRY_FLED

FLED_VISION_RANGE = 1


def salvage_components(sentry_ship, inventory):
    """Repair the wreck's surviving components and add them to the inventory.

    Returns the list of salvaged components.
    """
    salvaged = [c.salvage() for c in sentry_ship.salvageable_components()]
    inventory.extend(salvaged)
    return salvaged


def remove_sentry(layout, sentry, registry=None):
    """Take a defeated sentry off the board: blocking set, zones and ship registry."""
    sentry.destroyed = True
    if sentry in layout.sentries:
        layout.sentries.remove(sentry)
    layout.blocking.discard(sentry.vertex_id)
    remove_entity_zones(layout.zone_map, sentry.id)
    if registry is not None:
        registry.discard(sentry.id)


def downgrade_sentry(layout, sentry, rays, adjacency, excluded=()):
    """A fled sentry keeps its post but only sees one vertex ahead."""
    sentry.vision_range = FLED_VISION_RANGE
    remove_entity_zones(layout.zone_map, sentry.id)
    add_sentry_zones(layout.zone_map, sentry, rays, adjacency, layout.blocking, excluded)


def resolve_encounter(
    layout,
    sentry,
    sentry_ship,
    result,
    inventory,
    rays,
    adjacency,
    excluded=(),
    registry=None,
):
    """Resolve a finished encounter and apply board changes.

    Args:
        layout: the board's HazardLayout, mutated in place.
        sentry: the engaged sentry BoardObject.
        sentry_ship: the sentry's Ship after combat.
        result: terminal combat result.
        inventory: list of spare components, extended with salvage on a win.
        rays, adjacency: grid structures used to recompute zones.
        excluded: vertex ids proximity zones never cover (start and target).
        registry: optional ShipRegistry the sentry's ship is dropped from on a win.

    Returns a dict with result, summary, stay (player keeps the engagement
    vertex), destroyed (player ship lost) and salvaged component names.
    """
    salvaged = []
    stay = False
    destroyed = False

    if result == PLAYER_WIN:
        salvaged = salvage_components(sentry_ship, inventory)
        remove_sentry(layout, sentry, registry)
        stay = True
        summary = f"Sentry at {sentry.vertex_id} destroyed"
        if salvaged:
            summary += f", salvaged {', '.join(c.name for c in salvaged)}"
    elif result == SENTRY_FLED:
        downgrade_sentry(layout, sentry, rays, adjacency, excluded)
        stay = True
        summary = f"Sentry at {sentry.vertex_id} fled"
    elif result == PLAYER_DESTROYED:
        destroyed = True
        summary = "Player ship destroyed"
    elif result in (PLAYER_LOSE, ESCAPED):
        summary = "Player fell back" if result == PLAYER_LOSE else "Player escaped"
    else:
        raise ValueError(f"Combat result {result!r} is not terminal")

    return {
        "result": result,
        "summary": summary,
        "stay": stay,
        "destroyed": destroyed,
        "salvaged": [c.name for c in salvaged],
    }


def steps_used(engagement):
    """Steps spent reaching the engagement vertex."""
    return engagement.index + 1
