"""Board objects and procedural hazard placement.

Board objects are one record type tagged by ``kind`` (obstacle, black hole,
sentry, power-up). Sentries additionally carry a facing direction and a vision
range, and project two kinds of zones onto nearby vertices:

- vision: straight along the facing ray, stopped by the first blocking vertex
- proximity: everything within two adjacency steps, skipping blocking vertices
"""

from collections import namedtuple
from dataclasses import dataclass, field
from typing import Optional

from .constants import (
    BLACK_HOLE,
    MAX_DIFFICULTY,
    MAX_VISION_RANGE,
    MIN_DIFFICULTY,
    OBSTACLE,
    POWER_UP,
    PROXIMITY,
    PROXIMITY_DEPTH,
    SENTRY,
    SENTRY_BUDGET_PER_SLOT,
    VISION,
)

BOARD_OBJECT_KINDS = (OBSTACLE, BLACK_HOLE, SENTRY, POWER_UP)

ZoneEntry = namedtuple("ZoneEntry", ["entity_id", "kind"])


@dataclass
class BoardObject:
    kind: str
    vertex_id: str
    value: int
    facing: Optional[int] = None  # sentries only
    vision_range: Optional[int] = None  # sentries only
    destroyed: bool = False

    @property
    def id(self):
        return f"{self.kind}:{self.vertex_id}"

    @property
    def blocks(self):
        return self.kind in (OBSTACLE, SENTRY) and not self.destroyed

    def interact(self):
        """Describe what happens when the player enters this object's vertex."""
        if self.kind == OBSTACLE:
            return {"blocked": True}
        if self.kind == BLACK_HOLE:
            return {"killed": True, "cause": BLACK_HOLE}
        if self.kind == SENTRY:
            return {"blocked": True, "engaged": True, "sentry_id": self.id}
        if self.kind == POWER_UP:
            return {"collected": True, "value": self.value}
        return {}


def create_board_object(kind, vertex_id, value, facing=None, vision_range=None):
    """Build a board object; raises ValueError for unknown kinds."""
    if kind not in BOARD_OBJECT_KINDS:
        raise ValueError(f"Unknown board object kind: {kind}")
    if kind != SENTRY:
        return BoardObject(kind=kind, vertex_id=vertex_id, value=value)
    if vision_range is None:
        vision_range = min(max(value, 1), MAX_VISION_RANGE)
    return BoardObject(
        kind=SENTRY,
        vertex_id=vertex_id,
        value=value,
        facing=(facing or 0) % 6,
        vision_range=vision_range,
    )


@dataclass
class HazardLayout:
    obstacles: list = field(default_factory=list)
    black_holes: list = field(default_factory=list)
    sentries: list = field(default_factory=list)
    power_ups: list = field(default_factory=list)
    blocking: set = field(default_factory=set)
    black_hole_set: set = field(default_factory=set)
    zone_map: dict = field(default_factory=dict)  # vertex id -> [ZoneEntry]

    @property
    def zones(self):
        return set(self.zone_map)

    @property
    def board_objects(self):
        return self.obstacles + self.black_holes + self.sentries + self.power_ups

    def sentry_by_id(self, entity_id):
        for sentry in self.sentries:
            if sentry.id == entity_id:
                return sentry
        return None


# --- Zones ---


def vision_zone(sentry, rays, blocking, vision_range=None):
    """Vertices along the sentry's facing ray up to its range, stopping before the first blocking vertex."""
    if vision_range is None:
        vision_range = sentry.vision_range
    zone = []
    vertex_rays = rays.get(sentry.vertex_id) or ()
    facing_ray = next((r for r in vertex_rays if r.direction == sentry.facing), None)
    if facing_ray is None:
        return zone
    for vid in facing_ray.vertices[:vision_range]:
        if vid in blocking:
            break
        zone.append(vid)
    return zone


def proximity_zone(sentry, adjacency, blocking, excluded=(), depth=PROXIMITY_DEPTH):
    """Breadth-first ring of vertices within `depth` steps, skipping blocking and excluded vertices."""
    visited = {sentry.vertex_id}
    frontier = [sentry.vertex_id]
    zone = []
    for _ in range(depth):
        next_frontier = []
        for fv in frontier:
            for nv in adjacency.get(fv, ()):
                if nv in visited:
                    continue
                visited.add(nv)
                if nv in blocking or nv in excluded:
                    continue
                zone.append(nv)
                next_frontier.append(nv)
        frontier = next_frontier
    return zone


def add_sentry_zones(zone_map, sentry, rays, adjacency, blocking, excluded=()):
    """Record the sentry's vision entries, then proximity entries for vertices vision did not cover."""
    for vid in vision_zone(sentry, rays, blocking):
        zone_map.setdefault(vid, []).append(ZoneEntry(sentry.id, VISION))
    for vid in proximity_zone(sentry, adjacency, blocking, excluded):
        entries = zone_map.setdefault(vid, [])
        if not any(e.entity_id == sentry.id for e in entries):
            entries.append(ZoneEntry(sentry.id, PROXIMITY))


def remove_entity_zones(zone_map, entity_id):
    """Drop every zone entry owned by entity_id, removing vertices left without entries."""
    for vid in list(zone_map):
        remaining = [e for e in zone_map[vid] if e.entity_id != entity_id]
        if remaining:
            zone_map[vid] = remaining
        else:
            del zone_map[vid]


# --- Generation ---


def clamp_difficulty(difficulty):
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(difficulty)))


def placement_counts(eligible_count, difficulty):
    """Return (regular, black_hole, sentry_slots, power_up) counts for a board."""
    obstacle_pct = 0.05 + (difficulty - 1) * (0.15 / 9)
    power_up_pct = 0.15 - (difficulty - 1) * (0.12 / 9)
    total = int(eligible_count * obstacle_pct)
    power_ups = max(0, int(eligible_count * power_up_pct))
    if difficulty <= 2:
        regular = int(total * 0.8)
        black_holes = total - regular
        sentries = 0
    else:
        regular = int(total * 0.6)
        black_holes = int(total * 0.2)
        sentries = total - regular - black_holes
    return regular, black_holes, sentries, power_ups


def generate_hazards(
    vertices,
    start,
    target,
    difficulty,
    rng,
    rays=None,
    adjacency=None,
):
    """Place obstacles, black holes, sentries and power-ups for one board.

    Args:
        vertices: iterable of vertex ids (a dict keyed by id works).
        start, target: vertex ids never used for placement.
        difficulty: 1-10, clamped.
        rng: XorShift32; the eligible-vertex shuffle and every value draw come from it.
        rays, adjacency: grid structures used for vision and proximity zones.

    Returns:
        A HazardLayout. Connectivity is not checked here.
    """
    difficulty = clamp_difficulty(difficulty)
    rays = rays or {}
    adjacency = adjacency or {}

    eligible = [vid for vid in vertices if vid != start and vid != target]
    rng.shuffle(eligible)

    regular_count, black_hole_count, sentry_slots, power_up_count = placement_counts(
        len(eligible), difficulty
    )
    obs_min = max(1, difficulty - 2)
    obs_max = min(10, difficulty + 2)
    pu_min = max(1, 11 - difficulty - 2)
    pu_max = min(10, 11 - difficulty + 2)

    layout = HazardLayout()
    queue = iter(eligible)

    for vid in _take(queue, regular_count):
        obstacle = create_board_object(OBSTACLE, vid, rng.randint(obs_min, obs_max))
        layout.obstacles.append(obstacle)
        layout.blocking.add(vid)

    for vid in _take(queue, black_hole_count):
        hole = create_board_object(BLACK_HOLE, vid, rng.randint(obs_min, obs_max))
        layout.black_holes.append(hole)
        layout.black_hole_set.add(vid)

    # Sentries spend a vision-range budget instead of a fixed head count.
    budget = sentry_slots * SENTRY_BUDGET_PER_SLOT
    while budget > 0:
        vid = next(queue, None)
        if vid is None:
            break
        value = rng.randint(obs_min, obs_max)
        facing = rng.below(6)
        vision_range = 1 + rng.below(min(MAX_VISION_RANGE, budget))
        budget -= vision_range
        sentry = create_board_object(SENTRY, vid, value, facing, vision_range)
        layout.sentries.append(sentry)
        layout.blocking.add(vid)

    # Zones only after every sentry is placed, so vision stops at other sentries.
    for sentry in layout.sentries:
        add_sentry_zones(
            layout.zone_map, sentry, rays, adjacency, layout.blocking, (start, target)
        )

    for vid in _take(queue, power_up_count):
        layout.power_ups.append(
            create_board_object(POWER_UP, vid, rng.randint(pu_min, pu_max))
        )

    return layout


def _take(queue, count):
    for _ in range(count):
        vid = next(queue, None)
        if vid is None:
            return
        yield vid
