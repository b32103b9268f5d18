"""Directional movement along precomputed rays.

A move picks one of the six rays leaving the player's vertex and walks it for
up to ``steps`` vertices. Per vertex, first match wins and ends the walk:

1. blocking vertex (obstacle or sentry) -> stop before it
2. black hole -> include it, stop
3. zone entry -> include it, stop with an engagement
4. target -> include it, stop
"""

from dataclasses import dataclass, field
from typing import Optional

from .constants import VISION


@dataclass(frozen=True)
class Engagement:
    entity_id: Optional[str]
    zone_kind: Optional[str]
    vertex_id: str
    index: int  # position of the zone vertex within the path


@dataclass
class PathResult:
    path: list = field(default_factory=list)
    stopped_by_obstacle: bool = False
    hit_black_hole: bool = False
    reached_target: bool = False
    engagement: Optional[Engagement] = None

    @property
    def engaged(self):
        return self.engagement is not None

    @property
    def final_vertex(self):
        return self.path[-1] if self.path else None


def get_available_directions(rays, vertex_id, blocked):
    """Return the rays from vertex_id whose first vertex exists and is not blocked."""
    vertex_rays = rays.get(vertex_id)
    if not vertex_rays:
        return []
    return [ray for ray in vertex_rays if ray.vertices and ray.vertices[0] not in blocked]


def is_trapped(rays, vertex_id, blocked):
    return not get_available_directions(rays, vertex_id, blocked)


def _ray_for(vertex_rays, direction):
    for ray in vertex_rays or ():
        if ray.direction == direction:
            return ray
    return None


def _pick_engagement_entry(entries):
    """Vision entries take precedence over proximity entries."""
    for entry in entries:
        if entry.kind == VISION:
            return entry
    return entries[0]


def compute_path(
    vertex_rays,
    direction,
    steps,
    blocked,
    target=None,
    black_holes=frozenset(),
    zones=None,
    zone_map=None,
    excluded_entity_id=None,
):
    """Trace a move along one ray of the current vertex.

    Args:
        vertex_rays: the six Ray objects of the vertex the move starts from.
        direction: direction index 0-5. Unknown directions give an empty result.
        steps: maximum number of vertices to traverse.
        blocked: vertex ids that stop the walk before being entered.
        target: vertex id that ends the walk when entered.
        black_holes: vertex ids that end the walk after being entered.
        zones: vertex ids carrying sentry zones. Defaults to the keys of zone_map.
        zone_map: vertex id -> list of ZoneEntry.
        excluded_entity_id: sentry whose zone entries are ignored (stealth continuation).

    Returns:
        A PathResult. Identical inputs always produce an identical result.
    """
    result = PathResult()
    ray = _ray_for(vertex_rays, direction)
    if ray is None or steps <= 0:
        return result
    zone_map = zone_map or {}
    if zones is None:
        zones = zone_map.keys()

    for i, vid in enumerate(ray.vertices[: min(steps, len(ray.vertices))]):
        if vid in blocked:
            result.stopped_by_obstacle = True
            break

        if vid in black_holes:
            result.path.append(vid)
            result.hit_black_hole = True
            break

        if vid in zones:
            entries = list(zone_map.get(vid, ()))
            if not entries:
                # zone set without detail: an anonymous vision hit
                result.path.append(vid)
                result.engagement = Engagement(None, VISION, vid, i)
                break
            if excluded_entity_id is not None:
                entries = [e for e in entries if e.entity_id != excluded_entity_id]
            if entries:
                entry = _pick_engagement_entry(entries)
                result.path.append(vid)
                result.engagement = Engagement(entry.entity_id, entry.kind, vid, i)
                break

        result.path.append(vid)
        if vid == target:
            result.reached_target = True
            break

    return result
