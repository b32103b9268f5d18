"""Hex vertex lattice (flat-top, odd columns shifted down) and reachability BFS.

Playable points are hex corners plus hex centers. Together they form a
triangular lattice, so every vertex reaches its neighbours by stepping one
hex size along one of six directions (0 deg, 60 deg, ... 300 deg, screen y down).

Internally vertices live on integer lattice coordinates ``(a, b)`` where the
pixel position is ``(a * size / 2, b * size * sqrt(3) / 2)``. Rounded pixel
coordinates are only used to build the public vertex ids.
"""

import math
from collections import deque
from dataclasses import dataclass

from .constants import CENTER, COORD_PRECISION, CORNER, HEX_SIZE, RAY_STEP_LIMIT

# Lattice offset for each direction index; also the offset of corner i from its hex center.
DIRECTIONS = [(2, 0), (1, 1), (-1, 1), (-2, 0), (-1, -1), (1, -1)]

_KIND_PREFIX = {CORNER: "c", CENTER: "h"}


@dataclass(frozen=True)
class Vertex:
    id: str
    x: float
    y: float
    kind: str


@dataclass(frozen=True)
class Ray:
    direction: int
    vertices: tuple


@dataclass
class HexGrid:
    cols: int
    rows: int
    size: float
    vertices: dict  # id -> Vertex, insertion ordered
    adjacency: dict  # id -> tuple of neighbour ids, in direction order
    rays: dict  # id -> tuple of 6 Ray
    hex_centers: list  # (col, row, center vertex id)


def opposite(direction):
    return (direction + 3) % 6


def _round(value):
    # + 0.0 folds -0.0 into 0.0 so both sides of the axis share a key
    return round(value, COORD_PRECISION) + 0.0


def vertex_key(kind, x, y):
    """Vertex id from its kind and pixel position, e.g. ``c:40.000,0.000``."""
    return f"{_KIND_PREFIX[kind]}:{_round(x):.{COORD_PRECISION}f},{_round(y):.{COORD_PRECISION}f}"


def lattice_to_pixel(a, b, size):
    return a * size / 2, b * size * math.sqrt(3) / 2


def hex_center_lattice(col, row):
    """Lattice position of the center of hex (col, row); odd columns sit half a row lower."""
    return 3 * col, 2 * row + (col % 2)


def build_grid(cols, rows, size=HEX_SIZE):
    """Build vertices, adjacency and directional rays for a cols x rows board."""
    lattice_ids = {}
    vertices = {}
    hex_centers = []

    def _register(a, b, kind):
        if (a, b) in lattice_ids:
            return lattice_ids[(a, b)]
        x, y = lattice_to_pixel(a, b, size)
        vid = vertex_key(kind, x, y)
        lattice_ids[(a, b)] = vid
        vertices[vid] = Vertex(id=vid, x=_round(x), y=_round(y), kind=kind)
        return vid

    for row in range(rows):
        for col in range(cols):
            ca, cb = hex_center_lattice(col, row)
            for da, db in DIRECTIONS:
                _register(ca + da, cb + db, CORNER)
            hex_centers.append((col, row, _register(ca, cb, CENTER)))

    positions = {vid: ab for ab, vid in lattice_ids.items()}

    # Per-direction edges: stepping one unit in direction d from a vertex
    # lands on another vertex exactly when the two share a hex edge or spoke.
    edges = {}
    adjacency = {}
    for vid in vertices:
        a, b = positions[vid]
        step = {}
        for d, (da, db) in enumerate(DIRECTIONS):
            nid = lattice_ids.get((a + da, b + db))
            if nid is not None:
                step[d] = nid
        edges[vid] = step
        adjacency[vid] = tuple(step[d] for d in sorted(step))

    rays = {}
    for vid in vertices:
        vertex_rays = []
        for d in range(6):
            walked = []
            current = vid
            for _ in range(RAY_STEP_LIMIT):
                current = edges[current].get(d)
                if current is None:
                    break
                walked.append(current)
            vertex_rays.append(Ray(direction=d, vertices=tuple(walked)))
        rays[vid] = tuple(vertex_rays)

    return HexGrid(
        cols=cols,
        rows=rows,
        size=size,
        vertices=vertices,
        adjacency=adjacency,
        rays=rays,
        hex_centers=hex_centers,
    )


def vertex_distance(vertices, id1, id2):
    v1 = vertices[id1]
    v2 = vertices[id2]
    return math.hypot(v1.x - v2.x, v1.y - v2.y)


def pick_start_and_target(vertices):
    """Start is the vertex farthest from the pixel origin, target the vertex farthest from start."""
    ids = list(vertices)
    if not ids:
        return None, None
    by_origin = sorted(
        ids, key=lambda vid: -math.hypot(vertices[vid].x, vertices[vid].y)
    )
    start = by_origin[0]
    target = None
    best = -1.0
    for vid in by_origin:
        if vid == start:
            continue
        d = vertex_distance(vertices, start, vid)
        if d > best:
            best = d
            target = vid
    return start, target


# --- Pathfinding ---


def has_valid_path(adjacency, start, target, blocked):
    """BFS from start to target avoiding blocked vertices.
    The target counts as reached as soon as it is adjacent, even if blocked."""
    if start == target:
        return True
    queue = deque([start])
    visited = {start}
    while queue:
        current = queue.popleft()
        for nb in adjacency.get(current, ()):
            if nb == target:
                return True
            if nb not in visited and nb not in blocked:
                visited.add(nb)
                queue.append(nb)
    return False
