from hexvoid.board_objects import ZoneEntry, generate_hazards
from hexvoid.constants import PROXIMITY, VISION
from hexvoid.hex import Ray, build_grid, pick_start_and_target
from hexvoid.movement import compute_path, get_available_directions, is_trapped
from hexvoid.rng import XorShift32

LINE = ("a", "b", "c", "d", "e")


def rays_with(line=LINE, direction=0):
    return tuple(Ray(d, line if d == direction else ()) for d in range(6))


# --- Path tracing ---

class TestComputePath:
    def test_walks_requested_steps(self):
        result = compute_path(rays_with(), 0, 3, set())
        assert result.path == ["a", "b", "c"]
        assert not result.stopped_by_obstacle
        assert result.final_vertex == "c"

    def test_steps_capped_by_ray_length(self):
        result = compute_path(rays_with(), 0, 6, set())
        assert result.path == list(LINE)

    def test_stops_before_obstacle(self):
        result = compute_path(rays_with(), 0, 5, {"c"})
        assert result.path == ["a", "b"]
        assert result.stopped_by_obstacle

    def test_obstacle_on_first_vertex_gives_empty_path(self):
        result = compute_path(rays_with(), 0, 5, {"a"})
        assert result.path == []
        assert result.final_vertex is None

    def test_black_hole_is_entered(self):
        result = compute_path(rays_with(), 0, 5, set(), black_holes={"b"})
        assert result.path == ["a", "b"]
        assert result.hit_black_hole

    def test_obstacle_checked_before_black_hole(self):
        result = compute_path(rays_with(), 0, 5, {"b"}, black_holes={"b"})
        assert result.path == ["a"]
        assert result.stopped_by_obstacle
        assert not result.hit_black_hole

    def test_target_ends_walk(self):
        result = compute_path(rays_with(), 0, 5, set(), target="c")
        assert result.path == ["a", "b", "c"]
        assert result.reached_target

    def test_unknown_direction(self):
        result = compute_path(rays_with(), 7, 3, set())
        assert result.path == []

    def test_zero_steps(self):
        assert compute_path(rays_with(), 0, 0, set()).path == []

    def test_same_inputs_same_result(self):
        zone_map = {"d": [ZoneEntry("sentry:x", VISION)]}
        first = compute_path(rays_with(), 0, 5, {"e"}, zone_map=zone_map)
        second = compute_path(rays_with(), 0, 5, {"e"}, zone_map=zone_map)
        assert first == second


# --- Zones ---

class TestZoneEngagement:
    def test_zone_vertex_engages(self):
        zone_map = {"b": [ZoneEntry("sentry:x", PROXIMITY)]}
        result = compute_path(rays_with(), 0, 5, set(), zone_map=zone_map)
        assert result.path == ["a", "b"]
        assert result.engaged
        assert result.engagement.entity_id == "sentry:x"
        assert result.engagement.zone_kind == PROXIMITY
        assert result.engagement.vertex_id == "b"
        assert result.engagement.index == 1

    def test_vision_wins_over_proximity(self):
        zone_map = {
            "b": [ZoneEntry("sentry:x", PROXIMITY), ZoneEntry("sentry:y", VISION)]
        }
        result = compute_path(rays_with(), 0, 5, set(), zone_map=zone_map)
        assert result.engagement.entity_id == "sentry:y"
        assert result.engagement.zone_kind == VISION

    def test_zone_without_owner_is_vision(self):
        result = compute_path(rays_with(), 0, 5, set(), zones={"c"})
        assert result.path == ["a", "b", "c"]
        assert result.engagement.entity_id is None
        assert result.engagement.zone_kind == VISION

    def test_excluded_sentry_is_ignored(self):
        zone_map = {"b": [ZoneEntry("sentry:x", VISION)]}
        result = compute_path(
            rays_with(), 0, 4, set(), zone_map=zone_map, excluded_entity_id="sentry:x"
        )
        assert result.path == ["a", "b", "c", "d"]
        assert not result.engaged

    def test_exclusion_keeps_other_sentries(self):
        zone_map = {
            "b": [ZoneEntry("sentry:x", VISION)],
            "d": [ZoneEntry("sentry:x", PROXIMITY), ZoneEntry("sentry:y", PROXIMITY)],
        }
        result = compute_path(
            rays_with(), 0, 5, set(), zone_map=zone_map, excluded_entity_id="sentry:x"
        )
        assert result.path == ["a", "b", "c", "d"]
        assert result.engagement.entity_id == "sentry:y"

    def test_black_hole_before_zone(self):
        zone_map = {"b": [ZoneEntry("sentry:x", VISION)]}
        result = compute_path(rays_with(), 0, 5, set(), black_holes={"b"}, zone_map=zone_map)
        assert result.hit_black_hole
        assert not result.engaged


# --- Directions ---

class TestAvailableDirections:
    def test_only_open_rays(self):
        rays = {
            "o": (
                Ray(0, ("a", "b")),
                Ray(1, ("x",)),
                Ray(2, ()),
                Ray(3, ("y",)),
                Ray(4, ()),
                Ray(5, ()),
            )
        }
        directions = [r.direction for r in get_available_directions(rays, "o", {"x"})]
        assert directions == [0, 3]

    def test_unknown_vertex(self):
        assert get_available_directions({}, "o", set()) == []

    def test_trapped_when_every_ray_blocked(self):
        rays = {"o": (Ray(0, ("a",)), Ray(1, ("b",))) + tuple(Ray(d, ()) for d in range(2, 6))}
        assert is_trapped(rays, "o", {"a", "b"})
        assert not is_trapped(rays, "o", {"a"})


# --- Generated boards ---

class TestOnGeneratedBoard:
    def setup_method(self):
        self.grid = build_grid(7, 6)
        start, target = pick_start_and_target(self.grid.vertices)
        self.layout = generate_hazards(
            self.grid.vertices, start, target, 8, XorShift32(21), self.grid.rays, self.grid.adjacency
        )

    def test_paths_respect_availability_and_obstacles(self):
        blocking = self.layout.blocking
        for vid in self.grid.vertices:
            vertex_rays = self.grid.rays[vid]
            open_rays = get_available_directions(self.grid.rays, vid, blocking)
            available = {ray.direction for ray in open_rays}
            for direction in range(6):
                ray_length = len(vertex_rays[direction].vertices)
                for steps in (1, 3, 6):
                    result = compute_path(
                        vertex_rays,
                        direction,
                        steps,
                        blocking,
                        black_holes=self.layout.black_hole_set,
                        zone_map=self.layout.zone_map,
                    )
                    if direction not in available:
                        assert result.path == []
                    assert len(result.path) <= min(steps, ray_length)
                    assert not blocking.intersection(result.path)
