from hexvoid.board_objects import ZoneEntry
from hexvoid.constants import PROXIMITY
from hexvoid.game_state import new_session
from hexvoid.movement import Engagement, PathResult
from hexvoid.protocol import (
    decode,
    encode,
    serialize_board,
    serialize_path,
    serialize_session,
    serialize_ship,
    serialize_zone_map,
)
from hexvoid.ships import standard_player_ship


class TestEncodeDecode:
    def test_roundtrip_simple(self):
        msg = {"type": "roll"}
        assert decode(encode(msg)) == msg

    def test_roundtrip_nested(self):
        msg = {
            "type": "state_update",
            "state": {"phase": {"name": "rolling"}, "visited": ["c:0.000,0.000"]},
        }
        result = decode(encode(msg))
        assert result["type"] == "state_update"
        assert result["state"]["phase"]["name"] == "rolling"

    def test_roundtrip_empty(self):
        msg = {}
        assert decode(encode(msg)) == msg


class TestSerialize:
    def test_ship(self):
        data = serialize_ship(standard_player_ship())
        assert data["total_power"] == 6
        assert data["power_limit"] == 7
        assert [c["kind"] for c in data["components"]] == ["weapon", "engine", "bridge"]

    def test_path_with_engagement(self):
        result = PathResult(
            path=["a", "b"],
            engagement=Engagement("sentry:x", PROXIMITY, "b", 1),
        )
        data = serialize_path(result)
        assert data["path"] == ["a", "b"]
        assert data["engagement"] == {
            "entity_id": "sentry:x",
            "zone_kind": PROXIMITY,
            "vertex": "b",
            "index": 1,
        }

    def test_path_without_engagement(self):
        assert serialize_path(PathResult(path=["a"]))["engagement"] is None

    def test_zone_map(self):
        zone_map = {"v": [ZoneEntry("sentry:x", PROXIMITY)]}
        assert serialize_zone_map(zone_map) == {"v": [{"entity_id": "sentry:x", "kind": PROXIMITY}]}

    def test_board_and_session_are_json_ready(self):
        session = new_session(5, 4, seed=21, difficulty=7)
        board = decode(encode(serialize_board(session.board)))
        assert len(board["vertices"]) == len(session.board.vertices)
        assert board["start"] == session.board.start
        state = decode(encode(serialize_session(session)))
        assert state["phase"]["name"] == "rolling"
        assert state["position"] == session.board.start
        assert state["combat"] is None
