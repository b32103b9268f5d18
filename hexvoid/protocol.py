"""Message protocol constants and serialization helpers for the game server."""

import json

# Message types - Client -> Server
NEW_GAME = "new_game"
SELECT_BOARD = "select_board"
NEW_GALAXY = "new_galaxy"
GALAXY = "galaxy"
ROLL = "roll"
PREVIEW = "preview"
MOVE = "move"
ENGAGE = "engage"
DECLINE = "decline"
ATTACK = "attack"
ESCAPE = "escape"
INSTALL = "install"
UNINSTALL = "uninstall"

# Message types - Server -> Client
GAME_START = "game_start"
STATE_UPDATE = "state_update"
PATH_PREVIEW = "path_preview"
COMBAT_UPDATE = "combat_update"
GALAXY_STATE = "galaxy_state"
GAME_OVER = "game_over"
ERROR = "error"


def serialize_component(component):
    """Convert a ShipComponent to a JSON-serializable dict."""
    return {
        "name": component.name,
        "kind": component.kind,
        "power_cost": component.power_cost,
        "max_hp": component.max_hp,
        "current_hp": component.current_hp,
        "destroyed": component.destroyed,
    }


def serialize_ship(ship):
    return {
        "name": ship.name,
        "power_limit": ship.power_limit,
        "total_power": ship.total_power,
        "components": [serialize_component(c) for c in ship.components],
    }


def serialize_board_object(obj):
    data = {
        "id": obj.id,
        "kind": obj.kind,
        "vertex": obj.vertex_id,
        "value": obj.value,
        "destroyed": obj.destroyed,
    }
    if obj.facing is not None:
        data["facing"] = obj.facing
        data["vision_range"] = obj.vision_range
    return data


def serialize_board(board):
    """Static board layout: vertices, adjacency, objects and zones."""
    layout = board.layout
    return {
        "cols": board.cols,
        "rows": board.rows,
        "seed": board.seed,
        "difficulty": board.difficulty,
        "start": board.start,
        "target": board.target,
        "vertices": [
            {"id": v.id, "x": v.x, "y": v.y, "kind": v.kind}
            for v in board.vertices.values()
        ],
        "adjacency": {vid: list(nbs) for vid, nbs in board.adjacency.items()},
        "objects": [serialize_board_object(o) for o in layout.board_objects],
        "zones": serialize_zone_map(layout.zone_map),
    }


def serialize_zone_map(zone_map):
    return {
        vid: [{"entity_id": e.entity_id, "kind": e.kind} for e in entries]
        for vid, entries in zone_map.items()
    }


def serialize_path(result):
    """Convert a PathResult to a JSON-serializable dict."""
    data = {
        "path": list(result.path),
        "stopped_by_obstacle": result.stopped_by_obstacle,
        "hit_black_hole": result.hit_black_hole,
        "reached_target": result.reached_target,
        "engagement": None,
    }
    if result.engagement is not None:
        e = result.engagement
        data["engagement"] = {
            "entity_id": e.entity_id,
            "zone_kind": e.zone_kind,
            "vertex": e.vertex_id,
            "index": e.index,
        }
    return data


def serialize_combat(engine):
    return {
        "turn": engine.current_turn,
        "whose_turn": engine.whose_turn,
        "player_attacks": engine.player_attack_count,
        "sentry_attacks": engine.sentry_attack_count,
        "max_turns": engine.max_turns,
        "result": engine.result,
        "player_ship": serialize_ship(engine.player_ship),
        "sentry_ship": serialize_ship(engine.sentry_ship),
        "log": list(engine.log),
    }


def serialize_phase(phase):
    return {"name": phase.name, **phase.payload}


def serialize_session(session):
    """Dynamic session state; the board layout is sent separately in game_start."""
    layout = session.board.layout
    return {
        "phase": serialize_phase(session.phase),
        "position": session.position,
        "visited": sorted(session.visited),
        "movement_pool": session.movement_pool,
        "dice": session.dice,
        "moves_made": session.moves_made,
        "lose_reason": session.lose_reason,
        "power_collected": session.power_collected,
        "ship": serialize_ship(session.ship),
        "inventory": [serialize_component(c) for c in session.inventory],
        "objects": [serialize_board_object(o) for o in layout.board_objects],
        "zones": serialize_zone_map(layout.zone_map),
        "combat": serialize_combat(session.combat) if session.combat else None,
        "last_encounter": session.last_encounter,
    }


def encode(msg):
    """Encode a message dict to JSON string."""
    return json.dumps(msg)


def decode(raw):
    """Decode a JSON string to message dict."""
    return json.loads(raw)
