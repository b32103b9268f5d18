"""Dedicated WebSocket game server for Hexvoid."""

import argparse
import asyncio
import random
import socket
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import websockets
from loguru import logger

from . import config
from .constants import DEFAULT_DIFFICULTY, DEFAULT_HOST, DEFAULT_PORT
from .galaxy import (
    generate_galaxy,
    get_board,
    is_complete,
    is_playable,
    load_galaxy,
    record_result,
    save_galaxy,
)
from .game_state import COMBAT, WON, new_session
from .protocol import (
    ATTACK,
    COMBAT_UPDATE,
    DECLINE,
    ENGAGE,
    ERROR,
    ESCAPE,
    GALAXY,
    GALAXY_STATE,
    GAME_OVER,
    GAME_START,
    INSTALL,
    MOVE,
    NEW_GALAXY,
    NEW_GAME,
    PATH_PREVIEW,
    PREVIEW,
    ROLL,
    SELECT_BOARD,
    STATE_UPDATE,
    UNINSTALL,
    decode,
    encode,
    serialize_board,
    serialize_combat,
    serialize_path,
    serialize_session,
)

DEFAULT_COLS = 7
DEFAULT_ROWS = 6

SESSION_OPS = {
    ROLL: "roll",
    ENGAGE: "engage",
    DECLINE: "decline",
    ESCAPE: "escape",
}
DIRECTION_OPS = {MOVE: "move"}
COMPONENT_OPS = {ATTACK: "attack", INSTALL: "install", UNINSTALL: "uninstall"}


@dataclass
class Client:
    """Per-connection state: the session being played and its galaxy slot, if any."""

    session: Optional[object] = None
    galaxy_pos: Optional[tuple] = None


def error(message):
    return {"type": ERROR, "message": message}


def _optional_int(value):
    return None if value is None else int(value)


def _snapshot(session):
    """What a component operation can change: phase, combat log, loadout and inventory."""
    log_size = len(session.combat.log) if session.combat is not None else 0
    loadout = [c.name for c in session.ship.components]
    return session.phase, log_size, loadout, len(session.inventory)


class GameServer:
    def __init__(self, host=DEFAULT_HOST, port=DEFAULT_PORT, save_path=None):
        self.host = host
        self.port = port
        self.save_path = Path(save_path) if save_path else config.get_save_path()
        self.clients = {}  # websocket -> Client
        self.galaxy = load_galaxy(self.save_path)

    async def broadcast(self, msg):
        """Send message to all connected clients."""
        raw = encode(msg)
        for ws in list(self.clients):
            try:
                await ws.send(raw)
            except websockets.ConnectionClosed:
                pass

    async def send_to(self, ws, msg):
        try:
            await ws.send(encode(msg))
        except websockets.ConnectionClosed:
            pass

    def _galaxy_state_msg(self):
        return {
            "type": GALAXY_STATE,
            "galaxy": self.galaxy,
            "complete": is_complete(self.galaxy) if self.galaxy else False,
        }

    def _save_galaxy(self):
        try:
            save_galaxy(self.galaxy, self.save_path)
        except OSError as exc:
            logger.warning("Could not save galaxy to {}: {}", self.save_path, exc)

    def _state_msg(self, session, message=""):
        msg = {"type": STATE_UPDATE, "state": serialize_session(session), "message": message}
        if session.phase.name == COMBAT:
            msg["type"] = COMBAT_UPDATE
            msg["combat"] = serialize_combat(session.combat)
        return msg

    def _start_game(self, client, cols, rows, seed, difficulty, galaxy_pos=None):
        client.session = new_session(cols, rows, seed, difficulty)
        client.galaxy_pos = galaxy_pos
        board = client.session.board
        logger.info(
            "Game started: {}x{} seed={} difficulty={} galaxy={}",
            cols,
            rows,
            board.seed,
            difficulty,
            galaxy_pos,
        )
        return {
            "type": GAME_START,
            "board": serialize_board(board),
            "state": serialize_session(client.session),
            "galaxy_board": list(galaxy_pos) if galaxy_pos else None,
        }

    def _finish_game(self, client):
        """Build game-over replies, recording the result on the galaxy for galaxy boards."""
        session = client.session
        won = session.phase.name == WON
        replies = [
            self._state_msg(session),
            {
                "type": GAME_OVER,
                "won": won,
                "reason": session.lose_reason,
                "moves_made": session.moves_made,
            },
        ]
        if client.galaxy_pos is not None and self.galaxy is not None:
            row, col = client.galaxy_pos
            unlocked = record_result(self.galaxy, row, col, won)
            logger.info("Galaxy board ({}, {}) {}; unlocked {}", row, col, session.phase.name, unlocked)
            self._save_galaxy()
            replies.append(self._galaxy_state_msg())
        client.galaxy_pos = None
        return replies

    def dispatch(self, client, msg):
        """Handle one decoded client message. Returns the list of reply messages."""
        msg_type = msg.get("type")
        try:
            if msg_type == NEW_GAME:
                return [
                    self._start_game(
                        client,
                        int(msg.get("cols", DEFAULT_COLS)),
                        int(msg.get("rows", DEFAULT_ROWS)),
                        _optional_int(msg.get("seed")),
                        int(msg.get("difficulty", DEFAULT_DIFFICULTY)),
                    )
                ]

            elif msg_type == SELECT_BOARD:
                if self.galaxy is None:
                    return [error("No galaxy in progress")]
                row, col = int(msg["row"]), int(msg["col"])
                if not is_playable(self.galaxy, row, col):
                    return [error(f"Board ({row}, {col}) is not unlocked")]
                desc = get_board(self.galaxy, row, col)
                return [
                    self._start_game(
                        client, desc["cols"], desc["rows"], desc["seed"], desc["difficulty"], (row, col)
                    )
                ]

            elif msg_type == NEW_GALAXY:
                seed = msg.get("seed")
                if seed is None:
                    seed = random.SystemRandom().randint(1, 2**31 - 1)
                self.galaxy = generate_galaxy(int(seed))
                self._save_galaxy()
                logger.info("New galaxy generated (seed {})", seed)
                return [self._galaxy_state_msg()]

            elif msg_type == GALAXY:
                return [self._galaxy_state_msg()]

            session = client.session
            if msg_type not in (PREVIEW, *SESSION_OPS, *DIRECTION_OPS, *COMPONENT_OPS):
                return [error(f"Unknown message type: {msg_type}")]
            if session is None:
                return [error("No game in progress")]
            if session.phase.terminal:
                return [error("Game is over")]

            if msg_type == PREVIEW:
                result = session.preview(int(msg["direction"]))
                if result is None:
                    return [error("Cannot preview now")]
                return [{"type": PATH_PREVIEW, "direction": int(msg["direction"]), **serialize_path(result)}]

            if msg_type in SESSION_OPS:
                getattr(session, SESSION_OPS[msg_type])()
            elif msg_type in DIRECTION_OPS:
                getattr(session, DIRECTION_OPS[msg_type])(int(msg["direction"]))
            else:
                before = _snapshot(session)
                getattr(session, COMPONENT_OPS[msg_type])(msg["component"])
                if _snapshot(session) == before:
                    return [error(f"Cannot {msg_type} {msg['component']!r} now")]

            if session.phase.terminal:
                return self._finish_game(client)
            return [self._state_msg(session)]

        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Rejected {} message: {}", msg_type, exc)
            return [error(str(exc))]

    async def handle_client(self, websocket):
        client = Client()
        self.clients[websocket] = client
        logger.info("Client connected ({} total)", len(self.clients))
        try:
            async for raw in websocket:
                try:
                    msg = decode(raw)
                except ValueError:
                    await self.send_to(websocket, error("Malformed message"))
                    continue
                if not isinstance(msg, dict):
                    await self.send_to(websocket, error("Malformed message"))
                    continue
                for reply in self.dispatch(client, msg):
                    # galaxy progress is shared by every connection
                    if reply["type"] == GALAXY_STATE and msg.get("type") != GALAXY:
                        await self.broadcast(reply)
                    else:
                        await self.send_to(websocket, reply)
        except websockets.ConnectionClosed:
            pass
        finally:
            del self.clients[websocket]
            logger.info("Client disconnected ({} remaining)", len(self.clients))

    async def run(self):
        logger.info("Server starting on {}:{} (galaxy save: {})", self.host, self.port, self.save_path)
        # Create socket with SO_REUSEADDR so we can rebind immediately after restart
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((self.host, self.port))
        sock.listen()
        sock.setblocking(False)
        async with websockets.serve(self.handle_client, sock=sock):
            await asyncio.Future()  # run forever


def main(argv=None):
    parser = argparse.ArgumentParser(description="Hexvoid game server")
    parser.add_argument("--host", default=config.get_host(), help="Host to bind to")
    parser.add_argument("--port", type=int, default=config.get_port(), help="Port to listen on")
    parser.add_argument("--save-path", type=Path, default=config.get_save_path(), help="Galaxy save file")
    parser.add_argument("--log-level", default="INFO", help="Log level")
    args = parser.parse_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    server = GameServer(host=args.host, port=args.port, save_path=args.save_path)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
