"""
Socket.IO manager for realtime events.

Clients join the room of a game by join code and receive the full game
state whenever the host or a team changes it.
"""
from datetime import datetime, timezone
from typing import Any, Optional

import socketio
import structlog

from .dependencies import get_storage
from .services.game_flow import get_game_state
from .services.games import get_game_by_join_code

logger = structlog.get_logger()

# Create Socket.IO server
sio = socketio.AsyncServer(
    async_mode="asgi",
    cors_allowed_origins=[],  # Will be set on app startup
    logger=False,
    engineio_logger=False,
)

def configure_cors(origins: list[str]) -> None:
    """Configure CORS for Socket.IO."""
    sio.eio.cors_allowed_origins = origins


def game_room(join_code: str) -> str:
    return f"game:{join_code}"


# ============================================================================
# Connection Events
# ============================================================================


@sio.event
async def connect(sid: str, environ: dict, auth: Optional[dict] = None):
    logger.debug("client connected", sid=sid)


@sio.event
async def disconnect(sid: str):
    logger.debug("client disconnected", sid=sid)


# ============================================================================
# Client -> Server Events
# ============================================================================


@sio.on("game:join")
async def game_join(sid: str, data: Any):
    """
    Client joins a game room.

    Payload: { "joinCode": "K9Q2TZ" }
    Ack: { "ok": true, "state": {...} } or { "ok": false, "error": "..." }
    """
    if not isinstance(data, dict):
        return {"ok": False, "error": "Join code required"}

    join_code = str(data.get("joinCode") or "").strip().upper()
    if not join_code:
        return {"ok": False, "error": "Join code required"}

    storage = get_storage()
    game = await get_game_by_join_code(storage, join_code)
    if game is None:
        return {"ok": False, "error": f"Game '{join_code}' not found"}

    await sio.enter_room(sid, game_room(join_code))
    logger.debug("client joined game", sid=sid, game_id=game.game_id)

    state = await get_game_state(storage, game.game_id)
    return {"ok": True, "state": state.model_dump(mode="json")}


@sio.event
async def ping(sid: str, data: Any):
    """
    Client ping for time sync.

    Payload: { "t": 123 }
    Ack: { "t": 123, "serverTime": "..." }
    """
    return {
        "t": data.get("t") if isinstance(data, dict) else None,
        "serverTime": datetime.now(timezone.utc).isoformat(),
    }


# ============================================================================
# Server -> Client Broadcasts
# ============================================================================


async def broadcast_game_state(game_id: str) -> None:
    """Broadcast updated game state to all clients in the game's room."""
    storage = get_storage()
    game = await storage.get_game(game_id)
    if game is None:
        return

    state = await get_game_state(storage, game_id)
    await sio.emit("game:state", state.model_dump(mode="json"), room=game_room(game.join_code))
