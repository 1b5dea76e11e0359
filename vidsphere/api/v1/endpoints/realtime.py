"""Realtime WebSocket endpoint.

Clients authenticate with a bearer token, either in the ``Authorization``
header of the upgrade request or in a first ``{"action": "auth", "token"}``
frame, then subscribe to content channels (``Video:<id>``, ``Article:<id>``,
``Comment:<id>``). Their own ``user:<id>`` channel is joined automatically.
"""
import asyncio
import json
import logging
from uuid import UUID

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vidsphere.core.config import settings
from vidsphere.core.exceptions import AuthError
from vidsphere.core.security import verify_token
from vidsphere.db.session import async_session_maker
from vidsphere.realtime.channels import USER_CHANNEL_PREFIX, normalize_channel, user_channel
from vidsphere.realtime.manager import Connection, ConnectionManager
from vidsphere.services.auth_service import get_user_by_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])

AUTH_FAILED_CLOSE_CODE = 4401
TRY_AGAIN_LATER_CLOSE_CODE = 1013


def _bearer_from_header(websocket: WebSocket) -> str | None:
    header = websocket.headers.get("authorization")
    if not header:
        return None
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


async def _read_auth_frame(websocket: WebSocket) -> str | None:
    try:
        raw = await asyncio.wait_for(websocket.receive_text(), timeout=settings.REALTIME_AUTH_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        return None
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return None
    if not isinstance(message, dict) or message.get("action") != "auth":
        return None
    return message.get("token") or None


async def authenticate(websocket: WebSocket) -> UUID:
    """Resolve the connecting user or raise AuthError with the reason."""
    token = _bearer_from_header(websocket)
    if token is None:
        token = await _read_auth_frame(websocket)
    user_id = verify_token(token)
    async with async_session_maker() as db:
        user = await get_user_by_id(db, user_id)
    if user is None:
        raise AuthError("User not found")
    return user_id


async def _handle_frame(manager: ConnectionManager, connection: Connection, raw: str) -> dict:
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        return {"type": "error", "reason": "Invalid message"}
    if not isinstance(message, dict):
        return {"type": "error", "reason": "Invalid message"}

    action = message.get("action")
    if action == "ping":
        return {"type": "pong"}
    if action not in ("subscribe", "unsubscribe"):
        return {"type": "error", "reason": f"Unknown action: {action}"}

    try:
        channel = normalize_channel(str(message.get("channel") or ""))
    except ValueError:
        return {"type": "error", "reason": "Invalid channel"}
    if channel.startswith(f"{USER_CHANNEL_PREFIX}:") and channel != user_channel(connection.user_id):
        return {"type": "error", "reason": "Cannot subscribe to another user's channel"}

    if action == "subscribe":
        await manager.subscribe(connection, channel)
        return {"type": "subscribed", "channel": channel}
    await manager.unsubscribe(connection, channel)
    return {"type": "unsubscribed", "channel": channel}


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    manager: ConnectionManager = websocket.app.state.connections
    await websocket.accept()
    if not manager.has_capacity():
        logger.warning("Rejecting realtime connection: connection limit reached")
        await websocket.close(code=TRY_AGAIN_LATER_CLOSE_CODE, reason="Connection limit reached")
        return

    connection = Connection(websocket)
    try:
        user_id = await authenticate(websocket)
    except AuthError as e:
        reason = f"Authentication error: {e.detail}"
        logger.info("Realtime handshake rejected: %s", e.detail)
        await websocket.send_json({"type": "error", "reason": reason})
        await websocket.close(code=AUTH_FAILED_CLOSE_CODE, reason=reason)
        return
    except WebSocketDisconnect:
        return

    await manager.register(connection, user_id)
    try:
        await connection.send({"type": "connected", "userId": str(user_id), "channels": sorted(connection.channels)})
        while True:
            raw = await websocket.receive_text()
            await connection.send(await _handle_frame(manager, connection, raw))
    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("Realtime socket error for user %s: %s", user_id, e)
    finally:
        await manager.disconnect(connection)
