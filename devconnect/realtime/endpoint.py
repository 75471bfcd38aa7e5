"""
WebSocket endpoint for real-time notifications.

Frames are JSON objects `{"event": <name>, "data": <payload>}` in both
directions.

Client → server:
  join  {userId}     enter the notification room for userId
  pong               reply to a server ping

Server → client:
  joinAcknowledged {userId, success, message}
  notification     {id, userId, type, message}
  newNotification  {message}
  followUpdate     {followerId, targetUserId, isFollowing}
  ping

The connection authenticates with the same bearer token as the REST API
(`?token=` or an Authorization header). A room can only be joined for the
identity that token proves.
"""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from devconnect.auth import decode_token
from devconnect.config import settings
from devconnect.errors import TransportError, Unauthenticated
from devconnect.realtime.broadcaster import EVENT_JOIN_ACK, EVENT_PING, registry
from devconnect.realtime.registry import Connection, ConnectionRegistry
from devconnect.telemetry import REALTIME_CONNECTIONS

logger = logging.getLogger(__name__)
router = APIRouter()


def _token_from(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    if token:
        return token
    header = websocket.headers.get("authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def handle_join(
    connection: Connection, requested: Any, rooms: Optional[ConnectionRegistry] = None
) -> dict:
    """Join the caller's own room and build the acknowledgement payload."""
    if rooms is None:
        rooms = registry
    if connection.user_id is None:
        logger.warning("Join for %r refused on unauthenticated %r", requested, connection)
        return {
            "userId": requested,
            "success": False,
            "message": "Authentication required to join a notification channel",
        }

    if requested is not None and str(requested) != str(connection.user_id):
        logger.warning(
            "User %s tried to join the channel of %r", connection.user_id, requested
        )
        return {
            "userId": requested,
            "success": False,
            "message": "Cannot join another user's notification channel",
        }

    rooms.join(connection, connection.user_id)
    logger.info(
        "User %s joined their notification channel (connection %s)",
        connection.user_id,
        connection.connection_id,
    )
    return {
        "userId": connection.user_id,
        "success": True,
        "message": "Successfully joined your notification channel",
    }


async def _heartbeat(connection: Connection) -> None:
    while True:
        await asyncio.sleep(settings.ws_ping_interval)
        idle = (datetime.now() - connection.last_pong).total_seconds()
        if idle > settings.ws_ping_timeout:
            logger.info("Closing %r after %.0fs without pong", connection, idle)
            await connection.websocket.close(code=1001)
            return
        try:
            await connection.send(EVENT_PING, {"timestamp": datetime.now().isoformat()})
        except TransportError:
            return


async def _dispatch(connection: Connection, frame: dict) -> None:
    event = frame.get("event")
    if event == "join":
        ack = handle_join(connection, frame.get("data"))
        await connection.send(EVENT_JOIN_ACK, ack)
    elif event == "pong":
        connection.last_pong = datetime.now()
    else:
        await connection.send("error", {"message": f"Unknown event: {event}"})


@router.websocket("/ws")
async def realtime_endpoint(websocket: WebSocket, token: Optional[str] = Query(None)):
    user_id = None
    raw_token = _token_from(websocket, token)
    if raw_token:
        try:
            user_id = decode_token(raw_token)
        except Unauthenticated as exc:
            logger.warning("WebSocket authentication failed: %s", exc.message)

    await websocket.accept()
    connection = Connection(websocket, user_id)
    registry.add(connection)
    REALTIME_CONNECTIONS.inc()
    logger.info("Connected: %s (user: %s)", connection.connection_id, user_id or "anonymous")

    heartbeat = asyncio.create_task(_heartbeat(connection))
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                await connection.send("error", {"message": "Binary frames are not supported"})
                continue
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await connection.send("error", {"message": "Invalid JSON format"})
                continue
            if not isinstance(frame, dict):
                await connection.send("error", {"message": "Frames must be JSON objects"})
                continue
            await _dispatch(connection, frame)
    except WebSocketDisconnect as exc:
        logger.info("Disconnected: %s (code %s)", connection.connection_id, exc.code)
    except TransportError as exc:
        logger.warning("Connection %s lost: %s", connection.connection_id, exc)
    finally:
        heartbeat.cancel()
        registry.remove(connection)
        REALTIME_CONNECTIONS.dec()
