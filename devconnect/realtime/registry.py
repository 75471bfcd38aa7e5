"""
Connection registry.

Tracks which real-time connections are open in this process and which
user room each one has joined. Rooms are keyed by the stringified user id.

The registry only holds transient, non-owning references: an entry
exists from `add()` until `remove()` on disconnect.
"""
import abc
import json
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4

from fastapi import WebSocket

from devconnect.errors import TransportError

logger = logging.getLogger(__name__)


def room_key(user_id: int | str) -> str:
    return str(user_id)


class Connection:
    """One open WebSocket plus the identity it authenticated as."""

    def __init__(self, websocket: WebSocket, user_id: Optional[int] = None) -> None:
        self.websocket = websocket
        self.connection_id = str(uuid4())
        self.user_id = user_id
        self.connected_at = datetime.now()
        self.last_pong = datetime.now()

    async def send(self, event: str, data: Any) -> None:
        frame = json.dumps({"event": event, "data": data}, default=str)
        try:
            await self.websocket.send_text(frame)
        except Exception as exc:
            raise TransportError(f"send to {self.connection_id} failed: {exc}") from exc

    def __repr__(self) -> str:
        return f"<Connection {self.connection_id} user={self.user_id}>"


class ConnectionRegistry(abc.ABC):
    """Register / look up / remove connections by identity."""

    @abc.abstractmethod
    def add(self, connection: Connection) -> None: ...

    @abc.abstractmethod
    def join(self, connection: Connection, user_id: int | str) -> str:
        """Put `connection` in the user's room, leaving any previous room."""

    @abc.abstractmethod
    def remove(self, connection: Connection) -> None: ...

    @abc.abstractmethod
    def connections_for(self, user_id: int | str) -> list[Connection]: ...

    @abc.abstractmethod
    def all_connections(self) -> list[Connection]: ...

    @abc.abstractmethod
    def room_of(self, connection: Connection) -> Optional[str]: ...


class InMemoryConnectionRegistry(ConnectionRegistry):
    def __init__(self) -> None:
        self.connections: dict[str, Connection] = {}
        self.rooms: dict[str, set[str]] = {}         # room -> connection_ids
        self._joined: dict[str, str] = {}            # connection_id -> room

    def add(self, connection: Connection) -> None:
        self.connections[connection.connection_id] = connection

    def join(self, connection: Connection, user_id: int | str) -> str:
        room = room_key(user_id)
        cid = connection.connection_id
        self.connections.setdefault(cid, connection)

        previous = self._joined.get(cid)
        if previous is not None and previous != room:
            self._leave(cid, previous)

        self.rooms.setdefault(room, set()).add(cid)
        self._joined[cid] = room
        return room

    def remove(self, connection: Connection) -> None:
        cid = connection.connection_id
        room = self._joined.pop(cid, None)
        if room is not None:
            self._leave(cid, room)
        self.connections.pop(cid, None)

    def _leave(self, cid: str, room: str) -> None:
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(cid)
        if not members:
            del self.rooms[room]

    def connections_for(self, user_id: int | str) -> list[Connection]:
        members = self.rooms.get(room_key(user_id), ())
        return [self.connections[cid] for cid in members if cid in self.connections]

    def all_connections(self) -> list[Connection]:
        return list(self.connections.values())

    def room_of(self, connection: Connection) -> Optional[str]:
        return self._joined.get(connection.connection_id)

    def stats(self) -> dict:
        return {
            "connections": len(self.connections),
            "rooms": len(self.rooms),
        }
