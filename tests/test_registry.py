"""Unit tests for the connection registry."""

import json

import pytest

from devconnect.errors import TransportError
from devconnect.realtime.registry import Connection, InMemoryConnectionRegistry, room_key


class FakeWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[dict] = []
        self.fail = fail

    async def send_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(json.loads(text))


def test_room_key_is_stringified_id():
    assert room_key(5) == room_key("5") == "5"


def test_add_then_join():
    rooms = InMemoryConnectionRegistry()
    connection = Connection(FakeWebSocket(), user_id=1)
    rooms.add(connection)

    assert rooms.all_connections() == [connection]
    assert rooms.connections_for(1) == []
    assert rooms.room_of(connection) is None

    assert rooms.join(connection, 1) == "1"
    assert rooms.connections_for("1") == [connection]
    assert rooms.stats() == {"connections": 1, "rooms": 1}


def test_rejoin_supersedes_previous_room():
    rooms = InMemoryConnectionRegistry()
    connection = Connection(FakeWebSocket(), user_id=1)
    rooms.add(connection)
    rooms.join(connection, 1)

    rooms.join(connection, 2)

    assert rooms.connections_for(1) == []
    assert rooms.connections_for(2) == [connection]
    assert rooms.room_of(connection) == "2"
    assert rooms.stats()["rooms"] == 1


def test_room_holds_every_connection_of_a_user():
    rooms = InMemoryConnectionRegistry()
    first, second = Connection(FakeWebSocket(), 1), Connection(FakeWebSocket(), 1)
    for connection in (first, second):
        rooms.add(connection)
        rooms.join(connection, 1)

    assert {c.connection_id for c in rooms.connections_for(1)} == {
        first.connection_id,
        second.connection_id,
    }

    rooms.remove(first)
    assert rooms.connections_for(1) == [second]


def test_remove_drops_every_trace():
    rooms = InMemoryConnectionRegistry()
    connection = Connection(FakeWebSocket(), user_id=1)
    rooms.add(connection)
    rooms.join(connection, 1)

    rooms.remove(connection)
    rooms.remove(connection)

    assert rooms.all_connections() == []
    assert rooms.rooms == {}
    assert rooms.room_of(connection) is None


@pytest.mark.asyncio
async def test_send_writes_event_frame():
    ws = FakeWebSocket()
    await Connection(ws, 1).send("ping", {"n": 1})
    assert ws.sent == [{"event": "ping", "data": {"n": 1}}]


@pytest.mark.asyncio
async def test_send_failure_raises_transport_error():
    with pytest.raises(TransportError):
        await Connection(FakeWebSocket(fail=True), 1).send("ping", None)
