import threading
from collections import deque
from types import SimpleNamespace

import pytest
from aiohttp import WSMsgType

from coupgame.connections import (
    SEND_BUFFER,
    Client,
    ConnectionManager,
    ConnectionManagerError,
)
from coupgame.message import GameMessage, MessageType


class FakeConnection:
    def __init__(self, incoming=()):
        self.incoming = deque(incoming)
        self.sent = []
        self.pings = 0
        self.closed = False

    async def receive(self, timeout=None):
        if self.incoming:
            return self.incoming.popleft()
        return SimpleNamespace(type=WSMsgType.CLOSE, data=1000)

    async def send_str(self, data):
        self.sent.append(data)

    async def ping(self, message=b""):
        self.pings += 1

    async def close(self):
        self.closed = True


def text(data):
    return SimpleNamespace(type=WSMsgType.TEXT, data=data)


CHAT = '{"type":"chat","payload":{"message":"Hello World"}}'


def test_new_client():
    manager = ConnectionManager()
    client = Client("test-client-1", None, manager)
    assert client.id == "test-client-1"
    assert client.connection is None
    assert client.manager is manager
    assert client.pending_messages == []


def test_client_send_is_buffered():
    client = Client("test-client", None, ConnectionManager())
    client.send_message(GameMessage(MessageType.CHAT, "test"))
    assert client.pending_messages == [b'{"type":"chat","payload":"test"}']


def test_client_id_generation():
    manager = ConnectionManager()
    first = Client("", None, manager)
    second = Client("", None, manager)
    assert first.id
    assert first.manager is manager
    assert first.id != second.id


def test_send_queue_full_raises():
    client = Client("c", None, None)
    msg = GameMessage(MessageType.CHAT, "x")
    for _ in range(SEND_BUFFER):
        client.send_message(msg)
    with pytest.raises(ConnectionManagerError, match="full"):
        client.send_message(msg)
    assert len(client.pending_messages) == SEND_BUFFER


def test_send_after_close_raises():
    client = Client("c", None, None)
    client.close()
    assert client.is_closed
    with pytest.raises(ConnectionManagerError):
        client.send_message(GameMessage(MessageType.CHAT, "x"))


def test_new_manager_is_empty():
    manager = ConnectionManager()
    assert manager.connection_count() == 0
    assert manager.connection_ids() == []


def test_broadcast_to_empty_then_one_client():
    manager = ConnectionManager()
    manager.broadcast(b"test message")
    client = Client("a", None, manager)
    manager.add_client(client)
    manager.broadcast(b"test message")
    assert client.pending_messages == [b"test message"]


def test_add_and_remove_connection():
    manager = ConnectionManager()
    manager.add_connection("test-conn-1", None)
    assert manager.connection_count() == 1
    manager.remove_connection("test-conn-1")
    assert manager.connection_count() == 0


def test_add_connection_rejects_empty_and_duplicate():
    manager = ConnectionManager()
    with pytest.raises(ConnectionManagerError, match="cannot be empty"):
        manager.add_connection("", None)
    manager.add_connection("x", None)
    with pytest.raises(ConnectionManagerError, match="already exists"):
        manager.add_connection("x", None)


def test_remove_missing_connection_raises():
    with pytest.raises(ConnectionManagerError, match="not found"):
        ConnectionManager().remove_connection("nope")


def test_remove_closes_client():
    manager = ConnectionManager()
    client = Client("a", None, manager)
    manager.add_client(client)
    manager.remove_connection("a")
    assert client.is_closed


def test_concurrent_connections():
    manager = ConnectionManager()
    threads = [
        threading.Thread(target=manager.add_connection, args=(f"conn-{i}", None))
        for i in range(10)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert manager.connection_count() == 10
    assert sorted(manager.connection_ids()) == sorted(f"conn-{i}" for i in range(10))


def test_add_client_duplicate_raises():
    manager = ConnectionManager()
    client = Client("test-client", None, manager)
    manager.add_client(client)
    assert manager.connection_count() == 1
    with pytest.raises(ConnectionManagerError):
        manager.add_client(client)


def test_broadcast_message_structured():
    manager = ConnectionManager()
    client = Client("a", None, manager)
    manager.add_client(client)
    manager.broadcast_message(
        GameMessage(MessageType.PLAYER_JOIN, {"playerId": "test-player", "message": "Test message"})
    )
    assert client.pending_messages == [
        b'{"type":"player_join","payload":{"message":"Test message","playerId":"test-player"}}'
    ]


def test_handle_chat_broadcasts():
    manager = ConnectionManager()
    listener = Client("listener", None, manager)
    manager.add_client(listener)
    speaker = Client("speaker", None, manager)
    speaker.handle_message(GameMessage(MessageType.CHAT, {"message": "Hi", "n": 2}))
    assert listener.pending_messages == [b"Chat from speaker: map[message:Hi n:2]"]


def test_handle_other_messages_do_not_broadcast():
    manager = ConnectionManager()
    listener = Client("listener", None, manager)
    manager.add_client(listener)
    speaker = Client("speaker", None, manager)
    speaker.handle_message(GameMessage(MessageType.GAME_ACTION, {"a": 1}))
    speaker.handle_message(GameMessage("mystery", None))
    assert listener.pending_messages == []


@pytest.mark.asyncio
async def test_run_relays_chat_and_unregisters():
    manager = ConnectionManager()
    observer = Client("observer", None, manager)
    manager.add_client(observer)
    connection = FakeConnection([text(CHAT)])
    speaker = Client("speaker", connection, manager)
    manager.add_client(speaker)

    await speaker.run()

    assert observer.pending_messages == [b"Chat from speaker: map[message:Hello World]"]
    assert manager.connection_ids() == ["observer"]
    assert connection.sent == ["Chat from speaker: map[message:Hello World]"]
    assert connection.closed


@pytest.mark.asyncio
async def test_run_batches_queued_messages():
    connection = FakeConnection()
    client = Client("c", connection, None)
    client.send_message(GameMessage(MessageType.CHAT, "a"))
    client.send_message(GameMessage(MessageType.CHAT, "b"))

    await client.run()

    assert connection.sent == [
        '{"type":"chat","payload":"a"}\n{"type":"chat","payload":"b"}'
    ]
    assert client.is_closed


@pytest.mark.asyncio
async def test_run_skips_unparseable_messages():
    manager = ConnectionManager()
    observer = Client("observer", None, manager)
    manager.add_client(observer)
    speaker = Client("speaker", FakeConnection([text("not json"), text(CHAT)]), manager)

    await speaker.run()

    assert observer.pending_messages == [b"Chat from speaker: map[message:Hello World]"]


@pytest.mark.asyncio
async def test_run_stops_on_oversized_message():
    manager = ConnectionManager()
    observer = Client("observer", None, manager)
    manager.add_client(observer)
    oversized = '{"type":"chat","payload":"' + "x" * 600 + '"}'
    speaker = Client("speaker", FakeConnection([text(oversized), text(CHAT)]), manager)

    await speaker.run()

    assert observer.pending_messages == []


@pytest.mark.asyncio
async def test_run_without_connection_raises():
    with pytest.raises(ConnectionManagerError):
        await Client("c", None, None).run()