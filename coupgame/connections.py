"""Connected socket clients and the manager that tracks them."""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from collections import deque
from typing import Any, Awaitable, Optional

from aiohttp import WSMsgType

from coupgame.message import GameMessage, MessageType, from_json

logger = logging.getLogger(__name__)

SEND_BUFFER = 256
READ_LIMIT = 512
READ_TIMEOUT = 60.0
WRITE_TIMEOUT = 10.0
PING_PERIOD = 54.0

_CLOSING_TYPES = (WSMsgType.CLOSE, WSMsgType.CLOSING, WSMsgType.CLOSED)
_SEND_ERRORS = (asyncio.TimeoutError, TimeoutError, ConnectionError, RuntimeError)


class ConnectionManagerError(Exception):
    """Raised when a client or connection cannot be added, removed or sent to."""


def _go_format(value: Any) -> str:
    """Render a decoded JSON value the way the chat relay shows it."""
    if value is None:
        return "<nil>"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda item: str(item[0]))
        return "map[" + " ".join(f"{_go_format(k)}:{_go_format(v)}" for k, v in items) + "]"
    if isinstance(value, (list, tuple)):
        return "[" + " ".join(_go_format(item) for item in value) + "]"
    return str(value)


class Client:
    """A connected client with a bounded queue of outgoing messages."""

    def __init__(
        self,
        client_id: str = "",
        connection: Any = None,
        manager: Optional["ConnectionManager"] = None,
    ) -> None:
        self.id = client_id or str(uuid.uuid4())
        self.connection = connection
        self.manager = manager
        self._outbox: deque[bytes] = deque()
        self._wakeup = asyncio.Event()
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_messages(self) -> list[bytes]:
        """Messages queued for sending, oldest first."""
        return list(self._outbox)

    def _enqueue(self, data: bytes) -> bool:
        if self._closed or len(self._outbox) >= SEND_BUFFER:
            return False
        self._outbox.append(data)
        self._wakeup.set()
        return True

    def send_message(self, message: GameMessage) -> None:
        """Queue a message; raises ConnectionManagerError if the queue is full or closed."""
        data = message.to_json()
        if self._closed:
            raise ConnectionManagerError(f"client {self.id} is closed")
        if not self._enqueue(data):
            raise ConnectionManagerError("client send channel is full")

    def handle_message(self, message: GameMessage) -> None:
        """React to a message received from this client."""
        logger.info("Client %s sent message type: %s", self.id, message.type)
        if message.type == MessageType.CHAT:
            if self.manager is not None:
                text = f"Chat from {self.id}: {_go_format(message.payload)}"
                self.manager.broadcast(text.encode("utf-8"))
        elif message.type == MessageType.PLAYER_JOIN:
            logger.info("Player joined: %s", _go_format(message.payload))
        elif message.type == MessageType.GAME_ACTION:
            logger.info("Game action from %s: %s", self.id, _go_format(message.payload))
        else:
            logger.info("Unknown message type: %s", message.type)

    def close(self) -> None:
        """Stop accepting messages; the writer flushes what is queued, then closes."""
        if self._closed:
            return
        self._closed = True
        self._wakeup.set()

    async def run(self) -> None:
        """Pump messages both ways until the connection ends, then unregister."""
        if self.connection is None:
            raise ConnectionManagerError(f"client {self.id} has no connection")
        writer = asyncio.create_task(self._write_pump())
        try:
            await self._read_pump()
        finally:
            if self.manager is not None:
                try:
                    self.manager.remove_connection(self.id)
                except ConnectionManagerError:
                    pass
            self.close()
            _, pending = await asyncio.wait({writer}, timeout=WRITE_TIMEOUT)
            for task in pending:
                task.cancel()
            await self._close_connection()

    async def _close_connection(self) -> None:
        try:
            await self.connection.close()
        except (ConnectionError, RuntimeError):
            pass

    async def _next_outgoing(self) -> Optional[bytes]:
        while True:
            if self._outbox:
                return self._outbox.popleft()
            if self._closed:
                return None
            self._wakeup.clear()
            await self._wakeup.wait()

    async def _send(self, operation: Awaitable[Any]) -> bool:
        try:
            await asyncio.wait_for(operation, WRITE_TIMEOUT)
        except _SEND_ERRORS as exc:
            logger.debug("Write to client %s failed: %s", self.id, exc)
            return False
        return True

    async def _write_pump(self) -> None:
        try:
            while True:
                try:
                    first = await asyncio.wait_for(self._next_outgoing(), PING_PERIOD)
                except (asyncio.TimeoutError, TimeoutError):
                    if not await self._send(self.connection.ping()):
                        return
                    continue
                if first is None:
                    return
                batch = [first]
                while self._outbox:
                    batch.append(self._outbox.popleft())
                text = b"\n".join(batch).decode("utf-8", "replace")
                if not await self._send(self.connection.send_str(text)):
                    return
        finally:
            await self._close_connection()

    async def _read_pump(self) -> None:
        while True:
            try:
                received = await self.connection.receive(timeout=READ_TIMEOUT)
            except (asyncio.TimeoutError, TimeoutError):
                logger.info("Client %s timed out", self.id)
                return
            if received.type in (WSMsgType.TEXT, WSMsgType.BINARY):
                data = received.data
                if isinstance(data, str):
                    data = data.encode("utf-8")
                if len(data) > READ_LIMIT:
                    logger.warning("WebSocket error: read limit exceeded")
                    return
                try:
                    message = from_json(data)
                except ValueError as exc:
                    logger.warning("Failed to parse message: %s", exc)
                    continue
                self.handle_message(message)
            elif received.type is WSMsgType.ERROR:
                logger.warning("WebSocket error: %s", received.data)
                return
            elif received.type in _CLOSING_TYPES:
                return


class ConnectionManager:
    """Tracks active clients by ID; safe to use from several threads."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._lock = threading.RLock()

    def connection_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def add_connection(self, connection_id: str, connection: Any) -> None:
        """Wrap a raw connection in a new client and register it."""
        with self._lock:
            if not connection_id:
                raise ConnectionManagerError("connection ID cannot be empty")
            if connection_id in self._clients:
                raise ConnectionManagerError(
                    f"connection with ID {connection_id} already exists"
                )
            self._clients[connection_id] = Client(connection_id, connection, self)

    def add_client(self, client: Client) -> None:
        with self._lock:
            if not client.id:
                raise ConnectionManagerError("client ID cannot be empty")
            if client.id in self._clients:
                raise ConnectionManagerError(f"client with ID {client.id} already exists")
            self._clients[client.id] = client

    def remove_connection(self, connection_id: str) -> None:
        """Close and forget a client."""
        with self._lock:
            client = self._clients.get(connection_id)
            if client is None:
                raise ConnectionManagerError(
                    f"connection with ID {connection_id} not found"
                )
            client.close()
            del self._clients[connection_id]

    def connection_ids(self) -> list[str]:
        with self._lock:
            return list(self._clients)

    def broadcast(self, message: bytes) -> None:
        """Queue raw bytes for every client, skipping those whose queue is full."""
        with self._lock:
            for client in self._clients.values():
                if not client._enqueue(message):
                    logger.info("Skipping blocked connection: %s", client.id)

    def broadcast_message(self, message: GameMessage) -> None:
        self.broadcast(message.to_json())