"""WebSocket connection registry and channel fan-out."""
import asyncio
import enum
import logging
from uuid import UUID

from fastapi import WebSocket

from vidsphere.realtime.channels import user_channel

logger = logging.getLogger(__name__)


class ConnectionState(str, enum.Enum):
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    SUBSCRIBED = "subscribed"
    DISCONNECTED = "disconnected"


class Connection:
    """One client socket and the channels it listens on."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.user_id: UUID | None = None
        self.channels: set[str] = set()
        self.state = ConnectionState.CONNECTING

    async def send(self, message: dict) -> None:
        await self.websocket.send_json(message)


class ConnectionManager:
    """Maps channel names to connected sockets. Delivery is at-most-once."""

    def __init__(self, max_connections: int = 15000, send_timeout: float = 5.0):
        self.channels: dict[str, set[Connection]] = {}
        self.connections: set[Connection] = set()
        self._lock = asyncio.Lock()
        self._max_connections = max_connections
        self._send_timeout = send_timeout

    def has_capacity(self) -> bool:
        return len(self.connections) < self._max_connections

    async def register(self, connection: Connection, user_id: UUID) -> None:
        """Mark the connection authenticated and join its private user channel."""
        connection.user_id = user_id
        connection.state = ConnectionState.AUTHENTICATED
        async with self._lock:
            self.connections.add(connection)
        await self.subscribe(connection, user_channel(user_id))
        logger.info("User %s connected. Total connections: %d", user_id, self.get_connection_count())

    async def subscribe(self, connection: Connection, channel: str) -> None:
        async with self._lock:
            self.channels.setdefault(channel, set()).add(connection)
            connection.channels.add(channel)
        connection.state = ConnectionState.SUBSCRIBED

    async def unsubscribe(self, connection: Connection, channel: str) -> None:
        async with self._lock:
            self._remove_from_channel(connection, channel)

    async def disconnect(self, connection: Connection) -> None:
        async with self._lock:
            for channel in list(connection.channels):
                self._remove_from_channel(connection, channel)
            self.connections.discard(connection)
        if connection.state is not ConnectionState.DISCONNECTED:
            connection.state = ConnectionState.DISCONNECTED
            if connection.user_id is not None:
                logger.info(
                    "User %s disconnected. Total connections: %d", connection.user_id, self.get_connection_count()
                )

    def _remove_from_channel(self, connection: Connection, channel: str) -> None:
        subscribers = self.channels.get(channel)
        if subscribers is not None:
            subscribers.discard(connection)
            if not subscribers:
                del self.channels[channel]
        connection.channels.discard(channel)

    async def broadcast(self, channel: str, payload: dict) -> int:
        """Send an event to every subscriber of a channel. Returns how many sockets received it."""
        subscribers = list(self.channels.get(channel, ()))
        if not subscribers:
            return 0
        message = {"type": "event", "channel": channel, "data": payload}
        results = await asyncio.gather(*(self._send(connection, message) for connection in subscribers))
        for connection, ok in zip(subscribers, results):
            if not ok:
                await self.disconnect(connection)
        return sum(results)

    async def _send(self, connection: Connection, message: dict) -> bool:
        try:
            await asyncio.wait_for(connection.send(message), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning("Dropping connection of user %s: send timed out", connection.user_id)
        except Exception as e:
            logger.warning("Dropping connection of user %s after send error: %s", connection.user_id, e)
        return False

    def get_connection_count(self) -> int:
        return len(self.connections)

    def subscriber_count(self, channel: str) -> int:
        return len(self.channels.get(channel, ()))
