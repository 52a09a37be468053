"""Chat service: owns the registry and hub and handles inbound events.

One ChatService exists per server process. It is created at application
startup, passed to the WebSocket handler through ``app.state`` and drained at
shutdown.

Thread Safety:
    Designed for a single event loop. Every inbound event (join, message,
    typing, disconnect) is handled under one asyncio.Lock, so a registry
    mutation, its snapshot and the queuing of the resulting frames happen
    before the next event is processed. Delivery runs in the hub's
    per-connection writer tasks, outside the lock. It is NOT thread-safe.
"""
import asyncio
import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Optional

from .hub import Connection, ConnectionHub
from .presence import PresenceBroadcaster
from .registry import ConnectionRegistry
from .relay import MessageRelay
from .schemas import ClientEvent
from .typing_coordinator import TypingCoordinator

logger = logging.getLogger(__name__)


def new_connection_id() -> str:
    return uuid.uuid4().hex


class ChatService:
    """Routes client events to the presence, relay and typing components."""

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.registry = ConnectionRegistry()
        self.hub = ConnectionHub()
        self.presence = PresenceBroadcaster(self.registry, self.hub)
        self.relay = MessageRelay(self.registry, self.hub, clock=clock)
        self.typing = TypingCoordinator(self.registry, self.hub)
        self._lock = asyncio.Lock()
        self.running = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        self.running = True
        logger.info("[Chat] Service started")

    def stop(self) -> None:
        """Drain all state. Connections still open are not notified."""
        self.running = False
        self.hub.clear()
        self.registry.clear()
        logger.info("[Chat] Service stopped")

    # =========================================================================
    # Transport lifecycle
    # =========================================================================

    def connect(self, connection: Connection, conn_id: Optional[str] = None) -> str:
        """Start delivering events to an accepted connection.

        Returns:
            The connection id assigned to it.
        """
        conn_id = conn_id or new_connection_id()
        self.hub.add(conn_id, connection)
        logger.info(f"[Chat] Connection {conn_id} added. Live connections: {len(self.hub)}")
        return conn_id

    async def disconnect(self, conn_id: str) -> None:
        async with self._lock:
            self.presence.left(conn_id)

    # =========================================================================
    # Client events
    # =========================================================================

    async def join(self, conn_id: str, username: str) -> None:
        async with self._lock:
            self.presence.joined(conn_id, username)

    async def send_message(self, conn_id: str, text: str) -> None:
        async with self._lock:
            self.relay.relay(conn_id, text)

    async def set_typing(self, conn_id: str, is_typing: bool) -> None:
        async with self._lock:
            self.typing.set_typing(conn_id, is_typing)

    async def dispatch(self, conn_id: str, frame: Any) -> None:
        """Handle one inbound ``{"type": ..., "data": ...}`` frame.

        Payloads are trusted as-is, with one exception: a ``user:join`` whose
        data is not a string raises TypeError before anything is registered.
        Any other frame of the wrong shape raises whatever the handler raises;
        unknown event types are ignored.
        """
        event_type = frame.get("type")
        data = frame.get("data")
        logger.debug(f"[Chat] {conn_id} sent: type={event_type}")

        if event_type == ClientEvent.JOIN.value:
            # Registered names end up in every snapshot, so they must be strings
            if not isinstance(data, str):
                raise TypeError(f"user:join expects a username string, got {type(data).__name__}")
            await self.join(conn_id, data)
        elif event_type == ClientEvent.MESSAGE_SEND.value:
            await self.send_message(conn_id, data["text"])
        elif event_type == ClientEvent.TYPING.value:
            await self.set_typing(conn_id, data)
        else:
            logger.debug(f"[Chat] Ignoring unknown event type: {event_type}")
