"""Presence broadcasting: join/leave events carrying a full roster snapshot.

Each event carries the whole snapshot rather than a delta, so every event is
self-consistent at the moment it is sent and clients simply replace their
roster with the latest one they receive.
"""
import logging

from .hub import ConnectionHub
from .registry import ConnectionRegistry
from .schemas import ServerEvent, UserPresencePayload, envelope

logger = logging.getLogger(__name__)


class PresenceBroadcaster:
    def __init__(self, registry: ConnectionRegistry, hub: ConnectionHub) -> None:
        self.registry = registry
        self.hub = hub

    def joined(self, conn_id: str, username: str) -> UserPresencePayload:
        """Register a connection and announce it to every connection, itself included."""
        self.registry.register(conn_id, username)
        payload = UserPresencePayload(
            id=conn_id, username=username, users=self.registry.snapshot()
        )
        logger.info(f"[Chat] {username} joined. Total users: {len(self.registry)}")
        self.hub.broadcast(envelope(ServerEvent.USER_JOINED, payload))
        return payload

    def left(self, conn_id: str) -> UserPresencePayload:
        """Unregister a connection and announce it to the remaining connections.

        Runs for every disconnect, including connections that never joined;
        those are reported as "Unknown".
        """
        self.hub.remove(conn_id)
        username = self.registry.unregister(conn_id)
        payload = UserPresencePayload(
            id=conn_id, username=username, users=self.registry.snapshot()
        )
        logger.info(f"[Chat] {username} left. Total users: {len(self.registry)}")
        self.hub.broadcast(envelope(ServerEvent.USER_LEFT, payload))
        return payload
