"""Typing indicator relay.

Unlike chat messages, typing state is sent to every connection except the
sender.
"""
import logging
from typing import Optional

from .hub import ConnectionHub
from .registry import ConnectionRegistry
from .schemas import ServerEvent, TypingPayload, envelope

logger = logging.getLogger(__name__)


class TypingCoordinator:
    def __init__(self, registry: ConnectionRegistry, hub: ConnectionHub) -> None:
        self.registry = registry
        self.hub = hub

    def set_typing(self, conn_id: str, is_typing: bool) -> Optional[TypingPayload]:
        """Relay typing state for a joined connection.

        Returns:
            The relayed payload, or None when the sender has not joined (or
            joined with an empty name) and the event was dropped.
        """
        username = self.registry.lookup(conn_id)
        if not username:
            logger.debug(f"[Chat] Dropping typing event from unnamed connection {conn_id}")
            return None

        payload = TypingPayload(username=username, isTyping=is_typing)
        self.hub.broadcast_except(
            envelope(ServerEvent.USER_TYPING, payload),
            exclude_conn_id=conn_id,
        )
        return payload
