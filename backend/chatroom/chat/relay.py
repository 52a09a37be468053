"""Chat message relay.

Messages are stamped at relay time and echoed to every connection, the sender
included, so the sender renders the server-assigned id and timestamp. Nothing
is stored: a message that does not reach a connection is lost.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .hub import ConnectionHub
from .registry import ConnectionRegistry
from .schemas import MessagePayload, ServerEvent, envelope

logger = logging.getLogger(__name__)

# Sender name for connections that send before joining
ANONYMOUS_USERNAME = "Anonymous"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def to_epoch_millis(moment: datetime) -> int:
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def to_iso8601(moment: datetime) -> str:
    """Format as e.g. ``2024-05-01T12:00:00.123Z``."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MessageRelay:
    """Resolves the sender and fans a message out to all connections.

    Args:
        registry: Registry used to resolve the sender's username.
        hub: Live connections to deliver to.
        clock: Returns the current aware datetime. Message ids are epoch
            milliseconds, so two messages relayed within the same millisecond
            share an id.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        hub: ConnectionHub,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.registry = registry
        self.hub = hub
        self.clock = clock or utc_now

    def build_message(self, conn_id: str, text: str) -> MessagePayload:
        username = self.registry.lookup(conn_id) or ANONYMOUS_USERNAME
        now = self.clock()
        return MessagePayload(
            id=to_epoch_millis(now),
            text=text,
            username=username,
            timestamp=to_iso8601(now),
        )

    def relay(self, conn_id: str, text: str) -> MessagePayload:
        message = self.build_message(conn_id, text)
        logger.info(f"[Chat] Message from {message.username}: {text[:50]}")
        self.hub.broadcast(envelope(ServerEvent.MESSAGE_RECEIVE, message))
        return message
