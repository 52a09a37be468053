"""Wire protocol for the chat relay.

Every frame in either direction is a JSON object of the form
``{"type": <event name>, "data": <payload>}``.

Client → server:
    - user:join     data is the username string
    - message:send  data is ``{"text": str}``
    - user:typing   data is a boolean

Server → client:
    - user:joined / user:left  ``UserPresencePayload``
    - message:receive          ``MessagePayload``
    - user:typing              ``TypingPayload``
"""
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ClientEvent(str, Enum):
    """Events sent by clients."""
    JOIN = "user:join"
    MESSAGE_SEND = "message:send"
    TYPING = "user:typing"


class ServerEvent(str, Enum):
    """Events broadcast by the server."""
    USER_JOINED = "user:joined"
    USER_LEFT = "user:left"
    MESSAGE_RECEIVE = "message:receive"
    USER_TYPING = "user:typing"


class UserPresencePayload(BaseModel):
    """Presence event data carrying a full roster snapshot.

    Attributes:
        id: Connection id of the joining or departing connection.
        username: Its username ("Unknown" for a connection that never joined).
        users: Usernames of every registered connection, in registration order.
    """
    id: str = Field(..., description="Connection id")
    username: str = Field(..., description="Username of the connection")
    users: List[str] = Field(default_factory=list, description="Roster snapshot")


class MessagePayload(BaseModel):
    """A relayed chat message.

    Attributes:
        id: Epoch milliseconds at relay time. Not a sequence number.
        text: Message text as sent.
        username: Resolved sender name ("Anonymous" if the sender never joined).
        timestamp: ISO-8601 UTC time at relay time.
    """
    id: int = Field(..., description="Epoch milliseconds at relay time")
    text: str = Field(..., description="Message text")
    username: str = Field(..., description="Sender username")
    timestamp: str = Field(..., description="ISO-8601 relay time")


class TypingPayload(BaseModel):
    username: str = Field(..., description="Username of the typist")
    isTyping: bool = Field(..., description="Whether the user is typing now")


def envelope(event: str, data: Any) -> Dict[str, Any]:
    """Wrap a payload into a wire frame."""
    if isinstance(event, Enum):
        event = event.value
    if isinstance(data, BaseModel):
        data = data.model_dump()
    return {"type": event, "data": data}
