"""Client side of the chat relay."""
from .connection import ChatClient
from .debounce import AsyncioClock, CancelableTimer, TypingDebouncer
from .projector import ClientState, ClientStateStore, project

__all__ = [
    "AsyncioClock",
    "CancelableTimer",
    "ChatClient",
    "ClientState",
    "ClientStateStore",
    "TypingDebouncer",
    "project",
]
