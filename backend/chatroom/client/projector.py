"""Project server events into the client's local view.

``project()`` is a pure reducer: it never mutates the previous state, so any
state handed to a subscriber stays valid. ``ClientStateStore`` holds the
current state and notifies subscribers after each applied event.

Event handling:
    - message:receive        append to the message log (arrival order)
    - user:joined, user:left replace the roster with the event's snapshot
    - user:typing            merge ``{username: isTyping}`` into the typing map
    - connect, disconnect    transport lifecycle, toggles ``connected``
    - anything else          ignored

Typing entries are never removed. A user who disconnects while typing keeps
their last flag until they send another typing event.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from chatroom.chat.schemas import MessagePayload, ServerEvent

logger = logging.getLogger(__name__)

# Transport lifecycle pseudo-events, not part of the wire protocol
CONNECT_EVENT = "connect"
DISCONNECT_EVENT = "disconnect"

Listener = Callable[["ClientState"], None]


def _frozen(mapping: Dict[str, bool]) -> Mapping[str, bool]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class ClientState:
    """Local view of the room."""

    messages: Tuple[MessagePayload, ...] = ()
    users: Tuple[str, ...] = ()
    typing: Mapping[str, bool] = field(default_factory=lambda: _frozen({}))
    connected: bool = False

    def active_typers(self) -> List[str]:
        """Usernames currently flagged as typing, in first-seen order."""
        return [name for name, is_typing in self.typing.items() if is_typing]


def _on_message(state: ClientState, data: Any) -> ClientState:
    message = data if isinstance(data, MessagePayload) else MessagePayload(**data)
    return replace(state, messages=state.messages + (message,))


def _on_roster(state: ClientState, data: Any) -> ClientState:
    return replace(state, users=tuple(data["users"]))


def _on_typing(state: ClientState, data: Any) -> ClientState:
    typing = dict(state.typing)
    typing[data["username"]] = bool(data["isTyping"])
    return replace(state, typing=_frozen(typing))


def _on_connect(state: ClientState, data: Any) -> ClientState:
    return replace(state, connected=True)


def _on_disconnect(state: ClientState, data: Any) -> ClientState:
    return replace(state, connected=False)


_HANDLERS: Dict[str, Callable[[ClientState, Any], ClientState]] = {
    ServerEvent.MESSAGE_RECEIVE.value: _on_message,
    ServerEvent.USER_JOINED.value: _on_roster,
    ServerEvent.USER_LEFT.value: _on_roster,
    ServerEvent.USER_TYPING.value: _on_typing,
    CONNECT_EVENT: _on_connect,
    DISCONNECT_EVENT: _on_disconnect,
}


def project(state: ClientState, event: Mapping[str, Any]) -> ClientState:
    """Apply one ``{"type": ..., "data": ...}`` event and return the new state."""
    handler = _HANDLERS.get(event.get("type"))
    if handler is None:
        return state
    return handler(state, event.get("data"))


class ClientStateStore:
    """Holds the current ClientState and notifies subscribers on change."""

    def __init__(self, initial: ClientState | None = None) -> None:
        self.state = initial or ClientState()
        self._listeners: List[Listener] = []

    def apply(self, event: Mapping[str, Any]) -> ClientState:
        new_state = project(self.state, event)
        if new_state is not self.state:
            self.state = new_state
            self._notify()
        return self.state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:
                logger.exception("State listener failed")
