"""WebSocket chat client.

Connects to the relay, sends join/message/typing events and folds every
server event into a ``ClientStateStore``. Rendering is left to whoever
subscribes to the store.

Example:
    client = ChatClient()
    await client.connect()
    client.store.subscribe(render)
    listener = asyncio.create_task(client.listen())
    await client.join("alice")
    client.keystroke()
    await client.submit("hello")
"""
import asyncio
import json
import logging
from typing import Any, Optional, Set

import websockets
from websockets.exceptions import ConnectionClosed

from chatroom.chat.schemas import ClientEvent, envelope
from chatroom.config import get_config

from .debounce import AsyncioClock, Clock, TypingDebouncer
from .projector import CONNECT_EVENT, DISCONNECT_EVENT, ClientStateStore

logger = logging.getLogger(__name__)


class ChatClient:
    """Client for the ``/ws/chat`` relay.

    Args:
        server_url: WebSocket URL; defaults to ``client.server_url`` from config.
        store: State store to project events into.
        clock: Clock for the typing debounce timer.
        typing_delay: Seconds before "stopped typing" is sent; defaults to
            ``client.typing_stop_delay_ms`` from config.
    """

    def __init__(
        self,
        server_url: Optional[str] = None,
        store: Optional[ClientStateStore] = None,
        clock: Optional[Clock] = None,
        typing_delay: Optional[float] = None,
    ) -> None:
        settings = get_config().client
        self.server_url = server_url or settings.server_url
        self.store = store or ClientStateStore()
        if typing_delay is None:
            typing_delay = settings.typing_stop_delay_ms / 1000
        self.debouncer = TypingDebouncer(self._send_typing, clock or AsyncioClock(), typing_delay)
        self._ws: Any = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def connected(self) -> bool:
        return self.store.state.connected

    async def connect(self) -> None:
        self._ws = await websockets.connect(self.server_url)
        logger.info("Connected to server %s", self.server_url)
        self.store.apply({"type": CONNECT_EVENT})

    async def close(self) -> None:
        self.debouncer.cancel()
        if self._ws is not None:
            await self._ws.close()
        self._mark_disconnected()

    async def listen(self) -> None:
        """Apply server events to the store until the connection closes."""
        try:
            async for raw in self._ws:
                try:
                    self.store.apply(json.loads(raw))
                except (ValueError, KeyError, TypeError, AttributeError) as e:
                    logger.warning("Ignoring malformed server frame: %s", e)
        except ConnectionClosed:
            pass
        finally:
            self._mark_disconnected()

    # =========================================================================
    # Outbound events
    # =========================================================================

    async def join(self, username: str) -> bool:
        if not username.strip():
            return False
        return await self._emit(ClientEvent.JOIN, username)

    async def send_message(self, text: str) -> bool:
        if not text.strip():
            return False
        return await self._emit(ClientEvent.MESSAGE_SEND, {"text": text})

    async def set_typing(self, is_typing: bool) -> bool:
        return await self._emit(ClientEvent.TYPING, is_typing)

    def keystroke(self) -> None:
        """Report one keystroke in the message input."""
        self.debouncer.keystroke()

    async def submit(self, text: str) -> bool:
        """Send a message from the input and stop the typing indicator."""
        if not await self.send_message(text):
            return False
        self.debouncer.message_sent()
        return True

    async def _emit(self, event: ClientEvent, data: Any) -> bool:
        if self._ws is None or not self.connected:
            return False
        await self._ws.send(json.dumps(envelope(event, data)))
        return True

    def _send_typing(self, is_typing: bool) -> None:
        # Called from the debouncer, possibly from a loop callback
        task = asyncio.ensure_future(self.set_typing(is_typing))
        self._tasks.add(task)
        task.add_done_callback(self._typing_sent)

    def _typing_sent(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Typing update not sent: %r", exc)

    def _mark_disconnected(self) -> None:
        if self.connected:
            logger.info("Disconnected from server")
            self.store.apply({"type": DISCONNECT_EVENT})
