"""Managed set of live connection handles and fan-out delivery.

Each connection gets its own outbound asyncio.Queue drained by a writer task,
so broadcasting only enqueues: it never waits on a peer's send, and frames
reach each connection in the order they were broadcast. There is no
backpressure; a client that stops reading only grows its own queue.

A connection whose send fails is dropped from the hub and closed, so its
receive loop ends and the usual disconnect cleanup runs.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Anything that can deliver a JSON frame (e.g. fastapi.WebSocket)."""

    async def send_json(self, data: Any) -> None:
        ...


def _discard(queue: asyncio.Queue) -> None:
    while not queue.empty():
        queue.get_nowait()
        queue.task_done()


class ConnectionHub:
    """Tracks every accepted connection, joined or not.

    A connection is added when the transport accepts it and removed when it
    disconnects, so presence and message events also reach connections that
    have not sent ``user:join`` yet. ``add()`` must be called from a running
    event loop.
    """

    def __init__(self) -> None:
        # conn_id -> handle, in accept order
        self.active_connections: Dict[str, Connection] = {}

        # conn_id -> (outbound queue, writer task)
        self._outboxes: Dict[str, Tuple[asyncio.Queue, asyncio.Task]] = {}

    def add(self, conn_id: str, connection: Connection) -> None:
        queue: asyncio.Queue = asyncio.Queue()
        task = asyncio.get_running_loop().create_task(
            self._writer(conn_id, connection, queue)
        )
        self.active_connections[conn_id] = connection
        self._outboxes[conn_id] = (queue, task)

    def remove(self, conn_id: str) -> Optional[Connection]:
        """Stop delivering to a connection; frames still queued are dropped."""
        outbox = self._outboxes.pop(conn_id, None)
        if outbox is not None:
            queue, task = outbox
            if task is not asyncio.current_task():
                task.cancel()
            _discard(queue)
        return self.active_connections.pop(conn_id, None)

    def clear(self) -> None:
        for conn_id in list(self.active_connections):
            self.remove(conn_id)

    def __len__(self) -> int:
        return len(self.active_connections)

    def __contains__(self, conn_id: object) -> bool:
        return conn_id in self.active_connections

    def broadcast(self, message: dict) -> None:
        """Queue a frame for every live connection.

        Args:
            message: JSON-serializable frame to broadcast.
        """
        for conn_id in self.active_connections:
            self._enqueue(conn_id, message)

    def broadcast_except(self, message: dict, exclude_conn_id: str) -> None:
        """Queue a frame for every live connection except one.

        Args:
            message: JSON-serializable frame to broadcast.
            exclude_conn_id: Connection that must not receive the frame.
        """
        for conn_id in self.active_connections:
            if conn_id != exclude_conn_id:
                self._enqueue(conn_id, message)

    async def flush(self, *conn_ids: str) -> None:
        """Wait until the given connections (default: all) have sent everything queued."""
        targets = conn_ids or tuple(self._outboxes)
        queues: List[asyncio.Queue] = [
            self._outboxes[conn_id][0] for conn_id in targets if conn_id in self._outboxes
        ]
        await asyncio.gather(*[queue.join() for queue in queues])

    def _enqueue(self, conn_id: str, message: dict) -> None:
        outbox = self._outboxes.get(conn_id)
        if outbox is not None:
            outbox[0].put_nowait(message)

    async def _writer(
        self, conn_id: str, connection: Connection, queue: asyncio.Queue
    ) -> None:
        while True:
            message = await queue.get()
            try:
                sent = await self._safe_send(connection, message)
            finally:
                queue.task_done()
            if not sent:
                _discard(queue)
                self._cleanup_connection(conn_id)
                await self._close_quietly(connection)
                return

    async def _safe_send(self, connection: Connection, message: dict) -> bool:
        """Send a frame to one connection.

        Returns:
            True if successful, False if the connection failed.
        """
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False

    def _cleanup_connection(self, conn_id: str) -> None:
        if self.remove(conn_id) is not None:
            logger.debug(f"Removed dead connection {conn_id}")

    async def _close_quietly(self, connection: Connection) -> None:
        close = getattr(connection, "close", None)
        if close is None:
            return
        try:
            await close(code=1011)  # 1011 = Internal Error
        except Exception as e:
            logger.debug(f"Closing dead connection failed: {e}")
