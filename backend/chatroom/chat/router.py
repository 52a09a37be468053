"""Chat router providing the WebSocket endpoint.

This module provides:
    - WebSocket /ws/chat: Real-time chat relay for the single room

Frames are JSON objects ``{"type": ..., "data": ...}``; see ``schemas``.
Every accepted connection receives presence and message events, whether or
not it has joined. On disconnect, the connection is removed from the registry
and a ``user:left`` event goes to the remaining connections.
"""
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chatroom.config import get_config

from .service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter()


def origin_allowed(origin: str, allowed_origins: list) -> bool:
    """Check a WebSocket Origin header against the configured origins.

    Browsers always send Origin, so a missing header means a non-browser
    client (CLI, tests) and is accepted. A "*" entry in ``allowed_origins``
    disables the check entirely; the default config lists exactly one origin.
    """
    if not origin or "*" in allowed_origins:
        return True
    return origin.rstrip("/") in [o.rstrip("/") for o in allowed_origins]


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for the chat room.

    Args:
        websocket: The WebSocket connection.
    """
    origin = websocket.headers.get("origin", "")
    if not origin_allowed(origin, get_config().server.allowed_origins):
        logger.warning(f"[WS] Rejecting connection from disallowed origin: {origin}")
        await websocket.close(code=1008)  # 1008 = Policy Violation
        return

    service: ChatService = websocket.app.state.chat_service

    await websocket.accept()
    conn_id = service.connect(websocket)
    logger.info(f"[WS] User connected: {conn_id}")

    try:
        while True:
            data = await websocket.receive_json()
            await service.dispatch(conn_id, data)

    except WebSocketDisconnect:
        logger.info(f"[WS] User disconnected: {service.registry.lookup(conn_id) or conn_id}")

    except (KeyError, TypeError, AttributeError, ValueError) as e:
        logger.warning(f"[WS] Malformed frame from {conn_id}, closing connection: {e}")
        await websocket.close(code=1003)  # 1003 = Unsupported Data

    finally:
        await service.disconnect(conn_id)
