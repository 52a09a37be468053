"""Chatroom Backend Application.

Entry point for the chat relay service: a FastAPI application exposing the
chat WebSocket and a health check.

Modules:
    - chat: WebSocket relay (presence, messages, typing indicators)
    - client: Python client (state projection, typing debounce)
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chatroom import __version__
from chatroom.chat.router import router as chat_router
from chatroom.chat.service import ChatService
from chatroom.config import get_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# uvicorn logs every websocket frame at debug level
for _noisy in (
    "websockets",
    "uvicorn.access",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in chatroom.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    service = ChatService()
    service.start()
    app.state.chat_service = service
    logger.info(
        f"Chat relay ready on ws://{config.server.host}:{config.server.port}/ws/chat "
        f"(allowed origins: {config.server.allowed_origins})"
    )

    yield  # Application runs here

    # Shutdown
    service.stop()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI application."""
    config = get_config()

    application = FastAPI(
        title="Chatroom API",
        description="Real-time single-room chat relay",
        version=__version__,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    application.include_router(chat_router)

    @application.get("/health")
    async def health() -> dict:
        """Health check endpoint.

        Returns:
            dict: Status plus live connection and joined user counts.
        """
        service: ChatService = application.state.chat_service
        return {
            "status": "ok",
            "connections": len(service.hub),
            "users": len(service.registry),
        }

    return application


app = create_app()


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    config = get_config()
    uvicorn.run(
        "chatroom.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level,
    )


if __name__ == "__main__":
    run()
