"""Presence Relay application.

Realtime presence-and-relay service: tracks who is online, relays chat and
typing events within conversation rooms, and brokers call-setup signaling
between two users. Nothing is persisted; all state lives in memory for the
lifetime of the process.

Modules:
    - channels: live WebSocket channels and group membership
    - presence: presence registry and connection lifecycle
    - rooms: conversation-scoped relay
    - signaling: offer/answer/candidate broker
    - gateway: WebSocket endpoint and event dispatch
"""
import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from presence_relay.channels.hub import hub
from presence_relay.config import get_config
from presence_relay.gateway.router import websocket_endpoint
from presence_relay.presence.registry import registry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence per-request access noise from the ASGI server.
for _noisy in ("uvicorn.access", "websockets", "websockets.protocol"):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

START_TIME = time.time()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    config = get_config()

    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    logger.info(
        f"[Server] Listening for channels on {config.relay.websocket_path} "
        f"(http://{config.server.host}:{config.server.port})"
    )

    yield  # Application runs here

    logger.info("[Server] Shutting down gracefully...")
    await hub.shutdown()
    logger.info("[Server] All connections closed.")


config = get_config()

app = FastAPI(
    title="Presence Relay",
    description="Realtime presence, room relay and call signaling over WebSockets",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.server.allowed_origins,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_api_websocket_route(config.relay.websocket_path, websocket_endpoint)


@app.get("/api/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status, uptime and connection counts.
    """
    uptime_seconds = int(time.time() - START_TIME)
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "uptime": f"{uptime_seconds} seconds",
        "connectedClients": hub.channel_count(),
        "onlineUsers": len(registry),
    }


@app.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "Presence relay is running"


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    import uvicorn

    settings = get_config()
    uvicorn.run(
        app,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.logging.level,
    )


if __name__ == "__main__":
    run()
