from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from starlette.websockets import WebSocketState
from pydantic import ValidationError
from contextlib import asynccontextmanager
from typing import Optional
import asyncio

from backend import connect_to_database
from connection import Connection
from constants import FRONTEND_URL, SOCKET_CORS_ORIGIN, CORS_METHODS, LOG_LEVEL, LOG_FILE
from hub import SignalingHub
from logging_config import get_logger, setup_logging
from routers.health import health_router
from schemas.signaling import ClientFrame

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Database outcome is only logged; serving starts without waiting for it
    bootstrap = asyncio.create_task(connect_to_database())
    yield
    logger.info("Signaling server shutting down")
    if not bootstrap.done():
        bootstrap.cancel()
        try:
            await bootstrap
        except asyncio.CancelledError:
            logger.debug("Database bootstrap cancelled at shutdown")


def origin_allowed(origin: Optional[str], allowed: list[str]) -> bool:
    # Non-browser clients send no Origin header
    if origin is None or "*" in allowed:
        return True
    return origin in allowed


def parse_frame(raw: str) -> Optional[ClientFrame]:
    try:
        return ClientFrame.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Ignoring malformed frame: {e.error_count()} error(s), first: {e.errors()[0]['msg']}")
        return None


async def signaling_endpoint(websocket: WebSocket):
    """Signaling websocket.

    Client frames: {"event": name, "data": {...}, "ack": id}. When an ack id is
    given and the event produces a result, the reply is
    {"event": "ack", "ack": id, "data": result}.
    """
    origin = websocket.headers.get("origin")
    if not origin_allowed(origin, SOCKET_CORS_ORIGIN):
        logger.warning(f"WebSocket connection rejected: origin {origin} not allowed")
        await websocket.close(code=1008, reason="Origin not allowed")
        return

    hub: SignalingHub = websocket.app.state.hub
    await websocket.accept()

    connection = Connection(websocket)
    connection_id = connection.connection_id
    writer = asyncio.create_task(connection.run_writer())
    hub.connect(connection)

    try:
        message_count = 0
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect:
                logger.info(f"WebSocket disconnected normally for connection {connection_id}")
                break

            message_count += 1
            frame = parse_frame(raw)
            if frame is None:
                continue

            logger.debug(f"Received '{frame.event}' (#{message_count}) from connection {connection_id}")
            result = hub.dispatch(connection_id, frame.event, frame.data)
            if frame.ack is not None and result is not None:
                connection.send("ack", result, ack=frame.ack)
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection_id}: {e}", exc_info=True)
    finally:
        hub.disconnect(connection_id)
        connection.close()
        await writer

        if websocket.client_state == WebSocketState.CONNECTED:
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing WebSocket: {e}")


def create_app(hub: Optional[SignalingHub] = None) -> FastAPI:
    app = FastAPI(title="Signaling relay", lifespan=lifespan)
    app.state.hub = hub if hub is not None else SignalingHub()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=FRONTEND_URL,
        allow_credentials=True,
        allow_methods=CORS_METHODS,
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.add_api_websocket_route("/ws", signaling_endpoint)

    logger.info("FastAPI application initialized")
    return app


app = create_app()
