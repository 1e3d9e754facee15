import json
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend import SessionStore
from completion import CompletionClient
from connections import Connection, ConnectionRegistry
from constants import FRONTEND_URL, LOG_FILE, LOG_LEVEL, STATIC_DIR
from exceptions import AppException, MalformedMessage, UpstreamFailure, ValidationError, from_request_errors
from logging_config import get_logger, setup_logging
from routers.rooms import rooms_router
from routers.sessions import sessions_router

setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

# Envelope types on the /ws channel
CONNECTION_ESTABLISHED = "connection-established"
JOIN_ROOM = "join-room"
ROOM_JOINED = "room-joined"
PEER_JOINED = "peer-joined"
PEER_LEFT = "peer-left"
ERROR = "error"
SIGNALING_TYPES = {"offer", "answer", "ice-candidate"}


def parse_envelope(data: Union[str, bytes]) -> Dict[str, Any]:
    """Decode one real-time envelope. Anything but a JSON object is malformed."""
    try:
        envelope = json.loads(data)
    except ValueError as e:
        raise MalformedMessage("Envelope is not valid JSON", detail=str(e)) from e
    if not isinstance(envelope, dict):
        raise MalformedMessage(f"Envelope must be a JSON object, got {type(envelope).__name__}")
    return envelope


def check_envelope_fields(envelope: Dict[str, Any]) -> None:
    """``type`` must be a string, and so must ``roomId`` when present."""
    message_type = envelope.get("type")
    if not isinstance(message_type, str):
        raise MalformedMessage(f"Envelope type must be a string, got {type(message_type).__name__}")
    room_id = envelope.get("roomId")
    if room_id is not None and not isinstance(room_id, str):
        raise MalformedMessage(f"Envelope roomId must be a string, got {type(room_id).__name__}")


async def receive_payload(websocket: WebSocket) -> Union[str, bytes]:
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    if message.get("text") is not None:
        return message["text"]
    return message.get("bytes") or b""


async def send_envelope(connection: Connection, payload: Dict[str, Any]) -> None:
    try:
        await connection.websocket.send_text(json.dumps(payload))
    except (WebSocketDisconnect, ConnectionError, RuntimeError) as e:
        logger.warning(f"Could not send {payload.get('type')} to connection {connection.id}: {e}")


async def handle_join_room(
    connection: Connection,
    envelope: Dict[str, Any],
    registry: ConnectionRegistry,
    store: SessionStore,
) -> None:
    room_id = envelope.get("roomId")
    if not room_id or room_id not in store:
        logger.warning(f"Connection {connection.id} tried to join unknown room {room_id}")
        await send_envelope(connection, {"type": ERROR, "code": "room-not-found", "roomId": room_id})
        return

    name = envelope.get("name")
    if name is not None and not isinstance(name, str):
        logger.warning(f"Connection {connection.id} sent non-string name for room {room_id}")
        await send_envelope(connection, {"type": ERROR, "code": "invalid-name", "roomId": room_id})
        return

    role = envelope.get("role")
    if role:
        try:
            store.mark_joined(room_id, str(role).strip().lower(), name)
        except ValidationError as e:
            logger.warning(f"Connection {connection.id} sent invalid role for room {room_id}: {e.message}")
            await send_envelope(connection, {"type": ERROR, "code": "invalid-role", "message": e.message})
            return

    previous_room = connection.room_id
    registry.join(connection.id, room_id)
    if previous_room and previous_room != room_id:
        await registry.broadcast(connection.id, previous_room, {
            "type": PEER_LEFT, "connectionId": connection.id, "roomId": previous_room,
        })

    peers = [member.id for member in registry.members(room_id) if member.id != connection.id]
    await send_envelope(connection, {
        "type": ROOM_JOINED, "roomId": room_id, "connectionId": connection.id, "peers": peers,
    })
    if previous_room == room_id:
        return
    await registry.broadcast(connection.id, room_id, {
        "type": PEER_JOINED, "connectionId": connection.id, "roomId": room_id, "role": role,
    })


async def handle_envelope(
    connection: Connection,
    envelope: Dict[str, Any],
    registry: ConnectionRegistry,
    store: SessionStore,
) -> None:
    check_envelope_fields(envelope)
    message_type = envelope["type"]
    if message_type == JOIN_ROOM:
        await handle_join_room(connection, envelope, registry, store)
        return

    room_id = connection.room_id
    if room_id is None:
        logger.warning(f"Dropping {message_type!r} from connection {connection.id}: not in a room")
        return
    if message_type not in SIGNALING_TYPES:
        logger.debug(f"Relaying unrecognized type {message_type!r} from {connection.id} to room {room_id}")

    # sender identity and room always come from the connection, never the client
    envelope["connectionId"] = connection.id
    envelope["roomId"] = room_id
    await registry.broadcast(connection.id, room_id, envelope)


async def websocket_endpoint(websocket: WebSocket):
    """Signaling relay: every envelope is forwarded to the other connections in the sender's room."""
    registry: ConnectionRegistry = websocket.app.state.registry
    store: SessionStore = websocket.app.state.store

    await websocket.accept()
    connection = registry.connect(websocket)
    logger.info(f"WebSocket connection accepted: {connection.id}")

    try:
        await send_envelope(connection, {"type": CONNECTION_ESTABLISHED, "connectionId": connection.id})

        message_count = 0
        while True:
            data = await receive_payload(websocket)
            message_count += 1
            try:
                envelope = parse_envelope(data)
                logger.debug(f"Received {envelope.get('type')!r} (#{message_count}) from connection {connection.id}")
                await handle_envelope(connection, envelope, registry, store)
            except MalformedMessage as e:
                logger.warning(f"Dropping malformed message #{message_count} from connection {connection.id}: {e.message}")

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected normally for connection {connection.id}")
    except Exception as e:
        logger.error(f"WebSocket error for connection {connection.id}: {e}", exc_info=True)
    finally:
        removed = registry.remove(connection.id)
        if removed and removed.room_id:
            logger.info(f"Connection {connection.id} left room {removed.room_id}")
            await registry.broadcast(connection.id, removed.room_id, {
                "type": PEER_LEFT, "connectionId": connection.id, "roomId": removed.room_id,
            })


async def app_exception_handler(request: Request, exc: AppException):
    if isinstance(exc, UpstreamFailure):
        logger.error(f"Upstream failure on {request.method} {request.url.path}: {exc.message} ({exc.detail})")
    else:
        logger.warning(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return await app_exception_handler(request, from_request_errors(exc.errors()))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


class SinglePageStaticFiles(StaticFiles):
    """Static files that answer unknown non-API paths with ``index.html`` for client-side routing."""

    async def get_response(self, path: str, scope):
        try:
            return await super().get_response(path, scope)
        except StarletteHTTPException as e:
            if e.status_code != 404 or path.split("/", 1)[0] == "api":
                raise
            return await super().get_response("index.html", scope)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup complete")
    yield
    logger.info("Application shutdown initiated")
    app.state.registry.clear()
    app.state.store.clear()
    await app.state.completion.aclose()
    logger.info("Application shutdown complete")


def create_app(
    store: Optional[SessionStore] = None,
    registry: Optional[ConnectionRegistry] = None,
    completion: Optional[CompletionClient] = None,
    static_dir: Optional[str] = STATIC_DIR,
) -> FastAPI:
    app = FastAPI(title="pairplay", version="1.0.0", lifespan=lifespan)
    app.state.store = store if store is not None else SessionStore()
    app.state.registry = registry if registry is not None else ConnectionRegistry()
    app.state.completion = completion if completion is not None else CompletionClient()

    # Configure CORS for the frontend origin (all origins by default)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[FRONTEND_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
        return response

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(sessions_router)
    app.include_router(rooms_router)

    @app.get("/health")
    async def health():
        return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.add_api_websocket_route("/ws", websocket_endpoint)

    if static_dir and os.path.isdir(static_dir):
        app.mount("/", SinglePageStaticFiles(directory=static_dir, html=True), name="static")
        logger.info(f"Serving static files from {static_dir}")

    logger.info("FastAPI application initialized")
    return app


app = create_app()
