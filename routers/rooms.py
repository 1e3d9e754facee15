from fastapi import APIRouter, Request

from constants import HISTORY_SUMMARY_LIMIT, ROOM_SLOTS
from dependencies import RegistryDep, StoreDep
from exceptions import ValidationError, require_fields
from logging_config import get_logger
from schemas.common import history_entries, participant_stats
from schemas.rooms import CreateRoomRequest, JoinRoomRequest, RoomDetailsResponse, RoomMessageRequest, RoomMessageResponse

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/api/rooms", tags=["rooms"])


def build_ws_url(request: Request) -> str:
    # Replace http/https with ws/wss on the request's own base URL
    base_url = str(request.base_url).rstrip('/')
    ws_base = base_url.replace("http://", "ws://").replace("https://", "wss://")
    return f"{ws_base}/ws"


def resolve_role(role: str) -> str:
    value = role.strip().lower()
    if value not in ROOM_SLOTS:
        raise ValidationError(f"Invalid role '{role}', expected one of: {', '.join(ROOM_SLOTS)}")
    return value


def room_details(record, request: Request, online_count: int) -> RoomDetailsResponse:
    host = record.participants["host"]
    guest = record.participants["guest"]
    return RoomDetailsResponse(
        room_id=record.id,
        ws_url=build_ws_url(request),
        host_name=host.name,
        guest_name=guest.name,
        host_joined=host.joined,
        guest_joined=guest.joined,
        created_at=record.created_at,
        participants=participant_stats(record),
        banned=sorted(record.banned),
        online_count=online_count,
        message_count=len(record.history),
        messages=history_entries(record.recent_history(HISTORY_SUMMARY_LIMIT)),
    )


@rooms_router.post("", response_model=RoomDetailsResponse)
async def create_room(
    request: Request, store: StoreDep, registry: RegistryDep, body: CreateRoomRequest = CreateRoomRequest()
):
    # Body: { "hostName": "...", "guestName": "optional" }
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Room creation request from {client_host}, host: {body.host_name}")
    require_fields({"hostName": body.host_name}, ["hostName"])
    record = store.create_room(body.host_name, body.guest_name or None)
    return room_details(record, request, len(registry.members(record.id)))


@rooms_router.get("/{room_id}", response_model=RoomDetailsResponse)
async def get_room_details(room_id: str, request: Request, store: StoreDep, registry: RegistryDep):
    record = store.get(room_id, kind="room")
    online_count = len(registry.members(room_id))
    logger.debug(f"Room details retrieved for {room_id}: {online_count} connections online")
    return room_details(record, request, online_count)


@rooms_router.post("/{room_id}/join", response_model=RoomDetailsResponse)
async def join_room(
    room_id: str, request: Request, store: StoreDep, registry: RegistryDep, body: JoinRoomRequest = JoinRoomRequest()
):
    # Body: { "role": "host" | "guest", "name": "optional display name" }
    # The signaling socket is tagged separately by the join-room envelope on /ws.
    require_fields({"role": body.role}, ["role"])
    store.get(room_id, kind="room")
    record = store.mark_joined(room_id, resolve_role(body.role), body.name)
    return room_details(record, request, len(registry.members(room_id)))


@rooms_router.post("/{room_id}/messages", response_model=RoomMessageResponse)
async def post_message(
    room_id: str,
    request: Request,
    store: StoreDep,
    registry: RegistryDep,
    body: RoomMessageRequest = RoomMessageRequest(),
):
    require_fields({"role": body.role, "content": body.content}, ["role", "content"])
    store.get(room_id, kind="room")
    role = resolve_role(body.role)
    record, entry, verdict = store.append_turn(room_id, role, body.content)

    # Connected peers see the chat message on the signaling channel as well
    await registry.broadcast(None, room_id, {
        "type": "chat-message",
        "roomId": room_id,
        "role": role,
        "name": entry.speaker_name,
        "content": entry.content,
        "flagged": entry.flagged,
        "timestamp": entry.timestamp.isoformat(),
    })

    return RoomMessageResponse(
        flagged=verdict.flagged,
        is_banned=record.is_banned(role),
        room=room_details(record, request, len(registry.members(room_id))),
    )
