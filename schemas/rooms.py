from datetime import datetime
from typing import Dict, List, Optional

from schemas.common import CamelModel, HistoryEntry, ParticipantStats


class CreateRoomRequest(CamelModel):
    host_name: Optional[str] = None
    guest_name: Optional[str] = None

class JoinRoomRequest(CamelModel):
    role: Optional[str] = None
    name: Optional[str] = None

class RoomMessageRequest(CamelModel):
    role: Optional[str] = None
    content: Optional[str] = None

class RoomDetailsResponse(CamelModel):
    room_id: str
    ws_url: str
    host_name: Optional[str]
    guest_name: Optional[str]
    host_joined: bool
    guest_joined: bool
    created_at: datetime
    participants: Dict[str, ParticipantStats]
    banned: List[str]
    online_count: int
    message_count: int
    messages: List[HistoryEntry]

class RoomMessageResponse(CamelModel):
    success: bool = True
    flagged: bool
    is_banned: bool
    room: RoomDetailsResponse
