from datetime import datetime
from typing import Dict, List, Optional, Union

from schemas.common import CamelModel, HistoryEntry, ParticipantStats


class CreateSessionRequest(CamelModel):
    player1_name: Optional[str] = None
    player2_name: Optional[str] = None
    game_type: Optional[str] = None

class CreateSessionResponse(CamelModel):
    session_id: str
    message: str = "Game session created successfully"

class TurnRequest(CamelModel):
    player: Optional[Union[int, str]] = None
    content: Optional[str] = None

class TurnResponse(CamelModel):
    success: bool = True
    ai_response: str
    flagged: bool
    player_stats: Dict[str, ParticipantStats]
    banned_players: List[str]
    is_banned: bool

class SessionStatusResponse(CamelModel):
    session_id: str
    player1_name: Optional[str]
    player2_name: Optional[str]
    game_type: Optional[str]
    created_at: datetime
    player_stats: Dict[str, ParticipantStats]
    banned_players: List[str]
    turn_count: int
    game_history: List[HistoryEntry]

class ModerationResponse(CamelModel):
    success: bool = True
    ai_response: str
    flagged_instances: List[HistoryEntry]
    player_stats: Dict[str, ParticipantStats]
    banned_players: List[str]
