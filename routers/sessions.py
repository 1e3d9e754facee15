from typing import Optional, Union

from fastapi import APIRouter

from constants import GAME_SLOTS, HISTORY_SUMMARY_LIMIT, MODERATION_MAX_TOKENS
from dependencies import CompletionDep, StoreDep
from exceptions import UpstreamFailure, ValidationError, require_fields
from logging_config import get_logger
from prompts import format_warning, render_moderation_report, render_turn_feedback
from schemas.common import history_entries, participant_stats
from schemas.sessions import (
    CreateSessionRequest,
    CreateSessionResponse,
    ModerationResponse,
    SessionStatusResponse,
    TurnRequest,
    TurnResponse,
)

logger = get_logger(__name__)

sessions_router = APIRouter(prefix="/api/game", tags=["game"])


def resolve_player_slot(player: Optional[Union[int, str]]) -> str:
    """Accept ``1``/``2``, ``"1"``/``"2"`` or the slot name itself."""
    value = str(player).strip().lower()
    if value.isdigit():
        value = f"player{value}"
    if value not in GAME_SLOTS:
        raise ValidationError(f"Invalid player '{player}', expected 1 or 2")
    return value


@sessions_router.post("/session", response_model=CreateSessionResponse)
async def create_session(store: StoreDep, body: CreateSessionRequest = CreateSessionRequest()):
    # Body: { "player1Name": "...", "player2Name": "...", "gameType": "..." }
    # Response 200: { "sessionId": "lzx1k2...", "message": "Game session created successfully" }
    require_fields(
        {"player1Name": body.player1_name, "player2Name": body.player2_name, "gameType": body.game_type},
        ["player1Name", "player2Name", "gameType"],
    )
    record = store.create_game(body.player1_name, body.player2_name, body.game_type)
    return CreateSessionResponse(session_id=record.id)


@sessions_router.post("/{session_id}/turn", response_model=TurnResponse)
async def submit_turn(
    session_id: str, store: StoreDep, completion: CompletionDep, body: TurnRequest = TurnRequest()
):
    # Body: { "player": 1, "content": "The door creaked open..." }
    require_fields({"player": body.player, "content": body.content}, ["player", "content"])
    store.get(session_id, kind="game")
    slot = resolve_player_slot(body.player)

    # The turn stays recorded even if the completion call below fails.
    record, entry, verdict = store.append_turn(session_id, slot, body.content)
    participant = record.participants[slot]
    logger.info(f"Turn from {slot} in session {session_id} (flagged={verdict.flagged})")

    ai_response = await completion.complete(render_turn_feedback(record.game_type, entry.speaker_name, entry.content))
    if verdict.flagged:
        ai_response = format_warning(participant.violations, store.ban_threshold) + ai_response

    return TurnResponse(
        ai_response=ai_response,
        flagged=verdict.flagged,
        player_stats=participant_stats(record),
        banned_players=sorted(record.banned),
        is_banned=record.is_banned(slot),
    )


@sessions_router.get("/{session_id}/status", response_model=SessionStatusResponse)
async def get_status(session_id: str, store: StoreDep):
    record = store.get(session_id, kind="game")
    logger.debug(f"Status request for session {session_id}: {len(record.history)} turns")
    return SessionStatusResponse(
        session_id=record.id,
        player1_name=record.participants["player1"].name,
        player2_name=record.participants["player2"].name,
        game_type=record.game_type,
        created_at=record.created_at,
        player_stats=participant_stats(record),
        banned_players=sorted(record.banned),
        turn_count=len(record.history),
        game_history=history_entries(record.recent_history(HISTORY_SUMMARY_LIMIT)),
    )


@sessions_router.post("/{session_id}/moderate", response_model=ModerationResponse)
async def moderate_session(session_id: str, store: StoreDep, completion: CompletionDep):
    record = store.get(session_id, kind="game")
    flagged = [entry for entry in record.history if store.classifier.classify(entry.content).flagged]
    logger.info(f"Moderation report requested for session {session_id}: {len(flagged)} flagged of {len(record.history)}")

    try:
        ai_response = await completion.complete(
            render_moderation_report(record.history, flagged),
            max_tokens=MODERATION_MAX_TOKENS,
        )
    except UpstreamFailure as e:
        raise UpstreamFailure("Failed to get AI moderation report", detail=e.detail) from e

    return ModerationResponse(
        ai_response=ai_response,
        flagged_instances=history_entries(flagged),
        player_stats=participant_stats(record),
        banned_players=sorted(record.banned),
    )
