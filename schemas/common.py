from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case fields in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ParticipantStats(CamelModel):
    name: Optional[str] = None
    joined: bool = False
    turns: int = 0
    words: int = 0
    violations: int = 0


class HistoryEntry(CamelModel):
    player: str
    player_name: Optional[str] = None
    content: str
    flagged: bool = False
    timestamp: datetime


def participant_stats(record) -> Dict[str, ParticipantStats]:
    return {
        slot: ParticipantStats(
            name=participant.name,
            joined=participant.joined,
            turns=participant.turns,
            words=participant.words,
            violations=participant.violations,
        )
        for slot, participant in record.participants.items()
    }


def history_entries(entries) -> List[HistoryEntry]:
    return [
        HistoryEntry(
            player=entry.speaker,
            player_name=entry.speaker_name,
            content=entry.content,
            flagged=entry.flagged,
            timestamp=entry.timestamp,
        )
        for entry in entries
    ]
