import random
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set, Tuple

from constants import GAME_SLOTS, ROOM_SLOTS, VIOLATION_BAN_THRESHOLD
from exceptions import ForbiddenError, NotFoundError, ValidationError
from logging_config import get_logger
from moderation import Classifier, DenylistClassifier, Verdict

logger = get_logger(__name__)

BASE36_ALPHABET = string.digits + string.ascii_lowercase

NOT_FOUND_MESSAGES = {"game": "Game session not found", "room": "Room not found"}


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_session_id(random_length: int = 11) -> str:
    """Millisecond timestamp in base36 followed by random base36 characters."""
    timestamp = _to_base36(int(time.time() * 1000))
    return timestamp + "".join(random.choices(BASE36_ALPHABET, k=random_length))


def count_words(content: str) -> int:
    return len(content.split())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Participant:
    name: Optional[str] = None
    joined: bool = False
    turns: int = 0
    words: int = 0
    violations: int = 0


@dataclass
class TurnEntry:
    speaker: str
    speaker_name: Optional[str]
    content: str
    flagged: bool = False
    timestamp: datetime = field(default_factory=utcnow)


@dataclass
class SessionRecord:
    """
    An ephemeral two-participant record.

    Game sessions use the ``player1``/``player2`` slots, signaling rooms use
    ``host``/``guest``. Slots are fixed at creation so joining or speaking
    never adds a participant.
    """

    id: str
    kind: str
    participants: Dict[str, Participant]
    game_type: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    history: List[TurnEntry] = field(default_factory=list)
    banned: Set[str] = field(default_factory=set)

    @property
    def slots(self) -> Tuple[str, ...]:
        return tuple(self.participants)

    def participant(self, slot: str) -> Participant:
        if slot not in self.participants:
            raise ValidationError(
                f"Unknown participant '{slot}', expected one of: {', '.join(self.participants)}",
            )
        return self.participants[slot]

    def is_banned(self, slot: str) -> bool:
        return slot in self.banned

    def recent_history(self, limit: int) -> List[TurnEntry]:
        return self.history[-limit:] if limit > 0 else []


class SessionStore:
    """
    In-memory mapping from session id to ``SessionRecord``.

    One store lives for the lifetime of the application: it is created with the
    app, handed to the handlers through ``app.state`` and cleared on shutdown.
    Records are never removed individually.
    """

    def __init__(self, classifier: Optional[Classifier] = None, ban_threshold: int = VIOLATION_BAN_THRESHOLD):
        self.classifier = classifier or DenylistClassifier()
        self.ban_threshold = ban_threshold
        self._records: Dict[str, SessionRecord] = {}
        logger.info(f"Initializing SessionStore with ban threshold {ban_threshold}")

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._records

    def ids(self) -> List[str]:
        return list(self._records)

    def _insert(self, record: SessionRecord) -> SessionRecord:
        self._records[record.id] = record
        logger.debug(f"Stored {record.kind} {record.id} (total records: {len(self._records)})")
        return record

    def create_game(self, player1_name: str, player2_name: str, game_type: str) -> SessionRecord:
        session_id = generate_session_id()
        logger.info(f"Creating game session {session_id}: {player1_name} vs {player2_name}, game_type={game_type}")
        participants = {
            GAME_SLOTS[0]: Participant(name=player1_name),
            GAME_SLOTS[1]: Participant(name=player2_name),
        }
        return self._insert(SessionRecord(id=session_id, kind="game", participants=participants, game_type=game_type))

    def create_room(self, host_name: str, guest_name: Optional[str] = None) -> SessionRecord:
        room_id = generate_session_id()
        logger.info(f"Creating room {room_id}: host={host_name}, guest={guest_name}")
        participants = {
            ROOM_SLOTS[0]: Participant(name=host_name),
            ROOM_SLOTS[1]: Participant(name=guest_name),
        }
        return self._insert(SessionRecord(id=room_id, kind="room", participants=participants))

    def get(self, session_id: str, kind: Optional[str] = None) -> SessionRecord:
        record = self._records.get(session_id)
        if record is None or (kind is not None and record.kind != kind):
            logger.debug(f"Session {session_id} not found (kind={kind})")
            raise NotFoundError(NOT_FOUND_MESSAGES.get(kind, "Session not found"))
        return record

    def mark_joined(self, session_id: str, role: str, name: Optional[str] = None) -> SessionRecord:
        """Flag ``role`` as joined, overwriting any earlier join for the same role."""
        record = self.get(session_id)
        participant = record.participant(role)
        was_joined = participant.joined
        participant.joined = True
        if name:
            participant.name = name
        logger.info(
            f"{role} ({participant.name}) {'re-joined' if was_joined else 'joined'} {record.kind} {session_id}"
        )
        return record

    def append_turn(self, session_id: str, speaker: str, content: str) -> Tuple[SessionRecord, TurnEntry, Verdict]:
        """
        Record a turn for ``speaker`` and update their counters.

        Raises:
            NotFoundError: unknown session id.
            ValidationError: ``speaker`` is not one of the record's slots.
            ForbiddenError: ``speaker`` has been banned; nothing is recorded.
        """
        record = self.get(session_id)
        participant = record.participant(speaker)
        if record.is_banned(speaker):
            logger.warning(f"Rejected turn from banned {speaker} in {record.kind} {session_id}")
            raise ForbiddenError(f"{speaker} is banned from this {record.kind}")

        verdict = self.classifier.classify(content)
        entry = TurnEntry(speaker=speaker, speaker_name=participant.name, content=content, flagged=verdict.flagged)
        record.history.append(entry)
        participant.turns += 1
        participant.words += count_words(content)

        if verdict.flagged:
            participant.violations += 1
            logger.warning(
                f"Violation {participant.violations}/{self.ban_threshold} by {speaker} in {session_id}: {verdict.matches}"
            )
            if participant.violations >= self.ban_threshold and speaker not in record.banned:
                record.banned.add(speaker)
                logger.warning(f"{speaker} banned from {record.kind} {session_id}")

        logger.debug(f"Turn #{len(record.history)} recorded for {speaker} in {session_id}")
        return record, entry, verdict

    def clear(self) -> None:
        logger.info(f"Clearing SessionStore ({len(self._records)} records)")
        self._records.clear()
