"""
Content moderation.

The store only needs a yes/no answer for each piece of text, so moderation is
a single ``classify`` call behind the ``Classifier`` protocol. The denylist
classifier below is the default; a stricter implementation can be passed to
``SessionStore`` without touching the relay or session logic.
"""

from dataclasses import dataclass
from typing import Iterable, Protocol, Tuple

from constants import DENYLIST_WORDS


@dataclass(frozen=True)
class Verdict:
    flagged: bool
    matches: Tuple[str, ...] = ()


class Classifier(Protocol):
    def classify(self, text: str) -> Verdict:
        ...


class DenylistClassifier:
    """Flags text containing any denylisted word as a case-insensitive substring."""

    def __init__(self, words: Iterable[str] = DENYLIST_WORDS):
        self.words = tuple(word.lower() for word in words if word)

    def classify(self, text: str) -> Verdict:
        lowered = (text or "").lower()
        matches = tuple(word for word in self.words if word in lowered)
        return Verdict(flagged=bool(matches), matches=matches)
