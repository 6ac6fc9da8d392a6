"""Message heuristics: pure, case-insensitive predicates over raw text."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from brainstore.chat.session import Message

_GREETING = re.compile(
    r"^(?:hi|hello|hey|how are you|how's it going|what's up|"
    r"i'm good|i'm fine|thanks|thank you)\b",
    re.IGNORECASE,
)

_IDENTITY = re.compile(r"what.*name|who are you|your name", re.IGNORECASE)

AMBIGUOUS_MESSAGES = frozenset({"president", "the president", "it", "that", "this"})

_DISAMBIGUATING = re.compile(
    r"\b(?:president|us|u\.s\.|usa|united states|america)(?!\w)", re.IGNORECASE
)

# How many of the latest user turns count as "recent" context.
RECENT_USER_TURNS = 2


def is_greeting_or_small_talk(message: str) -> bool:
    """Greetings, how-are-you replies and thanks."""
    return bool(_GREETING.match(message.strip()))


def is_identity_query(message: str) -> bool:
    """Questions about the assistant's name or identity."""
    return bool(_IDENTITY.search(message))


def is_ambiguous(message: str) -> bool:
    """True when the whole message is a bare context-dependent reference.

    Trailing sentence punctuation is ignored, so "president?" counts.
    """
    normalized = " ".join(message.strip().rstrip(".!?").split()).lower()
    return normalized in AMBIGUOUS_MESSAGES


def has_recent_disambiguating_context(transcript: Sequence[Message]) -> bool:
    """Whether one of the last two user turns already names the subject."""
    user_turns = [m.content for m in transcript if m.role == "user"]
    return any(_DISAMBIGUATING.search(text) for text in user_turns[-RECENT_USER_TURNS:])


def is_real_time_query(message: str) -> bool:
    """Requests for the current time or weather."""
    lowered = message.lower()
    return (
        "current time" in lowered
        or "weather" in lowered
        or ("time" in lowered and "now" in lowered)
    )


@dataclass(frozen=True)
class MessageFlags:
    """Every heuristic evaluated once for a turn."""

    greeting: bool = False
    identity: bool = False
    ambiguous: bool = False
    real_time: bool = False
    recent_context: bool = False

    @property
    def needs_clarification(self) -> bool:
        return self.ambiguous and not self.recent_context

    @classmethod
    def classify(cls, message: str, transcript: Sequence[Message] = ()) -> MessageFlags:
        return cls(
            greeting=is_greeting_or_small_talk(message),
            identity=is_identity_query(message),
            ambiguous=is_ambiguous(message),
            real_time=is_real_time_query(message),
            recent_context=has_recent_disambiguating_context(transcript),
        )
