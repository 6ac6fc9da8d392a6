"""One chat turn: classify, recall, look up, generate, sanitize, persist.

Only the generation call can fail a turn.  Memory search, web lookup, the
memory write and the conversation log are best effort: their failures are
logged and the turn carries on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from brainstore.chat.classifier import MessageFlags
from brainstore.chat.sanitizer import sanitize
from brainstore.chat.session import DEFAULT_SESSION_ID, InMemorySessionStore, Message
from brainstore.config import settings
from brainstore.errors import StoreUnavailable, ValidationError
from brainstore.llm import client as llm
from brainstore.llm.prompt import build_system_prompt
from brainstore.memory.models import format_qa
from brainstore.web.lookup import lookup

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from brainstore.chat.session import SessionStore
    from brainstore.conversations.models import ConversationLogEntry
    from brainstore.conversations.store import ConversationLog
    from brainstore.memory.models import MemoryMatch
    from brainstore.memory.store import MemoryStore

logger = logging.getLogger(__name__)

GREETING_RECALL_QUERY = "greeting hello hi how are you conversation"
CLARIFICATION_FALLBACK = "What do you mean exactly? Can you tell me more?"

_NOT_LEARNED = ("i don't know", "haven't learned")


@dataclass(frozen=True)
class Step:
    """Progress marker shown by the UI while a turn runs."""

    text: str
    order: int
    color: str = "yellow"

    def to_api(self) -> dict[str, Any]:
        return {"text": self.text, "color": self.color, "order": self.order}


RECALLING = Step("Recalling...", order=1)
SEARCHING_WEB = Step("Searching web...", order=2)
LEARNING = Step("Learning...", order=3)


@dataclass
class TurnResult:
    """Outcome of a successful turn."""

    response: str
    steps: list[Step] = field(default_factory=list)
    memory_id: str | None = None
    has_memory: bool = False
    used_web: bool = False
    log_entry: ConversationLogEntry | None = None

    @property
    def memory_saved(self) -> bool:
        return self.memory_id is not None

    def to_api(self) -> dict[str, Any]:
        return {
            "response": self.response,
            "steps": [s.to_api() for s in sorted(self.steps, key=lambda s: s.order)],
            "memorySaved": self.memory_saved,
        }


def is_meaningful(answer: str) -> bool:
    """Whether an answer is worth remembering; the canned clarification never is."""
    if answer == CLARIFICATION_FALLBACK:
        return False
    lowered = answer.lower()
    return len(answer) > 5 and not any(phrase in lowered for phrase in _NOT_LEARNED)


class ChatTurn:
    """Runs turns against shared memory, log and session stores.

    The generator and web lookup are injectable for tests.
    """

    def __init__(
        self,
        memory: MemoryStore,
        log: ConversationLog,
        sessions: SessionStore | None = None,
        *,
        generator: Callable[[str, list[dict[str, str]]], Awaitable[str]] | None = None,
        web_lookup: Callable[[str], Awaitable[str]] | None = None,
        name: str | None = None,
    ) -> None:
        self.memory = memory
        self.log = log
        self.sessions = sessions or InMemorySessionStore()
        self._generate = generator or llm.generate
        self._web_lookup = web_lookup or lookup
        self._name = name or settings.assistant_name

    async def handle(self, message: str | None, session_id: str | None = None) -> TurnResult:
        """Run one turn.

        Raises:
            ValidationError: *message* is missing or blank.
            GenerationFailed: the generator errored; nothing was persisted.
        """
        if not message or not message.strip():
            raise ValidationError("Message is required")
        session = session_id or DEFAULT_SESSION_ID
        async with self.sessions.lock(session):
            return await self._run(message, session)

    async def _run(self, message: str, session: str) -> TurnResult:
        transcript = await self.sessions.get(session)
        flags = MessageFlags.classify(message, transcript)
        result = TurnResult(response="")

        memories = await self._recall(message, flags)
        result.has_memory = bool(memories)
        if result.has_memory:
            result.steps.append(RECALLING)

        web_info = ""
        if flags.real_time and not result.has_memory:
            result.steps.append(SEARCHING_WEB)
            logger.info("Searching web for: %s", message[:80])
            web_info = await self._web_lookup(message)
            result.used_web = bool(web_info)

        system = build_system_prompt(
            memories=memories,
            transcript=transcript,
            web_info=web_info,
            clarify=flags.needs_clarification,
            name=self._name,
        )
        raw = await self._generate(system, llm.build_messages(transcript, message))

        response = sanitize(raw, greeting=flags.greeting, identity=flags.identity, name=self._name)
        if flags.needs_clarification and "?" not in response:
            response = CLARIFICATION_FALLBACK
        if response != raw:
            logger.debug("Sanitized response %r -> %r", raw[:100], response)
        result.response = response

        result.memory_id = await self._learn(message, response)
        if result.memory_saved:
            result.steps.append(LEARNING)

        await self.sessions.append(
            session, Message("user", message), Message("assistant", response)
        )

        result.log_entry = await self.log.save(
            session,
            message,
            response,
            metadata={
                "hasMemory": "yes" if result.has_memory else "no",
                "memoryId": result.memory_id or "none",
                "webInfo": "yes" if web_info else "no",
            },
        )
        if result.log_entry is None:
            logger.warning("Turn for session %s was not logged", session)
        return result

    # -- Recall ----------------------------------------------------------------

    def _qualifies(self, matches: list[MemoryMatch]) -> bool:
        return bool(matches) and matches[0].distance < settings.memory_distance_threshold

    async def _recall(self, message: str, flags: MessageFlags) -> list[MemoryMatch]:
        """Memories for the payload; empty when nothing is close enough.

        Greetings and identity questions get a second, canned query under
        the same distance threshold.
        """
        matches = await self.memory.search(message, limit=settings.memory_search_limit)
        if self._qualifies(matches):
            return matches

        if flags.greeting or flags.identity:
            query = (
                f"name {self._name} who are you" if flags.identity else GREETING_RECALL_QUERY
            )
            matches = await self.memory.search(query, limit=settings.memory_fallback_search_limit)
            if self._qualifies(matches):
                return matches
        return []

    # -- Persistence -----------------------------------------------------------

    async def _learn(self, message: str, response: str) -> str | None:
        """Remember a meaningful answer. Returns the memory id, or None."""
        if not is_meaningful(response):
            return None
        content = format_qa(message, response)
        try:
            memory_id = await self.memory.add(
                content,
                {"source": "conversation", "question": message[:100]},
            )
        except StoreUnavailable:
            logger.exception("Failed to save memory (non-fatal)")
            return None
        logger.info("Saved memory: %s", content[:100])
        return memory_id
