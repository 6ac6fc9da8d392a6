"""Per-session conversation transcripts.

Orchestration only talks to the :class:`SessionStore` interface, so the
in-memory map can be swapped for an external cache or database.  Each
session also gets an ``asyncio.Lock`` so turns for the same session run
one at a time.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_SESSION_ID = "default"


@dataclass(frozen=True)
class Message:
    """A single conversation turn."""

    role: str  # "user" or "assistant"
    content: str

    def to_api(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class SessionStore(ABC):
    """Transcript storage keyed by session id."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, session_id: str) -> asyncio.Lock:
        """The mutex serializing turns of *session_id*."""
        if session_id not in self._locks:
            self._locks[session_id] = asyncio.Lock()
        return self._locks[session_id]

    def _forget_lock(self, session_id: str) -> None:
        """Drop the mutex of *session_id* unless a turn holds it."""
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    @abstractmethod
    async def get(self, session_id: str) -> list[Message]:
        """Return a snapshot of the transcript (empty for unknown sessions)."""

    @abstractmethod
    async def append(self, session_id: str, *messages: Message) -> None:
        """Append messages to the end of the transcript."""

    @abstractmethod
    async def clear(self, session_id: str) -> int:
        """Drop a transcript and its idle lock. Returns the count of cleared messages."""


class InMemorySessionStore(SessionStore):
    """Process-lifetime transcripts; unbounded per session."""

    def __init__(self) -> None:
        super().__init__()
        self._sessions: dict[str, list[Message]] = {}

    async def get(self, session_id: str) -> list[Message]:
        return list(self._sessions.get(session_id, []))

    async def append(self, session_id: str, *messages: Message) -> None:
        self._sessions.setdefault(session_id, []).extend(messages)

    async def clear(self, session_id: str) -> int:
        self._forget_lock(session_id)
        return len(self._sessions.pop(session_id, []))
