"""ConversationLog: durable, append-only log of every turn via libsql."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from brainstore.conversations.models import ConversationLogEntry, ConversationStats
from brainstore.db import connect
from brainstore.errors import PersistenceFailed

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS conversations (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id    TEXT NOT NULL,
    user_message  TEXT NOT NULL,
    ai_response   TEXT NOT NULL,
    timestamp     TEXT NOT NULL,
    metadata      TEXT NOT NULL DEFAULT '{}'
)
"""

_CREATE_INDEXES = (
    "CREATE INDEX IF NOT EXISTS idx_conversations_timestamp ON conversations (timestamp)",
    "CREATE INDEX IF NOT EXISTS idx_conversations_session ON conversations (session_id)",
)

_COLUMNS = "id, session_id, user_message, ai_response, timestamp, metadata"


def _now() -> str:
    return datetime.now(UTC).isoformat(timespec="microseconds")


def _local_midnight_utc() -> str:
    """Start of the local calendar day, as a UTC timestamp string."""
    midnight = datetime.now().astimezone().replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(UTC).isoformat(timespec="microseconds")


def _like_pattern(query: str) -> str:
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class ConversationLog:
    """Persists conversation log entries in SQLite / Turso.

    Singleton accessed via ``ConversationLog.get()``.  Pass an explicit
    *db_path* for test isolation (e.g. ``tmp_path / "test.db"``).
    """

    _instance: ConversationLog | None = None

    def __init__(self, db_path: Path | None = None) -> None:
        self._db_path = db_path
        self._initialised = False

    @classmethod
    def get(cls) -> ConversationLog:
        """Return the shared ConversationLog instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    async def _ensure_schema(self, db) -> None:  # noqa: ANN001
        if self._initialised:
            return
        await db.execute(_CREATE_TABLE)
        for statement in _CREATE_INDEXES:
            await db.execute(statement)
        self._initialised = True

    async def _fetch(self, sql: str, params: tuple = ()) -> list[ConversationLogEntry]:
        try:
            async with connect(self._db_path) as db:
                await self._ensure_schema(db)
                cursor = await db.execute(sql, params)
                rows = await cursor.fetchall()
        except Exception as exc:
            logger.exception("Conversation log query failed")
            raise PersistenceFailed(f"Conversation log unavailable: {exc}") from exc
        return [ConversationLogEntry.from_row(row) for row in rows]

    # -- Write -----------------------------------------------------------------

    async def save(
        self,
        session_id: str,
        user_message: str,
        ai_response: str,
        metadata: dict[str, Any] | None = None,
    ) -> ConversationLogEntry | None:
        """Append one turn. Returns the stored entry, or None if the write failed.

        Never raises; the chat response must not depend on logging.
        """
        entry = ConversationLogEntry(
            session_id=session_id,
            user_message=user_message,
            ai_response=ai_response,
            timestamp=_now(),
            metadata=metadata or {},
        )
        try:
            async with connect(self._db_path) as db:
                await self._ensure_schema(db)
                await db.execute(
                    """
                    INSERT INTO conversations
                        (session_id, user_message, ai_response, timestamp, metadata)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        entry.session_id,
                        entry.user_message,
                        entry.ai_response,
                        entry.timestamp,
                        json.dumps(entry.metadata),
                    ),
                )
                entry.id = await db.scalar("SELECT last_insert_rowid()")
        except Exception:
            logger.exception("Failed to save conversation for session %s", session_id)
            return None
        logger.debug("Logged turn %s for session %s", entry.id, session_id)
        return entry

    async def clear(self) -> int:
        """Delete every entry. Returns the number removed."""
        try:
            async with connect(self._db_path) as db:
                await self._ensure_schema(db)
                cursor = await db.execute("DELETE FROM conversations")
                removed = cursor.rowcount
        except Exception as exc:
            logger.exception("Failed to clear conversation log")
            raise PersistenceFailed(f"Failed to clear conversation log: {exc}") from exc
        logger.info("Cleared %d conversation log entries", removed)
        return removed

    # -- Read ------------------------------------------------------------------

    async def list_recent(
        self, limit: int = 100, skip: int = 0, session_id: str | None = None
    ) -> list[ConversationLogEntry]:
        """Newest-first page of entries, optionally for one session."""
        if session_id:
            return await self._fetch(
                f"SELECT {_COLUMNS} FROM conversations WHERE session_id = ? "
                "ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
                (session_id, limit, skip),
            )
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM conversations "
            "ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
            (limit, skip),
        )

    async def search(self, query: str, limit: int = 100) -> list[ConversationLogEntry]:
        """Case-insensitive substring match on message, response or session id."""
        pattern = _like_pattern(query)
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM conversations "
            "WHERE user_message LIKE ? ESCAPE '\\' "
            "OR ai_response LIKE ? ESCAPE '\\' "
            "OR session_id LIKE ? ESCAPE '\\' "
            "ORDER BY timestamp DESC, id DESC LIMIT ?",
            (pattern, pattern, pattern, limit),
        )

    async def list_by_session(self, session_id: str) -> list[ConversationLogEntry]:
        """Every entry of one session, oldest first."""
        return await self._fetch(
            f"SELECT {_COLUMNS} FROM conversations WHERE session_id = ? "
            "ORDER BY timestamp ASC, id ASC",
            (session_id,),
        )

    async def stats(self) -> ConversationStats:
        """Totals for the logs page; each entry holds a user and an AI message."""
        try:
            async with connect(self._db_path) as db:
                await self._ensure_schema(db)
                total = await db.scalar("SELECT COUNT(*) FROM conversations")
                today = await db.scalar(
                    "SELECT COUNT(*) FROM conversations WHERE timestamp >= ?",
                    (_local_midnight_utc(),),
                )
        except Exception as exc:
            logger.exception("Failed to compute conversation stats")
            raise PersistenceFailed(f"Conversation log unavailable: {exc}") from exc
        total = int(total or 0)
        return ConversationStats(
            total_conversations=total,
            total_messages=total * 2,
            chats_today=int(today or 0),
        )
