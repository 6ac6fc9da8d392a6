"""Async access to the conversation-log database over libsql.

The ``libsql`` driver is synchronous, so every call is pushed onto a worker
thread with ``asyncio.to_thread()``.  The target database is chosen from
settings:

- **Production**: ``TURSO_DATABASE_URL`` + ``TURSO_AUTH_TOKEN`` → hosted Turso
- **Dev/test**: no Turso env vars → local SQLite file at ``database_path``

Use :func:`connect` as an async context manager; it commits when the block
exits cleanly and always closes the connection.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import libsql

from brainstore.config import settings

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


class AsyncCursor:
    """Result cursor whose fetches run off the event loop."""

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor

    async def fetchone(self) -> tuple | None:
        return await asyncio.to_thread(self._cursor.fetchone)

    async def fetchall(self) -> list[tuple]:
        return await asyncio.to_thread(self._cursor.fetchall)

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount


class AsyncConnection:
    """A libsql connection with awaitable execute/commit/close."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn

    async def execute(self, sql: str, params: tuple = ()) -> AsyncCursor:
        cursor = await asyncio.to_thread(self._conn.execute, sql, params)
        return AsyncCursor(cursor)

    async def scalar(self, sql: str, params: tuple = ()) -> Any:
        """Run a single-value query such as ``SELECT COUNT(*)``."""
        cursor = await self.execute(sql, params)
        row = await cursor.fetchone()
        return row[0] if row else None

    async def commit(self) -> None:
        await asyncio.to_thread(self._conn.commit)

    async def close(self) -> None:
        await asyncio.to_thread(self._conn.close)


def _open_local(path: str) -> Any:
    conn = libsql.connect(path)
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA busy_timeout=5000")
    return conn


async def open_connection(local_path: Path | None = None) -> AsyncConnection:
    """Open a connection to the configured database.

    *local_path* (test isolation) wins over everything else; otherwise a
    configured Turso URL is used, falling back to ``settings.database_path``.
    """
    if local_path is None and settings.turso_database_url:
        conn = await asyncio.to_thread(
            libsql.connect,
            database=settings.turso_database_url,
            auth_token=settings.turso_auth_token,
        )
        return AsyncConnection(conn)

    path = local_path or settings.database_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = await asyncio.to_thread(_open_local, str(path))
    return AsyncConnection(conn)


@asynccontextmanager
async def connect(local_path: Path | None = None) -> AsyncIterator[AsyncConnection]:
    """Yield a connection, committing on success and closing on exit."""
    conn = await open_connection(local_path)
    try:
        yield conn
        await conn.commit()
    finally:
        await conn.close()
