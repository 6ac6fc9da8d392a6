"""Tests for the session transcript store."""

import asyncio

from brainstore.chat.session import InMemorySessionStore, Message


async def test_unknown_session_is_empty(sessions: InMemorySessionStore) -> None:
    assert await sessions.get("nope") == []


async def test_append_and_get(sessions: InMemorySessionStore) -> None:
    await sessions.append("s1", Message("user", "hi"), Message("assistant", "Hello!"))
    await sessions.append("s1", Message("user", "bye"))

    transcript = await sessions.get("s1")
    assert [m.content for m in transcript] == ["hi", "Hello!", "bye"]


async def test_get_returns_snapshot(sessions: InMemorySessionStore) -> None:
    await sessions.append("s1", Message("user", "hi"))
    snapshot = await sessions.get("s1")
    snapshot.append(Message("user", "sneaky"))

    assert len(await sessions.get("s1")) == 1


async def test_sessions_are_isolated(sessions: InMemorySessionStore) -> None:
    await sessions.append("a", Message("user", "one"))
    await sessions.append("b", Message("user", "two"))

    assert [m.content for m in await sessions.get("a")] == ["one"]


async def test_clear(sessions: InMemorySessionStore) -> None:
    await sessions.append("s1", Message("user", "hi"), Message("assistant", "Hello!"))

    assert await sessions.clear("s1") == 2
    assert await sessions.get("s1") == []
    assert await sessions.clear("s1") == 0


def test_lock_is_per_session(sessions: InMemorySessionStore) -> None:
    assert sessions.lock("a") is sessions.lock("a")
    assert sessions.lock("a") is not sessions.lock("b")
    assert isinstance(sessions.lock("a"), asyncio.Lock)


def test_message_to_api() -> None:
    assert Message("user", "hi").to_api() == {"role": "user", "content": "hi"}


async def test_clear_drops_idle_lock(sessions: InMemorySessionStore) -> None:
    first = sessions.lock("s1")
    await sessions.append("s1", Message("user", "hi"))

    await sessions.clear("s1")

    assert "s1" not in sessions._locks
    assert sessions.lock("s1") is not first


async def test_clear_keeps_held_lock(sessions: InMemorySessionStore) -> None:
    lock = sessions.lock("s1")
    async with lock:
        await sessions.clear("s1")
        assert sessions.lock("s1") is lock
