"""Shared test fixtures."""

import uuid

import chromadb
import pytest
from chromadb.config import Settings as ChromaSettings

from brainstore.chat.session import InMemorySessionStore
from brainstore.conversations.store import ConversationLog
from brainstore.memory.store import MemoryStore


@pytest.fixture
async def memory_store():
    """An initialized MemoryStore on an in-process Chroma collection of its own."""
    MemoryStore._reset()
    client = chromadb.EphemeralClient(settings=ChromaSettings(anonymized_telemetry=False))
    store = MemoryStore(client=client, collection_name=f"test-{uuid.uuid4().hex}")
    await store.initialize()
    yield store
    MemoryStore._reset()


@pytest.fixture
def conversation_log(tmp_path):
    """A ConversationLog backed by a temporary libSQL file."""
    ConversationLog._reset()
    log = ConversationLog(db_path=tmp_path / "test.db")
    yield log
    ConversationLog._reset()


@pytest.fixture
def sessions() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("brainstore.config.settings.turso_database_url", "")
