"""Vector memory store backed by a ChromaDB collection.

Records are ``(id, content, vector, metadata)`` triples.  Vectors come from
an :class:`~brainstore.memory.embedding.EmbeddingProvider` (the hash
embedding by default), never from Chroma itself, and neighbours are ranked
by the collection's native distance (squared L2).

Two backends, chosen by settings:
- Remote: set CHROMA_URL to talk to a Chroma server over HTTP.
- Embedded (default): a persistent client stored under CHROMA_PATH.

``initialize()`` must complete before any other call.  ``search`` degrades
to an empty list on any failure; every other operation raises
:class:`StoreUnavailable` (or :class:`NotInitialized`).
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

import chromadb
from chromadb.config import Settings as ChromaSettings

from brainstore.config import settings
from brainstore.errors import NotInitialized, StoreUnavailable
from brainstore.memory.embedding import EmbeddingProvider, HashEmbedding
from brainstore.memory.models import BASIC_CATEGORY, MemoryMatch, MemoryRecord

logger = logging.getLogger(__name__)


def _make_client() -> Any:
    """Build the Chroma client described by settings."""
    if settings.chroma_url:
        parsed = urlparse(settings.chroma_url)
        ssl = parsed.scheme == "https"
        return chromadb.HttpClient(
            host=parsed.hostname or "localhost",
            port=parsed.port or (443 if ssl else 8000),
            ssl=ssl,
            settings=ChromaSettings(anonymized_telemetry=False),
        )
    settings.chroma_path.mkdir(parents=True, exist_ok=True)
    return chromadb.PersistentClient(
        path=str(settings.chroma_path),
        settings=ChromaSettings(anonymized_telemetry=False),
    )


def _new_id() -> str:
    return f"memory_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _clean_metadata(metadata: dict[str, Any] | None) -> dict[str, Any]:
    """Coerce metadata into the scalar types Chroma accepts."""
    cleaned: dict[str, Any] = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            cleaned[key] = value
        elif isinstance(value, datetime):
            cleaned[key] = value.isoformat()
        else:
            cleaned[key] = str(value)
    cleaned["timestamp"] = datetime.now(UTC).isoformat()
    return cleaned


class MemoryStore:
    """Singleton memory store.

    Get the shared instance via ``MemoryStore.get()``.  Tests build their
    own with an explicit *client* (e.g. ``chromadb.EphemeralClient()``).
    """

    _instance: MemoryStore | None = None

    def __init__(
        self,
        client: Any = None,
        collection_name: str | None = None,
        embedder: EmbeddingProvider | None = None,
    ) -> None:
        self._client = client
        self._collection_name = collection_name or settings.collection_name
        self._embedder = embedder or HashEmbedding(settings.embedding_dimensions)
        self._collection: Any = None
        self._init_lock = asyncio.Lock()

    @classmethod
    def get(cls) -> MemoryStore:
        """Return the shared MemoryStore instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def _reset(cls) -> None:
        """Reset the singleton (for testing)."""
        cls._instance = None

    @property
    def initialized(self) -> bool:
        return self._collection is not None

    # -- Lifecycle -----------------------------------------------------------

    async def initialize(self) -> None:
        """Get or create the named collection. Safe to call repeatedly."""
        async with self._init_lock:
            if self._collection is not None:
                return
            try:
                if self._client is None:
                    self._client = await asyncio.to_thread(_make_client)
                self._collection = await asyncio.to_thread(
                    self._client.get_or_create_collection,
                    name=self._collection_name,
                    metadata={"description": "Brainstore memory"},
                    embedding_function=None,
                )
            except Exception as exc:
                logger.exception("Failed to open Chroma collection %s", self._collection_name)
                raise StoreUnavailable(f"Chroma unavailable: {exc}") from exc
            logger.info("Connected to Chroma collection: %s", self._collection_name)

    def _require_collection(self) -> Any:
        if self._collection is None:
            raise NotInitialized("MemoryStore.initialize() has not completed")
        return self._collection

    # -- Write ---------------------------------------------------------------

    async def add(self, content: str, metadata: dict[str, Any] | None = None) -> str:
        """Embed and store *content*. Returns the new record id."""
        collection = self._require_collection()
        memory_id = _new_id()
        vector = self._embedder.embed(content)
        try:
            await asyncio.to_thread(
                collection.add,
                ids=[memory_id],
                embeddings=[vector],
                documents=[content],
                metadatas=[_clean_metadata(metadata)],
            )
        except Exception as exc:
            logger.exception("Failed to store memory")
            raise StoreUnavailable(f"Failed to store memory: {exc}") from exc
        logger.debug("Stored memory %s: %s", memory_id, content[:80])
        return memory_id

    # -- Read ----------------------------------------------------------------

    async def search(self, query: str, limit: int = 5) -> list[MemoryMatch]:
        """Return up to *limit* nearest records, closest first.

        Never raises: a failed search and an empty store look the same.
        """
        if self._collection is None:
            logger.warning("Memory search before initialization; returning no memories")
            return []
        try:
            raw = await asyncio.to_thread(
                self._collection.query,
                query_embeddings=[self._embedder.embed(query)],
                n_results=limit,
            )
        except Exception:
            logger.exception("Memory search failed")
            return []

        documents = (raw.get("documents") or [[]])[0] or []
        distances = (raw.get("distances") or [[]])[0] or []
        metadatas = (raw.get("metadatas") or [[]])[0] or []
        matches = [
            MemoryMatch(
                content=doc,
                distance=float(distances[i]) if i < len(distances) else 0.0,
                metadata=dict(metadatas[i] or {}) if i < len(metadatas) else {},
            )
            for i, doc in enumerate(documents)
            if doc is not None
        ]
        matches.sort(key=lambda m: m.distance)
        return matches

    async def get_all(self, limit: int = 100) -> list[MemoryRecord]:
        """Enumerate up to *limit* records in no particular order."""
        collection = self._require_collection()
        try:
            raw = await asyncio.to_thread(
                collection.get,
                limit=limit,
                include=["documents", "metadatas"],
            )
        except Exception as exc:
            logger.exception("Failed to fetch memories")
            raise StoreUnavailable(f"Failed to fetch memories: {exc}") from exc
        return self._records(raw)

    # -- Delete --------------------------------------------------------------

    async def delete(self, memory_id: str) -> bool:
        """Delete one record. Returns True if it existed."""
        collection = self._require_collection()
        try:
            existing = await asyncio.to_thread(
                collection.get, ids=[memory_id], include=["metadatas"]
            )
            if not existing.get("ids"):
                return False
            await asyncio.to_thread(collection.delete, ids=[memory_id])
        except Exception as exc:
            logger.exception("Failed to delete memory %s", memory_id)
            raise StoreUnavailable(f"Failed to delete memory: {exc}") from exc
        logger.info("Deleted memory: %s", memory_id)
        return True

    async def clear_except_basic(self) -> int:
        """Delete every record not in the starter ("basic") category."""
        return await self._clear(keep_basic=True)

    async def clear_all(self) -> int:
        """Delete every record."""
        return await self._clear(keep_basic=False)

    async def _clear(self, keep_basic: bool) -> int:
        collection = self._require_collection()
        try:
            raw = await asyncio.to_thread(collection.get, include=["metadatas"])
            ids = raw.get("ids") or []
            metadatas = raw.get("metadatas") or [None] * len(ids)
            doomed = [
                record_id
                for record_id, meta in zip(ids, metadatas, strict=False)
                if not (keep_basic and (meta or {}).get("category") == BASIC_CATEGORY)
            ]
            if doomed:
                await asyncio.to_thread(collection.delete, ids=doomed)
        except Exception as exc:
            logger.exception("Failed to clear memories")
            raise StoreUnavailable(f"Failed to clear memories: {exc}") from exc
        logger.info("Cleared %d memories (kept basic: %s)", len(doomed), keep_basic)
        return len(doomed)

    # -- Helpers -------------------------------------------------------------

    @staticmethod
    def _records(raw: Any) -> list[MemoryRecord]:
        """Normalize a Chroma ``get`` result into MemoryRecord list."""
        if not isinstance(raw, dict):
            return []
        ids = raw.get("ids") or []
        documents = raw.get("documents") or [None] * len(ids)
        metadatas = raw.get("metadatas") or [None] * len(ids)
        return [
            MemoryRecord(id=record_id, content=doc or "", metadata=dict(meta or {}))
            for record_id, doc, meta in zip(ids, documents, metadatas, strict=False)
        ]
