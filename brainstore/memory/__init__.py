"""Vector memory: embeddings, records and the Chroma-backed store."""

from brainstore.memory.embedding import EmbeddingProvider, HashEmbedding
from brainstore.memory.models import MemoryMatch, MemoryRecord, format_qa
from brainstore.memory.store import MemoryStore

__all__ = [
    "EmbeddingProvider",
    "HashEmbedding",
    "MemoryMatch",
    "MemoryRecord",
    "MemoryStore",
    "format_qa",
]
