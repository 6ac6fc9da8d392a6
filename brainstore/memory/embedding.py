"""Deterministic text embeddings for memory ranking.

The default provider is a cheap lexical hash, not a learned model: nearest
neighbours under it mean "shares words in similar positions", nothing more.
Anything satisfying :class:`EmbeddingProvider` can replace it.
"""

from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

DEFAULT_DIMENSIONS = 384


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Interface the memory store uses to turn text into vectors."""

    @property
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        ...

    def embed(self, text: str) -> list[float]:
        """Return a unit-length vector (or all zeros for empty text)."""
        ...


def word_hash(word: str) -> int:
    """Rolling ``h * 31 + c`` hash wrapped to a signed 32-bit int, made non-negative."""
    h = 0
    for ch in word:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return abs(h)


class HashEmbedding:
    """Bucket each word's hash into slot ``index % dimensions`` and L2-normalize.

    Word position feeds the bucket, so permutations of the same words can
    produce different vectors.
    """

    def __init__(self, dimensions: int = DEFAULT_DIMENSIONS) -> None:
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for i, word in enumerate(text.lower().split()):
            vector[i % self._dimensions] += word_hash(word) / 1000

        magnitude = math.sqrt(sum(v * v for v in vector))
        if magnitude == 0:
            return vector
        return [v / magnitude for v in vector]
