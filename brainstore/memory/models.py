"""Data models for memory records."""

from typing import Any

from pydantic import BaseModel, Field

# Metadata category that marks seeded starter knowledge.
BASIC_CATEGORY = "basic"


class MemoryRecord(BaseModel):
    """A stored question/answer fact, as listed by ``get_all``."""

    id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def category(self) -> str:
        return str(self.metadata.get("category", ""))

    @property
    def is_basic(self) -> bool:
        return self.category == BASIC_CATEGORY


class MemoryMatch(BaseModel):
    """A search hit. Lower ``distance`` means closer to the query."""

    content: str
    distance: float
    metadata: dict[str, Any] = Field(default_factory=dict)


def format_qa(question: str, answer: str) -> str:
    """Render a learned exchange the way memory records store it."""
    return f"Question: {question}\nAnswer: {answer}"
