"""Conversation log entry model."""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ConversationLogEntry(BaseModel):
    """One logged turn. Serialized with camelCase keys for the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int | None = None
    session_id: str
    user_message: str
    ai_response: str
    timestamp: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: tuple) -> ConversationLogEntry:
        """Build from a ``conversations`` row in column order."""
        try:
            metadata = json.loads(row[5]) if row[5] else {}
        except json.JSONDecodeError:
            metadata = {}
        return cls(
            id=row[0],
            session_id=row[1],
            user_message=row[2],
            ai_response=row[3],
            timestamp=row[4],
            metadata=metadata,
        )

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class ConversationStats(BaseModel):
    """Aggregate counts shown on the logs page."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_conversations: int
    total_messages: int
    chats_today: int

    def to_api(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)
