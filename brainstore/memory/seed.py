"""Starter knowledge and the startup reset of the memory store."""

from __future__ import annotations

import logging

from brainstore.config import settings
from brainstore.memory.models import BASIC_CATEGORY, format_qa
from brainstore.memory.store import MemoryStore

logger = logging.getLogger(__name__)


def basic_knowledge(name: str) -> list[tuple[str, dict[str, str]]]:
    """The fixed starter set, as ``(content, metadata)`` pairs."""
    greeting = {"type": "greeting", "category": BASIC_CATEGORY}
    info = {"type": "info", "category": BASIC_CATEGORY}
    conversation = {"type": "conversation", "category": BASIC_CATEGORY}
    return [
        (format_qa("hi", "Hello!"), greeting),
        (format_qa("hello", "Hi!"), greeting),
        (format_qa("how are you", "I'm good, thanks! How are you?"), greeting),
        (format_qa("what is your name", f"I'm {name}."), info),
        (format_qa("what's your name", f"{name}."), info),
        (format_qa("who are you", f"I'm {name}, a learning AI."), info),
        (
            'When someone says "I\'m good" or "I\'m fine", I should acknowledge '
            'briefly like "Great!" or "Nice!"',
            conversation,
        ),
        (
            'When someone says "thanks" or "thank you", I should respond with '
            '"You\'re welcome!" or "No problem!"',
            conversation,
        ),
        (
            "I should keep all responses very short and concise - 5-10 words maximum",
            {"type": "behavior", "category": BASIC_CATEGORY},
        ),
    ]


async def seed_basic_knowledge(store: MemoryStore) -> int:
    """Insert the starter set unless basic records already exist.

    Returns the number of records added.
    """
    existing = await store.get_all(limit=settings.memory_list_limit)
    if any(record.is_basic for record in existing):
        logger.info("Basic knowledge already present")
        return 0

    knowledge = basic_knowledge(settings.assistant_name)
    for content, metadata in knowledge:
        await store.add(content, metadata)
    logger.info("Seeded %d basic knowledge records", len(knowledge))
    return len(knowledge)


async def prepare_memory(store: MemoryStore) -> bool:
    """Startup sequence: initialize, reset demo state, seed starter knowledge.

    Returns False (after logging) when the backend could not be prepared; the
    service keeps running without long-term memory in that case.
    """
    try:
        await store.initialize()
        if settings.reset_memories_on_startup:
            await store.clear_except_basic()
        if settings.seed_basic_knowledge:
            await seed_basic_knowledge(store)
    except Exception:
        logger.exception("Memory store not ready; continuing without vector memory")
        return False
    return True
