"""Async Claude client: one bounded, low-temperature completion per turn."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import anthropic

from brainstore.config import settings
from brainstore.errors import GenerationFailed

if TYPE_CHECKING:
    from collections.abc import Sequence

    from brainstore.chat.session import Message

logger = logging.getLogger(__name__)

_client: anthropic.AsyncAnthropic | None = None


def _get_client() -> anthropic.AsyncAnthropic:
    """Lazily initialize the Anthropic client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = anthropic.AsyncAnthropic(api_key=settings.anthropic_api_key)
    return _client


def build_messages(
    transcript: Sequence[Message], user_message: str, history_limit: int | None = None
) -> list[dict[str, str]]:
    """Recent transcript entries followed by the current user message."""
    limit = settings.generation_history_messages if history_limit is None else history_limit
    recent = list(transcript)[-limit:] if limit > 0 else []
    # The API wants the first message from the user.
    while recent and recent[0].role != "user":
        recent.pop(0)
    return [*(m.to_api() for m in recent), {"role": "user", "content": user_message}]


async def generate(
    system: str,
    messages: list[dict[str, str]],
    *,
    model: str | None = None,
) -> str:
    """Single completion call with no tools, streaming or retries.

    Raises:
        GenerationFailed: the API or the transport failed.
    """
    client = _get_client()
    kwargs: dict[str, Any] = {
        "model": model or settings.claude_model,
        "max_tokens": settings.generation_max_tokens,
        "temperature": settings.generation_temperature,
        "system": system,
        "messages": messages,
    }
    stop_sequences = settings.get_stop_sequences()
    if stop_sequences:
        kwargs["stop_sequences"] = stop_sequences

    try:
        response = await client.messages.create(**kwargs)
    except anthropic.AnthropicError as exc:
        logger.error("Generation failed: %s", exc)
        raise GenerationFailed(str(exc)) from exc

    text = "".join(
        block.text for block in response.content if getattr(block, "type", "text") == "text"
    )
    logger.debug("Generated %d chars (stop_reason=%s)", len(text), response.stop_reason)
    return text.strip()
