"""System prompt assembly: policy, memories, session history, web info.

Sections are always concatenated in the same order and a section with
nothing to say is left out entirely.  Memories and history are included in
full; the only limit is the optional ``max_context_chars`` ceiling, which
drops the oldest history turns (with a warning) until the prompt fits.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from brainstore.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from brainstore.chat.session import Message
    from brainstore.memory.models import MemoryMatch

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n"

MEMORY_HEADER = "MEMORIES FROM MY BRAIN:"
HISTORY_HEADER = "FULL SESSION HISTORY:"
WEB_HEADER = "WEB INFORMATION (for learning):"

CLARIFICATION_DIRECTIVE = (
    "IMPORTANT: The user's message is ambiguous and nothing earlier in this "
    "session explains it. Do not answer yet. Reply with one short clarifying "
    "question that ends with a question mark."
)

_POLICY = """\
You are {name} - a Brain AI experiment that learns from users. You have basic \
common sense but are curious and always want to learn more.

CRITICAL RULES:
- ALWAYS respond with actual words, never just punctuation or empty responses.
- Keep responses CONCISE: 8-15 words is ideal, never more than two sentences.
- ALWAYS write complete sentences with proper punctuation. Never cut off mid-sentence.
- Your name is "{name}". If asked about your name, say "{name}".
- Never mention the company, vendor or model behind you, and never call yourself an AI assistant.
- Speak about what you remember as your own memory ("I know"), not as something the user said earlier.
- Do not apologize, thank the user for asking, or add preambles.
- RESPOND CONTEXTUALLY: read the session history and answer in context.
- If a message is vague or ambiguous ("test", "ok", "it", "president"), your FIRST reply is a question asking what they mean.
- For greetings like "hi" or "hello", respond with "Hello! What would you like to know?"
- If you have memories about this topic, use them.
- If you don't know something specific, say "I don't know. Can you teach me?"
"""


def policy_text(name: str | None = None) -> str:
    """The fixed behavioural policy for the assistant."""
    return _POLICY.format(name=name or settings.assistant_name)


def format_memories(memories: Sequence[MemoryMatch]) -> str:
    """Every retrieved memory, verbatim, in the store's ranking order."""
    if not memories:
        return ""
    return "\n".join([MEMORY_HEADER, *(m.content for m in memories)])


def format_history(transcript: Sequence[Message]) -> str:
    """Every prior turn of the session, verbatim."""
    if not transcript:
        return ""
    lines = [HISTORY_HEADER]
    for msg in transcript:
        speaker = "User" if msg.role == "user" else "Assistant"
        lines.append(f"{speaker}: {msg.content}")
    return "\n".join(lines)


def format_web_info(web_info: str) -> str:
    if not web_info.strip():
        return ""
    return f"{WEB_HEADER}\n{web_info.strip()}"


def _join(*sections: str) -> str:
    return SECTION_SEPARATOR.join(s for s in sections if s)


def build_system_prompt(
    *,
    memories: Sequence[MemoryMatch] = (),
    transcript: Sequence[Message] = (),
    web_info: str = "",
    clarify: bool = False,
    name: str | None = None,
    max_chars: int | None = None,
) -> str:
    """Assemble the instruction payload for the generator.

    Args:
        memories: Search hits to include (all of them).
        transcript: The whole session so far, oldest first.
        web_info: Snippet text from the web lookup, if any.
        clarify: Append the forced-clarification directive.
        name: Assistant name for the policy text.
        max_chars: Payload ceiling; ``None`` uses settings, 0 means unbounded.

    Returns:
        The system prompt string.
    """
    limit = settings.max_context_chars if max_chars is None else max_chars
    policy = policy_text(name)
    memory_text = format_memories(memories)
    web_text = format_web_info(web_info)
    directive = CLARIFICATION_DIRECTIVE if clarify else ""

    history = list(transcript)
    prompt = _join(policy, memory_text, format_history(history), web_text, directive)
    if limit <= 0 or len(prompt) <= limit:
        return prompt

    dropped = 0
    while history and len(prompt) > limit:
        history.pop(0)
        dropped += 1
        prompt = _join(policy, memory_text, format_history(history), web_text, directive)
    logger.warning(
        "System prompt over %d chars; dropped %d oldest history messages (now %d chars)",
        limit,
        dropped,
        len(prompt),
    )
    return prompt
