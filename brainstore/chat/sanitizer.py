"""Response cleanup for generated text.

The raw generator output is pushed through :data:`PASSES`, an ordered chain
of pure ``str -> str`` functions, and then :func:`apply_fallback`.  Order
matters: each pass lists the postconditions of earlier passes it relies on.
Every pass is a no-op on text that already went through the whole chain, so
``sanitize(sanitize(x)) == sanitize(x)`` for the same flags.

Guarantees of :func:`sanitize`: the result is never empty, has at most two
sentences and at most fifty whitespace-separated tokens, and ends in ``.``,
``!`` or ``?``.
"""

from __future__ import annotations

import re
import string
from collections.abc import Callable

MAX_SENTENCES = 2
MAX_TOKENS = 50
TRUNCATE_TOKENS = 40
# A sentence boundary must fall past this share of the truncation window.
BOUNDARY_FRACTION = 0.6

BARE_WORDS = frozenset({"yes", "no", "hello", "hi", "okay", "ok"})
FUNCTION_WORDS = frozenset(
    {"the", "of", "about", "a", "an", "in", "on", "at", "to", "for", "with", "by"}
)

GREETING_FALLBACK = "Hello!"
TEACH_ME_FALLBACK = "I'm here to learn. Can you teach me?"


def identity_fallback(name: str) -> str:
    return f"I'm {name}."


# -- Shared helpers ----------------------------------------------------------

# Whitespace after terminal punctuation, or the spots tidy() will space out.
_BOUNDARY = re.compile(r"(?<=[.!?])\s+|(?<=[!?])(?=[A-Za-z])|(?<=\.)(?=[A-Z][a-z])")
_WORD_CHAR = re.compile(r"[^\W_]")


def split_sentences(text: str) -> list[str]:
    """Split on terminal punctuation; pieces are stripped and non-empty."""
    return [s.strip() for s in _BOUNDARY.split(text) if s.strip()]


def count_sentences(text: str) -> int:
    """Sentences that contain at least one letter or digit."""
    return sum(1 for s in split_sentences(text) if _WORD_CHAR.search(s))


def _terminate(text: str) -> str:
    """Close *text* with a period unless it already ends a sentence."""
    text = text.rstrip()
    if not text or text[-1] in ".!?":
        return text
    text = text.rstrip(" ,;:-")
    return f"{text}." if text else ""


_SPACE_BEFORE_PUNCT = re.compile(r" +([.,!?;:])")
_TERMINAL_RUN = re.compile(r"[.!?,;:]*?([.!?])[.!?,;:]*")
_PAUSE_RUN = re.compile(r"([,;:])[,;:]+")
_SPACE_AFTER_PAUSE = re.compile(r"([,;:!?])(?=[A-Za-z])")
_SPACE_AFTER_PERIOD = re.compile(r"\.(?=[A-Z][a-z])")


def tidy(text: str) -> str:
    """Whitespace and punctuation spacing, as rendered in the final text."""
    text = " ".join(text.split())
    text = _SPACE_BEFORE_PUNCT.sub(r"\1", text)
    text = _TERMINAL_RUN.sub(r"\1", text)
    text = _PAUSE_RUN.sub(r"\1", text)
    text = _SPACE_AFTER_PAUSE.sub(r"\1 ", text)
    return _SPACE_AFTER_PERIOD.sub(". ", text)


# -- 1. Disclosure scrub -----------------------------------------------------

_AI_NOUN = r"(?:AI\s+)+(?:assistant|language\s+model|model|chatbot)"
_DISCLOSURE = (
    (
        re.compile(
            r"\s*\b(?:made|created|developed|built|trained)\s+by\s+"
            r"(?:Anthropic|OpenAI|Google)\b",
            re.IGNORECASE,
        ),
        "",
    ),
    (re.compile(r"\b(?:Claude|Anthropic|ChatGPT|OpenAI|GPT(?:-?\d[\w.]*)?)\b", re.IGNORECASE), "model"),
    (re.compile(rf"\ban\s+{_AI_NOUN}\b", re.IGNORECASE), "a model"),
    (re.compile(rf"\b{_AI_NOUN}\b", re.IGNORECASE), "model"),
)


def scrub_disclosure(text: str) -> str:
    """Replace vendor names and "AI assistant" phrasing with "model"."""
    for pattern, replacement in _DISCLOSURE:
        text = pattern.sub(replacement, text)
    return text


# -- 2. Perspective scrub ----------------------------------------------------

_PERSPECTIVE = (
    (
        re.compile(r"\byou\s+(?:mentioned|said|told\s+me)(?:\s+that)?\b", re.IGNORECASE),
        "I know",
    ),
    (
        re.compile(r"\bour\s+(?:previous|earlier|last|past)\s+conversations?\b", re.IGNORECASE),
        "my memory",
    ),
)


def scrub_perspective(text: str) -> str:
    """Frame recollection as the assistant's own memory, not shared history."""
    for pattern, replacement in _PERSPECTIVE:
        text = pattern.sub(replacement, text)
    return text


# -- 3. Verbosity scrub ------------------------------------------------------

_FILLER = (
    r"(?:i\s+apologi[sz]e|i'?m\s+sorry|i\s+am\s+sorry|my\s+apologies|sorry)\b"
    r"(?:\s+(?:for|about|to\s+hear)\b[^.!?,]*)?[,.!]?\s*"
    r"|(?:thank\s+you|thanks)\s+(?:so\s+much\s+)?for\s+(?:asking|sharing|your\s+question"
    r"|the\s+question|letting\s+me\s+know|reaching\s+out)\b[^.!?]*[.!?]?\s*"
    r"|(?:that's\s+a\s+|what\s+a\s+)?(?:great|good|interesting)\s+question\b[,.!]?\s*"
    r"|(?:i'?d|i\s+would)\s+be\s+(?:happy|glad)\s+to\s+help\b[^.!?]*[.!?]?\s*"
    r"|as\s+(?:an?\s+)?model,\s*"
    r"|(?:well|so|actually|honestly|to\s+be\s+honest|certainly|of\s+course),\s*"
)
# Fillers are only stripped where a sentence starts.
_FILLERS = re.compile(rf"(^\s*|[.!?][.!?,;:]*\s*)(?:{_FILLER})+", re.IGNORECASE)


def scrub_verbosity(text: str) -> str:
    """Drop apologies, thanks and hedging preambles at sentence starts.

    Runs after the disclosure scrub, so "As an AI assistant," already reads
    "As a model,".
    """
    return _FILLERS.sub(r"\1", text)


# -- 4. Sentence-count cap ---------------------------------------------------


def cap_sentences(text: str) -> str:
    """Keep the first two sentences when there are more.

    Sentences are counted on the tidied text so that later spacing fixes
    cannot split a kept sentence in two.
    """
    sentences = [s for s in split_sentences(tidy(text)) if _WORD_CHAR.search(s)]
    if len(sentences) <= MAX_SENTENCES:
        return text
    return _terminate(" ".join(sentences[:MAX_SENTENCES]))


# -- 5. Word-count cap -------------------------------------------------------


def cap_words(text: str) -> str:
    """Cut text longer than fifty tokens down to forty.

    Prefers ending on the last sentence boundary in the window when it lies
    past 60% of it; otherwise closes the window with a period.
    """
    tokens = tidy(text).split()
    if len(tokens) <= MAX_TOKENS:
        return text
    window = " ".join(tokens[:TRUNCATE_TOKENS])
    cut = max(window.rfind(mark) for mark in ".!?")
    if cut > len(window) * BOUNDARY_FRACTION:
        return window[: cut + 1]
    return _terminate(window)


# -- 6. Truncation repair ----------------------------------------------------

_TRAILING_FRAGMENT = re.compile(r"\s+([A-Za-z]{1,2})$")
_LAST_WORD = re.compile(r"(?:^|\s)([A-Za-z']+)$")


def repair_truncation(text: str) -> str:
    """Close text that stops mid-phrase instead of guessing the rest.

    Only text without terminal punctuation is touched (passes 4 and 5 close
    whatever they cut).  A dangling one- or two-letter fragment goes first,
    then trailing function words ("president of", "about the").
    """
    text = text.rstrip()
    if not text or text[-1] in ".!?":
        return text

    fragment = _TRAILING_FRAGMENT.search(text)
    if fragment and fragment.group(1).lower() not in BARE_WORDS:
        text = text[: fragment.start()]

    while True:
        stripped = text.rstrip(" ,;:-")
        last = _LAST_WORD.search(stripped)
        if not last or last.group(1).lower() not in FUNCTION_WORDS:
            text = stripped
            break
        text = stripped[: last.start()]

    return _terminate(text)


# -- 7. Grammar normalization ------------------------------------------------

_FIRST_LETTER = re.compile(r"^([^A-Za-z0-9]*)([a-z])")
_AFTER_TERMINAL = re.compile(r"([.!?]\s+[^A-Za-z0-9]*?)([a-z])")
_MEMORYS = re.compile(r"\b([Mm])emorys\b")


def _upper_second(match: re.Match[str]) -> str:
    return match.group(1) + match.group(2).upper()


def normalize_grammar(text: str) -> str:
    """Spacing, punctuation runs, sentence capitals and "memorys"."""
    text = tidy(text)
    text = _FIRST_LETTER.sub(_upper_second, text, count=1)
    text = _AFTER_TERMINAL.sub(_upper_second, text)
    return _MEMORYS.sub(r"\1emories", text)


# -- 8. Sentence-validity filter ---------------------------------------------


def _is_valid_sentence(sentence: str) -> bool:
    if len(sentence) < 3:
        return False
    words = sentence.split()
    if len(words) == 1:
        return words[0].strip(string.punctuation).lower() in BARE_WORDS
    return True


def drop_fragments(text: str) -> str:
    """Remove too-short sentences and lone non-whitelisted words.

    Relies on pass 7 having put exactly one space at every boundary.  When a
    leading sentence goes, the new first sentence is capitalized again.
    """
    kept = " ".join(s for s in split_sentences(text) if _is_valid_sentence(s))
    return _FIRST_LETTER.sub(_upper_second, kept, count=1)


# -- 9. Fallback substitution ------------------------------------------------


def apply_fallback(
    text: str, *, greeting: bool = False, identity: bool = False, name: str = "brainstore"
) -> str:
    """Swap unusable output for a canonical reply picked by message type."""
    if len(text) >= 2 and _WORD_CHAR.search(text):
        return text
    if greeting:
        return GREETING_FALLBACK
    if identity:
        return identity_fallback(name)
    return TEACH_ME_FALLBACK


PASSES: tuple[Callable[[str], str], ...] = (
    scrub_disclosure,
    scrub_perspective,
    scrub_verbosity,
    cap_sentences,
    cap_words,
    repair_truncation,
    normalize_grammar,
    drop_fragments,
)


def sanitize(
    raw: str, *, greeting: bool = False, identity: bool = False, name: str = "brainstore"
) -> str:
    """Run every pass in order, then the fallback."""
    text = raw.strip()
    for step in PASSES:
        text = step(text)
    return apply_fallback(text, greeting=greeting, identity=identity, name=name)
