"""Tests for the response cleanup passes."""

import itertools

import pytest

from brainstore.chat.sanitizer import (
    GREETING_FALLBACK,
    MAX_SENTENCES,
    MAX_TOKENS,
    PASSES,
    TEACH_ME_FALLBACK,
    apply_fallback,
    cap_sentences,
    cap_words,
    count_sentences,
    drop_fragments,
    normalize_grammar,
    repair_truncation,
    sanitize,
    scrub_disclosure,
    scrub_perspective,
    scrub_verbosity,
    split_sentences,
)

LONG_RAMBLE = " ".join(["word"] * 60)


# -- Helpers -----------------------------------------------------------------


def test_split_sentences() -> None:
    assert split_sentences("One. Two! Three?") == ["One.", "Two!", "Three?"]


def test_count_sentences_ignores_bare_punctuation() -> None:
    assert count_sentences("Hi. . Bye.") == 2


# -- 1. Disclosure -----------------------------------------------------------


class TestScrubDisclosure:
    def test_an_ai_assistant(self):
        assert scrub_disclosure("I'm an AI assistant.") == "I'm a model."

    def test_ai_language_model(self):
        assert scrub_disclosure("As an AI language model, I think") == "As a model, I think"

    def test_vendor_and_model_names(self):
        assert scrub_disclosure("ChatGPT and GPT-4 differ.") == "model and model differ."

    def test_made_by_clause_removed(self):
        out = scrub_disclosure("I am Claude, made by Anthropic.")
        assert "Anthropic" not in out
        assert "Claude" not in out

    def test_plain_text_untouched(self):
        assert scrub_disclosure("Paris is the capital.") == "Paris is the capital."


# -- 2. Perspective ----------------------------------------------------------


class TestScrubPerspective:
    def test_you_mentioned(self):
        out = scrub_perspective("You mentioned that Paris is the capital.")
        assert out == "I know Paris is the capital."

    def test_previous_conversation(self):
        out = scrub_perspective("Based on our previous conversation, cats purr.")
        assert out == "Based on my memory, cats purr."


# -- 3. Verbosity ------------------------------------------------------------


class TestScrubVerbosity:
    def test_apology(self):
        assert scrub_verbosity("I'm sorry, I don't know.") == "I don't know."

    def test_great_question(self):
        assert scrub_verbosity("Great question! Paris is the capital.") == "Paris is the capital."

    def test_thanks_for_asking(self):
        assert scrub_verbosity("Thanks for asking. Cats purr.") == "Cats purr."

    def test_filler_at_later_sentence_start(self):
        assert scrub_verbosity("Cats are great. Well, they purr.") == "Cats are great. they purr."

    def test_mid_sentence_left_alone(self):
        assert scrub_verbosity("I feel well, thanks") == "I feel well, thanks"


# -- 4. Sentence cap ---------------------------------------------------------


class TestCapSentences:
    def test_keeps_first_two(self):
        out = cap_sentences("One is here. Two is here. Three is here.")
        assert out == "One is here. Two is here."

    def test_two_sentences_unchanged(self):
        assert cap_sentences("One is here. Two is here.") == "One is here. Two is here."

    def test_counts_after_punctuation_cleanup(self):
        assert cap_sentences("Wow!!! Really? Yes. No.") == "Wow! Really?"


# -- 5. Word cap -------------------------------------------------------------


class TestCapWords:
    def test_short_text_unchanged(self):
        assert cap_words("A short answer.") == "A short answer."

    def test_hard_cut_adds_period(self):
        out = cap_words(LONG_RAMBLE)
        assert len(out.split()) == 40
        assert out.endswith("word.")

    def test_prefers_late_sentence_boundary(self):
        text = " ".join(["word"] * 29 + ["word."] + ["more"] * 30)
        assert cap_words(text) == " ".join(["word"] * 29 + ["word."])


# -- 6. Truncation repair ----------------------------------------------------


class TestRepairTruncation:
    def test_terminated_text_unchanged(self):
        assert repair_truncation("Paris is the capital.") == "Paris is the capital."

    def test_president_of(self):
        assert repair_truncation("The president of") == "The president."

    def test_trailing_function_words(self):
        assert repair_truncation("I love talking about the") == "I love talking."

    def test_dangling_fragment(self):
        assert repair_truncation("It is a") == "It is."

    def test_whitelisted_short_word_kept(self):
        assert repair_truncation("Say hi") == "Say hi."

    def test_empty(self):
        assert repair_truncation("") == ""


# -- 7. Grammar --------------------------------------------------------------


class TestNormalizeGrammar:
    def test_spacing_and_capital(self):
        assert normalize_grammar("hello  world .") == "Hello world."

    def test_space_after_punctuation(self):
        assert normalize_grammar("wait,what?yes") == "Wait, what? Yes"

    def test_missing_space_after_period(self):
        assert normalize_grammar("the end.Next one") == "The end. Next one"

    def test_repeated_punctuation(self):
        assert normalize_grammar("Really?!") == "Really?"
        assert normalize_grammar("Hmm,,, ok") == "Hmm, ok"

    def test_memorys(self):
        assert normalize_grammar("my memorys are good.") == "My memories are good."

    def test_capitalizes_after_leading_punctuation(self):
        assert normalize_grammar("Hm. - it depends.") == "Hm. - It depends."
        assert normalize_grammar("Ok. ', a.") == "Ok. ', A."


# -- 8. Fragments ------------------------------------------------------------


class TestDropFragments:
    def test_short_sentence_dropped(self):
        assert drop_fragments("Hi. A. Okay then.") == "Hi. Okay then."

    def test_single_word_not_whitelisted(self):
        assert drop_fragments("Paris. It is big.") == "It is big."

    def test_whitelisted_word_kept(self):
        assert drop_fragments("Yes.") == "Yes."

    def test_new_first_sentence_capitalized(self):
        assert drop_fragments("Hm. - it depends on you.") == "- It depends on you."


# -- 9. Fallback -------------------------------------------------------------


class TestApplyFallback:
    def test_usable_text_kept(self):
        assert apply_fallback("ok") == "ok"

    def test_greeting(self):
        assert apply_fallback("", greeting=True) == GREETING_FALLBACK

    def test_identity(self):
        assert apply_fallback("...", identity=True, name="zed") == "I'm zed."

    def test_greeting_wins_over_identity(self):
        assert apply_fallback("", greeting=True, identity=True) == GREETING_FALLBACK

    def test_default(self):
        assert apply_fallback("!") == TEACH_ME_FALLBACK


# -- Whole pipeline ----------------------------------------------------------


def test_pass_order() -> None:
    assert [p.__name__ for p in PASSES] == [
        "scrub_disclosure",
        "scrub_perspective",
        "scrub_verbosity",
        "cap_sentences",
        "cap_words",
        "repair_truncation",
        "normalize_grammar",
        "drop_fragments",
    ]


def test_sanitize_empty_uses_fallback() -> None:
    assert sanitize("") == TEACH_ME_FALLBACK


def test_sanitize_punctuation_only_greeting() -> None:
    assert sanitize("...", greeting=True) == GREETING_FALLBACK


def test_sanitize_disclosure_preamble() -> None:
    raw = "As an AI assistant created by Anthropic, I don't know that."
    assert sanitize(raw) == "I don't know that."


def test_sanitize_lowercase_fragment() -> None:
    assert sanitize("paris is the capital of france") == "Paris is the capital of france."


SAMPLES = [
    "Hello! What would you like to know?",
    "paris is the capital of france",
    LONG_RAMBLE,
    "I'm sorry. I'm an AI assistant made by Anthropic. I can't say. Ask more.",
    "   ",
    "The president of",
    TEACH_ME_FALLBACK,
]


# Leading fragments that pass 8 drops, in front of bodies that start oddly.
PREFIXES = ["", "Hm. ", "x. ", "e.g. ", "Sorry. ", "Ok! "]
BODIES = [
    "- it depends on you",
    "- and then it works",
    "',a",
    "', a",
    "paris is the capital of france",
    "I'm an AI assistant made by Anthropic.",
    "you said that cats purr.",
    "The president of",
]
CORPUS = SAMPLES + [prefix + body for prefix, body in itertools.product(PREFIXES, BODIES)]


def _first_letter(sentence: str) -> str:
    return next((c for c in sentence if c.isalpha()), "")


@pytest.mark.parametrize("raw", CORPUS)
def test_sanitize_invariants(raw: str) -> None:
    out = sanitize(raw)
    assert out
    assert out[-1] in ".!?"
    assert count_sentences(out) <= MAX_SENTENCES
    assert len(out.split()) <= MAX_TOKENS
    for sentence in split_sentences(out):
        assert not _first_letter(sentence).islower(), out


@pytest.mark.parametrize("raw", CORPUS)
def test_sanitize_idempotent(raw: str) -> None:
    once = sanitize(raw)
    assert sanitize(once) == once


def test_sanitize_multi_sentence_disclosure() -> None:
    raw = "I'm sorry. I'm an AI assistant made by Anthropic. I can't say. Ask more."
    assert sanitize(raw) == "I'm a model. I can't say."


def test_sanitize_capitalizes_after_dropped_fragment() -> None:
    assert sanitize("Hm. - it depends on you") == "- It depends on you."
    assert sanitize("e.g. ',a") == "', A."
