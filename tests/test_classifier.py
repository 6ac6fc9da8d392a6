"""Tests for the message heuristics."""

import pytest

from brainstore.chat.classifier import (
    MessageFlags,
    has_recent_disambiguating_context,
    is_ambiguous,
    is_greeting_or_small_talk,
    is_identity_query,
    is_real_time_query,
)
from brainstore.chat.session import Message


@pytest.mark.parametrize(
    "message", ["hello", "hi", "Hello there", "hey!", "How are you?", "thanks!", "I'm good"]
)
def test_greetings(message: str) -> None:
    assert is_greeting_or_small_talk(message)


@pytest.mark.parametrize("message", ["history of hiking", "tell me hi", "what is the weather"])
def test_not_greetings(message: str) -> None:
    assert not is_greeting_or_small_talk(message)


@pytest.mark.parametrize("message", ["What is your name?", "who are you", "Tell me your name"])
def test_identity_queries(message: str) -> None:
    assert is_identity_query(message)


def test_not_identity_query() -> None:
    assert not is_identity_query("What time is it?")


@pytest.mark.parametrize("message", ["president", "The President?", "  it ", "this.", "that"])
def test_ambiguous(message: str) -> None:
    assert is_ambiguous(message)


@pytest.mark.parametrize(
    "message", ["the current president of France", "it is raining", "president biden"]
)
def test_not_ambiguous(message: str) -> None:
    assert not is_ambiguous(message)


class TestRecentContext:
    def test_keyword_in_last_user_turn(self):
        transcript = [
            Message("user", "Tell me about America"),
            Message("assistant", "It is a big country."),
        ]
        assert has_recent_disambiguating_context(transcript)

    def test_only_last_two_user_turns_count(self):
        transcript = [
            Message("user", "who is the president of the US"),
            Message("assistant", "I don't know. Can you teach me?"),
            Message("user", "ok"),
            Message("assistant", "Okay."),
            Message("user", "cool"),
        ]
        assert not has_recent_disambiguating_context(transcript)

    def test_assistant_turns_ignored(self):
        transcript = [Message("user", "hi"), Message("assistant", "The United States is big.")]
        assert not has_recent_disambiguating_context(transcript)

    def test_keyword_must_be_whole_word(self):
        assert not has_recent_disambiguating_context([Message("user", "let's focus")])

    def test_empty_transcript(self):
        assert not has_recent_disambiguating_context([])


@pytest.mark.parametrize(
    ("message", "expected"),
    [
        ("what's the current time in London", True),
        ("weather in Paris", True),
        ("what time is it now", True),
        ("what time is it", False),
        ("tell me a story", False),
    ],
)
def test_real_time(message: str, expected: bool) -> None:
    assert is_real_time_query(message) is expected


class TestMessageFlags:
    def test_ambiguous_without_context_needs_clarification(self):
        flags = MessageFlags.classify("president")
        assert flags.ambiguous
        assert flags.needs_clarification

    def test_context_suppresses_clarification(self):
        flags = MessageFlags.classify("president", [Message("user", "Talk about the USA")])
        assert flags.ambiguous
        assert flags.recent_context
        assert not flags.needs_clarification

    def test_greeting(self):
        flags = MessageFlags.classify("hello")
        assert flags == MessageFlags(greeting=True)
