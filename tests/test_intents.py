from __future__ import annotations

import random
from datetime import datetime

import pytest

import intents
from intents import IntentMatcher


class FixedChoice(random.Random):
    """Always picks the element at ``index``."""

    def __init__(self, index: int = 0) -> None:
        super().__init__()
        self.index = index
        self.seen: list[list[str]] = []

    def choice(self, seq):  # noqa: ANN001
        self.seen.append(list(seq))
        return seq[self.index]


def _clock() -> datetime:
    return datetime(2026, 10, 19, 15, 5)


def test_time_question_matches_time_category() -> None:
    match = IntentMatcher(clock=_clock).match("What time is it?")
    assert match.category == intents.TIME
    assert match.reply == "It's currently 3:05 PM."


def test_date_question() -> None:
    match = IntentMatcher(clock=_clock).match("  what's the DATE today  ")
    assert match.category == intents.DATE
    assert match.reply == "Today is Monday, October 19, 2026."


def test_date_takes_precedence_over_time_and_combined() -> None:
    match = IntentMatcher(clock=_clock).match("current date and time please")
    assert match.category == intents.DATE


def test_time_formatting_midnight_and_noon() -> None:
    assert intents.format_time(datetime(2026, 1, 1, 0, 7)) == "12:07 AM"
    assert intents.format_time(datetime(2026, 1, 1, 12, 30)) == "12:30 PM"


def test_time_wins_over_math() -> None:
    assert IntentMatcher().match("what time is 5 + 3").category == intents.TIME


def test_math_category_has_no_reply() -> None:
    match = IntentMatcher().match("what is 5 plus 3")
    assert match.category == intents.MATH
    assert match.reply is None


def test_greeting_variants() -> None:
    matcher = IntentMatcher()
    for _ in range(20):
        match = matcher.match("hello there, hey!")
        assert match.category == intents.GREETING
        assert match.reply in intents.GREETING_REPLIES


def test_variant_choice_uses_injected_rng() -> None:
    rng = FixedChoice(index=2)
    match = IntentMatcher(rng=rng).match("thanks a lot")
    assert match.category == intents.GRATITUDE
    assert match.reply == intents.GRATITUDE_REPLIES[2]
    assert rng.seen == [list(intents.GRATITUDE_REPLIES)]


@pytest.mark.parametrize(
    "text,category",
    [
        ("what can you do", intents.CAPABILITIES),
        ("Who is the prime minister of India", intents.FACTS),
        ("how is the weather", intents.WEATHER),
        ("how are you", intents.STATUS),
        ("what is your name", intents.IDENTITY),
        ("how can you assist me", intents.ASSISTANCE),
        ("tell me about artificial intelligence", intents.AI_TOPIC),
        ("goodbye", intents.FAREWELL),
        ("see you later", intents.FAREWELL),
    ],
)
def test_categories(text: str, category: str) -> None:
    assert IntentMatcher().match(text).category == category


def test_capabilities_shadow_assistance_for_shared_phrase() -> None:
    assert IntentMatcher().match("how can you help").category == intents.CAPABILITIES


@pytest.mark.parametrize("text", ["", "   ", "qwerty"])
def test_unmatched_text_gets_clarification(text: str) -> None:
    match = IntentMatcher().match(text)
    assert match.category == intents.DEFAULT
    assert match.reply in intents.DEFAULT_REPLIES


def test_category_order_is_fixed() -> None:
    assert IntentMatcher().categories == [
        intents.DATE,
        intents.TIME,
        intents.DATETIME,
        intents.MATH,
        intents.CAPABILITIES,
        intents.FACTS,
        intents.WEATHER,
        intents.GREETING,
        intents.STATUS,
        intents.IDENTITY,
        intents.ASSISTANCE,
        intents.AI_TOPIC,
        intents.GRATITUDE,
        intents.FAREWELL,
    ]
