"""Rule-based contextual intent matching.

Categories are tried in a fixed order and the first hit wins, so the order of
``IntentMatcher._rules`` is the tie-breaking policy (a message mentioning both
"date" and "time" is a date question). Categories with several canned variants
pick one uniformly through the injected ``rng``.
"""

from __future__ import annotations

import random
from datetime import datetime
from typing import Callable, Optional, Sequence

from arithmetic import is_math_question
from models import IntentMatch

DATE = "date"
TIME = "time"
DATETIME = "datetime"
MATH = "math"
CAPABILITIES = "capabilities"
FACTS = "facts"
WEATHER = "weather"
GREETING = "greeting"
STATUS = "status"
IDENTITY = "identity"
ASSISTANCE = "assistance"
AI_TOPIC = "ai"
GRATITUDE = "gratitude"
FAREWELL = "farewell"
DEFAULT = "default"

CAPABILITIES_REPLY = (
    "I can help you with various tasks! I can answer questions about the current date and "
    "time, perform basic math calculations, have conversations, provide general information, "
    "and assist with everyday questions. I'm designed to be a friendly AI companion. "
    "What would you like to know or discuss?"
)
FACTS_REPLY = (
    "As of my last update, Narendra Modi is the Prime Minister of India. He has been in "
    "office since 2014. However, for the most current information, I'd recommend checking "
    "recent news sources."
)
WEATHER_REPLY = (
    "I don't have access to current weather data, but you can check your local weather "
    "app or website for the most accurate information!"
)
IDENTITY_REPLY = (
    "I'm Bella, your AI companion! I'm here to chat, help, and hopefully brighten your day."
)
ASSISTANCE_REPLY = (
    "I can assist you in several ways! I can answer questions about dates and times, help "
    "with basic math, provide information on various topics, have conversations, and just "
    "be a friendly companion. What would you like help with today?"
)
AI_REPLY = (
    "AI is fascinating! I'm an example of conversational AI designed to chat and help "
    "users. Is there something specific about AI you'd like to discuss?"
)

GREETING_REPLIES = (
    "Hello! I'm Bella, nice to meet you!",
    "Hi there! How can I help you today?",
    "Hey! Great to see you. What's on your mind?",
    "Hello! I'm here and ready to chat.",
)
STATUS_REPLIES = (
    "I'm doing well, thank you for asking! How are you?",
    "I'm great! Always excited to learn and chat.",
    "I'm feeling good and ready to help you with anything!",
    "I'm wonderful, thanks! What brings you here today?",
)
GRATITUDE_REPLIES = (
    "You're very welcome! Happy to help.",
    "My pleasure! Is there anything else you'd like to know?",
    "You're welcome! I'm here whenever you need me.",
    "Glad I could help! Feel free to ask me anything else.",
)
FAREWELL_REPLIES = (
    "Goodbye! It was great chatting with you!",
    "See you later! Take care!",
    "Bye! Hope to talk with you again soon!",
    "Farewell! Have a wonderful day!",
)
DEFAULT_REPLIES = (
    "I'd be happy to help! Could you be a bit more specific about what you're looking for?",
    "That's an interesting topic. What would you like to know about it specifically?",
    "I can help with questions about dates, times, basic math, and general conversation. "
    "What would you like to explore?",
    "Feel free to ask me about the current date and time, simple calculations, or just chat "
    "with me!",
    "I'm here to help! Try asking me about today's date, the time, or any other questions "
    "you have.",
)


def choose(variants: Sequence[str], rng: random.Random) -> str:
    return rng.choice(list(variants))


def _contains_any(text: str, *needles: str) -> bool:
    return any(needle in text for needle in needles)


def format_date(now: datetime) -> str:
    return f"{now:%A}, {now:%B} {now.day}, {now.year}"


def format_time(now: datetime) -> str:
    hour = now.hour % 12 or 12
    suffix = "AM" if now.hour < 12 else "PM"
    return f"{hour}:{now.minute:02d} {suffix}"


class IntentMatcher:
    def __init__(
        self,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._rng = rng or random.Random()
        self._clock = clock or datetime.now
        self._rules: list[tuple[str, Callable[[str], bool], Callable[[], Optional[str]]]] = [
            (DATE, lambda t: _contains_any(t, "date", "today"), self._date_reply),
            (TIME, lambda t: _contains_any(t, "time", "clock"), self._time_reply),
            (
                DATETIME,
                lambda t: _contains_any(t, "date and time", "current date and time"),
                self._datetime_reply,
            ),
            (MATH, is_math_question, lambda: None),
            (
                CAPABILITIES,
                lambda t: _contains_any(
                    t,
                    "core functions",
                    "what can you do",
                    "how can you help",
                    "what are your capabilities",
                ),
                lambda: CAPABILITIES_REPLY,
            ),
            (FACTS, lambda t: "prime minister" in t and "india" in t, lambda: FACTS_REPLY),
            (WEATHER, lambda t: "weather" in t, lambda: WEATHER_REPLY),
            (
                GREETING,
                lambda t: _contains_any(t, "hello", "hi", "hey"),
                lambda: choose(GREETING_REPLIES, self._rng),
            ),
            (
                STATUS,
                lambda t: _contains_any(t, "how are you", "how do you feel"),
                lambda: choose(STATUS_REPLIES, self._rng),
            ),
            (IDENTITY, lambda t: _contains_any(t, "your name", "who are you"), lambda: IDENTITY_REPLY),
            (
                ASSISTANCE,
                lambda t: _contains_any(t, "how can you assist", "how can you help"),
                lambda: ASSISTANCE_REPLY,
            ),
            (AI_TOPIC, lambda t: _contains_any(t, "ai", "artificial intelligence"), lambda: AI_REPLY),
            (
                GRATITUDE,
                lambda t: _contains_any(t, "thank", "thanks"),
                lambda: choose(GRATITUDE_REPLIES, self._rng),
            ),
            (
                FAREWELL,
                lambda t: _contains_any(t, "bye", "goodbye", "see you"),
                lambda: choose(FAREWELL_REPLIES, self._rng),
            ),
        ]

    @property
    def categories(self) -> list[str]:
        return [name for name, _, _ in self._rules]

    def match(self, text: str) -> IntentMatch:
        """Return the first matching category, or a clarification reply."""
        lowered = (text or "").lower().strip()
        if lowered:
            for category, predicate, reply in self._rules:
                if predicate(lowered):
                    return IntentMatch(category=category, reply=reply())
        return IntentMatch(category=DEFAULT, reply=self.default_reply())

    def default_reply(self) -> str:
        return choose(DEFAULT_REPLIES, self._rng)

    def _date_reply(self) -> str:
        return f"Today is {format_date(self._clock())}."

    def _time_reply(self) -> str:
        return f"It's currently {format_time(self._clock())}."

    def _datetime_reply(self) -> str:
        now = self._clock()
        return f"Today is {format_date(now)}, and it's currently {format_time(now)}."
