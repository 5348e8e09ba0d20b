"""Mode-conditioned prompt construction and local output cleanup."""

from __future__ import annotations

import re
from typing import Optional, Union

from models import ConversationMode

# Small local models degrade with long instructions, so these stay minimal.
LOCAL_TEMPLATES = {
    ConversationMode.CASUAL: "Question: {text}\nHelpful answer:",
    ConversationMode.ASSISTANT: "User needs help: {text}\nUseful response:",
    ConversationMode.CREATIVE: "Creative prompt: {text}\nImaginative response:",
}

CLOUD_TEMPLATES = {
    ConversationMode.CASUAL: (
        "You are Bella, a helpful AI assistant. Respond naturally and conversationally to: {text}"
    ),
    ConversationMode.ASSISTANT: (
        "You are Bella, a professional AI assistant. Provide helpful information for: {text}"
    ),
    ConversationMode.CREATIVE: (
        "You are Bella, a creative AI assistant. Use your imagination to respond to: {text}"
    ),
}

LEAKED_INSTRUCTION_FRAGMENTS = ("be concise", "like siri", "respond to")
MIN_REPLY_LENGTH = 5

_ROLE_LABEL_RE = re.compile(r"^(Answer:|Response:|Bella:|AI:)", re.IGNORECASE)
_LEADING_PUNCT_RE = re.compile(r"^[:\-\s]+")


def resolve_mode(mode: Union[ConversationMode, str, None]) -> ConversationMode:
    if isinstance(mode, ConversationMode):
        return mode
    try:
        return ConversationMode(mode)
    except (TypeError, ValueError):
        return ConversationMode.CASUAL


def build_prompt(
    text: str,
    mode: Union[ConversationMode, str, None] = ConversationMode.CASUAL,
    local: bool = False,
) -> str:
    templates = LOCAL_TEMPLATES if local else CLOUD_TEMPLATES
    return templates[resolve_mode(mode)].format(text=text)


def clean_generated_text(raw: str, prompt: str) -> Optional[str]:
    """Strip the echoed prompt and role labels, keep the first sentence.

    Returns None when nothing usable is left.
    """
    response = raw.replace(prompt, "").strip()
    response = _ROLE_LABEL_RE.sub("", response).strip()
    response = _LEADING_PUNCT_RE.sub("", response).strip()

    sentences = [s for s in response.split(".") if s.strip()]
    if len(sentences) > 1:
        response = sentences[0].strip() + "."

    if len(response) < MIN_REPLY_LENGTH:
        return None
    return response


def has_leaked_instructions(text: str) -> bool:
    lowered = text.lower()
    return any(fragment in lowered for fragment in LEAKED_INSTRUCTION_FRAGMENTS)
