"""Response strategy selection and the engine's configuration surface."""

from __future__ import annotations

import logging
import random
from typing import Any, Optional, Union

import arithmetic
from capabilities import GENERATIVE_MODEL, ModelCapabilityRegistry
from errors import INVALID_MODE, PROVIDER_SWITCH_FAILED, CapabilityUnavailable
from interfaces import CloudChatClient, TextGenerator
from intents import MATH, IntentMatcher, choose
from models import CapabilityName, ConversationMode, EngineConfig, ProviderSelection
from prompts import build_prompt, clean_generated_text, has_leaked_instructions

logger = logging.getLogger(__name__)

LOCAL_PROVIDER = "local"

GENERATION_PARAMS = {
    "max_new_tokens": 100,
    "temperature": 0.6,
    "top_k": 40,
    "top_p": 0.9,
    "do_sample": True,
    "repetition_penalty": 1.15,
}

MODEL_NOT_READY_REPLY = "I'm still learning how to think. Please wait a moment..."
LEAKED_PROMPT_REPLY = (
    "I'm still learning how to express myself clearly. Could you ask me something else?"
)
BACKUP_REPLIES = (
    "That's an interesting question! Let me think about it.",
    "I understand what you're asking. Give me a moment to respond properly.",
    "Good question! I'm processing that information.",
    "I hear you. Let me organize my thoughts on this.",
    "Interesting! I need a moment to provide a thoughtful response.",
)


class ResponseOrchestrator:
    def __init__(
        self,
        cloud: CloudChatClient,
        registry: ModelCapabilityRegistry,
        matcher: Optional[IntentMatcher] = None,
        mode: ConversationMode = ConversationMode.CASUAL,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._cloud = cloud
        self._registry = registry
        self._rng = rng or random.Random()
        self._matcher = matcher or IntentMatcher(rng=self._rng)
        self._mode = mode
        self._using_cloud = False
        self._generative_enabled = False

    @property
    def mode(self) -> ConversationMode:
        return self._mode

    @property
    def using_cloud(self) -> bool:
        return self._using_cloud

    def selected_provider(self) -> ProviderSelection:
        if self._using_cloud and self._cloud.is_configured():
            return ProviderSelection.CLOUD
        if self._generative_enabled:
            return ProviderSelection.LOCAL_GENERATIVE
        return ProviderSelection.CONTEXTUAL

    def respond(self, text: str) -> str:
        """Return a reply for ``text``; never raises."""
        try:
            provider = self.selected_provider()
            if provider == ProviderSelection.CLOUD:
                return self._cloud.chat(build_prompt(text, self._mode, local=False))
            if provider == ProviderSelection.LOCAL_GENERATIVE:
                return self.generate_locally(text)
            return self.contextual_reply(text)
        except Exception:
            logger.exception("Response generation failed, using contextual reply")
            return self.contextual_reply(text)

    def contextual_reply(self, text: str) -> str:
        match = self._matcher.match(text)
        if match.category == MATH:
            return arithmetic.evaluate(text)
        return match.reply or self._matcher.default_reply()

    def generate_locally(self, text: str) -> str:
        try:
            generator: TextGenerator = self._registry.require(CapabilityName.GENERATIVE_TEXT)
        except CapabilityUnavailable:
            return MODEL_NOT_READY_REPLY

        prompt = build_prompt(text, self._mode, local=True)
        result = generator(prompt, **GENERATION_PARAMS)
        cleaned = clean_generated_text(result[0]["generated_text"], prompt)
        if cleaned is None:
            return choose(BACKUP_REPLIES, self._rng)
        if has_leaked_instructions(cleaned):
            return LEAKED_PROMPT_REPLY
        return cleaned

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    def set_mode(self, mode: Union[ConversationMode, str]) -> bool:
        try:
            self._mode = ConversationMode(mode)
        except (TypeError, ValueError):
            logger.warning("%s: %r", INVALID_MODE, mode)
            return False
        return True

    def set_use_local_model(self, enabled: bool) -> None:
        self._generative_enabled = enabled

    def switch_provider(self, name: str) -> bool:
        if name == LOCAL_PROVIDER:
            self._using_cloud = False
            return True
        try:
            switched = self._cloud.switch_provider(name)
        except Exception:
            logger.exception("%s: %s", PROVIDER_SWITCH_FAILED, name)
            return False
        if not switched:
            logger.warning("%s: %s", PROVIDER_SWITCH_FAILED, name)
            return False
        self._using_cloud = True
        return True

    def set_api_key(self, provider: str, key: str) -> bool:
        try:
            return self._cloud.set_api_key(provider, key)
        except Exception:
            logger.exception("Could not set API key for %s", provider)
            return False

    def clear_history(self) -> None:
        try:
            self._cloud.clear_history()
        except Exception:
            logger.exception("Could not clear conversation history")

    def get_config(self) -> EngineConfig:
        provider = {"name": LOCAL_PROVIDER, "model": GENERATIVE_MODEL.split("/")[-1]}
        configured = True
        if self._using_cloud:
            try:
                provider = dict(self._cloud.current_provider())
                configured = self._cloud.is_configured()
            except Exception:
                logger.exception("Could not read cloud provider state")
                configured = False
        return EngineConfig(
            using_cloud=self._using_cloud,
            provider=provider,
            mode=self._mode,
            configured=configured,
            generative_enabled=self._generative_enabled,
        )

    # ------------------------------------------------------------------
    # Speech capabilities
    # ------------------------------------------------------------------

    def listen(self, audio: Any) -> str:
        recognizer = self._registry.require(CapabilityName.SPEECH_TO_TEXT)
        result = recognizer(audio)
        return str(result.get("text", "")).strip()

    def speak(self, text: str) -> Any:
        synthesizer = self._registry.require(CapabilityName.SPEECH_SYNTHESIS)
        return synthesizer(text)["audio"]
