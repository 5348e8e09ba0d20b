"""Hosted chat-completion client backed by DashScope text generation."""

from __future__ import annotations

import os
from http import HTTPStatus
from typing import Optional

from errors import CloudChatError

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore

PROVIDERS = {
    "qwen": {"name": "qwen", "model": "qwen-turbo"},
    "qwen-plus": {"name": "qwen-plus", "model": "qwen-plus"},
    "qwen-max": {"name": "qwen-max", "model": "qwen-max"},
}

SYSTEM_PROMPT = "You are Bella, a warm and friendly AI companion. Keep replies short."


class DashscopeChatClient:
    def __init__(
        self,
        api_keys: Optional[dict[str, str]] = None,
        provider: str = "qwen",
        max_history: int = 10,
        request_timeout_s: float = 30.0,
    ) -> None:
        if provider not in PROVIDERS:
            raise ValueError(f"unknown provider: {provider}")
        self._api_keys = dict(api_keys or {})
        self._provider = provider
        self._max_history = max_history
        self._request_timeout_s = request_timeout_s
        self._history: list[dict[str, str]] = []

    @property
    def history(self) -> list[dict[str, str]]:
        return list(self._history)

    def is_configured(self) -> bool:
        return bool(self._api_key())

    def current_provider(self) -> dict[str, str]:
        return dict(PROVIDERS[self._provider])

    def switch_provider(self, name: str) -> bool:
        if name not in PROVIDERS:
            return False
        self._provider = name
        return True

    def set_api_key(self, provider: str, key: str) -> bool:
        if provider not in PROVIDERS:
            return False
        self._api_keys[provider] = key.strip()
        return True

    def clear_history(self) -> None:
        self._history.clear()

    def chat(self, prompt: str) -> str:
        if dashscope is None:
            raise CloudChatError("dashscope is not installed")
        api_key = self._api_key()
        if not api_key:
            raise CloudChatError(f"No API key configured for {self._provider}")

        self._history.append({"role": "user", "content": prompt})
        try:
            response = dashscope.Generation.call(
                api_key=api_key,
                model=PROVIDERS[self._provider]["model"],
                messages=[{"role": "system", "content": SYSTEM_PROMPT}, *self._history],
                result_format="message",
                request_timeout=self._request_timeout_s,
            )
            reply = self._extract_reply(response)
        except Exception:
            self._history.pop()
            raise

        self._history.append({"role": "assistant", "content": reply})
        if len(self._history) > self._max_history:
            del self._history[: len(self._history) - self._max_history]
        return reply

    def _api_key(self) -> str:
        return self._api_keys.get(self._provider) or os.getenv("DASHSCOPE_API_KEY", "")

    def _extract_reply(self, response: object) -> str:
        if not isinstance(response, dict):
            raise CloudChatError("chat response format is invalid")
        status = response.get("status_code", HTTPStatus.OK)
        if status != HTTPStatus.OK:
            raise CloudChatError(f"{status}: {response.get('message', 'request failed')}")
        choices = (response.get("output") or {}).get("choices") or []
        if not choices:
            raise CloudChatError("chat response has no choices")
        content = (choices[0].get("message") or {}).get("content", "")
        if not isinstance(content, str) or not content.strip():
            raise CloudChatError("chat response is empty")
        return content.strip()
