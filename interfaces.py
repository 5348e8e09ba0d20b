"""Protocol interfaces for the orchestrator's and session's collaborators."""

from __future__ import annotations

from typing import Any, Callable, Protocol

from models import PermissionResult, RecognitionEvent

Scheduler = Callable[[float, Callable[[], None]], None]


class CloudChatClient(Protocol):
    def is_configured(self) -> bool: ...

    def chat(self, prompt: str) -> str: ...

    def switch_provider(self, name: str) -> bool: ...

    def set_api_key(self, provider: str, key: str) -> bool: ...

    def clear_history(self) -> None: ...

    def current_provider(self) -> dict[str, str]: ...


class RecognitionSource(Protocol):
    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None: ...

    def stop(self) -> None: ...


class PermissionProbe(Protocol):
    def request(self) -> PermissionResult: ...


class TextGenerator(Protocol):
    def __call__(self, prompt: str, **params: Any) -> list[dict[str, Any]]: ...


class ConfigStore(Protocol):
    def get_api_key(self, provider: str) -> str: ...

    def set_api_key(self, provider: str, key: str) -> None: ...

    def api_keys(self) -> dict[str, str]: ...

    def get_mode(self) -> str: ...

    def set_mode(self, mode: str) -> None: ...

    def get_provider(self) -> str: ...

    def set_provider(self, provider: str) -> None: ...

    def get_hotkey(self) -> str: ...

    def set_hotkey(self, hotkey: str) -> None: ...
