"""Lazily loaded, independently failing model capabilities."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from errors import CapabilityUnavailable
from models import CapabilityHandle, CapabilityName, CapabilityState

try:
    from transformers import pipeline
except Exception:  # pragma: no cover
    pipeline = None  # type: ignore

logger = logging.getLogger(__name__)

GENERATIVE_MODEL = "MBZUAI/LaMini-Flan-T5-77M"
SPEECH_TO_TEXT_MODEL = "openai/whisper-tiny.en"

Loader = Callable[[], Any]


def load_text_generator(model: str = GENERATIVE_MODEL) -> Any:
    if pipeline is None:
        raise RuntimeError("transformers is not installed")
    return pipeline("text2text-generation", model=model)


def load_speech_to_text(model: str = SPEECH_TO_TEXT_MODEL) -> Any:
    if pipeline is None:
        raise RuntimeError("transformers is not installed")
    return pipeline("automatic-speech-recognition", model=model)


def default_loaders() -> dict[CapabilityName, Loader]:
    # Speech synthesis has no loader yet; it stays UNLOADED.
    return {
        CapabilityName.GENERATIVE_TEXT: load_text_generator,
        CapabilityName.SPEECH_TO_TEXT: load_speech_to_text,
    }


class ModelCapabilityRegistry:
    def __init__(self, loaders: Optional[dict[CapabilityName, Loader]] = None) -> None:
        self._loaders = default_loaders() if loaders is None else dict(loaders)
        self._lock = threading.Lock()
        self._handles = {name: CapabilityHandle(name=name) for name in CapabilityName}

    def initialize(self) -> list[CapabilityName]:
        """Load every capability that has a loader; return the ones that failed."""
        degraded: list[CapabilityName] = []
        for name in CapabilityName:
            loader = self._loaders.get(name)
            if loader is None:
                continue
            if not self._load(name, loader):
                degraded.append(name)
        return degraded

    def _load(self, name: CapabilityName, loader: Loader) -> bool:
        with self._lock:
            self._handles[name] = CapabilityHandle(name=name, state=CapabilityState.LOADING)
        logger.info("Loading %s capability...", name.value)
        try:
            handle = loader()
        except Exception as exc:
            logger.warning("%s capability failed to load, it will be disabled: %s", name.value, exc)
            with self._lock:
                self._handles[name] = CapabilityHandle(
                    name=name, state=CapabilityState.FAILED, error=exc
                )
            return False
        with self._lock:
            self._handles[name] = CapabilityHandle(
                name=name, state=CapabilityState.READY, handle=handle
            )
        logger.info("%s capability loaded.", name.value)
        return True

    def state(self, name: CapabilityName) -> CapabilityState:
        with self._lock:
            return self._handles[name].state

    def handle(self, name: CapabilityName) -> CapabilityHandle:
        with self._lock:
            return self._handles[name]

    def snapshot(self) -> dict[CapabilityName, CapabilityState]:
        with self._lock:
            return {name: handle.state for name, handle in self._handles.items()}

    def require(self, name: CapabilityName) -> Any:
        current = self.handle(name)
        if not current.is_ready:
            detail = str(current.error) if current.error else current.state.value.lower()
            raise CapabilityUnavailable(name.value, detail)
        return current.handle
