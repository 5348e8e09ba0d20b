"""Core data models for the companion."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ConversationMode(str, Enum):
    CASUAL = "casual"
    ASSISTANT = "assistant"
    CREATIVE = "creative"


class ProviderSelection(str, Enum):
    CONTEXTUAL = "contextual"
    LOCAL_GENERATIVE = "local-generative"
    CLOUD = "cloud"


class CapabilityName(str, Enum):
    GENERATIVE_TEXT = "generative-text"
    SPEECH_TO_TEXT = "speech-to-text"
    SPEECH_SYNTHESIS = "speech-synthesis"


class CapabilityState(str, Enum):
    UNLOADED = "UNLOADED"
    LOADING = "LOADING"
    READY = "READY"
    FAILED = "FAILED"


class ListeningState(str, Enum):
    IDLE = "IDLE"
    REQUESTING_PERMISSION = "REQUESTING_PERMISSION"
    LISTENING = "LISTENING"
    PROCESSING = "PROCESSING"
    ERROR = "ERROR"


class RecognitionKind(str, Enum):
    INTERIM = "interim"
    FINAL = "final"
    ERROR = "error"
    ENDED = "ended"


class Operator(str, Enum):
    ADD = "plus"
    SUBTRACT = "minus"
    MULTIPLY = "times"
    DIVIDE = "divided by"


@dataclass
class CapabilityHandle:
    name: CapabilityName
    state: CapabilityState = CapabilityState.UNLOADED
    handle: Any = None
    error: Optional[BaseException] = None

    @property
    def is_ready(self) -> bool:
        return self.state == CapabilityState.READY


@dataclass
class AudioFrame:
    pcm16_bytes: bytes
    sample_rate: int = 16000
    channels: int = 1
    timestamp_ms: int = 0
    voiced: bool = False


@dataclass
class RecognitionEvent:
    kind: str
    text: str = ""
    code: str = ""
    message: str = ""
    retryable: bool = False


@dataclass
class RecognitionResult:
    """One engine result: ranked alternatives, best first."""

    alternatives: list[str]
    is_final: bool = False


@dataclass
class TranscriptAccumulator:
    final_text: str = ""
    interim_text: str = ""
    dispatched: bool = False

    def reset(self) -> None:
        self.final_text = ""
        self.interim_text = ""
        self.dispatched = False


@dataclass
class MathOperands:
    first: float
    second: float
    operator: Optional[Operator] = None


@dataclass
class IntentMatch:
    category: str
    reply: Optional[str] = None


@dataclass
class PermissionResult:
    granted: bool
    code: str = ""
    message: str = ""


@dataclass
class EngineConfig:
    using_cloud: bool
    provider: dict[str, str] = field(default_factory=dict)
    mode: ConversationMode = ConversationMode.CASUAL
    configured: bool = True
    generative_enabled: bool = False


def fold_results(result_index: int, results: list[RecognitionResult]) -> list[RecognitionEvent]:
    """Fold engine results from ``result_index`` on into interim/final events."""
    final_text = ""
    interim_text = ""
    for result in results[result_index:]:
        if not result.alternatives:
            continue
        if result.is_final:
            final_text += result.alternatives[0]
        else:
            interim_text += result.alternatives[0]

    events: list[RecognitionEvent] = []
    if interim_text:
        events.append(RecognitionEvent(kind=RecognitionKind.INTERIM.value, text=interim_text))
    if final_text:
        events.append(RecognitionEvent(kind=RecognitionKind.FINAL.value, text=final_text))
    return events
