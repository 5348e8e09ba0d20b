"""Shared error codes, user-facing messages and exceptions."""

from __future__ import annotations

# Recognition engine error kinds.
NO_SPEECH = "no-speech"
NOT_ALLOWED = "not-allowed"
NETWORK = "network"
AUDIO_CAPTURE = "audio-capture"
ABORTED = "aborted"
OTHER = "other"

# Microphone permission probe.
NOT_FOUND = "not-found"

UNSUPPORTED = "unsupported"
START_FAILED = "start-failed"
INVALID_MODE = "INVALID_MODE"
PROVIDER_SWITCH_FAILED = "PROVIDER_SWITCH_FAILED"

RECOGNITION_ERROR_KINDS = (NO_SPEECH, NOT_ALLOWED, NETWORK, AUDIO_CAPTURE, ABORTED, OTHER)

ERROR_MESSAGES = {
    NO_SPEECH: "No speech detected. Please try again.",
    NOT_ALLOWED: "Microphone access denied. Please allow microphone access and try again.",
    NETWORK: "Network error. Please check your internet connection and try again.",
    AUDIO_CAPTURE: "Audio capture failed. Please check your microphone.",
    ABORTED: "Speech recognition was aborted.",
    UNSUPPORTED: "Speech recognition is not supported on this system.",
    START_FAILED: "Failed to start speech recognition. Please try again.",
    INVALID_MODE: "Unknown conversation mode.",
    PROVIDER_SWITCH_FAILED: "Could not switch to that provider.",
}

PERMISSION_RECOVERED_MESSAGE = "Microphone access granted. Please try again."
PROCESSING_FAILED_MESSAGE = (
    "Bella encountered a problem while processing, but she's still learning..."
)


class CapabilityUnavailable(RuntimeError):
    """Raised when a model capability is used before it is ready."""

    def __init__(self, capability: str, detail: str = "") -> None:
        self.capability = capability
        message = f"{capability} capability is not available"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CloudChatError(RuntimeError):
    """Raised by the cloud chat client when a completion cannot be produced."""


def classify_recognition_error(code: str) -> str:
    return code if code in RECOGNITION_ERROR_KINDS else OTHER


def recognition_error_message(code: str) -> str:
    kind = classify_recognition_error(code)
    if kind == OTHER:
        return f"Speech recognition error: {code or OTHER}. Please try again."
    return ERROR_MESSAGES[kind]


def permission_error_message(code: str, detail: str = "") -> str:
    message = "Microphone access is required for voice input."
    if code == NOT_ALLOWED:
        return message + " Please allow microphone access in your system settings and try again."
    if code == NOT_FOUND:
        return message + " No microphone found. Please connect a microphone and try again."
    return message + f" Error: {detail or 'unknown'}"
