"""State-machine based speech input session.

One listening activation carries one utterance: interim transcripts are only
displayed, the first non-empty final transcript is dispatched to the responder,
and the session then stops listening on its own. Recognition errors are shown
and the session resets to IDLE after a fixed delay.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from errors import (
    ERROR_MESSAGES,
    NOT_ALLOWED,
    OTHER,
    PERMISSION_RECOVERED_MESSAGE,
    PROCESSING_FAILED_MESSAGE,
    START_FAILED,
    UNSUPPORTED,
    classify_recognition_error,
    permission_error_message,
    recognition_error_message,
)
from interfaces import PermissionProbe, RecognitionSource, Scheduler
from models import (
    ListeningState,
    PermissionResult,
    RecognitionEvent,
    RecognitionKind,
    RecognitionResult,
    TranscriptAccumulator,
    fold_results,
)

StateCallback = Callable[[ListeningState, ListeningState], None]
TranscriptCallback = Callable[[str], None]
ReplyCallback = Callable[[str, str], None]
ErrorCallback = Callable[[str, str], None]

LISTENING_PROMPT = "Listening... Speak now!"


def threading_schedule(delay_s: float, fn: Callable[[], None]) -> None:
    timer = threading.Timer(delay_s, fn)
    timer.daemon = True
    timer.start()


class SpeechInputSession:
    def __init__(
        self,
        source: Optional[RecognitionSource],
        permission: PermissionProbe,
        responder: Callable[[str], str],
        schedule: Scheduler = threading_schedule,
        start_delay_s: float = 0.1,
        hide_delay_s: float = 3.0,
        error_reset_s: float = 4.0,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_reply: Optional[ReplyCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_hide: Optional[Callable[[], None]] = None,
    ) -> None:
        self._source = source
        self._permission = permission
        self._responder = responder
        self._schedule = schedule
        self._start_delay_s = start_delay_s
        self._hide_delay_s = hide_delay_s
        self._error_reset_s = error_reset_s
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_reply = on_reply
        self._on_error = on_error
        self._on_hide = on_hide

        self._lock = threading.RLock()
        self._state = ListeningState.IDLE
        self._activation = 0
        self._transcript = TranscriptAccumulator()

    @property
    def state(self) -> ListeningState:
        return self._state

    @property
    def supported(self) -> bool:
        return self._source is not None

    @property
    def transcript(self) -> TranscriptAccumulator:
        return self._transcript

    def toggle(self) -> bool:
        with self._lock:
            if self._state in (ListeningState.LISTENING, ListeningState.REQUESTING_PERMISSION):
                self.stop_listening()
                return False
            return self.start_listening()

    def start_listening(self) -> bool:
        with self._lock:
            if self._source is None:
                self._emit_error(UNSUPPORTED, ERROR_MESSAGES[UNSUPPORTED])
                return False
            if self._state != ListeningState.IDLE:
                return False
            self._activation += 1
            activation = self._activation
            self._transcript.reset()
            self._transition(ListeningState.REQUESTING_PERMISSION)

            result = self._request_permission()
            if not result.granted:
                self._enter_error(result.code, permission_error_message(result.code, result.message))
                return False

            self._transition(ListeningState.LISTENING)
            self._emit_transcript(LISTENING_PROMPT)
            self._schedule(self._start_delay_s, lambda: self._start_source(activation))
            return True

    def stop_listening(self) -> None:
        with self._lock:
            if self._state not in (ListeningState.LISTENING, ListeningState.REQUESTING_PERMISSION):
                return
            self._activation += 1
            self._safe_stop_source()
            self._transcript.reset()
            self._emit_transcript("")
            self._transition(ListeningState.IDLE)

    def handle_event(self, event: RecognitionEvent) -> None:
        with self._lock:
            activation = self._activation
        self._on_source_event(activation, event)

    def handle_results(self, result_index: int, results: list[RecognitionResult]) -> None:
        """Feed a browser-style result list (ranked alternatives per result)."""
        for event in fold_results(result_index, results):
            self.handle_event(event)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _start_source(self, activation: int) -> None:
        with self._lock:
            if activation != self._activation or self._state != ListeningState.LISTENING:
                return
            if self._source is None:
                return
            try:
                self._source.start(
                    lambda event: self._on_source_event(activation, event)
                )
            except Exception:
                self._safe_stop_source()
                self._enter_error(START_FAILED, ERROR_MESSAGES[START_FAILED])

    def _on_source_event(self, activation: int, event: RecognitionEvent) -> None:
        with self._lock:
            pending = self._handle_recognition_event(activation, event)
        if pending is not None:
            self._dispatch(*pending)

    def _handle_recognition_event(
        self, activation: int, event: RecognitionEvent
    ) -> Optional[tuple[int, str]]:
        if activation != self._activation:
            return None
        kind = event.kind
        if kind == RecognitionKind.INTERIM.value:
            if self._state == ListeningState.LISTENING:
                self._transcript.interim_text = event.text
                self._emit_transcript(f"You: {event.text}")
            return None
        if kind == RecognitionKind.FINAL.value:
            return self._handle_final(event.text)
        if kind == RecognitionKind.ERROR.value:
            self._handle_error(event.code)
            return None
        if kind == RecognitionKind.ENDED.value and self._state == ListeningState.LISTENING:
            self._transcript.reset()
            self._transition(ListeningState.IDLE)
        return None

    def _handle_final(self, text: str) -> Optional[tuple[int, str]]:
        """Claim the utterance; the caller dispatches it after releasing the lock."""
        if self._state != ListeningState.LISTENING or self._transcript.dispatched:
            return None
        self._transcript.final_text += text
        self._transcript.interim_text = ""
        user_text = self._transcript.final_text.strip()
        if not user_text:
            return None

        self._transcript.dispatched = True
        self._activation += 1
        self._safe_stop_source()
        self._transition(ListeningState.PROCESSING)
        self._emit_transcript(f"You: {user_text}")
        return self._activation, user_text

    def _dispatch(self, activation: int, user_text: str) -> None:
        try:
            reply = self._responder(user_text)
        except Exception:
            reply = PROCESSING_FAILED_MESSAGE

        with self._lock:
            if activation != self._activation or self._state != ListeningState.PROCESSING:
                return
            if self._on_reply:
                self._on_reply(user_text, reply)
            self._transcript.reset()
            self._transition(ListeningState.IDLE)
        if self._on_hide:
            self._schedule(self._hide_delay_s, self._on_hide)

    def _handle_error(self, code: str) -> None:
        if self._state == ListeningState.IDLE:
            return
        kind = classify_recognition_error(code)
        message = recognition_error_message(code)
        self._activation += 1
        self._safe_stop_source()
        self._transcript.reset()
        if kind == NOT_ALLOWED and self._request_permission().granted:
            message = PERMISSION_RECOVERED_MESSAGE
        self._enter_error(kind, message)

    def _enter_error(self, code: str, message: str) -> None:
        self._transition(ListeningState.ERROR)
        self._emit_error(code, message)
        self._schedule(self._error_reset_s, self._reset_after_error)

    def _reset_after_error(self) -> None:
        with self._lock:
            if self._state != ListeningState.ERROR:
                return
            self._emit_transcript("")
            self._transition(ListeningState.IDLE)

    def _request_permission(self) -> PermissionResult:
        try:
            return self._permission.request()
        except Exception as exc:
            return PermissionResult(granted=False, code=OTHER, message=str(exc))

    def _emit_transcript(self, text: str) -> None:
        if self._on_transcript:
            self._on_transcript(text)

    def _emit_error(self, code: str, message: str) -> None:
        if self._on_error:
            self._on_error(code, message)

    def _safe_stop_source(self) -> None:
        if self._source is None:
            return
        try:
            self._source.stop()
        except Exception:  # pragma: no cover
            pass

    def _transition(self, to_state: ListeningState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
