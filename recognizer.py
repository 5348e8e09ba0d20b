"""Live recognition source: microphone capture plus DashScope qwen3-asr-flash.

The recorder fills an audio queue until it detects the end of the utterance.
The collected PCM is then converted to a WAV payload and streamed through
``MultiModalConversation.call(stream=True)``; each chunk is reported as an
interim transcript and the last text as the final one. An ``ended`` event is
always emitted last, like a browser recognition engine's ``onend``.
"""

from __future__ import annotations

import base64
import io
import os
import threading
import wave
from queue import Empty, Queue
from typing import Callable, Optional

from errors import AUDIO_CAPTURE, NETWORK, NO_SPEECH, OTHER
from models import AudioFrame, RecognitionEvent, RecognitionKind
from recorder import SoundDeviceRecorder

try:
    import dashscope
except Exception:  # pragma: no cover
    dashscope = None  # type: ignore


def _pcm_to_wav_base64(
    pcm: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    sample_width: int = 2,
) -> str:
    """Convert raw PCM bytes to a base64-encoded WAV string."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(channels)
        wf.setsampwidth(sample_width)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return base64.b64encode(buf.getvalue()).decode("ascii")


class _Activation:
    """Per-start state, so a stopped worker can drain without blocking the next start."""

    def __init__(
        self,
        on_event: Callable[[RecognitionEvent], None],
        audio_queue: Queue[AudioFrame | None],
    ) -> None:
        self.on_event = on_event
        self.audio_queue = audio_queue
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None


class DashscopeRecognitionSource:
    def __init__(
        self,
        api_key: str = "",
        recorder: Optional[SoundDeviceRecorder] = None,
        model: str = "qwen3-asr-flash",
        request_timeout_s: float = 10.0,
        queue_maxsize: int = 200,
    ) -> None:
        self._api_key = api_key
        self._recorder = recorder or SoundDeviceRecorder()
        self._model = model
        self._request_timeout_s = request_timeout_s
        self._queue_maxsize = queue_maxsize
        self._current: Optional[_Activation] = None

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key

    def start(self, on_event: Callable[[RecognitionEvent], None]) -> None:
        current = self._current
        if (
            current is not None
            and not current.stop_event.is_set()
            and current.thread is not None
            and current.thread.is_alive()
        ):
            return
        run = _Activation(on_event, Queue(maxsize=self._queue_maxsize))
        self._current = run
        try:
            self._recorder.start(run.audio_queue)
        except Exception as exc:
            self._emit_error(run, AUDIO_CAPTURE, str(exc))
            self._emit(run, RecognitionEvent(kind=RecognitionKind.ENDED.value))
            return
        run.thread = threading.Thread(target=self._worker, args=(run,), daemon=True)
        run.thread.start()

    def stop(self) -> None:
        run = self._current
        if run is not None:
            run.stop_event.set()
        self._safe_stop_recorder()
        if run is None:
            return
        thread = run.thread
        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=0.5)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _worker(self, run: _Activation) -> None:
        try:
            self._run(run)
        finally:
            # A newer activation owns the recorder once this one was replaced.
            if self._current is run:
                self._safe_stop_recorder()
            self._emit(run, RecognitionEvent(kind=RecognitionKind.ENDED.value))

    def _run(self, run: _Activation) -> None:
        """Consume audio frames until the sentinel, then recognise."""
        pcm = bytearray()
        voiced = False
        sample_rate = 16000
        channels = 1

        while not run.stop_event.is_set():
            try:
                frame = run.audio_queue.get(timeout=0.2)
            except Empty:
                continue
            if frame is None:  # Sentinel
                break
            pcm.extend(frame.pcm16_bytes)
            voiced = voiced or frame.voiced
            sample_rate = frame.sample_rate
            channels = frame.channels

        if run.stop_event.is_set():
            return

        if not pcm or not voiced:
            self._emit_error(run, NO_SPEECH, "no speech detected")
            return

        self._recognize_stream(run, _pcm_to_wav_base64(bytes(pcm), sample_rate, channels))

    def _recognize_stream(self, run: _Activation, wav_base64: str) -> None:
        """Send audio to dashscope and stream interim/final results."""
        if dashscope is None:
            self._emit_error(run, OTHER, "dashscope is not installed")
            return

        api_key = self._api_key or os.getenv("DASHSCOPE_API_KEY", "")
        if not api_key:
            self._emit_error(run, OTHER, "No API key configured")
            return

        try:
            response = dashscope.MultiModalConversation.call(
                api_key=api_key,
                model=self._model,
                messages=[
                    {"role": "system", "content": [{"text": ""}]},
                    {"role": "user", "content": [{"audio": wav_base64}]},
                ],
                result_format="message",
                asr_options={"enable_itn": False},
                stream=True,
                timeout=self._request_timeout_s,
            )
        except Exception as exc:
            self._emit(run, self._to_error_event(exc))
            return

        latest_text = ""
        try:
            for chunk in response:
                if run.stop_event.is_set():
                    return
                text = self._extract_text(chunk)
                if text:
                    latest_text = text
                    self._emit(run, RecognitionEvent(kind=RecognitionKind.INTERIM.value, text=text))
        except Exception as exc:
            self._emit(run, self._to_error_event(exc))
            return

        if run.stop_event.is_set():
            return
        self._emit(run, RecognitionEvent(kind=RecognitionKind.FINAL.value, text=latest_text))

    def _extract_text(self, chunk: object) -> str:
        """Pull text from a dashscope streaming chunk dict."""
        if isinstance(chunk, dict):
            output = chunk.get("output", {})
            choices = output.get("choices", [])
            if not choices:
                return ""
            message = choices[0].get("message", {})
            content = message.get("content", [])
            if not content:
                return ""
            value = content[0]
            if isinstance(value, dict):
                return str(value.get("text", ""))
        return ""

    def _to_error_event(self, exc: Exception) -> RecognitionEvent:
        """Map an SDK/network exception to a recognition error kind."""
        message = str(exc)
        low = message.lower()
        if isinstance(exc, (ConnectionError, TimeoutError)) or any(
            word in low for word in ("timeout", "network", "connection")
        ):
            code = NETWORK
            retryable = True
        else:
            code = OTHER
            retryable = False
        return RecognitionEvent(
            kind=RecognitionKind.ERROR.value,
            code=code,
            message=message,
            retryable=retryable,
        )

    def _emit_error(self, run: _Activation, code: str, message: str) -> None:
        self._emit(run, RecognitionEvent(kind=RecognitionKind.ERROR.value, code=code, message=message))

    def _emit(self, run: _Activation, event: RecognitionEvent) -> None:
        run.on_event(event)

    def _safe_stop_recorder(self) -> None:
        try:
            self._recorder.stop()
        except Exception:  # pragma: no cover
            pass
