"""Microphone recorder adapter with silence endpointing."""

from __future__ import annotations

import threading
import time
from queue import Full, Queue
from typing import Any

from errors import NOT_ALLOWED, NOT_FOUND, OTHER
from models import AudioFrame, PermissionResult

try:
    import numpy as np
except Exception:  # pragma: no cover
    np = None  # type: ignore

try:
    import sounddevice as sd
except Exception:  # pragma: no cover
    sd = None  # type: ignore

SILENCE_THRESHOLD = 500  # int16 RMS
SILENCE_TIMEOUT_S = 1.5
NO_SPEECH_TIMEOUT_S = 8.0
MAX_UTTERANCE_S = 15.0


def block_rms(indata: Any) -> float:
    samples = np.asarray(indata, dtype=np.float32)
    if samples.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(samples**2)))


class SoundDeviceRecorder:
    """Pushes int16 frames into a queue until the utterance ends.

    A ``None`` sentinel closes the utterance: after ``silence_timeout_s`` of
    quiet following speech, after ``no_speech_timeout_s`` with no speech at
    all, after ``max_utterance_s``, or on ``stop()``.
    """

    def __init__(
        self,
        sample_rate: int = 16000,
        channels: int = 1,
        chunk_ms: int = 100,
        silence_threshold: float = SILENCE_THRESHOLD,
        silence_timeout_s: float = SILENCE_TIMEOUT_S,
        no_speech_timeout_s: float = NO_SPEECH_TIMEOUT_S,
        max_utterance_s: float = MAX_UTTERANCE_S,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.chunk_ms = chunk_ms
        self.silence_threshold = silence_threshold
        self.silence_timeout_s = silence_timeout_s
        self.no_speech_timeout_s = no_speech_timeout_s
        self.max_utterance_s = max_utterance_s
        self._stream: Any = None
        self._running = False
        self._lock = threading.Lock()
        self.dropped_chunks = 0
        self._audio_queue: Queue[AudioFrame | None] | None = None
        self._elapsed_s = 0.0
        self._silence_s = 0.0
        self._heard_speech = False

    @property
    def heard_speech(self) -> bool:
        return self._heard_speech

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        with self._lock:
            if self._running:
                return
            if sd is None:
                raise RuntimeError("sounddevice is not installed")
            self._audio_queue = audio_queue
            self._elapsed_s = 0.0
            self._silence_s = 0.0
            self._heard_speech = False
            blocksize = int(self.sample_rate * (self.chunk_ms / 1000.0))
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=self.channels,
                dtype="int16",
                blocksize=blocksize,
                callback=self._on_audio,
            )
            self._stream.start()
            self._running = True

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                self._close_stream()
                return
            self._running = False
            self._close_stream()
            self._emit_sentinel_if_needed()

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def _on_audio(self, indata: Any, frames: int, time_info: Any, status: Any) -> None:
        if not self._running or self._audio_queue is None:
            return
        if np is None:
            return
        voiced = block_rms(indata) > self.silence_threshold
        frame = AudioFrame(
            pcm16_bytes=np.asarray(indata, dtype=np.int16).tobytes(),
            sample_rate=self.sample_rate,
            channels=self.channels,
            timestamp_ms=int(time.time() * 1000),
            voiced=voiced,
        )
        try:
            self._audio_queue.put_nowait(frame)
        except Full:
            self.dropped_chunks += 1

        if self._utterance_complete(frames / float(self.sample_rate), voiced):
            self._running = False
            self._emit_sentinel_if_needed()

    def _utterance_complete(self, block_s: float, voiced: bool) -> bool:
        self._elapsed_s += block_s
        if voiced:
            self._heard_speech = True
            self._silence_s = 0.0
        else:
            self._silence_s += block_s
        if self._elapsed_s >= self.max_utterance_s:
            return True
        if self._heard_speech:
            return self._silence_s >= self.silence_timeout_s
        return self._elapsed_s >= self.no_speech_timeout_s

    def _emit_sentinel_if_needed(self) -> None:
        if self._audio_queue is None:
            return
        try:
            self._audio_queue.put_nowait(None)
        except Full:
            pass


class SoundDevicePermissionProbe:
    """Checks that an input device exists and can be opened, then releases it."""

    def __init__(self, sample_rate: int = 16000, channels: int = 1) -> None:
        self._sample_rate = sample_rate
        self._channels = channels

    def request(self) -> PermissionResult:
        if sd is None:
            return PermissionResult(granted=False, code=OTHER, message="sounddevice is not installed")
        try:
            sd.query_devices(kind="input")
        except Exception as exc:
            return PermissionResult(granted=False, code=NOT_FOUND, message=str(exc))
        try:
            stream = sd.InputStream(
                samplerate=self._sample_rate, channels=self._channels, dtype="int16"
            )
            stream.close()
        except Exception as exc:
            return PermissionResult(granted=False, code=NOT_ALLOWED, message=str(exc))
        return PermissionResult(granted=True)
