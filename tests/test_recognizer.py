"""Tests for DashscopeRecognitionSource."""

from __future__ import annotations

import base64
import threading
import time
from queue import Queue
from unittest.mock import MagicMock, patch

from errors import AUDIO_CAPTURE, NETWORK, NO_SPEECH, OTHER
from models import AudioFrame, RecognitionEvent, RecognitionKind
from recognizer import DashscopeRecognitionSource, _pcm_to_wav_base64


# ---------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------

class FakeRecorder:
    """Replays prepared frames into the source's queue, then a sentinel."""

    def __init__(self, frames: list[AudioFrame] | None = None, fail: bool = False) -> None:
        self.frames = frames or []
        self.fail = fail
        self.started = False
        self.starts = 0
        self.stops = 0

    def start(self, audio_queue: Queue[AudioFrame | None]) -> None:
        if self.fail:
            raise RuntimeError("Error opening InputStream: Device unavailable")
        self.started = True
        self.starts += 1
        for frame in self.frames:
            audio_queue.put(frame)
        audio_queue.put(None)

    def stop(self) -> None:
        self.stops += 1


def _frame(voiced: bool = True, n_samples: int = 1600) -> AudioFrame:
    return AudioFrame(pcm16_bytes=b"\x10\x00" * n_samples, voiced=voiced)


def _wait_for_end(events: list[RecognitionEvent], *, timeout: float = 3.0) -> None:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if any(e.kind == RecognitionKind.ENDED.value for e in events):
            return
        time.sleep(0.05)


def _run(source: DashscopeRecognitionSource) -> list[RecognitionEvent]:
    events: list[RecognitionEvent] = []
    source.start(events.append)
    _wait_for_end(events)
    source.stop()
    return events


def _chunk(text: str) -> dict:
    return {"output": {"choices": [{"message": {"content": [{"text": text}]}}]}}


# ---------------------------------------------------------------
# _pcm_to_wav_base64
# ---------------------------------------------------------------

def test_pcm_to_wav_base64_produces_valid_wav() -> None:
    result = _pcm_to_wav_base64(b"\x00\x00" * 1600, sample_rate=16000, channels=1)
    assert base64.b64decode(result)[:4] == b"RIFF"


# ---------------------------------------------------------------
# Streaming results
# ---------------------------------------------------------------

@patch("recognizer.dashscope")
def test_streaming_emits_interims_then_final_then_ended(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = iter(
        [_chunk("he"), _chunk("hello"), _chunk("hello bella")]
    )
    recorder = FakeRecorder([_frame(), _frame(voiced=False)])

    events = _run(DashscopeRecognitionSource(api_key="test-key", recorder=recorder))

    kinds = [e.kind for e in events]
    assert kinds == ["interim", "interim", "interim", "final", "ended"]
    assert [e.text for e in events[:4]] == ["he", "hello", "hello bella", "hello bella"]
    assert recorder.stops >= 1
    kwargs = mock_ds.MultiModalConversation.call.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["api_key"] == "test-key"


# ---------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------

@patch("recognizer.dashscope", MagicMock())
def test_silence_only_is_no_speech() -> None:
    recorder = FakeRecorder([_frame(voiced=False), _frame(voiced=False)])
    events = _run(DashscopeRecognitionSource(api_key="test-key", recorder=recorder))

    assert events[0].kind == RecognitionKind.ERROR.value
    assert events[0].code == NO_SPEECH
    assert events[-1].kind == RecognitionKind.ENDED.value


@patch("recognizer.dashscope")
def test_network_error_maps_to_network(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = ConnectionError("connection reset")
    events = _run(DashscopeRecognitionSource(api_key="k", recorder=FakeRecorder([_frame()])))

    errors = [e for e in events if e.kind == RecognitionKind.ERROR.value]
    assert len(errors) == 1
    assert errors[0].code == NETWORK
    assert errors[0].retryable is True


@patch("recognizer.dashscope")
def test_auth_error_maps_to_other(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.side_effect = Exception("401 Unauthorized: invalid api key")
    events = _run(DashscopeRecognitionSource(api_key="bad", recorder=FakeRecorder([_frame()])))

    errors = [e for e in events if e.kind == RecognitionKind.ERROR.value]
    assert errors[0].code == OTHER
    assert errors[0].retryable is False


@patch("recognizer.dashscope", MagicMock())
@patch.dict("os.environ", {"DASHSCOPE_API_KEY": ""}, clear=False)
def test_missing_api_key_emits_error() -> None:
    events = _run(DashscopeRecognitionSource(api_key="", recorder=FakeRecorder([_frame()])))
    error = next(e for e in events if e.kind == RecognitionKind.ERROR.value)
    assert error.code == OTHER
    assert "API key" in error.message


@patch("recognizer.dashscope", None)
def test_dashscope_not_installed_emits_error() -> None:
    events = _run(DashscopeRecognitionSource(api_key="k", recorder=FakeRecorder([_frame()])))
    error = next(e for e in events if e.kind == RecognitionKind.ERROR.value)
    assert "not installed" in error.message


def test_recorder_failure_is_audio_capture() -> None:
    source = DashscopeRecognitionSource(api_key="k", recorder=FakeRecorder(fail=True))
    events: list[RecognitionEvent] = []
    source.start(events.append)

    assert [e.kind for e in events] == ["error", "ended"]
    assert events[0].code == AUDIO_CAPTURE


# ---------------------------------------------------------------
# Stop during recognition
# ---------------------------------------------------------------

@patch("recognizer.dashscope")
def test_stop_during_streaming_suppresses_final(mock_ds: MagicMock) -> None:
    def slow_response():
        yield _chunk("hello")
        time.sleep(5)
        yield _chunk("world")

    mock_ds.MultiModalConversation.call.return_value = slow_response()

    source = DashscopeRecognitionSource(api_key="k", recorder=FakeRecorder([_frame()]))
    events: list[RecognitionEvent] = []
    source.start(events.append)
    time.sleep(0.3)
    source.stop()
    time.sleep(0.2)

    assert not [e for e in events if e.kind == RecognitionKind.FINAL.value]


@patch("recognizer.dashscope")
def test_stop_from_callback_thread_does_not_raise(mock_ds: MagicMock) -> None:
    mock_ds.MultiModalConversation.call.return_value = iter([_chunk("hi")])
    source = DashscopeRecognitionSource(api_key="k", recorder=FakeRecorder([_frame()]))
    events: list[RecognitionEvent] = []

    def on_event(event: RecognitionEvent) -> None:
        events.append(event)
        if event.kind == RecognitionKind.FINAL.value:
            source.stop()

    source.start(on_event)
    _wait_for_end(events)

    assert [e.kind for e in events] == ["interim", "final", "ended"]


@patch("recognizer.dashscope")
def test_restart_while_previous_stream_is_pending(mock_ds: MagicMock) -> None:
    release = threading.Event()
    first_call = threading.Event()

    def pending_response():
        first_call.set()
        release.wait(timeout=5)
        yield _chunk("stale")

    mock_ds.MultiModalConversation.call.side_effect = [
        pending_response(),
        iter([_chunk("hi bella")]),
    ]
    recorder = FakeRecorder([_frame()])
    source = DashscopeRecognitionSource(api_key="k", recorder=recorder)

    first: list[RecognitionEvent] = []
    source.start(first.append)
    assert first_call.wait(timeout=2)
    source.stop()

    second: list[RecognitionEvent] = []
    source.start(second.append)
    _wait_for_end(second)

    assert recorder.starts == 2
    assert [e.kind for e in second] == ["interim", "final", "ended"]
    assert second[1].text == "hi bella"

    release.set()
    _wait_for_end(first)
    assert not [e for e in first if e.kind == RecognitionKind.FINAL.value]
    assert first[-1].kind == RecognitionKind.ENDED.value
