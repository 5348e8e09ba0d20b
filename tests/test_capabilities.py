from __future__ import annotations

from unittest.mock import patch

import pytest

import capabilities
from capabilities import ModelCapabilityRegistry
from errors import CapabilityUnavailable
from models import CapabilityName, CapabilityState


def _boom() -> object:
    raise OSError("model files missing")


def test_failed_capability_does_not_block_siblings() -> None:
    registry = ModelCapabilityRegistry(
        loaders={
            CapabilityName.GENERATIVE_TEXT: _boom,
            CapabilityName.SPEECH_TO_TEXT: lambda: "asr-handle",
        }
    )

    degraded = registry.initialize()

    assert degraded == [CapabilityName.GENERATIVE_TEXT]
    assert registry.state(CapabilityName.GENERATIVE_TEXT) == CapabilityState.FAILED
    assert isinstance(registry.handle(CapabilityName.GENERATIVE_TEXT).error, OSError)
    assert registry.state(CapabilityName.SPEECH_TO_TEXT) == CapabilityState.READY
    assert registry.require(CapabilityName.SPEECH_TO_TEXT) == "asr-handle"


def test_capability_without_loader_stays_unloaded() -> None:
    registry = ModelCapabilityRegistry(loaders={})
    assert registry.initialize() == []
    assert registry.snapshot() == {name: CapabilityState.UNLOADED for name in CapabilityName}
    with pytest.raises(CapabilityUnavailable, match="speech-synthesis"):
        registry.require(CapabilityName.SPEECH_SYNTHESIS)


def test_require_failed_capability_reports_error() -> None:
    registry = ModelCapabilityRegistry(loaders={CapabilityName.SPEECH_TO_TEXT: _boom})
    registry.initialize()
    with pytest.raises(CapabilityUnavailable) as excinfo:
        registry.require(CapabilityName.SPEECH_TO_TEXT)
    assert excinfo.value.capability == "speech-to-text"
    assert "model files missing" in str(excinfo.value)


def test_state_is_loading_while_loader_runs() -> None:
    seen: list[CapabilityState] = []
    registry = ModelCapabilityRegistry(loaders={})

    def loader() -> str:
        seen.append(registry.state(CapabilityName.GENERATIVE_TEXT))
        return "llm"

    registry._loaders = {CapabilityName.GENERATIVE_TEXT: loader}
    registry.initialize()

    assert seen == [CapabilityState.LOADING]
    assert registry.state(CapabilityName.GENERATIVE_TEXT) == CapabilityState.READY


def test_default_loaders_skip_speech_synthesis() -> None:
    loaders = capabilities.default_loaders()
    assert set(loaders) == {CapabilityName.GENERATIVE_TEXT, CapabilityName.SPEECH_TO_TEXT}


@patch("capabilities.pipeline", None)
def test_default_loaders_fail_cleanly_without_transformers() -> None:
    registry = ModelCapabilityRegistry()
    degraded = registry.initialize()
    assert degraded == [CapabilityName.GENERATIVE_TEXT, CapabilityName.SPEECH_TO_TEXT]
    assert "transformers is not installed" in str(
        registry.handle(CapabilityName.GENERATIVE_TEXT).error
    )


@patch("capabilities.pipeline")
def test_default_loaders_build_pipelines(mock_pipeline) -> None:  # noqa: ANN001
    registry = ModelCapabilityRegistry()
    assert registry.initialize() == []
    mock_pipeline.assert_any_call("text2text-generation", model=capabilities.GENERATIVE_MODEL)
    mock_pipeline.assert_any_call(
        "automatic-speech-recognition", model=capabilities.SPEECH_TO_TEXT_MODEL
    )
