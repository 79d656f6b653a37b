"""Tests for the voice bridge adapter."""

import asyncio

import pytest

from concierge.errors import (
    ListenCancelledError,
    MicrophonePermissionError,
    RecognitionError,
    SynthesisError,
)
from concierge.voice import SpeechRecognizer, SpeechSynthesizer, VoiceBridge, VoiceConfig


class FakeRecognizer(SpeechRecognizer):
    def __init__(self, transcript: str = "hello there", granted: bool = True) -> None:
        self.transcript = transcript
        self.granted = granted
        self.error: Exception | None = None
        self.hold = False
        self.stop_calls = 0
        self.languages: list[str] = []

    async def request_permission(self) -> bool:
        return self.granted

    async def recognize(self, language: str) -> str:
        self.languages.append(language)
        if self.error is not None:
            raise self.error
        if self.hold:
            await asyncio.Event().wait()
        return self.transcript

    async def stop(self) -> None:
        self.stop_calls += 1


class FakeSynthesizer(SpeechSynthesizer):
    def __init__(self) -> None:
        self.spoken: list[tuple[str, VoiceConfig]] = []
        self.error: Exception | None = None
        self.stop_calls = 0

    async def speak(self, text: str, config: VoiceConfig) -> None:
        if self.error is not None:
            raise self.error
        self.spoken.append((text, config))

    async def stop(self) -> None:
        self.stop_calls += 1


@pytest.fixture
def recognizer() -> FakeRecognizer:
    return FakeRecognizer()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def bridge(recognizer, synthesizer) -> VoiceBridge:
    return VoiceBridge(recognizer, synthesizer, VoiceConfig(language="en-GB", rate=0.5, pitch=1.0))


# -- listen_once -------------------------------------------------------------


async def test_listen_once_returns_trimmed_text(bridge, recognizer) -> None:
    recognizer.transcript = "  what are your hours  "
    assert await bridge.listen_once() == "what are your hours"
    assert recognizer.languages == ["en-GB"]
    assert not bridge.is_listening


async def test_listen_permission_denied(bridge, recognizer) -> None:
    recognizer.granted = False
    with pytest.raises(MicrophonePermissionError):
        await bridge.listen_once()
    assert recognizer.languages == []


async def test_listen_backend_failure(bridge, recognizer) -> None:
    recognizer.error = RuntimeError("audio device busy")
    with pytest.raises(RecognitionError, match="audio device busy"):
        await bridge.listen_once()
    assert not bridge.is_listening


async def test_listen_empty_transcript(bridge, recognizer) -> None:
    recognizer.transcript = "   "
    with pytest.raises(RecognitionError, match="No speech"):
        await bridge.listen_once()


async def test_new_listen_stops_previous(bridge, recognizer) -> None:
    recognizer.hold = True
    first = asyncio.create_task(bridge.listen_once())
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert bridge.is_listening

    recognizer.hold = False
    second = await bridge.listen_once()

    assert second == "hello there"
    with pytest.raises(ListenCancelledError):
        await first
    assert recognizer.stop_calls == 1


async def test_stop_listening_is_idempotent(bridge, recognizer) -> None:
    await bridge.stop_listening()
    await bridge.stop_listening()
    assert not bridge.is_listening


# -- speak -------------------------------------------------------------------


async def test_speak_uses_bridge_config(bridge, synthesizer) -> None:
    await bridge.speak("Hello")
    [(text, config)] = synthesizer.spoken
    assert text == "Hello"
    assert config.language == "en-GB"
    assert config.rate == 0.5


async def test_speak_override_config(bridge, synthesizer) -> None:
    await bridge.speak("Bonjour", VoiceConfig(language="fr-FR"))
    [(_, config)] = synthesizer.spoken
    assert config.language == "fr-FR"
    assert config.pitch == 1.0


async def test_speak_override_keeps_zero_values(bridge, synthesizer) -> None:
    await bridge.speak("Quiet", VoiceConfig(rate=0.0, pitch=0.0))
    [(_, config)] = synthesizer.spoken
    assert config.rate == 0.0
    assert config.pitch == 0.0
    assert config.language == "en-GB"


async def test_speak_failure(bridge, synthesizer) -> None:
    synthesizer.error = RuntimeError("engine crashed")
    with pytest.raises(SynthesisError, match="engine crashed"):
        await bridge.speak("Hello")


async def test_stop_speaking_swallows_backend_errors(bridge, synthesizer) -> None:
    async def broken_stop() -> None:
        raise RuntimeError("already stopped")

    synthesizer.stop = broken_stop
    await bridge.stop_speaking()


async def test_destroy_stops_both(bridge, recognizer, synthesizer) -> None:
    await bridge.destroy()
    assert recognizer.stop_calls == 1
    assert synthesizer.stop_calls == 1


async def test_available_voices_default(bridge) -> None:
    assert await bridge.available_voices() == ["en-US"]
