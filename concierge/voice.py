"""Voice bridge — one-shot speech recognition and text-to-speech.

The recognizer and synthesizer are pluggable backends.  The bridge adds
the rules callers rely on: a single active listen (starting a new one
stops the old one), idempotent stop calls, and ``VoiceError`` subclasses
for every failure.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from concierge.config import settings
from concierge.errors import (
    ListenCancelledError,
    MicrophonePermissionError,
    RecognitionError,
    SynthesisError,
    VoiceError,
)

logger = logging.getLogger(__name__)

_PERMISSION_DENIED = "Microphone permission denied"


@dataclass
class VoiceConfig:
    """Speech output settings. ``None`` fields keep the backend's current value."""

    language: str | None = None
    rate: float | None = None
    pitch: float | None = None

    @classmethod
    def from_settings(cls) -> VoiceConfig:
        return cls(
            language=settings.voice_language,
            rate=settings.voice_rate,
            pitch=settings.voice_pitch,
        )

    def over(self, base: VoiceConfig) -> VoiceConfig:
        """Fields set here win; ``None`` fields fall back to *base*."""
        return VoiceConfig(
            language=base.language if self.language is None else self.language,
            rate=base.rate if self.rate is None else self.rate,
            pitch=base.pitch if self.pitch is None else self.pitch,
        )


class SpeechRecognizer(ABC):
    """Speech-to-text backend."""

    async def request_permission(self) -> bool:
        """Ask for microphone access. Backends without prompts return True."""
        return True

    @abstractmethod
    async def recognize(self, language: str) -> str:
        """Listen until the speaker stops and return the best transcript."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop an in-progress recognition. Must be safe to call when idle."""
        ...


class SpeechSynthesizer(ABC):
    """Text-to-speech backend."""

    @abstractmethod
    async def speak(self, text: str, config: VoiceConfig) -> None:
        """Speak *text* and return when playback finishes."""
        ...

    @abstractmethod
    async def stop(self) -> None:
        """Stop playback. Must be safe to call when idle."""
        ...

    async def voices(self) -> list[str]:
        return [settings.voice_language]


class VoiceBridge:
    """Adapter the assistant uses for voice input and output."""

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        synthesizer: SpeechSynthesizer,
        config: VoiceConfig | None = None,
    ) -> None:
        self._recognizer = recognizer
        self._synthesizer = synthesizer
        self._config = config or VoiceConfig.from_settings()
        self._listen_task: asyncio.Task[str] | None = None

    @property
    def is_listening(self) -> bool:
        return self._listen_task is not None and not self._listen_task.done()

    # -- Input -----------------------------------------------------------------

    async def listen_once(self) -> str:
        """Listen for one utterance and return its text.

        Raises:
            MicrophonePermissionError: microphone access denied.
            RecognitionError: the backend failed or heard nothing.
            ListenCancelledError: a newer listen or ``stop_listening()``
                ended this one.
        """
        try:
            granted = await self._recognizer.request_permission()
        except Exception as exc:
            logger.exception("Microphone permission request failed")
            raise MicrophonePermissionError(_PERMISSION_DENIED) from exc
        if not granted:
            raise MicrophonePermissionError(_PERMISSION_DENIED)

        if self.is_listening:
            await self.stop_listening()

        language = self._config.language or settings.voice_language
        task = asyncio.create_task(self._recognizer.recognize(language))
        self._listen_task = task
        try:
            text = await task
        except asyncio.CancelledError:
            if task.cancelled() and not _current_task_cancelling():
                msg = "Listening was stopped"
                raise ListenCancelledError(msg) from None
            raise
        except VoiceError:
            raise
        except Exception as exc:
            logger.error("Speech recognition error: %s", exc)
            raise RecognitionError(str(exc) or "Speech recognition failed") from exc
        finally:
            if self._listen_task is task:
                self._listen_task = None

        text = (text or "").strip()
        if not text:
            msg = "No speech was recognized"
            raise RecognitionError(msg)
        logger.info("Voice input received (%d chars)", len(text))
        return text

    async def stop_listening(self) -> None:
        """Stop the active listen, if any."""
        task, self._listen_task = self._listen_task, None
        try:
            await self._recognizer.stop()
        except Exception:
            logger.exception("Failed to stop voice recognition")
        if task is not None and not task.done():
            task.cancel()

    # -- Output ----------------------------------------------------------------

    async def speak(self, text: str, config: VoiceConfig | None = None) -> None:
        """Speak *text* to completion. Raises SynthesisError on failure."""
        merged = (config or VoiceConfig()).over(self._config)
        try:
            await self._synthesizer.speak(text, merged)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Text-to-speech failed: %s", exc)
            raise SynthesisError(str(exc) or "Text-to-speech failed") from exc

    async def stop_speaking(self) -> None:
        try:
            await self._synthesizer.stop()
        except Exception:
            logger.exception("Failed to stop text-to-speech")

    async def available_voices(self) -> list[str]:
        try:
            return await self._synthesizer.voices()
        except Exception:
            logger.exception("Failed to get available voices")
            return [settings.voice_language]

    async def destroy(self) -> None:
        await self.stop_listening()
        await self.stop_speaking()


def _current_task_cancelling() -> bool:
    """True when the task awaiting the listen is itself being cancelled."""
    current = asyncio.current_task()
    return current is not None and current.cancelling() > 0