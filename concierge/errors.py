"""Exception hierarchy for the assistant core."""


class ConciergeError(Exception):
    """Base class for all Concierge errors."""


class StorageUnavailableError(ConciergeError):
    """The record store could not be opened, used, or closed."""


class MessageRejectedError(ConciergeError, ValueError):
    """User text failed validation and was not stored."""


class VoiceError(ConciergeError):
    """Base class for speech input/output failures."""


class MicrophonePermissionError(VoiceError):
    """Microphone access was denied."""


class RecognitionError(VoiceError):
    """Speech recognition failed or produced no text."""


class ListenCancelledError(VoiceError):
    """A listen was stopped before it produced a result."""


class SynthesisError(VoiceError):
    """Text-to-speech failed."""
