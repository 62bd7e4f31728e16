# errors.py
from __future__ import annotations


class SpeechPracticeError(Exception):
    """Base class for failures of a single practice attempt."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class DeviceError(SpeechPracticeError):
    """The audio input could not be opened."""

    default_message = "Microphone error"


class TooShortCapture(SpeechPracticeError):
    default_message = "Recording too short, please try again"


class RecognitionError(SpeechPracticeError):
    """Raised by recognizers."""

    default_message = "Recognition failed"


class RecognitionFailure(RecognitionError):
    """The recognition call errored or timed out."""


class EmptyTranscript(SpeechPracticeError):
    default_message = "No speech detected, please speak louder"
