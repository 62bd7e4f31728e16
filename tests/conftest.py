from __future__ import annotations

import threading

import numpy as np
import pytest

from errors import RecognitionFailure


FRAME = 4096


def speech_frame(level: float = 0.2) -> np.ndarray:
    return np.full(FRAME, level, dtype=np.float32)


def silent_frame() -> np.ndarray:
    return np.zeros(FRAME, dtype=np.float32)


class FakeClock:
    def __init__(self, t: float = 0.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance_ms(self, ms: float) -> None:
        self.t += ms / 1000.0


class FakeInput:
    """Audio input driven by the test: push() delivers one frame."""

    sample_rate = 16_000

    def __init__(self):
        self.callback = None
        self.started = False
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def start(self, callback) -> None:
        self.callback = callback
        self.started = True

    def push(self, frame) -> None:
        if self.callback is not None and not self.closed:
            self.callback(frame)

    def close(self) -> None:
        self.close_count += 1


class FakeRecognizer:
    def __init__(self, text: str = "", error: Exception | None = None):
        self.text = text
        self.error = error
        self.calls: list[bytes] = []
        self.gate: threading.Event | None = None

    def recognize(self, audio_bytes: bytes) -> str:
        self.calls.append(audio_bytes)
        if self.gate is not None:
            self.gate.wait(5.0)
        if self.error is not None:
            raise self.error
        return self.text


class InputFactory:
    def __init__(self):
        self.inputs: list[FakeInput] = []

    def __call__(self) -> FakeInput:
        stream = FakeInput()
        self.inputs.append(stream)
        return stream

    @property
    def last(self) -> FakeInput:
        return self.inputs[-1]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def inputs():
    return InputFactory()


@pytest.fixture
def failing_recognizer():
    return FakeRecognizer(error=RecognitionFailure("Recognition failed: timeout"))
