# vad.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from audio_utils import frame_rms

logger = logging.getLogger(__name__)

SPEECH_THRESHOLD = 0.035  # above room noise and coughs
SILENCE_TIMEOUT_MS = 4000.0


@dataclass(frozen=True)
class VadState:
    rms: float
    is_speech: bool
    silence_duration_ms: float


class VoiceActivityDetector:
    """
    Energy-based speech/silence classifier fed one frame at a time.

    on_state(VadState) is called for every frame; on_silence() is called once
    when silence exceeds the timeout, after which the silence reference is
    reset so the next firing needs another full timeout of silence.
    """

    def __init__(
        self,
        speech_threshold: float = SPEECH_THRESHOLD,
        silence_timeout_ms: float = SILENCE_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
        on_state: Optional[Callable[[VadState], None]] = None,
        on_silence: Optional[Callable[[], None]] = None,
    ):
        self.speech_threshold = float(speech_threshold)
        self.silence_timeout_ms = float(silence_timeout_ms)
        self._clock = clock
        self.on_state = on_state
        self.on_silence = on_silence
        self.last_speech_timestamp = self._now_ms()
        self.state = VadState(0.0, False, 0.0)

    def _now_ms(self) -> float:
        return float(self._clock()) * 1000.0

    def reset(self) -> None:
        """Restart the silence timer from now."""
        self.last_speech_timestamp = self._now_ms()
        self.state = VadState(0.0, False, 0.0)

    def process(self, frame: np.ndarray) -> VadState:
        rms = frame_rms(frame)
        is_speech = rms > self.speech_threshold
        now = self._now_ms()
        if is_speech:
            self.last_speech_timestamp = now
        silence = max(0.0, now - self.last_speech_timestamp)

        self.state = VadState(rms, is_speech, silence)
        if self.on_state is not None:
            self.on_state(self.state)

        if silence > self.silence_timeout_ms:
            logger.info("Silence detected (%.0f ms), triggering stop", silence)
            # re-arm before the callback so a slow handler can't double fire
            self.last_speech_timestamp = now
            if self.on_silence is not None:
                self.on_silence()
        return self.state
