# wav_recorder.py
from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

import numpy as np

from audio_utils import SAMPLE_RATE, encode_wav, float_to_pcm16
from vad import VoiceActivityDetector

logger = logging.getLogger(__name__)

FrameCallback = Callable[[np.ndarray], None]


class AudioInput(Protocol):
    """
    A live source of fixed-size float32 mono frames.
    start() begins delivering frames to the callback; close() releases the
    underlying device and must be safe to call more than once.
    """

    sample_rate: int

    def start(self, callback: FrameCallback) -> None: ...

    def close(self) -> None: ...


class WavRecorder:
    """
    Buffers every incoming frame, forwards it to the VAD, and renders a
    16-bit mono WAV clip when stopped.
    """

    def __init__(self, vad: Optional[VoiceActivityDetector] = None, sample_rate: int = SAMPLE_RATE):
        self.vad = vad
        self.sample_rate = sample_rate
        self._stream: Optional[AudioInput] = None
        self._blocks: list[np.ndarray] = []
        self._lock = threading.Lock()
        self.recording = False

    def start(self, stream: AudioInput) -> None:
        with self._lock:
            self._blocks = []
            self._stream = stream
            self.recording = True
        if self.vad is not None:
            self.vad.reset()
        try:
            stream.start(self._on_frame)
        except Exception:
            with self._lock:
                self.recording = False
                self._stream = None
            stream.close()
            raise

    def _on_frame(self, frame: np.ndarray) -> None:
        with self._lock:
            if not self.recording:
                return
            self._blocks.append(np.array(frame, dtype=np.float32).reshape(-1))
        if self.vad is not None:
            self.vad.process(frame)

    def stop(self) -> bytes:
        """Release the input and return the encoded clip (b'' if not started)."""
        with self._lock:
            if not self.recording:
                return b""
            self.recording = False
            stream = self._stream
            self._stream = None
            blocks = self._blocks
            self._blocks = []

        if self.vad is not None:
            self.vad.on_silence = None
            self.vad.on_state = None
        if stream is not None:
            stream.close()

        if blocks:
            raw = np.concatenate(blocks, axis=0)
        else:
            raw = np.zeros(0, dtype=np.float32)
        logger.debug("Captured %d samples", raw.size)
        return encode_wav(float_to_pcm16(raw), self.sample_rate)
