from __future__ import annotations

import logging
import threading

import numpy as np
import sounddevice as sd

from audio_utils import SAMPLE_RATE, decode_wav

logger = logging.getLogger(__name__)


class AudioPlayer:
    """
    Plays back the learner's last recorded clip on a single output stream.
    Load a clip with set_clip() (encoded WAV bytes) or set_data() (float32),
    then play() / stop().
    """

    def __init__(self, samplerate: int = SAMPLE_RATE):
        self.sr = samplerate
        self.samples = np.zeros(0, dtype=np.float32)
        self.pos = 0
        self.stream: sd.OutputStream | None = None
        self.finished = threading.Event()
        self.finished.set()

    def _ensure_stream(self) -> sd.OutputStream:
        if self.stream is None:
            self.stream = sd.OutputStream(
                samplerate=self.sr,
                channels=1,
                dtype="float32",
                blocksize=1024,
                latency="high",
                callback=self._fill,
                finished_callback=self.finished.set,
            )
        return self.stream

    def _fill(self, outdata, frames, time_info, status):
        outdata.fill(0)
        chunk = self.samples[self.pos: self.pos + frames]
        outdata[: chunk.size, 0] = chunk
        self.pos += chunk.size
        if self.pos >= self.samples.size:
            raise sd.CallbackStop()

    def set_data(self, data: np.ndarray, samplerate: int | None = None):
        self.stop()
        if samplerate is not None and samplerate != self.sr:
            # output streams are opened for one rate
            self.close()
            self.sr = samplerate
        self.samples = np.ascontiguousarray(data, dtype=np.float32).reshape(-1)
        self.pos = 0

    def set_clip(self, clip: bytes):
        """Load an encoded WAV clip as produced by WavRecorder.stop()."""
        samples, sr = decode_wav(clip)
        self.set_data(samples, sr)

    def play(self):
        if self.samples.size == 0:
            return
        stream = self._ensure_stream()
        if not stream.stopped:
            stream.abort()
        self.pos = 0
        self.finished.clear()
        try:
            stream.start()
        except sd.PortAudioError as e:
            self.finished.set()
            logger.warning("Playback failed: %s", e)

    def stop(self):
        if self.stream is not None and self.stream.active:
            self.stream.abort()

    def close(self):
        """Free the output device."""
        stream, self.stream = self.stream, None
        if stream is None:
            return
        try:
            if stream.active:
                stream.abort()
        finally:
            stream.close()

    @property
    def active(self) -> bool:
        return self.stream is not None and not self.finished.is_set()
