# audio_input.py
from __future__ import annotations

import logging
import queue
import threading
from typing import List, Optional, Tuple

import numpy as np
import sounddevice as sd

from audio_utils import SAMPLE_RATE
from errors import DeviceError
from wav_recorder import FrameCallback

logger = logging.getLogger(__name__)

FRAME_SIZE = 4096  # ~256 ms at 16 kHz


def list_input_devices() -> List[Tuple[int, str, float]]:
    """(index, name, default_samplerate) for every device with input channels."""
    devices = []
    for idx, dev in enumerate(sd.query_devices()):
        if int(dev.get("max_input_channels", 0)) > 0:
            devices.append((idx, str(dev["name"]), float(dev.get("default_samplerate", 0.0))))
    return devices


class SoundDeviceInput:
    """
    Microphone input through a PortAudio stream.

    The PortAudio callback only copies blocks into a queue; a reader thread
    hands them to the consumer so Python work never runs on the RT thread.
    """

    def __init__(
        self,
        device: Optional[int | str] = None,
        sample_rate: int = SAMPLE_RATE,
        frame_size: int = FRAME_SIZE,
    ):
        self.device = device
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self._stream: Optional[sd.InputStream] = None
        self._queue: queue.Queue[Optional[np.ndarray]] = queue.Queue(maxsize=256)
        self._reader: Optional[threading.Thread] = None
        self._stop = threading.Event()
        self._xrun_count = 0

    def _callback(self, indata, frames, time_info, status) -> None:
        if status:
            self._xrun_count += 1
        try:
            self._queue.put_nowait(indata[:, 0].copy())
        except queue.Full:
            self._xrun_count += 1

    def _read_loop(self, callback: FrameCallback) -> None:
        while not self._stop.is_set():
            try:
                block = self._queue.get(timeout=0.25)
            except queue.Empty:
                continue
            if block is None:
                break
            callback(block)

    def start(self, callback: FrameCallback) -> None:
        self._stop.clear()
        self._queue = queue.Queue(maxsize=256)
        self._reader = threading.Thread(
            target=self._read_loop, args=(callback,), name="mic-reader", daemon=True
        )
        self._reader.start()
        try:
            self._stream = sd.InputStream(
                device=self.device,
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.frame_size,
                latency="high",
                callback=self._callback,
            )
            self._stream.start()
        except (sd.PortAudioError, ValueError) as e:
            self.close()
            raise DeviceError(f"Microphone error: {e}") from e

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
            finally:
                stream.close()

        self._stop.set()
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            pass
        reader, self._reader = self._reader, None
        # close() may be reached from the reader itself via an auto-stop
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=1.0)

        if self._xrun_count:
            logger.warning("Input overflows / queue drops: %d", self._xrun_count)
            self._xrun_count = 0
