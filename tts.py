# tts.py
# Reads the target sentence and single words aloud as a pronunciation model
from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional

import pyttsx3

logger = logging.getLogger(__name__)

SPEEDS = (1.0, 0.8)
DEFAULT_RATE = 200  # pyttsx3 words per minute when the driver reports none
MISSED_WORD_REPEATS = 3
REPEAT_GAP_S = 0.5


class Speaker:
    """
    pyttsx3 wrapper for the practice window.

    speak_sentence() reads the whole sentence; speak_word() reads one word,
    optionally several times with a pause in between. Speech runs on a
    worker thread and any new request interrupts the one in progress.
    `speed` scales the engine's own default rate (1.0 or 0.8).
    """

    def __init__(
        self,
        engine: Optional[Any] = None,
        speed: float = 1.0,
        repeat_gap_s: float = REPEAT_GAP_S,
        run_async: bool = True,
    ):
        self._engine = engine
        self.speed = float(speed) if float(speed) in SPEEDS else SPEEDS[0]
        self.repeat_gap_s = float(repeat_gap_s)
        self.run_async = run_async
        self.available = True
        self._base_rate: Optional[int] = None
        self._cancel = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._engine_lock = threading.Lock()

    def _ensure_engine(self):
        if self._engine is None and self.available:
            try:
                self._engine = pyttsx3.init()
            except (ImportError, RuntimeError, OSError) as e:
                logger.warning("Text-to-speech not available: %s", e)
                self.available = False
                return None
        if self._engine is not None and self._base_rate is None:
            self._base_rate = int(self._engine.getProperty("rate") or DEFAULT_RATE)
        return self._engine

    @property
    def rate(self) -> int:
        return int(round((self._base_rate or DEFAULT_RATE) * self.speed))

    def toggle_speed(self) -> float:
        self.speed = SPEEDS[(SPEEDS.index(self.speed) + 1) % len(SPEEDS)]
        return self.speed

    @property
    def speaking(self) -> bool:
        worker = self._worker
        return worker is not None and worker.is_alive()

    def speak_sentence(self, text: str) -> bool:
        return self._start([text])

    def speak_word(self, word: str, repeats: int = 1) -> bool:
        return self._start([word] * max(1, int(repeats)))

    def _start(self, items: List[str]) -> bool:
        items = [s.strip() for s in items if s and s.strip()]
        if not items:
            return False
        engine = self._ensure_engine()
        if engine is None:
            return False

        self.stop()
        cancel = threading.Event()
        self._cancel = cancel
        if self.run_async:
            worker = threading.Thread(
                target=self._speak, args=(engine, items, cancel), name="tts", daemon=True
            )
            self._worker = worker
            worker.start()
        else:
            self._speak(engine, items, cancel)
        return True

    def _speak(self, engine, items: List[str], cancel: threading.Event) -> None:
        with self._engine_lock:
            engine.setProperty("rate", self.rate)
            for i, text in enumerate(items):
                if i and cancel.wait(self.repeat_gap_s):
                    break
                if cancel.is_set():
                    break
                engine.say(text)
                try:
                    engine.runAndWait()
                except RuntimeError as e:
                    # "run loop already started" when a driver is reentered
                    logger.warning("Speech interrupted: %s", e)
                    break

    def join(self, timeout: Optional[float] = None) -> None:
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)

    def stop(self) -> None:
        """Interrupt the current utterance and any pending repeats."""
        self._cancel.set()
        worker, self._worker = self._worker, None
        if worker is None:
            return
        if worker.is_alive() and self._engine is not None:
            self._engine.stop()
        if worker is not threading.current_thread():
            worker.join(timeout=2.0)
