# practice_session.py
from __future__ import annotations

import itertools
import logging
import math
import threading
import time
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

import db as attempt_store
from alignment_utils import (
    AlignmentResult,
    StruggleItem,
    Token,
    annotate_tokens,
    align,
    tokenize_sentence,
    word_tokens,
)
from audio_utils import save_clip
from errors import (
    DeviceError,
    EmptyTranscript,
    RecognitionError,
    RecognitionFailure,
    SpeechPracticeError,
    TooShortCapture,
)
from settings import SessionConfig
from transcript_utils import spoken_words, strip_fillers, transcript_wer
from transcription_service import Recognizer
from vad import VadState, VoiceActivityDetector
from wav_recorder import AudioInput, WavRecorder

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    ARMING = "arming"
    RECORDING = "recording"
    PROCESSING = "processing"
    SUCCESS = "success"


@dataclass(frozen=True)
class CaptureHandle:
    """Identifies one capture; stop signals must present the live handle."""

    generation: int


@dataclass
class AttemptResult:
    sentence_index: int
    transcript: str
    words: List[str]
    alignment: AlignmentResult
    clip: bytes = b""

    @property
    def struggles(self) -> List[StruggleItem]:
        return self.alignment.struggles

    @property
    def success(self) -> bool:
        return self.alignment.success


@dataclass
class MasteryCounters:
    attempts: int = 0
    successes: int = 0
    sentences_mastered: int = 0
    struggle_tally: Counter = field(default_factory=Counter)


class SessionListener:
    """Receives session events. Methods may be called from worker threads."""

    def on_state_changed(self, state: SessionState) -> None:
        pass

    def on_feedback(self, message: str) -> None:
        pass

    def on_vad(self, state: VadState) -> None:
        pass

    def on_result(self, result: AttemptResult) -> None:
        pass

    def on_error(self, error: SpeechPracticeError) -> None:
        pass


class PracticeSession:
    """
    One learner practicing a list of sentences.

    start() arms a fresh capture and returns its CaptureHandle; stop(handle)
    ends it. Only the handle of the live capture is honoured, so a VAD
    auto-stop left over from an earlier capture is a no-op. A single
    non-blocking lock guards the whole attempt, from start() until the
    result (or failure) has been applied.
    """

    def __init__(
        self,
        sentences: Sequence[str],
        recognizer: Recognizer,
        input_factory: Callable[[], AudioInput],
        config: Optional[SessionConfig] = None,
        listener: Optional[SessionListener] = None,
        db=None,
        run_async: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or SessionConfig()
        self.listener = listener or SessionListener()
        self.recognizer = recognizer
        self.db = db
        self.run_async = run_async
        self.mastery = MasteryCounters()
        self._input_factory = input_factory
        self._clock = clock

        self._busy = threading.Lock()
        self._lock = threading.RLock()
        self._generations = itertools.count(1)
        self._active_handle: Optional[CaptureHandle] = None
        self._recorder: Optional[WavRecorder] = None
        self._warmup_timer: Optional[threading.Timer] = None
        self._worker: Optional[threading.Thread] = None
        self._mastered: set = set()

        self._sentences: List[str] = list(sentences)
        self._index = 0
        self._state = SessionState.IDLE
        self._message = "Tap the microphone to start"
        self._reset_attempt_locked()

    # ───────────────────────────── properties ─────────────────────────────

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def message(self) -> str:
        return self._message

    @property
    def sentences(self) -> List[str]:
        return list(self._sentences)

    @property
    def sentence_index(self) -> int:
        return self._index

    @property
    def sentence(self) -> str:
        if 0 <= self._index < len(self._sentences):
            return self._sentences[self._index]
        return ""

    @property
    def tokens(self) -> List[Token]:
        return list(self._tokens)

    @property
    def active_handle(self) -> Optional[CaptureHandle]:
        return self._active_handle

    @property
    def last_result(self) -> Optional[AttemptResult]:
        return self._last_result

    @property
    def struggles(self) -> List[StruggleItem]:
        return self._last_result.struggles if self._last_result else []

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def last_clip(self) -> Optional[bytes]:
        return self._last_clip

    @property
    def last_error(self) -> Optional[SpeechPracticeError]:
        return self._last_error

    @property
    def vad_state(self) -> Optional[VadState]:
        return self._vad_state

    @property
    def advance_blocked(self) -> bool:
        return self._advance_blocked

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def annotated_tokens(self) -> List[Tuple[Token, str]]:
        result = self._last_result
        return annotate_tokens(self._tokens, result.alignment if result else None)

    # ─────────────────────────────── events ───────────────────────────────

    def _set_state(self, state: SessionState, message: Optional[str] = None) -> None:
        with self._lock:
            self._state = state
            if message is not None:
                self._message = message
        self._notify(state, message)

    def _set_message(self, message: str) -> None:
        with self._lock:
            self._message = message
        self.listener.on_feedback(message)

    def _notify(self, state: SessionState, message: Optional[str]) -> None:
        self.listener.on_state_changed(state)
        if message is not None:
            self.listener.on_feedback(message)

    def _fail(self, error: SpeechPracticeError) -> None:
        with self._lock:
            self._last_error = error
        self._set_state(SessionState.IDLE, error.message)
        self.listener.on_error(error)

    # ───────────────────────────── navigation ─────────────────────────────

    def _reset_attempt_locked(self) -> None:
        self._tokens: List[Token] = tokenize_sentence(self.sentence)
        self._last_result: Optional[AttemptResult] = None
        self._transcript = ""
        self._last_clip: Optional[bytes] = None
        self._last_error: Optional[SpeechPracticeError] = None
        self._vad_state: Optional[VadState] = None
        self._advance_blocked = False
        self._state = SessionState.IDLE

    def _navigate(self, index: int, message: str) -> bool:
        if not self._busy.acquire(blocking=False):
            logger.info("Navigation ignored: an attempt is in progress")
            return False
        try:
            with self._lock:
                self._index = index
                self._reset_attempt_locked()
                self._message = message
        finally:
            self._busy.release()
        self._notify(SessionState.IDLE, message)
        return True

    def advance(self) -> bool:
        """Move to the next sentence. False when blocked, busy or at the end."""
        with self._lock:
            if self._advance_blocked:
                logger.info("Advance blocked until sentence %d is read correctly", self._index)
                return False
            if self._index >= len(self._sentences) - 1:
                return False
            target = self._index + 1
        return self._navigate(target, "Tap the microphone to read the next sentence")

    def previous(self) -> bool:
        with self._lock:
            if self._index <= 0:
                return False
            target = self._index - 1
        return self._navigate(target, "Tap the microphone to read the sentence")

    def reset_attempt(self) -> bool:
        """Clear the current attempt and practice the same sentence again."""
        return self._navigate(self._index, "Tap the microphone to start")

    def load_sentences(self, sentences: Sequence[str]) -> bool:
        if not self._busy.acquire(blocking=False):
            return False
        try:
            with self._lock:
                self._sentences = list(sentences)
                self._index = 0
                self._reset_attempt_locked()
                self._message = "Tap the microphone to start"
        finally:
            self._busy.release()
        self._notify(SessionState.IDLE, self._message)
        return True

    # ────────────────────────────── capture ───────────────────────────────

    def start(self) -> Optional[CaptureHandle]:
        """
        Begin an attempt. Returns the capture handle, or None when another
        attempt is in flight or the microphone could not be opened.
        """
        # must be the first thing: two quick taps may both get here
        if not self._busy.acquire(blocking=False):
            logger.info("Start rejected: an attempt is already in progress")
            return None

        with self._lock:
            if self._state is not SessionState.IDLE or not word_tokens(self._tokens):
                logger.info("Start rejected in state %s", self._state.value)
                self._busy.release()
                return None
            handle = CaptureHandle(next(self._generations))
            self._active_handle = handle
            self._last_result = None
            self._transcript = ""
            self._last_error = None
            self._vad_state = None
            self._state = SessionState.ARMING
            self._message = "Get ready…"
        self._notify(SessionState.ARMING, "Get ready…")

        vad = VoiceActivityDetector(
            speech_threshold=self.config.speech_threshold,
            silence_timeout_ms=self.config.silence_timeout_ms,
            clock=self._clock,
            on_state=partial(self._on_vad, handle),
            on_silence=partial(self._on_silence, handle),
        )
        recorder = WavRecorder(vad, sample_rate=self.config.sample_rate)
        try:
            stream = self._input_factory()
            with self._lock:
                self._recorder = recorder
            recorder.start(stream)
        except Exception as e:
            error = e if isinstance(e, DeviceError) else DeviceError(f"Microphone error: {e}")
            logger.error("Could not open audio input: %s", e, exc_info=True)
            with self._lock:
                self._active_handle = None
                self._recorder = None
            self._fail(error)
            self._busy.release()
            return None

        if self.config.warmup_s > 0:
            timer = threading.Timer(self.config.warmup_s, self._begin_recording, args=(handle,))
            timer.daemon = True
            with self._lock:
                self._warmup_timer = timer
            timer.start()
        else:
            self._begin_recording(handle)
        return handle

    def _begin_recording(self, handle: CaptureHandle) -> None:
        with self._lock:
            if handle != self._active_handle or self._state is not SessionState.ARMING:
                return
            self._warmup_timer = None
            recorder = self._recorder
            self._state = SessionState.RECORDING
            self._message = "Go! Recording…"
        # silence during warm-up does not count
        if recorder is not None and recorder.vad is not None:
            recorder.vad.reset()
        self._notify(SessionState.RECORDING, "Go! Recording…")

    def _on_vad(self, handle: CaptureHandle, vad_state: VadState) -> None:
        with self._lock:
            if handle != self._active_handle:
                return
            self._vad_state = vad_state
            recording = self._state is SessionState.RECORDING
        self.listener.on_vad(vad_state)
        if recording:
            self._set_message(self._recording_message(vad_state))

    def _recording_message(self, vad_state: VadState) -> str:
        base = "Recording… (speech detected)" if vad_state.is_speech else "Recording…"
        if vad_state.silence_duration_ms <= 500:
            return base
        timeout_ms = self.config.silence_timeout_ms
        remaining = math.ceil((timeout_ms - vad_state.silence_duration_ms) / 1000.0)
        if remaining <= 0:
            return "Stopping…"
        if remaining < timeout_ms / 1000.0:
            return f"Stopping in {remaining}s…"
        return base

    def _on_silence(self, handle: CaptureHandle) -> None:
        with self._lock:
            live = handle == self._active_handle and self._state is SessionState.RECORDING
        if not live:
            logger.debug("Ignoring silence signal for %s", handle)
            return
        self.stop(handle)

    def stop(self, handle: Optional[CaptureHandle]) -> bool:
        """
        End the capture identified by `handle`. During warm-up this cancels
        the attempt; while recording it hands the clip to recognition.
        Returns False (and does nothing) for a stale or unknown handle.
        """
        return self._stop(handle, process=True)

    def cancel(self, handle: Optional[CaptureHandle] = None) -> bool:
        """Abort the live capture without recognition (default: whatever is live)."""
        if handle is None:
            handle = self._active_handle
        return self._stop(handle, process=False)

    def _stop(self, handle: Optional[CaptureHandle], process: bool) -> bool:
        with self._lock:
            if handle is None or handle != self._active_handle:
                logger.debug("Discarding stale stop signal for %s", handle)
                return False
            timer, self._warmup_timer = self._warmup_timer, None
            recorder, self._recorder = self._recorder, None
            self._active_handle = None
            proceed = process and self._state is SessionState.RECORDING
            if proceed:
                self._state = SessionState.PROCESSING

        if timer is not None:
            timer.cancel()
        clip = recorder.stop() if recorder is not None else b""

        if not proceed:
            logger.info("Capture %s cancelled before recording", handle)
            self._set_state(SessionState.IDLE, "Recording cancelled")
            self._busy.release()
            return True

        with self._lock:
            self._last_clip = clip
        self._notify(SessionState.PROCESSING, None)
        if self.run_async:
            worker = threading.Thread(
                target=self._process, args=(clip,), name="recognize", daemon=True
            )
            with self._lock:
                self._worker = worker
            worker.start()
        else:
            self._process(clip)
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for a background recognition to finish."""
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join(timeout)

    # ───────────────────────────── processing ─────────────────────────────

    def _process(self, clip: bytes) -> None:
        with self._lock:
            index = self._index
            tokens = list(self._tokens)
            sentence = self.sentence
        try:
            if len(clip) < self.config.min_clip_bytes:
                raise TooShortCapture()
            self._set_message("Recognizing…")
            try:
                text = self.recognizer.recognize(clip)
            except RecognitionError:
                raise
            except Exception as e:
                raise RecognitionFailure(f"Recognition failed: {e}") from e

            targets = [t.clean for t in word_tokens(tokens)]
            words = strip_fillers(spoken_words(text or ""), targets)
            if not words:
                raise EmptyTranscript()

            result = AttemptResult(index, text, words, align(tokens, words), clip)
            self._apply_result(result, sentence)
        except RecognitionError as e:
            logger.error("Recognition error: %s", e.message, exc_info=True)
            self._fail(e)
        except (TooShortCapture, EmptyTranscript) as e:
            logger.info("Attempt produced no usable speech: %s", e.message)
            self._fail(e)
        except Exception as e:
            logger.error("Unexpected error while scoring attempt", exc_info=True)
            self._fail(SpeechPracticeError(f"Scoring failed: {e}"))
        finally:
            self._busy.release()

    def _apply_result(self, result: AttemptResult, sentence: str) -> None:
        words = result.alignment.struggle_words
        threshold = self.config.struggle_block_threshold
        with self._lock:
            self._last_result = result
            self._transcript = result.transcript
            self.mastery.attempts += 1
            self.mastery.struggle_tally.update(words)
            if result.success:
                self.mastery.successes += 1
                if sentence not in self._mastered:
                    self._mastered.add(sentence)
                    self.mastery.sentences_mastered += 1
                self._advance_blocked = False
                state = SessionState.SUCCESS
                message = "Great job! Continue to the next sentence"
            else:
                if len(words) > threshold:
                    self._advance_blocked = True
                    message = f"{len(words)} errors found, please read it again"
                else:
                    message = f"{len(words)} errors found"
                state = SessionState.IDLE

        self._record(result, sentence)
        self.listener.on_result(result)
        self._set_state(state, message)

    def _record(self, result: AttemptResult, sentence: str) -> None:
        audio_path = None
        if self.config.save_recordings and result.clip:
            try:
                audio_path = save_clip(result.clip, self.config.recordings_dir)
            except (OSError, RuntimeError, ValueError) as e:
                logger.warning("Could not save recording: %s", e)
        if self.db is None:
            return
        try:
            attempt_store.add_attempt(
                self.db,
                result.sentence_index,
                sentence,
                result.transcript,
                result.alignment.struggle_words,
                wer=transcript_wer(sentence, " ".join(result.words)),
                audio_path=audio_path,
            )
        except SQLAlchemyError as e:
            logger.warning("Could not store attempt: %s", e)
            self.db.rollback()
