from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import requests

from audio_utils import decode_wav
from errors import RecognitionFailure
from settings import whisper_options

logger = logging.getLogger(__name__)


class Recognizer(Protocol):
    """Turns an encoded WAV clip into transcript text."""

    def recognize(self, audio_bytes: bytes) -> str: ...


class WhisperRecognizer:
    """
    Local Whisper model. The model is loaded lazily on first use so the
    window opens without waiting for it.
    """

    def __init__(self, settings: Optional[Dict] = None, model: Optional[Any] = None):
        self.settings: Dict = dict(settings or {})
        self.model: Optional[Any] = model

    def ensure_model(self) -> None:
        if self.model is None:
            import whisper

            model_name = self.settings.get("model_name") or "base.en"
            logger.info("Loading Whisper model %s", model_name)
            self.model = whisper.load_model(model_name)

    def reset(self) -> None:
        """Drop the loaded model so new settings take effect."""
        self.model = None

    def recognize(self, audio_bytes: bytes) -> str:
        try:
            samples, _sr = decode_wav(audio_bytes)
            self.ensure_model()
            result = self.model.transcribe(samples, **whisper_options(self.settings))
        except Exception as e:
            raise RecognitionFailure(f"Recognition failed: {e}") from e
        return str(result.get("text", "")).strip()


class HttpRecognizer:
    """
    Remote recognition service: POSTs the clip as multipart field "audio"
    and expects JSON {"text": "..."} (or {"error": "..."} on failure).
    """

    def __init__(self, url: str, timeout: float = 30.0, session: Optional[requests.Session] = None):
        if not url:
            raise ValueError("recognizer_url is not configured")
        self.url = url
        self.timeout = timeout
        self.http = session or requests.Session()

    def recognize(self, audio_bytes: bytes) -> str:
        files = {"audio": ("audio.wav", audio_bytes, "audio/wav")}
        try:
            response = self.http.post(self.url, files=files, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise RecognitionFailure(f"Recognition failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code != 200:
            detail = data.get("error") if isinstance(data, dict) else None
            raise RecognitionFailure(
                f"Recognition failed: {detail or f'HTTP {response.status_code}'}"
            )
        if not isinstance(data, dict):
            raise RecognitionFailure("Recognition failed: malformed response")
        return str(data.get("text") or "").strip()


def make_recognizer(settings: Dict) -> Recognizer:
    kind = settings.get("recognizer", "whisper")
    if kind == "http":
        return HttpRecognizer(
            settings.get("recognizer_url", ""),
            timeout=float(settings.get("request_timeout_s", 30.0)),
        )
    if kind == "whisper":
        return WhisperRecognizer(settings)
    raise ValueError(f"unknown recognizer '{kind}'")
