from __future__ import annotations

import os
import json
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


def default_settings() -> Dict:
    return {
        # recognition
        "recognizer": "whisper",  # whisper | http
        "recognizer_url": os.getenv("ASR_SERVICE_URL", ""),
        "request_timeout_s": 30.0,
        "device": "auto",   # auto | cpu | gpu
        "model_name": os.getenv("WHISPER_MODEL", "base.en"),
        "preset": "fast_cpu",  # fast_cpu | balanced_cpu | balanced_gpu | accurate_gpu
        "language": "en",
        "beam_size": 1,
        "temperature": 0.0,
        "no_speech_threshold": 0.45,
        # a single sentence per request; no context to carry over
        "condition_on_previous_text": False,
        # capture / VAD
        "input_device": None,
        "sample_rate": 16_000,
        "frame_size": 4096,
        "speech_threshold": 0.035,
        "silence_timeout_ms": 4000,
        "warmup_s": 1.5,
        # attempt pipeline
        "min_clip_bytes": 1024,
        "struggle_block_threshold": 3,
        # read-aloud model
        "tts_speed": 1.0,  # 1.0 | 0.8
        "tts_repeat_gap_s": 0.5,
        # storage
        "save_recordings": False,
        "recordings_dir": "recordings",
        "db_path": os.getenv("SPEECH_PRACTICE_DB", "sessions.db"),
        "scripts_dir": "scripts",
    }


def settings_path() -> str:
    return os.path.abspath("settings.json")


def load_settings(defaults: Dict, path: str) -> Dict:
    settings = dict(defaults)
    if not os.path.exists(path):
        return settings
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable settings file %s: %s", path, e)
        return settings
    if isinstance(data, dict):
        settings.update(data)
    else:
        logger.warning("Ignoring settings file %s: not a JSON object", path)
    return settings


def save_settings(settings: Dict, path: str) -> None:
    try:
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(settings, fh, indent=2)
    except OSError as e:
        logger.warning("Could not save settings to %s: %s", path, e)


def detect_gpu() -> Tuple[bool, str]:
    try:
        import torch
    except ImportError:
        return False, "torch not installed"
    if torch.cuda.is_available():
        count = torch.cuda.device_count()
        name = torch.cuda.get_device_name(0)
        total_vram = int(torch.cuda.get_device_properties(0).total_memory // (1024 ** 2))
        return True, f"{name} ({total_vram} MB VRAM, {count} device(s))"
    return False, "No CUDA GPU detected"


def whisper_options(settings: Dict) -> Dict:
    language = None if settings.get("language") == "auto" else settings.get("language", "en")
    beam_size = int(settings.get("beam_size", 1))
    temperature = float(settings.get("temperature", 0.0))

    opts: Dict = dict(
        language=language,
        task="transcribe",
        temperature=temperature,
        beam_size=beam_size,
        without_timestamps=True,
        condition_on_previous_text=bool(settings.get("condition_on_previous_text", False)),
        compression_ratio_threshold=2.4,
        logprob_threshold=-1.0,
        no_speech_threshold=float(settings.get("no_speech_threshold", 0.45)),
    )

    # whisper picks the device itself; we only decide fp16
    device = settings.get("device")
    use_fp16 = False
    if device == "gpu":
        use_fp16 = True
    elif device == "auto":
        use_fp16 = detect_gpu()[0]
    opts["fp16"] = bool(use_fp16)

    preset = settings.get("preset")
    if preset == "fast_cpu":
        opts.update(dict(beam_size=1, temperature=0.0))
    elif preset == "balanced_cpu":
        opts.update(dict(beam_size=2, temperature=0.0))
    elif preset == "balanced_gpu":
        opts.update(dict(beam_size=3, temperature=0.0, fp16=True))
    elif preset == "accurate_gpu":
        opts.update(dict(beam_size=5, temperature=0.0, fp16=True))

    return opts


@dataclass(frozen=True)
class SessionConfig:
    """Engine tunables handed to a PracticeSession."""

    sample_rate: int = 16_000
    frame_size: int = 4096
    speech_threshold: float = 0.035
    silence_timeout_ms: float = 4000.0
    warmup_s: float = 1.5
    min_clip_bytes: int = 1024
    struggle_block_threshold: int = 3
    save_recordings: bool = False
    recordings_dir: str = "recordings"
    input_device: Optional[int | str] = None

    @classmethod
    def from_settings(cls, settings: Dict) -> "SessionConfig":
        base = default_settings()
        base.update(settings or {})
        return cls(
            sample_rate=int(base["sample_rate"]),
            frame_size=int(base["frame_size"]),
            speech_threshold=float(base["speech_threshold"]),
            silence_timeout_ms=float(base["silence_timeout_ms"]),
            warmup_s=float(base["warmup_s"]),
            min_clip_bytes=int(base["min_clip_bytes"]),
            struggle_block_threshold=int(base["struggle_block_threshold"]),
            save_recordings=bool(base["save_recordings"]),
            recordings_dir=str(base["recordings_dir"]),
            input_device=base["input_device"],
        )
