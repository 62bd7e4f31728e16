from __future__ import annotations

import io
import os
import struct
from datetime import datetime
from typing import Dict

import numpy as np
import soundfile as sf


SAMPLE_RATE = 16_000
WAV_HEADER_SIZE = 44

# RIFF/WAVE with a single 16-byte PCM fmt chunk and one data chunk
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def frame_rms(frame: np.ndarray) -> float:
    """Root-mean-square energy of one frame (0.0 for an empty frame)."""
    x = np.asarray(frame, dtype=np.float64).reshape(-1)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """
    Clamp float samples to [-1, 1] and scale to signed 16-bit.
    Negative values scale by 0x8000, positive by 0x7FFF.
    """
    x = np.clip(np.asarray(samples, dtype=np.float32).reshape(-1), -1.0, 1.0)
    scaled = np.where(x < 0, x * 0x8000, x * 0x7FFF)
    return scaled.astype("<i2")


def encode_wav(pcm: np.ndarray, sample_rate: int = SAMPLE_RATE) -> bytes:
    """Wrap mono 16-bit PCM in a fixed 44-byte WAV header."""
    data = np.asarray(pcm, dtype="<i2").tobytes()
    header = _WAV_HEADER.pack(
        b"RIFF",
        36 + len(data),
        b"WAVE",
        b"fmt ",
        16,               # fmt chunk size
        1,                # PCM
        1,                # mono
        int(sample_rate),
        int(sample_rate) * 2,  # byte rate
        2,                # block align
        16,               # bits per sample
        b"data",
        len(data),
    )
    return header + data


def parse_wav_header(clip: bytes) -> Dict[str, int]:
    if len(clip) < WAV_HEADER_SIZE:
        raise ValueError(f"clip is {len(clip)} bytes, shorter than a WAV header")
    (riff, riff_size, wave, fmt, fmt_size, fmt_tag, channels, sample_rate,
     byte_rate, block_align, bits, data_tag, data_len) = _WAV_HEADER.unpack_from(clip)
    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise ValueError("not a canonical PCM WAV clip")
    return {
        "riff_size": riff_size,
        "fmt_size": fmt_size,
        "format_tag": fmt_tag,
        "channels": channels,
        "sample_rate": sample_rate,
        "byte_rate": byte_rate,
        "block_align": block_align,
        "bits_per_sample": bits,
        "data_length": data_len,
    }


def decode_wav(clip: bytes) -> tuple[np.ndarray, int]:
    """Decode an encoded clip back to float32 mono samples."""
    header = parse_wav_header(clip)
    if header["data_length"] == 0:
        return np.zeros(0, dtype=np.float32), header["sample_rate"]
    data, sr = sf.read(io.BytesIO(clip), dtype="float32")
    if data.ndim > 1:
        data = data.mean(axis=1)
    return data, int(sr)


def save_clip(clip: bytes, directory: str = "recordings") -> str:
    """
    Persist a clip under `directory` as FLAC (WAV if FLAC is unavailable).
    Returns the written path.
    """
    samples, sr = decode_wav(clip)
    os.makedirs(directory, exist_ok=True)
    base = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    flac_path = os.path.join(directory, base + ".flac")
    try:
        sf.write(flac_path, samples, sr, format="FLAC", subtype="PCM_16")
        return flac_path
    except RuntimeError:
        wav_path = os.path.join(directory, base + ".wav")
        with open(wav_path, "wb") as fh:
            fh.write(clip)
        return wav_path
