import numpy as np
import pytest

from audio_utils import (
    WAV_HEADER_SIZE,
    decode_wav,
    encode_wav,
    float_to_pcm16,
    frame_rms,
    parse_wav_header,
    save_clip,
)


def test_frame_rms():
    assert frame_rms(np.full(8, 0.5, dtype=np.float32)) == pytest.approx(0.5)
    assert frame_rms(np.array([1.0, -1.0])) == pytest.approx(1.0)
    assert frame_rms(np.zeros(0)) == 0.0


def test_float_to_pcm16_clamps_and_scales():
    pcm = float_to_pcm16(np.array([2.0, -2.0, 1.0, -1.0, 0.5, 0.0]))
    assert pcm.dtype == np.dtype("<i2")
    assert list(pcm) == [32767, -32768, 32767, -32768, 16383, 0]


def test_encode_wav_header_fields():
    pcm = np.arange(100, dtype="<i2")
    clip = encode_wav(pcm, 16000)
    assert len(clip) == WAV_HEADER_SIZE + 200
    assert clip[:4] == b"RIFF"
    assert clip[8:16] == b"WAVEfmt "

    header = parse_wav_header(clip)
    assert header == {
        "riff_size": 36 + 200,
        "fmt_size": 16,
        "format_tag": 1,
        "channels": 1,
        "sample_rate": 16000,
        "byte_rate": 32000,
        "block_align": 2,
        "bits_per_sample": 16,
        "data_length": 200,
    }
    assert clip[WAV_HEADER_SIZE:] == pcm.tobytes()


def test_empty_recording_is_header_only():
    clip = encode_wav(np.zeros(0, dtype="<i2"))
    assert len(clip) == WAV_HEADER_SIZE
    assert parse_wav_header(clip)["data_length"] == 0
    samples, sr = decode_wav(clip)
    assert samples.size == 0
    assert sr == 16000


@pytest.mark.parametrize("clip", [b"", b"RIFF", b"x" * 64])
def test_parse_rejects_garbage(clip):
    with pytest.raises(ValueError):
        parse_wav_header(clip)


def test_decode_wav_recovers_samples():
    src = np.array([0.0, 0.25, -0.25, 0.5], dtype=np.float32)
    samples, sr = decode_wav(encode_wav(float_to_pcm16(src), 8000))
    assert sr == 8000
    assert np.allclose(samples, src, atol=1e-3)


def test_save_clip_writes_file(tmp_path):
    clip = encode_wav(float_to_pcm16(np.linspace(-0.5, 0.5, 1600)))
    path = save_clip(clip, str(tmp_path / "recordings"))
    assert path.startswith(str(tmp_path / "recordings"))
    assert path.endswith((".flac", ".wav"))
    assert (tmp_path / "recordings").exists()
