import numpy as np
import pytest

from audio_utils import WAV_HEADER_SIZE, parse_wav_header
from conftest import FakeClock, FakeInput, speech_frame
from vad import VoiceActivityDetector
from wav_recorder import WavRecorder


def test_stop_before_start_returns_empty():
    assert WavRecorder().stop() == b""


def test_records_frames_into_clip():
    stream = FakeInput()
    rec = WavRecorder()
    rec.start(stream)
    stream.push(speech_frame())
    stream.push(speech_frame())
    clip = rec.stop()
    assert stream.closed
    assert len(clip) == WAV_HEADER_SIZE + 2 * 2 * 4096
    header = parse_wav_header(clip)
    assert header["channels"] == 1
    assert header["sample_rate"] == 16000
    assert header["bits_per_sample"] == 16
    assert header["data_length"] == 2 * 2 * 4096

    # second stop is a no-op
    assert rec.stop() == b""
    assert stream.close_count == 1


def test_zero_length_recording():
    stream = FakeInput()
    rec = WavRecorder()
    rec.start(stream)
    clip = rec.stop()
    assert len(clip) == WAV_HEADER_SIZE
    assert parse_wav_header(clip)["data_length"] == 0


def test_frames_after_stop_are_ignored():
    stream = FakeInput()
    rec = WavRecorder()
    rec.start(stream)
    stream.push(speech_frame())
    callback = stream.callback
    clip = rec.stop()
    callback(speech_frame())
    assert len(clip) == WAV_HEADER_SIZE + 2 * 4096

    # the late frame was dropped, not buffered for the next recording
    rec.start(FakeInput())
    assert len(rec.stop()) == WAV_HEADER_SIZE


def test_frames_reach_vad():
    seen = []
    vad = VoiceActivityDetector(clock=FakeClock(), on_state=seen.append)
    stream = FakeInput()
    rec = WavRecorder(vad)
    rec.start(stream)
    stream.push(speech_frame(0.3))
    assert len(seen) == 1
    assert seen[0].is_speech
    assert seen[0].rms == pytest.approx(0.3)

    rec.stop()
    assert vad.on_state is None
    assert vad.on_silence is None


def test_failed_start_closes_stream():
    class BrokenInput(FakeInput):
        def start(self, callback):
            raise OSError("no device")

    stream = BrokenInput()
    rec = WavRecorder()
    with pytest.raises(OSError):
        rec.start(stream)
    assert stream.closed
    assert not rec.recording
    assert rec.stop() == b""
