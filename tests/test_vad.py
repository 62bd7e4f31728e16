import pytest

from conftest import FakeClock, silent_frame, speech_frame
from vad import VoiceActivityDetector


def make_vad(clock, timeout_ms=4000):
    fired = []
    states = []
    vad = VoiceActivityDetector(
        silence_timeout_ms=timeout_ms,
        clock=clock,
        on_state=states.append,
        on_silence=lambda: fired.append(clock()),
    )
    return vad, fired, states


def test_speech_and_silence_classification():
    clock = FakeClock()
    vad, _, states = make_vad(clock)

    state = vad.process(speech_frame(0.2))
    assert state.is_speech
    assert abs(state.rms - 0.2) < 1e-6
    assert state.silence_duration_ms == 0

    clock.advance_ms(256)
    state = vad.process(speech_frame(0.02))
    assert not state.is_speech
    assert state.silence_duration_ms == pytest.approx(256)
    assert len(states) == 2


def test_threshold_is_strict():
    vad, _, _ = make_vad(FakeClock())
    assert not vad.process(speech_frame(0.0349)).is_speech
    assert vad.process(speech_frame(0.0351)).is_speech


def test_auto_stop_fires_once_after_timeout():
    clock = FakeClock()
    vad, fired, _ = make_vad(clock)
    vad.process(speech_frame())

    for _ in range(15):
        clock.advance_ms(256)
        vad.process(silent_frame())
    assert fired == []

    clock.advance_ms(256)  # 4096 ms of silence
    vad.process(silent_frame())
    assert len(fired) == 1

    for _ in range(10):
        clock.advance_ms(256)
        vad.process(silent_frame())
    assert len(fired) == 1


def test_auto_stop_rearms_after_another_full_timeout():
    clock = FakeClock()
    vad, fired, _ = make_vad(clock, timeout_ms=1000)
    for _ in range(12):
        clock.advance_ms(250)
        vad.process(silent_frame())
    # fires at 1250 ms and again 1250 ms later
    assert len(fired) == 2


def test_speech_resets_silence_timer():
    clock = FakeClock()
    vad, fired, _ = make_vad(clock, timeout_ms=1000)
    for _ in range(3):
        clock.advance_ms(300)
        vad.process(silent_frame())
    vad.process(speech_frame())
    clock.advance_ms(900)
    assert vad.process(silent_frame()).silence_duration_ms == pytest.approx(900)
    assert fired == []


def test_reset_restarts_from_now():
    clock = FakeClock()
    vad, _, _ = make_vad(clock)
    clock.advance_ms(3000)
    vad.reset()
    clock.advance_ms(100)
    assert vad.process(silent_frame()).silence_duration_ms == pytest.approx(100)
