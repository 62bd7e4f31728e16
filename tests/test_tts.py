import time

import tts
from tts import MISSED_WORD_REPEATS, Speaker


class FakeEngine:
    def __init__(self, rate=200):
        self.props = {"rate": rate}
        self.calls = []
        self.stopped = 0

    def getProperty(self, name):
        return self.props.get(name)

    def setProperty(self, name, value):
        self.props[name] = value
        self.calls.append(("set", name, value))

    def say(self, text):
        self.calls.append(("say", text))

    def runAndWait(self):
        self.calls.append(("run",))

    def stop(self):
        self.stopped += 1

    @property
    def said(self):
        return [c[1] for c in self.calls if c[0] == "say"]


def test_sentence_at_normal_speed():
    engine = FakeEngine(rate=180)
    speaker = Speaker(engine, run_async=False)
    assert speaker.speak_sentence("The cat sat.")
    assert engine.said == ["The cat sat."]
    assert engine.props["rate"] == 180
    assert engine.calls[-1] == ("run",)


def test_speed_toggle_scales_rate():
    engine = FakeEngine(rate=200)
    speaker = Speaker(engine, run_async=False)
    assert speaker.toggle_speed() == 0.8
    speaker.speak_sentence("Slowly now.")
    assert engine.props["rate"] == 160

    assert speaker.toggle_speed() == 1.0
    speaker.speak_sentence("Back to normal.")
    assert engine.props["rate"] == 200


def test_unknown_speed_falls_back_to_normal():
    assert Speaker(FakeEngine(), speed=1.7).speed == 1.0
    assert Speaker(FakeEngine(), speed=0.8).speed == 0.8


def test_missed_word_repeats():
    engine = FakeEngine()
    speaker = Speaker(engine, repeat_gap_s=0, run_async=False)
    assert speaker.speak_word("necessary", MISSED_WORD_REPEATS)
    assert engine.said == ["necessary"] * 3
    assert len([c for c in engine.calls if c == ("run",)]) == 3


def test_repeats_are_spaced():
    engine = FakeEngine()
    speaker = Speaker(engine, repeat_gap_s=0.05)
    began = time.monotonic()
    speaker.speak_word("rural", 3)
    speaker.join(timeout=5)
    assert time.monotonic() - began >= 0.1
    assert engine.said == ["rural"] * 3


def test_stop_cancels_pending_repeats():
    engine = FakeEngine()
    speaker = Speaker(engine, repeat_gap_s=5)
    speaker.speak_word("squirrel", 3)
    for _ in range(500):
        if engine.said:
            break
        time.sleep(0.01)

    began = time.monotonic()
    speaker.stop()
    assert time.monotonic() - began < 2
    assert engine.said == ["squirrel"]
    assert engine.stopped == 1
    assert not speaker.speaking


def test_new_request_interrupts_previous():
    engine = FakeEngine()
    speaker = Speaker(engine, repeat_gap_s=5)
    speaker.speak_word("first", 3)
    speaker.speak_word("second")
    speaker.join(timeout=5)
    assert engine.said[-1] == "second"
    assert engine.said.count("first") <= 1


def test_blank_text_is_ignored():
    engine = FakeEngine()
    speaker = Speaker(engine, run_async=False)
    assert not speaker.speak_sentence("   ")
    assert not speaker.speak_word("")
    assert engine.calls == []


def test_missing_driver_disables_speech(monkeypatch):
    def broken_init():
        raise RuntimeError("no speech driver")

    monkeypatch.setattr(tts.pyttsx3, "init", broken_init)
    speaker = Speaker(run_async=False)
    assert not speaker.speak_sentence("Hello there.")
    assert not speaker.available


def test_driver_reentry_is_logged(caplog):
    class BusyEngine(FakeEngine):
        def runAndWait(self):
            raise RuntimeError("run loop already started")

    engine = BusyEngine()
    speaker = Speaker(engine, repeat_gap_s=0, run_async=False)
    speaker.speak_word("again", 3)
    assert engine.said == ["again"]
    assert "Speech interrupted" in caplog.text
