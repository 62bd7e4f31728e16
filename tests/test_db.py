import pytest

import db


@pytest.fixture
def session():
    s = db.get_session(":memory:")
    yield s
    s.close()


def test_add_attempt(session):
    attempt = db.add_attempt(session, 0, "The cat sat.", "cat sat", ["the"], wer=1 / 3)
    assert attempt.id is not None
    assert attempt.struggle_count == 1
    assert attempt.success is False
    assert db.get_all_attempts(session)[0].transcript == "cat sat"


def test_mastery_summary(session):
    db.add_attempt(session, 0, "The cat sat.", "cat sat", ["the"])
    db.add_attempt(session, 0, "The cat sat.", "the cat sat", [])
    db.add_attempt(session, 1, "It ran.", "it ran", [])
    db.add_attempt(session, 1, "It ran.", "it ran", [])
    assert db.get_mastery_summary(session) == {
        "attempts": 4,
        "successes": 3,
        "sentences_mastered": 2,
    }


def test_struggle_words(session):
    db.add_attempt(session, 0, "The cat sat.", "cat", ["the", "sat"])
    db.add_attempt(session, 0, "The cat sat.", "cat sat", ["the"])
    assert db.get_struggle_words(session) == [("the", 2), ("sat", 1)]
    assert db.get_struggle_words(session, limit=1) == [("the", 2)]


def test_daily_progress(session):
    db.add_attempt(session, 0, "A.", "a", [])
    db.add_attempt(session, 0, "A.", "", ["a"])
    rows = db.get_daily_progress(session)
    assert len(rows) == 1
    day, attempts, successes = rows[0]
    assert len(day) == 10
    assert (attempts, successes) == (2, 1)


def test_delete_attempt_removes_recording(session, tmp_path):
    clip = tmp_path / "take.flac"
    clip.write_bytes(b"x")
    attempt = db.add_attempt(session, 0, "A.", "a", [], audio_path=str(clip))
    db.delete_attempt(session, attempt.id)
    assert not clip.exists()
    assert db.get_all_attempts(session) == []
    # unknown id is a no-op
    db.delete_attempt(session, 999)


def test_get_all_attempts_newest_first_with_limit(session):
    for i in range(3):
        db.add_attempt(session, i, f"Sentence {i}.", "", [])
    rows = db.get_all_attempts(session)
    assert [r.sentence_index for r in rows] == [2, 1, 0]
    assert [r.sentence_index for r in db.get_all_attempts(session, limit=2)] == [2, 1]
