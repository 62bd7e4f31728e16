import pytest

from transcript_utils import (
    clean_text,
    normalize_word,
    spoken_words,
    strip_fillers,
    transcript_wer,
)


def test_normalize_word():
    assert normalize_word("It's") == "its"
    assert normalize_word("7,") == "7"
    assert normalize_word("...") == ""


def test_clean_text():
    assert clean_text("  Hello,   World! ") == "hello world"


def test_spoken_words_splits_punctuation_and_hyphens():
    assert spoken_words("Hello, World! It's well-known.") == [
        "hello", "world", "its", "well", "known",
    ]
    assert spoken_words("  ") == []


def test_strip_fillers_removes_fillers_and_phrases():
    words = ["um", "the", "cat", "uh", "you", "know", "sat", "so"]
    assert strip_fillers(words, ["the", "cat", "sat"]) == ["the", "cat", "sat"]


def test_strip_fillers_keeps_target_words():
    assert strip_fillers(["so", "it", "goes"], ["so", "it", "goes"]) == ["so", "it", "goes"]


def test_strip_fillers_keeps_article_variants():
    # "uh" may be a mumbled "a" when the target has one
    assert strip_fillers(["i", "have", "uh", "cat"], ["i", "have", "a", "cat"]) == [
        "i", "have", "uh", "cat",
    ]
    assert strip_fillers(["i", "have", "uh", "cat"], ["i", "have", "the", "cat"]) == [
        "i", "have", "cat",
    ]
    # "er" is not an article stand-in
    assert strip_fillers(["i", "have", "er", "a", "cat"], ["i", "have", "a", "cat"]) == [
        "i", "have", "a", "cat",
    ]


def test_strip_fillers_keeps_phrase_in_target():
    target = ["you", "know", "what", "i", "mean"]
    assert strip_fillers(["you", "know", "what", "i", "mean"], target) == target


def test_strip_fillers_all_fillers():
    assert strip_fillers(["um", "uh", "hmm"], ["hello"]) == []


def test_transcript_wer():
    assert transcript_wer("the cat sat", "the cat sat") == 0.0
    assert transcript_wer("the cat sat", "cat sat") == pytest.approx(1 / 3)
    assert transcript_wer("", "") == 0.0
    assert transcript_wer("", "noise") == 1.0
    assert transcript_wer("the cat", "") == 1.0
