# transcript_utils.py
from __future__ import annotations

import re
from typing import Iterable, List, Sequence, Set

from jiwer import wer


FILLER_WORDS = {"um", "uh", "ah", "hmm", "er", "so"}
FILLER_PHRASES = [("you", "know")]

# spoken forms that can stand in for the article "a"
ARTICLE_VARIANTS = {"a", "an", "one", "ei", "uh", "ah"}


def normalize_word(word: str) -> str:
    """Comparison key for a word: lowercase [a-z0-9] only."""
    return re.sub(r"[^a-z0-9]", "", word.lower())


def clean_text(text: str) -> str:
    text = text.lower().strip()
    text = re.sub(r"[^\w\s]", "", text)
    text = re.sub(r"\s+", " ", text)
    return text


def spoken_words(text: str) -> List[str]:
    """
    Split raw recognizer output into lowercase words. Sentence punctuation
    and hyphens separate words; other symbols are dropped per word.
    """
    text = re.sub(r'[.,!?;:"()\-]', " ", text.lower())
    words = (normalize_word(w) for w in text.split())
    return [w for w in words if w]


def strip_fillers(words: Sequence[str], target_words: Iterable[str] = ()) -> List[str]:
    """
    Drop discourse fillers from a transcript. A filler that is also a word
    of the target sentence is kept, as are the article stand-ins when the
    target contains "a".
    """
    target: Set[str] = {normalize_word(w) for w in target_words}
    target_list = [normalize_word(w) for w in target_words]
    keep = set(target)
    if "a" in target:
        keep |= ARTICLE_VARIANTS

    kept_phrases = {
        phrase
        for phrase in FILLER_PHRASES
        if any(
            tuple(target_list[i: i + len(phrase)]) == phrase
            for i in range(len(target_list))
        )
    }

    out: List[str] = []
    i = 0
    while i < len(words):
        w = normalize_word(words[i])
        matched_phrase = None
        for phrase in FILLER_PHRASES:
            if phrase in kept_phrases:
                continue
            window = tuple(normalize_word(x) for x in words[i: i + len(phrase)])
            if window == phrase:
                matched_phrase = phrase
                break
        if matched_phrase is not None:
            i += len(matched_phrase)
            continue
        if w and (w not in FILLER_WORDS or w in keep):
            out.append(w)
        i += 1
    return out


def transcript_wer(reference: str, hypothesis: str) -> float:
    ref = clean_text(reference)
    hyp = clean_text(hypothesis)
    if not ref:
        return 0.0 if not hyp else 1.0
    if not hyp:
        return 1.0
    return float(wer(ref, hyp))
