# phonetic_match.py
from __future__ import annotations

from typing import Iterable, Optional

import Levenshtein


VOWELS = set("aeiouy")

SOUNDEX_CLASSES = {
    **dict.fromkeys("BFPV", "1"),
    **dict.fromkeys("CGJKQSXZ", "2"),
    **dict.fromkeys("DT", "3"),
    "L": "4",
    **dict.fromkeys("MN", "5"),
    "R": "6",
}

COMMON_THRESHOLD = 0.6
PROPER_NOUN_THRESHOLD = 0.45


def consonant_skeleton(word: str) -> str:
    """First character plus every later non-vowel character."""
    if not word:
        return ""
    rest = "".join(ch for ch in word[1:] if ch.lower() not in VOWELS)
    return (word[0] + rest).lower()


def soundex(word: str) -> str:
    """
    Coarse 4-character phonetic code: first letter + up to 3 class digits.
    Vowels and H/W/Y carry no digit; repeated digits collapse.
    """
    s = "".join(ch for ch in word.upper() if "A" <= ch <= "Z")
    if not s:
        return ""
    code = s[0]
    prev = ""
    for ch in s[1:]:
        digit = SOUNDEX_CLASSES.get(ch, "")
        if digit and digit != prev:
            code += digit
            prev = digit
    return (code + "000")[:4]


def similarity_ratio(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - Levenshtein.distance(a, b) / longest


def similar(a: str, b: str, threshold: float = COMMON_THRESHOLD) -> bool:
    """
    True when two lowercase words are close enough to count as the same
    spoken word: exact, same consonant skeleton, same soundex code, or an
    edit-distance ratio of at least `threshold`.
    """
    w1 = a.lower()
    w2 = b.lower()
    if w1 == w2:
        return True

    # letter / little: vowels differ, consonants line up
    if len(w1) > 3 and len(w2) > 3:
        if consonant_skeleton(w1) == consonant_skeleton(w2) and abs(len(w1) - len(w2)) <= 2:
            return True

    code = soundex(w1)
    if code and code == soundex(w2):
        return True

    return similarity_ratio(w1, w2) >= threshold


def find_phonetic_match(
    target: str, words: Iterable[str], threshold: float = 0.7
) -> Optional[str]:
    for word in words:
        if similar(target, word, threshold):
            return word
    return None
