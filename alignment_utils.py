# alignment_utils.py
from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from phonetic_match import COMMON_THRESHOLD, PROPER_NOUN_THRESHOLD, similar
from transcript_utils import ARTICLE_VARIANTS, normalize_word


WORD_RE = re.compile(r"[^\W_]+(?:['’][^\W_]+)*", flags=re.UNICODE)

NUMBER_WORDS: Dict[str, str] = {
    "zero": "0", "one": "1", "two": "2", "three": "3", "four": "4",
    "five": "5", "six": "6", "seven": "7", "eight": "8", "nine": "9",
    "ten": "10",
}

# DP scores
EXACT_SCORE = 15
ARTICLE_SCORE = 12
PROPER_NOUN_SCORE = 8
PHONETIC_SCORE = 8
PREFIX_SCORE = 5
MISMATCH_SCORE = -5
SKIP_TARGET_PENALTY = 5
SKIP_SPOKEN_PENALTY = 2  # learners add extra words more often than they drop one


@dataclass(frozen=True)
class Token:
    display: str
    clean: str
    is_word: bool
    start: int = 0
    end: int = 0

    @property
    def is_proper_noun(self) -> bool:
        return bool(self.display) and "A" <= self.display[0] <= "Z"


class MatchKind(str, Enum):
    EXACT = "exact"
    NUMERAL = "numeral"
    ARTICLE = "article"
    PROPER_NOUN = "proper_noun"
    PHONETIC = "phonetic"
    PREFIX = "prefix"
    NONE = "none"


MATCH_SCORES = {
    MatchKind.EXACT: EXACT_SCORE,
    MatchKind.NUMERAL: EXACT_SCORE,
    MatchKind.ARTICLE: ARTICLE_SCORE,
    MatchKind.PROPER_NOUN: PROPER_NOUN_SCORE,
    MatchKind.PHONETIC: PHONETIC_SCORE,
    MatchKind.PREFIX: PREFIX_SCORE,
    MatchKind.NONE: MISMATCH_SCORE,
}


@dataclass(frozen=True)
class StruggleItem:
    word: str
    type: str = "wrong"
    timestamp: float = field(default_factory=time.time)


@dataclass(frozen=True)
class WordOutcome:
    token_index: int  # index into the full token list
    token: Token
    matched: bool
    kind: MatchKind
    spoken: Optional[str] = None


@dataclass
class AlignmentResult:
    outcomes: List[WordOutcome]
    struggles: List[StruggleItem]

    @property
    def struggle_words(self) -> List[str]:
        return [s.word for s in self.struggles]

    @property
    def success(self) -> bool:
        return not self.struggles

    def status_by_index(self) -> Dict[int, bool]:
        return {o.token_index: o.matched for o in self.outcomes}


def clean_form(text: str) -> str:
    return re.sub(r"[^a-z0-9-]", "", text.lower())


def tokenize_sentence(text: str) -> List[Token]:
    """
    Split display text into word and non-word tokens covering every
    character, so the sentence can be re-rendered from the tokens.
    """
    tokens: List[Token] = []
    pos = 0
    for m in WORD_RE.finditer(text):
        if m.start() > pos:
            tokens.append(Token(text[pos: m.start()], "", False, pos, m.start()))
        word = m.group(0)
        tokens.append(Token(word, clean_form(word), True, m.start(), m.end()))
        pos = m.end()
    if pos < len(text):
        tokens.append(Token(text[pos:], "", False, pos, len(text)))
    return tokens


def word_tokens(tokens: Sequence[Token]) -> List[Token]:
    return [t for t in tokens if t.is_word]


def match_kind(target: Token, spoken: str) -> MatchKind:
    """
    Classify how a spoken word relates to a target token. Used both to
    score alignment candidates and to validate the chosen path.
    """
    t = normalize_word(target.clean)
    s = normalize_word(spoken)
    if t == s:
        return MatchKind.EXACT
    if NUMBER_WORDS.get(t, t) == NUMBER_WORDS.get(s, s):
        return MatchKind.NUMERAL
    if t == "a" and s in ARTICLE_VARIANTS:
        return MatchKind.ARTICLE

    proper = target.is_proper_noun
    if proper and t[:1] == s[:1] and abs(len(t) - len(s)) <= 2:
        return MatchKind.PROPER_NOUN
    if similar(t, s, PROPER_NOUN_THRESHOLD if proper else COMMON_THRESHOLD):
        return MatchKind.PHONETIC
    if (t.startswith(s) and len(s) >= 3) or (s.startswith(t) and len(t) >= 3):
        return MatchKind.PREFIX
    return MatchKind.NONE


def _fill_matrix(
    targets: Sequence[Token], spoken: Sequence[str]
) -> Tuple[List[List[int]], List[List[str]]]:
    n, m = len(targets), len(spoken)
    dp = [[0] * (m + 1) for _ in range(n + 1)]
    bt = [[""] * (m + 1) for _ in range(n + 1)]

    for i in range(1, n + 1):
        dp[i][0] = -SKIP_TARGET_PENALTY * i
        bt[i][0] = "del"
    for j in range(1, m + 1):
        dp[0][j] = -SKIP_SPOKEN_PENALTY * j
        bt[0][j] = "ins"

    for i in range(1, n + 1):
        tok = targets[i - 1]
        for j in range(1, m + 1):
            diag = dp[i - 1][j - 1] + MATCH_SCORES[match_kind(tok, spoken[j - 1])]
            up = dp[i - 1][j] - SKIP_TARGET_PENALTY
            left = dp[i][j - 1] - SKIP_SPOKEN_PENALTY

            best = max(diag, up, left)
            dp[i][j] = best
            if best == diag:
                bt[i][j] = "diag"
            elif best == up:
                bt[i][j] = "del"
            else:
                bt[i][j] = "ins"
    return dp, bt


def align(tokens: Sequence[Token], spoken: Sequence[str]) -> AlignmentResult:
    """
    Globally align the target's word tokens against the spoken words.

    The DP only proposes a path; each diagonal step on it is re-checked with
    match_kind() and only accepted pairs mark the target word as matched.
    """
    indexed = [(idx, tok) for idx, tok in enumerate(tokens) if tok.is_word]
    targets = [tok for _, tok in indexed]
    spoken = [normalize_word(w) for w in spoken]
    _, bt = _fill_matrix(targets, spoken)

    accepted: Dict[int, Tuple[MatchKind, str]] = {}
    i, j = len(targets), len(spoken)
    while i > 0 or j > 0:
        op = bt[i][j]
        if i > 0 and j > 0 and op == "diag":
            kind = match_kind(targets[i - 1], spoken[j - 1])
            if kind is not MatchKind.NONE:
                accepted[i - 1] = (kind, spoken[j - 1])
            i, j = i - 1, j - 1
        elif i > 0 and (j == 0 or op == "del"):
            i -= 1
        else:
            j -= 1

    outcomes: List[WordOutcome] = []
    struggles: List[StruggleItem] = []
    now = time.time()
    for k, (idx, tok) in enumerate(indexed):
        if k in accepted:
            kind, said = accepted[k]
            outcomes.append(WordOutcome(idx, tok, True, kind, said))
        else:
            outcomes.append(WordOutcome(idx, tok, False, MatchKind.NONE))
            struggles.append(StruggleItem(tok.clean, "wrong", now))
    return AlignmentResult(outcomes, struggles)


def annotate_tokens(
    tokens: Sequence[Token], result: Optional[AlignmentResult]
) -> List[Tuple[Token, str]]:
    """
    Pair each token with its render status: "matched", "unmatched",
    "unread" (no attempt scored yet) or "text" for non-word tokens.
    """
    status = result.status_by_index() if result is not None else {}
    out: List[Tuple[Token, str]] = []
    for idx, tok in enumerate(tokens):
        if not tok.is_word:
            out.append((tok, "text"))
        elif idx not in status:
            out.append((tok, "unread"))
        else:
            out.append((tok, "matched" if status[idx] else "unmatched"))
    return out
