"""Fuzzy subsequence scoring in the style of skim/fzf's "v2" algorithm.

The query has to appear in the candidate in order, ignoring case. Among all
such alignments the best one is found with a Smith-Waterman style dynamic
program: every matched character earns :data:`SCORE_MATCH`, characters at
word boundaries and camelCase humps earn a bonus, runs of consecutive
matches keep earning at least :data:`BONUS_CONSECUTIVE`, and gaps between
matched characters are charged an affine penalty.
"""

from __future__ import annotations

from enum import Enum

SCORE_MATCH = 16
SCORE_GAP_START = -3
SCORE_GAP_EXTENSION = -1

BONUS_BOUNDARY = SCORE_MATCH // 2
BONUS_NON_WORD = SCORE_MATCH // 2
BONUS_CAMEL = BONUS_BOUNDARY + SCORE_GAP_EXTENSION
BONUS_CONSECUTIVE = -(SCORE_GAP_START + SCORE_GAP_EXTENSION)
BONUS_FIRST_CHAR_MULTIPLIER = 2

_UNMATCHED = float("-inf")


class CharClass(Enum):
    NON_WORD = "non_word"
    LOWER = "lower"
    UPPER = "upper"
    LETTER = "letter"
    NUMBER = "number"


def char_class(ch: str) -> CharClass:
    if ch.islower():
        return CharClass.LOWER
    if ch.isupper():
        return CharClass.UPPER
    if ch.isdigit():
        return CharClass.NUMBER
    if ch.isalpha():
        return CharClass.LETTER
    return CharClass.NON_WORD


def position_bonus(prev: CharClass, cur: CharClass) -> int:
    if prev is CharClass.NON_WORD and cur is not CharClass.NON_WORD:
        return BONUS_BOUNDARY
    if (prev is CharClass.LOWER and cur is CharClass.UPPER) or (
        prev is not CharClass.NUMBER and cur is CharClass.NUMBER
    ):
        return BONUS_CAMEL
    if cur is CharClass.NON_WORD:
        return BONUS_NON_WORD
    return 0


def _fold(ch: str) -> str:
    lowered = ch.lower()
    # Some characters lower-case to more than one code point; keep those
    # as-is so positions in the folded text line up with the candidate.
    return lowered if len(lowered) == 1 else ch


def _is_subsequence(pattern: list[str], text: list[str]) -> bool:
    it = iter(text)
    return all(ch in it for ch in pattern)


def _contains(pattern: list[str], text: list[str]) -> bool:
    m = len(pattern)
    return any(text[j : j + m] == pattern for j in range(len(text) - m + 1))


class SkimScorer:
    """Case-insensitive fuzzy scorer.

    A contiguous occurrence of the whole query earns an extra
    ``substring_bonus`` per query character on top of the alignment score,
    which is enough for it to beat any scattered alignment of the same query.
    """

    def __init__(self, substring_bonus: int = BONUS_BOUNDARY) -> None:
        self.substring_bonus = substring_bonus

    def score(self, query: str, candidate: str) -> int | None:
        if not query or len(query) > len(candidate):
            return None
        pattern = [_fold(ch) for ch in query]
        text = [_fold(ch) for ch in candidate]
        if not _is_subsequence(pattern, text):
            return None

        bonuses: list[int] = []
        prev = CharClass.NON_WORD
        for ch in candidate:
            cur = char_class(ch)
            bonuses.append(position_bonus(prev, cur))
            prev = cur

        n = len(text)
        prev_row: list[float] = []
        for i, pc in enumerate(pattern):
            row = [_UNMATCHED] * n
            # Best score of the previous row ending at least two positions
            # back, already charged for the gap up to the current position.
            gap = _UNMATCHED
            for j in range(i, n):
                if i > 0 and j >= 2:
                    gap = max(gap + SCORE_GAP_EXTENSION, prev_row[j - 2] + SCORE_GAP_START)
                if text[j] != pc:
                    continue
                if i == 0:
                    row[j] = SCORE_MATCH + bonuses[j] * BONUS_FIRST_CHAR_MULTIPLIER
                    continue
                consecutive = prev_row[j - 1] + max(bonuses[j], BONUS_CONSECUTIVE)
                best = max(consecutive, gap + bonuses[j])
                if best != _UNMATCHED:
                    row[j] = best + SCORE_MATCH
            prev_row = row

        result = max(prev_row)
        if result == _UNMATCHED:
            return None
        total = int(result)
        if _contains(pattern, text):
            total += SCORE_MATCH + self.substring_bonus * len(pattern)
        return total
