from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .base import Scorer
from .skim import SkimScorer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchCandidate:
    score: int
    key: str


class Matcher:
    """Resolve a free-form query to the single best-matching key.

    Scoring is delegated to a :class:`Scorer`; the matcher only decides the
    winner. Keys are visited in lexicographic order and a later key has to
    score strictly higher to win, so ties go to the smallest key.
    """

    def __init__(self, scorer: Scorer | None = None) -> None:
        self.scorer = scorer or SkimScorer()

    def best_candidate(self, query: str, keys: Iterable[str]) -> MatchCandidate | None:
        best: MatchCandidate | None = None
        for key in sorted(keys):
            score = self.scorer.score(query, key)
            if score is None:
                continue
            if best is None or score > best.score:
                best = MatchCandidate(score=score, key=key)
        logger.debug(
            "match",
            extra={"event_type": "match", "key": best.key if best is not None else None},
        )
        return best

    def find_best(self, query: str, keys: Iterable[str]) -> str | None:
        best = self.best_candidate(query, keys)
        return best.key if best is not None else None

    def lookup(self, query: str, facts: Mapping[str, str]) -> str | None:
        """Return the value stored under the key that best matches ``query``."""
        key = self.find_best(query, facts.keys())
        return facts[key] if key is not None else None


def find_best(query: str, keys: Iterable[str], scorer: Scorer | None = None) -> str | None:
    return Matcher(scorer).find_best(query, keys)
