from __future__ import annotations

from typing import Protocol


class Scorer(Protocol):
    def score(self, query: str, candidate: str) -> int | None:  # noqa: D401
        """Score how well ``query`` matches ``candidate``.

        Returns ``None`` when the candidate does not match at all; otherwise
        a higher number is a better match.
        """
