"""Cheap, non-semantic change score between two versions of a text."""

from __future__ import annotations

from difflib import SequenceMatcher

from ..utils import clamp, strip_markup

MINOR_LIMIT = 20
MODERATE_LIMIT = 50


class MagnitudeScorer:
    def score(self, old_text: str | None, new_text: str | None) -> int:
        old_clean = strip_markup(old_text)
        new_clean = strip_markup(new_text)
        if not old_clean and not new_clean:
            return 0
        if not old_clean:
            return 100
        similarity = SequenceMatcher(None, old_clean, new_clean, autojunk=False).ratio()
        change = 100 - int(round(similarity * 100))
        return int(clamp(change, 0, 100))

    @staticmethod
    def bucket(score: int) -> str:
        if score < MINOR_LIMIT:
            return "minor"
        if score < MODERATE_LIMIT:
            return "moderate"
        return "major"
