"""Grouping of window events into per-type totals."""

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, List, Sequence

from .. import models


def _ordered(counter: Counter) -> Dict[str, int]:
    return dict(sorted(counter.items(), key=lambda item: (-item[1], item[0])))


class Aggregator:
    def aggregate(self, events: Iterable[models.Event]) -> Dict[str, int]:
        """Count events per type, largest first."""
        return _ordered(Counter(event.event_type for event in events))

    def top_contributors(
        self,
        events: Iterable[models.Event],
        event_types: Sequence[str] = ("post_published", "page_published"),
        limit: int = 5,
    ) -> List[dict]:
        counts: Counter = Counter()
        wanted = set(event_types)
        for event in events:
            if event.event_type not in wanted:
                continue
            context = (event.payload or {}).get("context") or {}
            name = context.get("user_name")
            if not name:
                continue
            counts[name] += 1
        ordered = _ordered(counts)
        return [{"name": name, "count": count} for name, count in list(ordered.items())[:limit]]
