"""Week-over-week trend comparison between consecutive reports."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Mapping

from sqlalchemy.orm import Session

from ..repositories import ReportRepository


@dataclass(frozen=True, slots=True)
class TrendRecord:
    current: int
    previous: int
    change_percent: float
    direction: str

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping) -> "TrendRecord":
        return cls(
            current=int(data.get("current", 0)),
            previous=int(data.get("previous", 0)),
            change_percent=float(data.get("change_percent", 0.0)),
            direction=str(data.get("direction", "same")),
        )


def change_percent(current: int, previous: int) -> float:
    if previous > 0:
        return round((current - previous) / previous * 100, 1)
    return 100.0 if current > 0 else 0.0


def direction_of(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "same"


class TrendCalculator:
    def compare(
        self, current_totals: Mapping[str, int], previous_totals: Mapping[str, int]
    ) -> Dict[str, TrendRecord]:
        trends: Dict[str, TrendRecord] = {}
        for event_type, current in current_totals.items():
            previous = int(previous_totals.get(event_type, 0))
            change = change_percent(int(current), previous)
            trends[event_type] = TrendRecord(
                current=int(current),
                previous=previous,
                change_percent=change,
                direction=direction_of(change),
            )
        return trends

    def compare_with_previous(
        self, session: Session, report_id: int, current_totals: Mapping[str, int]
    ) -> Dict[str, TrendRecord]:
        """Compare against the closest frozen report before ``report_id``."""
        previous = ReportRepository(session).previous_frozen(report_id)
        if previous is None:
            return {}
        previous_totals = (previous.summary or {}).get("totals") or {}
        return self.compare(current_totals, previous_totals)
