"""Report summary document and the builder that assembles it."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy.orm import Session

from .. import models
from ..config import AppConfig
from ..registry import EventTypeRegistry
from .aggregation import Aggregator
from .trends import TrendCalculator, TrendRecord

LOGGER = logging.getLogger("digest.summary")

NO_NARRATIVE = "No narrative available."


@dataclass
class ReportSummary:
    totals: Dict[str, int] = field(default_factory=dict)
    trends: Dict[str, TrendRecord] = field(default_factory=dict)
    highlights: List[str] = field(default_factory=list)
    top_contributors: List[Dict[str, Any]] = field(default_factory=list)
    total_events: int = 0
    narrative: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def narrative_text(self) -> str:
        return self.narrative or NO_NARRATIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totals": dict(self.totals),
            "trends": {key: trend.to_dict() for key, trend in self.trends.items()},
            "highlights": list(self.highlights),
            "top_contributors": [dict(item) for item in self.top_contributors],
            "total_events": self.total_events,
            "narrative": self.narrative_text,
            "extra": dict(self.extra),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ReportSummary":
        data = data or {}
        narrative = data.get("narrative")
        return cls(
            totals={k: int(v) for k, v in (data.get("totals") or {}).items()},
            trends={
                k: TrendRecord.from_dict(v) for k, v in (data.get("trends") or {}).items()
            },
            highlights=list(data.get("highlights") or []),
            top_contributors=list(data.get("top_contributors") or []),
            total_events=int(data.get("total_events", 0)),
            narrative=None if narrative in (None, NO_NARRATIVE) else narrative,
            extra=dict(data.get("extra") or {}),
        )


def build_highlights(
    totals: Mapping[str, int],
    trends: Mapping[str, TrendRecord],
    registry: EventTypeRegistry,
) -> List[str]:
    highlights: List[str] = []
    for event_type, count in totals.items():
        if count == 0:
            continue
        line = f"{count} {registry.highlight_label(event_type)}"
        trend = trends.get(event_type)
        if trend and trend.direction != "same":
            arrow = "↑" if trend.direction == "up" else "↓"
            line += f" {arrow} {abs(trend.change_percent):.1f}%"
        highlights.append(line)
    return highlights


class SummaryBuilder:
    """Turns a batch of window events into a :class:`ReportSummary`."""

    def __init__(
        self,
        config: AppConfig,
        registry: EventTypeRegistry,
        aggregator: Aggregator,
        trends: TrendCalculator,
        summarizer=None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.aggregator = aggregator
        self.trends = trends
        self.summarizer = summarizer

    def build(
        self, session: Session, report_id: int, events: Sequence[models.Event]
    ) -> ReportSummary:
        totals = self.aggregator.aggregate(events)
        trends = self.trends.compare_with_previous(session, report_id, totals)
        summary = ReportSummary(
            totals=totals,
            trends=trends,
            highlights=build_highlights(totals, trends, self.registry),
            top_contributors=self.aggregator.top_contributors(
                events,
                event_types=self.config.reporting.top_contributor_types,
                limit=self.config.reporting.top_contributor_limit,
            ),
            total_events=len(events),
        )
        if self.summarizer is not None:
            summary.narrative = self.summarizer.summarize(events, totals, trends)
        LOGGER.debug(
            "Built summary for report %s: %s events, %s types",
            report_id,
            summary.total_events,
            len(totals),
        )
        return summary
