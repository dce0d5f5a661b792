"""Ordered extension points for tracked events and frozen reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .summary import ReportSummary
from .validators import EventPayload

LOGGER = logging.getLogger("digest.extensions")

# Returning None vetoes tracking of the event.
EventTransform = Callable[[str, EventPayload], Optional[EventPayload]]
SummaryTransform = Callable[[int, ReportSummary], ReportSummary]
FreezeListener = Callable[[int, ReportSummary], None]


@dataclass
class ExtensionPoints:
    event_transforms: List[EventTransform] = field(default_factory=list)
    summary_transforms: List[SummaryTransform] = field(default_factory=list)
    after_freeze: List[FreezeListener] = field(default_factory=list)

    def add_event_transform(self, fn: EventTransform) -> None:
        self.event_transforms.append(fn)

    def add_summary_transform(self, fn: SummaryTransform) -> None:
        self.summary_transforms.append(fn)

    def add_freeze_listener(self, fn: FreezeListener) -> None:
        self.after_freeze.append(fn)

    def apply_event(self, event_type: str, payload: EventPayload) -> EventPayload | None:
        current: EventPayload | None = payload
        for transform in self.event_transforms:
            current = transform(event_type, current)
            if current is None:
                LOGGER.debug("Event %s vetoed by %r", event_type, transform)
                return None
        return current

    def apply_summary(self, report_id: int, summary: ReportSummary) -> ReportSummary:
        for transform in self.summary_transforms:
            summary = transform(report_id, summary)
        return summary

    def notify_frozen(self, report_id: int, summary: ReportSummary) -> None:
        for listener in self.after_freeze:
            try:
                listener(report_id, summary)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Freeze listener %r failed for report %s", listener, report_id)
