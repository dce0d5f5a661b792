"""High level pipeline orchestrating tracking, freezing and delivery."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict

from .. import models
from ..config import AppConfig
from ..registry import EventTypeRegistry
from ..utils import iso
from .delivery import DeliveryDispatcher
from .lifecycle import ReportLifecycleManager
from .retention import RetentionService
from .tracking import EventTracker
from .validators import TrackRequest, ValidationError

LOGGER = logging.getLogger("digest.pipeline")


@dataclass
class PipelineResult:
    ok: bool
    payload: Dict[str, Any]
    error: str | None = None


def event_to_dict(event: models.Event, registry: EventTypeRegistry) -> Dict[str, Any]:
    return {
        "id": event.id,
        "event_type": event.event_type,
        "event_subtype": event.event_subtype,
        "object_id": event.object_id,
        "user_id": event.user_id,
        "title": registry.short_title(event.event_type, event.payload or {}),
        "icon": registry.icon(event.event_type),
        "payload": event.payload,
        "event_timestamp": iso(event.event_timestamp),
        "report_id": event.report_id,
        "source": event.source,
    }


def report_to_dict(report: models.Report, include_summary: bool = True) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "id": report.id,
        "report_type": report.report_type,
        "status": report.status,
        "period_start": iso(report.period_start),
        "period_end": iso(report.period_end),
        "event_count": report.event_count,
        "frozen_at": iso(report.frozen_at),
        "delivered_at": iso(report.delivered_at),
    }
    if include_summary:
        data["summary"] = report.summary
    return data


def attempt_to_dict(attempt: models.DeliveryAttempt) -> Dict[str, Any]:
    return {
        "id": attempt.id,
        "report_id": attempt.report_id,
        "recipient": attempt.recipient,
        "status": attempt.status,
        "attempted_at": iso(attempt.attempted_at),
        "error_message": attempt.error_message,
        "retry_count": attempt.retry_count,
    }


class DigestPipeline:
    def __init__(
        self,
        config: AppConfig,
        registry: EventTypeRegistry,
        tracker: EventTracker,
        lifecycle: ReportLifecycleManager,
        dispatcher: DeliveryDispatcher,
        retention: RetentionService,
    ) -> None:
        self.config = config
        self.registry = registry
        self.tracker = tracker
        self.lifecycle = lifecycle
        self.dispatcher = dispatcher
        self.retention = retention

    def track_event(self, payload: dict, now: datetime | None = None) -> PipelineResult:
        try:
            request = TrackRequest.from_dict(payload)
            result = self.tracker.track(
                request.event_type,
                request.payload,
                source=request.source,
                subtype=request.subtype,
                now=now,
            )
        except ValidationError as exc:
            return PipelineResult(ok=False, payload={}, error=str(exc))
        return PipelineResult(ok=True, payload=result.to_dict())

    def freeze(self, now: datetime | None = None) -> PipelineResult:
        result = self.lifecycle.freeze(now)
        if not result.ok:
            return PipelineResult(ok=False, payload={}, error=result.error)
        return PipelineResult(
            ok=True,
            payload={
                "report_id": result.report_id,
                "event_count": result.event_count,
                "next_report_id": result.next_report_id,
            },
        )

    def deliver(self, report_id: int) -> PipelineResult:
        report = self.lifecycle.get_report(report_id)
        if report is None:
            return PipelineResult(ok=False, payload={}, error=f"Report {report_id} not found")
        if report.status == models.ReportStatus.COLLECTING:
            return PipelineResult(
                ok=False,
                payload={"report_id": report_id, "status": report.status},
                error=f"Report {report_id} is still collecting",
            )
        delivered = self.dispatcher.deliver(report_id)
        payload = {
            "report_id": report_id,
            "delivered": delivered,
            "attempts": [
                attempt_to_dict(attempt) for attempt in self.dispatcher.attempts_for(report_id)
            ],
        }
        return PipelineResult(
            ok=delivered,
            payload=payload,
            error=None if delivered else "delivery incomplete",
        )

    def deliver_latest(self) -> PipelineResult:
        result = self.dispatcher.deliver_latest_frozen()
        payload = {"report_id": result.report_id, "delivered": result.ok}
        error = None if result.ok else (result.reason or "delivery incomplete")
        return PipelineResult(ok=result.ok, payload=payload, error=error)

    def retry(self) -> PipelineResult:
        return PipelineResult(ok=True, payload={"retried": self.dispatcher.retry_pending()})

    def purge(self, now: datetime | None = None) -> PipelineResult:
        return PipelineResult(ok=True, payload={"purged": self.retention.purge_expired(now)})

    def recent_events(self, limit: int = 5) -> PipelineResult:
        events = self.lifecycle.recent_events(limit=limit)
        return PipelineResult(
            ok=True,
            payload={
                "events": [event_to_dict(event, self.registry) for event in events],
                "unassigned": self.lifecycle.active_event_count(),
            },
        )

    def list_reports(self, limit: int = 20, offset: int = 0) -> PipelineResult:
        reports = self.lifecycle.list_frozen(limit=limit, offset=offset)
        return PipelineResult(
            ok=True,
            payload={"reports": [report_to_dict(r, include_summary=False) for r in reports]},
        )

    def active_report(self) -> PipelineResult:
        report = self.lifecycle.active_report()
        if report is None:
            return PipelineResult(ok=False, payload={}, error="no collecting report")
        data = report_to_dict(report, include_summary=False)
        data["event_count"] = self.lifecycle.active_event_count()
        return PipelineResult(ok=True, payload={"report": data})

    def get_report(self, report_id: int) -> PipelineResult:
        report = self.lifecycle.get_report(report_id)
        if report is None:
            return PipelineResult(ok=False, payload={}, error=f"Report {report_id} not found")
        return PipelineResult(ok=True, payload={"report": report_to_dict(report)})

    def report_events(self, report_id: int, limit: int = 100) -> PipelineResult:
        if self.lifecycle.get_report(report_id) is None:
            return PipelineResult(ok=False, payload={}, error=f"Report {report_id} not found")
        events = self.lifecycle.report_events(report_id, limit=limit)
        return PipelineResult(
            ok=True,
            payload={"events": [event_to_dict(event, self.registry) for event in events]},
        )

    def report_deliveries(self, report_id: int) -> PipelineResult:
        if self.lifecycle.get_report(report_id) is None:
            return PipelineResult(ok=False, payload={}, error=f"Report {report_id} not found")
        attempts = self.dispatcher.attempts_for(report_id)
        return PipelineResult(
            ok=True, payload={"attempts": [attempt_to_dict(a) for a in attempts]}
        )

    def event_types(self) -> PipelineResult:
        return PipelineResult(ok=True, payload={"event_types": self.registry.describe_all()})
