"""Report lifecycle: collecting -> frozen -> delivered."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import models
from ..config import AppConfig
from ..database import Database
from ..models import ReportStatus
from ..repositories import EventRepository, ReportRepository
from ..utils import utc_now
from .extensions import ExtensionPoints
from .summary import ReportSummary, SummaryBuilder

LOGGER = logging.getLogger("digest.lifecycle")


class LifecycleError(Exception):
    """Raised on an illegal report status transition."""


@dataclass
class FreezeResult:
    ok: bool
    report_id: int | None = None
    event_count: int = 0
    next_report_id: int | None = None
    error: str | None = None


def advance(report: models.Report, target: str) -> None:
    if not ReportStatus.can_advance(report.status, target):
        raise LifecycleError(
            f"Report {report.id} cannot move from {report.status} to {target}"
        )
    report.status = target


class ReportLifecycleManager:
    def __init__(
        self,
        config: AppConfig,
        database: Database,
        builder: SummaryBuilder,
        extensions: ExtensionPoints | None = None,
    ) -> None:
        self.config = config
        self.database = database
        self.builder = builder
        self.extensions = extensions or ExtensionPoints()

    def _create_collecting(self, session: Session, period_start: datetime) -> models.Report:
        report = ReportRepository(session).create(
            period_start=period_start,
            report_type=self.config.reporting.report_type,
        )
        LOGGER.info("Opened collecting report %s at %s", report.id, period_start)
        return report

    def ensure_collecting(self, now: datetime | None = None) -> int:
        """Return the collecting report id, creating one if none exists."""
        with self.database.session() as session:
            active = ReportRepository(session).get_active()
            if active is not None:
                return active.id
            return self._create_collecting(session, now or utc_now()).id

    def freeze(self, now: datetime | None = None) -> FreezeResult:
        window_end = now or utc_now()
        try:
            with self.database.session() as session:
                reports = ReportRepository(session)
                active = reports.get_active()
                if active is None:
                    LOGGER.info("No collecting report to freeze")
                    return FreezeResult(ok=False, error="no collecting report")
                report_id = active.id

                events = EventRepository(session).unassigned(until=window_end)
                summary = self.builder.build(session, report_id, events)
                summary = self.extensions.apply_summary(report_id, summary)

                # same boundary as the summary query above
                assigned = EventRepository(session).assign_to_report(report_id, window_end)
                if assigned != summary.total_events:
                    LOGGER.warning(
                        "Report %s summarised %s events but assigned %s",
                        report_id,
                        summary.total_events,
                        assigned,
                    )

                advance(active, ReportStatus.FROZEN)
                active.period_end = window_end
                active.frozen_at = window_end
                active.event_count = assigned
                active.summary = summary.to_dict()

                next_report = self._create_collecting(session, window_end)
                next_id = next_report.id
        except SQLAlchemyError as exc:
            LOGGER.exception("Freeze failed: %s", exc)
            return FreezeResult(ok=False, error=str(exc))

        LOGGER.info("Report %s frozen with %s events", report_id, assigned)
        self.extensions.notify_frozen(report_id, summary)
        return FreezeResult(
            ok=True, report_id=report_id, event_count=assigned, next_report_id=next_id
        )

    def mark_delivered(self, report_id: int, now: datetime | None = None) -> bool:
        with self.database.session() as session:
            report = ReportRepository(session).get(report_id)
            if report is None:
                return False
            advance(report, ReportStatus.DELIVERED)
            report.delivered_at = now or utc_now()
        LOGGER.info("Report %s marked delivered", report_id)
        return True

    def active_report(self) -> models.Report | None:
        with self.database.session() as session:
            return ReportRepository(session).get_active()

    def get_report(self, report_id: int) -> models.Report | None:
        with self.database.session() as session:
            return ReportRepository(session).get(report_id)

    def last_frozen(self) -> models.Report | None:
        with self.database.session() as session:
            return ReportRepository(session).get_last_frozen()

    def list_frozen(self, limit: int = 20, offset: int = 0) -> List[models.Report]:
        with self.database.session() as session:
            return ReportRepository(session).all_frozen(limit=limit, offset=offset)

    def report_events(self, report_id: int, limit: int = 100) -> List[models.Event]:
        with self.database.session() as session:
            return EventRepository(session).by_report(report_id, limit=limit)

    def recent_events(self, limit: int = 5) -> List[models.Event]:
        with self.database.session() as session:
            return EventRepository(session).recent(limit=limit)

    def active_event_count(self) -> int:
        with self.database.session() as session:
            return EventRepository(session).count_unassigned()

    def summary_of(self, report: models.Report) -> ReportSummary:
        return ReportSummary.from_dict(report.summary)
