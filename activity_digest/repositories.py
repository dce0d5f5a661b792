"""Repository layer that encapsulates persistence logic."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import Session

from . import models
from .models import DeliveryStatus, ReportStatus
from .utils import utc_now

_CLOSED_STATUSES = (ReportStatus.FROZEN, ReportStatus.DELIVERED)


class BaseRepository:
    def __init__(self, session: Session):
        self.session = session


class EventRepository(BaseRepository):
    def create(
        self,
        event_type: str,
        payload: dict,
        *,
        event_subtype: str | None = None,
        object_id: str | int | None = None,
        user_id: int | None = None,
        event_timestamp: datetime | None = None,
        source: str = "core",
    ) -> models.Event:
        entity = models.Event(
            event_type=event_type,
            event_subtype=event_subtype,
            object_id=str(object_id) if object_id is not None else None,
            user_id=user_id,
            payload=payload,
            event_timestamp=event_timestamp or utc_now(),
            source=source or "core",
        )
        self.session.add(entity)
        self.session.flush()
        return entity

    def get(self, event_id: int) -> models.Event | None:
        return self.session.get(models.Event, event_id)

    def by_report(
        self, report_id: int | None, limit: int = 100, offset: int = 0
    ) -> List[models.Event]:
        stmt = select(models.Event)
        if report_id is None:
            stmt = stmt.where(models.Event.report_id.is_(None))
        else:
            stmt = stmt.where(models.Event.report_id == report_id)
        stmt = (
            stmt.order_by(models.Event.event_timestamp.desc(), models.Event.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt))

    def unassigned(self, until: datetime | None = None) -> List[models.Event]:
        stmt = select(models.Event).where(models.Event.report_id.is_(None))
        if until is not None:
            stmt = stmt.where(models.Event.event_timestamp <= until)
        stmt = stmt.order_by(models.Event.event_timestamp.desc(), models.Event.id.desc())
        return list(self.session.scalars(stmt))

    def count_unassigned(self) -> int:
        stmt = select(func.count(models.Event.id)).where(models.Event.report_id.is_(None))
        return int(self.session.scalar(stmt) or 0)

    def recent(self, limit: int = 5) -> List[models.Event]:
        return self.by_report(None, limit=limit)

    def last_for_object(
        self, event_type: str, object_id: str | int
    ) -> models.Event | None:
        stmt = (
            select(models.Event)
            .where(
                models.Event.event_type == event_type,
                models.Event.object_id == str(object_id),
            )
            .order_by(models.Event.event_timestamp.desc(), models.Event.id.desc())
            .limit(1)
        )
        return self.session.scalar(stmt)

    def assign_to_report(self, report_id: int, period_end: datetime) -> int:
        """Attach every open event stamped at or before period_end to a report."""
        stmt = (
            update(models.Event)
            .where(
                models.Event.report_id.is_(None),
                models.Event.event_timestamp <= period_end,
            )
            .values(report_id=report_id)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        return int(result.rowcount or 0)

    def purge_older_than(self, cutoff: datetime) -> int:
        stmt = (
            delete(models.Event)
            .where(models.Event.event_timestamp < cutoff)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount or 0)


class ReportRepository(BaseRepository):
    def create(
        self,
        period_start: datetime,
        report_type: str = "weekly",
        status: str = ReportStatus.COLLECTING,
    ) -> models.Report:
        entity = models.Report(
            report_type=report_type,
            status=status,
            period_start=period_start,
            event_count=0,
        )
        self.session.add(entity)
        self.session.flush()
        return entity

    def get(self, report_id: int) -> models.Report | None:
        return self.session.get(models.Report, report_id)

    def update(self, report_id: int, **fields: Any) -> bool:
        report = self.get(report_id)
        if report is None:
            return False
        for key, value in fields.items():
            setattr(report, key, value)
        self.session.flush()
        return True

    def get_active(self) -> models.Report | None:
        stmt = (
            select(models.Report)
            .where(models.Report.status == ReportStatus.COLLECTING)
            .order_by(models.Report.created_at.desc(), models.Report.id.desc())
            .limit(1)
        )
        return self.session.scalar(stmt)

    def get_last_frozen(self) -> models.Report | None:
        reports = self.all_frozen(limit=1)
        return reports[0] if reports else None

    def latest_undelivered(self) -> models.Report | None:
        stmt = (
            select(models.Report)
            .where(models.Report.status == ReportStatus.FROZEN)
            .order_by(models.Report.frozen_at.desc(), models.Report.id.desc())
            .limit(1)
        )
        return self.session.scalar(stmt)

    def previous_frozen(self, report_id: int) -> models.Report | None:
        stmt = (
            select(models.Report)
            .where(
                models.Report.status.in_(_CLOSED_STATUSES),
                models.Report.id < report_id,
            )
            .order_by(models.Report.frozen_at.desc(), models.Report.id.desc())
            .limit(1)
        )
        return self.session.scalar(stmt)

    def all_frozen(self, limit: int = 20, offset: int = 0) -> List[models.Report]:
        stmt = (
            select(models.Report)
            .where(models.Report.status.in_(_CLOSED_STATUSES))
            .order_by(models.Report.frozen_at.desc(), models.Report.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(self.session.scalars(stmt))


class DeliveryLogRepository(BaseRepository):
    def add(
        self,
        report_id: int,
        recipient: str,
        status: str,
        error_message: str | None = None,
    ) -> models.DeliveryAttempt:
        entity = models.DeliveryAttempt(
            report_id=report_id,
            recipient=recipient,
            status=status,
            attempted_at=utc_now(),
            error_message=error_message,
            retry_count=0,
        )
        self.session.add(entity)
        self.session.flush()
        return entity

    def for_report(self, report_id: int) -> List[models.DeliveryAttempt]:
        stmt = (
            select(models.DeliveryAttempt)
            .where(models.DeliveryAttempt.report_id == report_id)
            .order_by(models.DeliveryAttempt.attempted_at.desc(), models.DeliveryAttempt.id.desc())
        )
        return list(self.session.scalars(stmt))

    def sent_recipients(self, report_id: int) -> set[str]:
        stmt = select(models.DeliveryAttempt.recipient).where(
            models.DeliveryAttempt.report_id == report_id,
            models.DeliveryAttempt.status == DeliveryStatus.SENT,
        )
        return set(self.session.scalars(stmt))

    def retryable(self, max_retries: int, limit: int = 10) -> List[models.DeliveryAttempt]:
        stmt = (
            select(models.DeliveryAttempt)
            .where(
                models.DeliveryAttempt.status == DeliveryStatus.FAILED,
                models.DeliveryAttempt.retry_count < max_retries,
            )
            .order_by(models.DeliveryAttempt.attempted_at.desc(), models.DeliveryAttempt.id.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))

    def mark_sent(self, attempt: models.DeliveryAttempt) -> None:
        attempt.status = DeliveryStatus.SENT
        attempt.attempted_at = utc_now()
        attempt.error_message = None
        self.session.flush()

    def record_retry_failure(
        self, attempt: models.DeliveryAttempt, error_message: str | None
    ) -> None:
        attempt.retry_count = attempt.retry_count + 1
        attempt.attempted_at = utc_now()
        attempt.error_message = error_message
        self.session.flush()
