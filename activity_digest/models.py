"""ORM models for the activity digest pipeline."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .database import Base
from .utils import utc_now


class ReportStatus:
    COLLECTING = "collecting"
    FROZEN = "frozen"
    DELIVERED = "delivered"

    ORDER = (COLLECTING, FROZEN, DELIVERED)

    @classmethod
    def can_advance(cls, current: str, target: str) -> bool:
        """Only single forward steps are legal."""
        try:
            return cls.ORDER.index(target) == cls.ORDER.index(current) + 1
        except ValueError:
            return False


class DeliveryStatus:
    SENT = "sent"
    FAILED = "failed"


ReportStatusType = Enum(
    ReportStatus.COLLECTING,
    ReportStatus.FROZEN,
    ReportStatus.DELIVERED,
    name="report_status",
)

DeliveryStatusType = Enum(
    DeliveryStatus.SENT,
    DeliveryStatus.FAILED,
    name="delivery_status",
)


class Report(Base):
    __tablename__ = "reports"
    __table_args__ = (
        Index("ix_reports_status", "status"),
        Index("ix_reports_period", "period_start", "period_end"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_type: Mapped[str] = mapped_column(String(20), default="weekly", nullable=False)
    status: Mapped[str] = mapped_column(
        ReportStatusType, default=ReportStatus.COLLECTING, nullable=False
    )
    period_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    period_end: Mapped[Optional[datetime]] = mapped_column(DateTime)
    event_count: Mapped[int] = mapped_column(Integer, default=0)
    summary: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    frozen_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)

    events: Mapped[List["Event"]] = relationship("Event", back_populates="report")
    attempts: Mapped[List["DeliveryAttempt"]] = relationship(
        "DeliveryAttempt", back_populates="report"
    )


class Event(Base):
    __tablename__ = "events"
    __table_args__ = (
        Index("ix_events_type_object", "event_type", "object_id", "event_timestamp"),
        Index("ix_events_report", "report_id"),
        Index("ix_events_timestamp", "event_timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    event_type: Mapped[str] = mapped_column(String(50), nullable=False)
    event_subtype: Mapped[Optional[str]] = mapped_column(String(50))
    object_id: Mapped[Optional[str]] = mapped_column(String(64))
    user_id: Mapped[Optional[int]] = mapped_column(Integer)
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    event_timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    report_id: Mapped[Optional[int]] = mapped_column(ForeignKey("reports.id"))
    source: Mapped[str] = mapped_column(String(100), default="core", nullable=False)

    report: Mapped[Optional["Report"]] = relationship("Report", back_populates="events")


class DeliveryAttempt(Base):
    __tablename__ = "delivery_attempts"
    __table_args__ = (
        Index("ix_delivery_report", "report_id"),
        Index("ix_delivery_status", "status", "retry_count"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id"), nullable=False)
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(DeliveryStatusType, nullable=False)
    attempted_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    retry_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    report: Mapped["Report"] = relationship("Report", back_populates="attempts")
