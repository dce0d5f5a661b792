"""Per-recipient delivery of frozen reports with a bounded retry sweep."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Tuple

from .. import models
from ..config import DeliveryConfig
from ..database import Database
from ..models import DeliveryStatus, ReportStatus
from ..repositories import DeliveryLogRepository, ReportRepository
from .lifecycle import ReportLifecycleManager
from .mailer import MessageSender
from .templates import DigestTemplate

LOGGER = logging.getLogger("digest.delivery")


@dataclass
class RenderedReport:
    report_id: int
    subject: str
    body: str
    headers: dict


@dataclass
class DispatchResult:
    report_id: int | None
    ok: bool
    reason: str | None = None


class DeliveryDispatcher:
    def __init__(
        self,
        config: DeliveryConfig,
        database: Database,
        lifecycle: ReportLifecycleManager,
        sender: MessageSender,
        template: DigestTemplate,
    ) -> None:
        self.config = config
        self.database = database
        self.lifecycle = lifecycle
        self.sender = sender
        self.template = template

    def _render(self, report: models.Report) -> RenderedReport:
        return RenderedReport(
            report_id=report.id,
            subject=self.template.subject(report),
            body=self.template.body(report),
            headers=self.template.headers(),
        )

    def _send(self, recipient: str, rendered: RenderedReport) -> Tuple[bool, str | None]:
        try:
            result = self.sender.send(
                recipient, rendered.subject, rendered.body, dict(rendered.headers)
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.warning(
                "Sending report %s to %s raised: %s", rendered.report_id, recipient, exc
            )
            return False, f"{type(exc).__name__}: {exc}"
        if result is not True:
            return False, "sender reported failure"
        return True, None

    def deliver(self, report_id: int) -> bool:
        """Send a frozen report to every recipient; True iff all of them got it."""
        recipients = list(dict.fromkeys(self.config.recipients))
        with self.database.session() as session:
            report = ReportRepository(session).get(report_id)
            if report is None:
                LOGGER.warning("Report %s not found", report_id)
                return False
            if report.status == ReportStatus.DELIVERED:
                return True
            if report.status != ReportStatus.FROZEN:
                LOGGER.warning("Report %s is %s, not frozen", report_id, report.status)
                return False
            if not recipients:
                LOGGER.warning("No recipients configured for report %s", report_id)
                return False
            if report.event_count == 0 and not self.config.send_empty_reports:
                skip_transmission = True
                rendered = None
            else:
                skip_transmission = False
                rendered = self._render(report)
            already_sent = DeliveryLogRepository(session).sent_recipients(report_id)

        if skip_transmission:
            LOGGER.info("Report %s is empty; marking delivered without sending", report_id)
            return self.lifecycle.mark_delivered(report_id)

        all_sent = True
        for recipient in recipients:
            if recipient in already_sent:
                continue
            ok, error = self._send(recipient, rendered)
            with self.database.session() as session:
                DeliveryLogRepository(session).add(
                    report_id,
                    recipient,
                    DeliveryStatus.SENT if ok else DeliveryStatus.FAILED,
                    error_message=error,
                )
            if ok:
                LOGGER.info("Report %s sent to %s", report_id, recipient)
            else:
                all_sent = False
                LOGGER.warning("Report %s failed for %s: %s", report_id, recipient, error)

        if all_sent:
            self.lifecycle.mark_delivered(report_id)
        return all_sent

    def deliver_latest_frozen(self) -> DispatchResult:
        with self.database.session() as session:
            report = ReportRepository(session).latest_undelivered()
            report_id = report.id if report else None
        if report_id is None:
            LOGGER.info("No frozen report awaiting delivery")
            return DispatchResult(report_id=None, ok=False, reason="no frozen report")
        ok = self.deliver(report_id)
        if ok:
            LOGGER.info("Successfully delivered digest for report %s", report_id)
        else:
            LOGGER.warning("Delivery of report %s incomplete", report_id)
        return DispatchResult(report_id=report_id, ok=ok)

    def retry_pending(self) -> int:
        """Re-send failed attempts below the retry cap; returns how many went through."""
        with self.database.session() as session:
            pending = [
                (attempt.id, attempt.report_id, attempt.recipient)
                for attempt in DeliveryLogRepository(session).retryable(
                    self.config.max_retries, limit=self.config.retry_batch_size
                )
            ]
            reports = ReportRepository(session)
            rendered = {}
            for _, report_id, _ in pending:
                if report_id in rendered:
                    continue
                report = reports.get(report_id)
                rendered[report_id] = self._render(report) if report else None

        retried = 0
        for attempt_id, report_id, recipient in pending:
            content = rendered.get(report_id)
            if content is None:
                continue
            ok, error = self._send(recipient, content)
            with self.database.session() as session:
                log = DeliveryLogRepository(session)
                attempt = session.get(models.DeliveryAttempt, attempt_id)
                if attempt is None:
                    continue
                if ok:
                    log.mark_sent(attempt)
                    retried += 1
                else:
                    log.record_retry_failure(attempt, error)
        if retried:
            LOGGER.info("Retried %s failed deliveries", retried)
        return retried

    def attempts_for(self, report_id: int) -> List[models.DeliveryAttempt]:
        with self.database.session() as session:
            return DeliveryLogRepository(session).for_report(report_id)
