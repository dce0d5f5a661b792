"""Age-based cleanup of stored events."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from ..config import RetentionConfig
from ..database import Database
from ..repositories import EventRepository
from ..utils import utc_now

LOGGER = logging.getLogger("digest.retention")


class RetentionService:
    def __init__(self, config: RetentionConfig, database: Database) -> None:
        self.config = config
        self.database = database

    def cutoff(self, now: datetime | None = None) -> datetime:
        return (now or utc_now()) - timedelta(days=self.config.event_retention_days)

    def purge_expired(self, now: datetime | None = None) -> int:
        """Delete events older than the retention period; returns rows removed."""
        if self.config.event_retention_days <= 0:
            return 0
        cutoff = self.cutoff(now)
        with self.database.session() as session:
            removed = EventRepository(session).purge_older_than(cutoff)
        if removed:
            LOGGER.info("Purged %s events older than %s", removed, cutoff.date())
        return removed
