"""Throttle gate keyed by (event type, object id)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ..repositories import EventRepository
from ..utils import utc_now

LOGGER = logging.getLogger("digest.throttle")


class ThrottleGate:
    """Rejects an event while the previous one for the same object is too recent."""

    def __init__(self, window: timedelta = timedelta(hours=1)) -> None:
        self.window = window

    def accept(
        self,
        session: Session,
        event_type: str,
        object_id: str | int | None,
        now: datetime | None = None,
    ) -> bool:
        if object_id is None:
            return True
        last = EventRepository(session).last_for_object(event_type, object_id)
        if last is None:
            return True
        now = now or utc_now()
        elapsed = now - last.event_timestamp
        if elapsed >= self.window:
            return True
        LOGGER.debug(
            "Throttled %s for object %s (%.0fs since last event)",
            event_type,
            object_id,
            elapsed.total_seconds(),
        )
        return False
