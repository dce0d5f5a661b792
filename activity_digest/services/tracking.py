"""Event tracking: validation, extension transforms, throttling, persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from ..config import TrackingConfig
from ..database import Database
from ..repositories import EventRepository
from ..utils import utc_now, word_count
from .extensions import ExtensionPoints
from .magnitude import MagnitudeScorer
from .throttle import ThrottleGate
from .validators import EventPayload

LOGGER = logging.getLogger("digest.tracking")

COMMENT_STATUSES = ("posted", "approved", "spam")
PACKAGE_KINDS = ("core", "plugin", "theme")
THROTTLED_TYPES = frozenset({"post_published", "page_published", "post_edited"})


@dataclass
class TrackResult:
    tracked: bool
    event_id: int | None = None
    reason: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"tracked": self.tracked}
        if self.event_id is not None:
            data["event_id"] = self.event_id
        if self.reason:
            data["reason"] = self.reason
        return data


class EventTracker:
    def __init__(
        self,
        config: TrackingConfig,
        database: Database,
        throttle: ThrottleGate,
        scorer: MagnitudeScorer,
        extensions: ExtensionPoints | None = None,
    ) -> None:
        self.config = config
        self.database = database
        self.throttle = throttle
        self.scorer = scorer
        self.extensions = extensions or ExtensionPoints()

    def track(
        self,
        event_type: str,
        payload: EventPayload | Dict[str, Any],
        *,
        source: str = "custom",
        subtype: str | None = None,
        now: datetime | None = None,
        throttle: bool | None = None,
    ) -> TrackResult:
        """Record one event. Raises ValidationError for malformed payloads."""
        if throttle is None:
            throttle = event_type in THROTTLED_TYPES
        if not isinstance(payload, EventPayload):
            payload = EventPayload.from_dict(payload)
        transformed = self.extensions.apply_event(event_type, payload)
        if transformed is None:
            return TrackResult(tracked=False, reason="vetoed")

        now = now or utc_now()
        with self.database.session() as session:
            if throttle and not self.throttle.accept(
                session, event_type, transformed.object_id, now
            ):
                return TrackResult(tracked=False, reason="throttled")
            event = EventRepository(session).create(
                event_type,
                transformed.to_dict(),
                event_subtype=subtype,
                object_id=transformed.object_id,
                user_id=transformed.user_id,
                event_timestamp=now,
                source=source,
            )
            event_id = event.id
        LOGGER.debug("Tracked %s event %s from %s", event_type, event_id, source)
        return TrackResult(tracked=True, event_id=event_id)

    def _is_content(self, content_type: str) -> bool:
        return content_type in self.config.tracked_content_types

    @staticmethod
    def _actor(user_id: int | None, user_name: str | None) -> Dict[str, Any]:
        context: Dict[str, Any] = {}
        if user_id is not None:
            context["user_id"] = user_id
        if user_name:
            context["user_name"] = user_name
        return context

    def track_content_published(
        self,
        content_type: str,
        object_id: int | str,
        title: str,
        content: str = "",
        *,
        url: str | None = None,
        user_id: int | None = None,
        user_name: str | None = None,
        categories: Iterable[str] = (),
        tags: Iterable[str] = (),
        now: datetime | None = None,
    ) -> TrackResult:
        if not self._is_content(content_type):
            return TrackResult(tracked=False, reason="untracked_type")
        payload = {
            "action": "published",
            "object": {"type": content_type, "id": object_id, "title": title, "url": url},
            "context": self._actor(user_id, user_name),
            "metadata": {
                "categories": list(categories),
                "tags": list(tags),
                "word_count": word_count(content),
                "edit_magnitude": 100,
            },
        }
        return self.track(
            f"{content_type}_published", payload, source="core", now=now, throttle=True
        )

    def track_content_edited(
        self,
        content_type: str,
        object_id: int | str,
        title: str,
        old_content: str,
        new_content: str,
        *,
        url: str | None = None,
        user_id: int | None = None,
        user_name: str | None = None,
        now: datetime | None = None,
    ) -> TrackResult:
        if not self._is_content(content_type):
            return TrackResult(tracked=False, reason="untracked_type")
        now = now or utc_now()
        with self.database.session() as session:
            if not self.throttle.accept(session, "post_edited", object_id, now):
                return TrackResult(tracked=False, reason="throttled")

        magnitude = self.scorer.score(old_content, new_content)
        if magnitude < self.config.min_edit_magnitude:
            LOGGER.debug("Edit of %s %s too small (%s%%)", content_type, object_id, magnitude)
            return TrackResult(tracked=False, reason="below_magnitude")

        payload = {
            "action": "edited",
            "object": {"type": content_type, "id": object_id, "title": title, "url": url},
            "context": self._actor(user_id, user_name),
            "metadata": {
                "word_count": word_count(new_content),
                "edit_magnitude": magnitude,
                "edit_size": self.scorer.bucket(magnitude),
            },
        }
        return self.track(
            "post_edited", payload, source="core", subtype=content_type, now=now, throttle=True
        )

    def track_content_deleted(
        self,
        content_type: str,
        object_id: int | str,
        title: str,
        *,
        user_id: int | None = None,
        user_name: str | None = None,
        now: datetime | None = None,
    ) -> TrackResult:
        if not self._is_content(content_type):
            return TrackResult(tracked=False, reason="untracked_type")
        payload = {
            "action": "deleted",
            "object": {"type": content_type, "id": object_id, "title": title},
            "context": self._actor(user_id, user_name),
        }
        return self.track("post_deleted", payload, source="core", subtype=content_type, now=now)

    def track_user_registered(
        self,
        user_id: int,
        name: str,
        role: str | None = None,
        *,
        now: datetime | None = None,
    ) -> TrackResult:
        payload = {
            "action": "registered",
            "object": {"type": "user", "id": user_id, "name": name, "role": role},
            "context": {"user_id": user_id, "user_name": name},
        }
        return self.track("user_registered", payload, source="core", now=now)

    def track_user_role_changed(
        self,
        user_id: int,
        name: str,
        old_role: str | None,
        new_role: str,
        *,
        actor_id: int | None = None,
        actor_name: str | None = None,
        now: datetime | None = None,
    ) -> TrackResult:
        payload = {
            "action": "role_changed",
            "object": {"type": "user", "id": user_id, "name": name, "role": new_role},
            "context": self._actor(actor_id, actor_name),
            "metadata": {"old_role": old_role, "new_role": new_role},
        }
        return self.track("user_role_changed", payload, source="core", now=now)

    def track_comment(
        self,
        status: str,
        comment_id: int,
        post_id: int,
        post_title: str,
        author: str,
        *,
        now: datetime | None = None,
    ) -> TrackResult:
        if status not in COMMENT_STATUSES:
            return TrackResult(tracked=False, reason="untracked_type")
        payload = {
            "action": status,
            "object": {
                "type": "comment",
                "id": comment_id,
                "post_id": post_id,
                "post_title": post_title,
                "author": author,
            },
        }
        return self.track(f"comment_{status}", payload, source="core", now=now)

    def track_package_updated(
        self,
        kind: str,
        slug: str,
        name: str,
        version: str,
        previous_version: Optional[str] = None,
        *,
        now: datetime | None = None,
    ) -> TrackResult:
        if kind not in PACKAGE_KINDS:
            return TrackResult(tracked=False, reason="untracked_type")
        payload = {
            "action": "updated",
            "object": {
                "type": kind,
                "id": slug,
                "name": name,
                "version": version,
                "previous_version": previous_version,
            },
        }
        return self.track(f"{kind}_updated", payload, source="core", now=now)
