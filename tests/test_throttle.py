from datetime import datetime, timedelta

from activity_digest.repositories import EventRepository
from activity_digest.services.throttle import ThrottleGate

T0 = datetime(2024, 3, 4, 12, 0, 0)


def _record(database, event_type="post_published", object_id=1, at=T0):
    with database.session() as session:
        EventRepository(session).create(
            event_type,
            {"action": "published", "object": {"type": "post", "id": object_id}},
            object_id=object_id,
            event_timestamp=at,
        )


def test_first_event_is_accepted(database):
    gate = ThrottleGate(timedelta(seconds=3600))
    with database.session() as session:
        assert gate.accept(session, "post_published", 1, T0) is True


def test_window_boundaries(database):
    gate = ThrottleGate(timedelta(seconds=3600))
    _record(database)
    with database.session() as session:
        assert gate.accept(session, "post_published", 1, T0 + timedelta(seconds=1800)) is False
        assert gate.accept(session, "post_published", 1, T0 + timedelta(seconds=3601)) is True


def test_signature_is_type_and_object(database):
    gate = ThrottleGate(timedelta(hours=1))
    _record(database)
    soon = T0 + timedelta(minutes=5)
    with database.session() as session:
        assert gate.accept(session, "post_published", 2, soon) is True
        assert gate.accept(session, "post_edited", 1, soon) is True
        assert gate.accept(session, "post_published", "1", soon) is False


def test_missing_object_id_is_never_throttled(database):
    gate = ThrottleGate(timedelta(hours=1))
    with database.session() as session:
        assert gate.accept(session, "core_updated", None, T0) is True
