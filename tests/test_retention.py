from datetime import timedelta

from activity_digest.config import RetentionConfig
from activity_digest.repositories import EventRepository
from activity_digest.services.retention import RetentionService
from activity_digest.utils import utc_now


def _seed(database, ages_in_days):
    now = utc_now()
    with database.session() as session:
        repo = EventRepository(session)
        for age in ages_in_days:
            repo.create(
                "post_published",
                {"action": "published", "object": {"type": "post"}},
                event_timestamp=now - timedelta(days=age),
            )
    return now


def test_purge_removes_only_expired_events(database):
    now = _seed(database, [400, 366, 10, 0])
    removed = RetentionService(RetentionConfig(event_retention_days=365), database).purge_expired(now)
    assert removed == 2
    with database.session() as session:
        assert EventRepository(session).count_unassigned() == 2


def test_zero_retention_keeps_everything(database):
    now = _seed(database, [1000])
    assert RetentionService(RetentionConfig(event_retention_days=0), database).purge_expired(now) == 0


def test_pipeline_purge(pipeline, database):
    _seed(database, [500])
    result = pipeline.purge()
    assert result.ok
    assert result.payload == {"purged": 1}
