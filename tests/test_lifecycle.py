from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from activity_digest import models
from activity_digest.models import ReportStatus
from activity_digest.repositories import EventRepository, ReportRepository
from activity_digest.services.lifecycle import LifecycleError, advance
from activity_digest.utils import utc_now


def _track(ctx, event_type, at, object_id=None, user_name="Ann"):
    return ctx.pipeline.tracker.track(
        event_type,
        {
            "action": "x",
            "object": {"type": "post", "id": object_id},
            "context": {"user_id": 1, "user_name": user_name},
        },
        now=at,
        throttle=False,
    )


def test_bootstrap_opens_a_collecting_report(ctx):
    active = ctx.pipeline.lifecycle.active_report()
    assert active is not None
    assert active.status == ReportStatus.COLLECTING


def test_freeze_assigns_events_and_opens_next_report(ctx):
    now = utc_now()
    for i in range(3):
        _track(ctx, "post_published", now - timedelta(minutes=10), object_id=i)
    _track(ctx, "comment_posted", now - timedelta(minutes=5))

    result = ctx.pipeline.lifecycle.freeze(now)
    assert result.ok
    assert result.event_count == 4

    report = ctx.pipeline.lifecycle.get_report(result.report_id)
    assert report.status == ReportStatus.FROZEN
    assert report.period_end == now
    assert report.frozen_at == now
    assert report.summary["totals"] == {"post_published": 3, "comment_posted": 1}
    assert report.summary["total_events"] == 4
    assert report.summary["trends"] == {}
    assert report.summary["narrative"] == "No narrative available."
    assert report.summary["top_contributors"] == [{"name": "Ann", "count": 3}]

    active = ctx.pipeline.lifecycle.active_report()
    assert active.id == result.next_report_id
    assert active.period_start == now
    assert ctx.pipeline.lifecycle.active_event_count() == 0


def test_event_after_window_end_goes_to_next_report(ctx):
    now = utc_now()
    _track(ctx, "post_published", now - timedelta(seconds=1), object_id=1)
    _track(ctx, "post_published", now + timedelta(seconds=1), object_id=2)

    first = ctx.pipeline.lifecycle.freeze(now)
    assert first.event_count == 1
    assert ctx.pipeline.lifecycle.active_event_count() == 1

    second = ctx.pipeline.lifecycle.freeze(now + timedelta(days=7))
    assert second.event_count == 1
    events = ctx.pipeline.lifecycle.report_events(second.report_id)
    assert [event.object_id for event in events] == ["2"]


def test_second_freeze_trends_against_first(ctx):
    now = utc_now()
    for i in range(10):
        _track(ctx, "post_published", now - timedelta(minutes=1), object_id=i)
    ctx.pipeline.lifecycle.freeze(now)

    later = now + timedelta(days=7)
    for i in range(12):
        _track(ctx, "post_published", later - timedelta(minutes=1), object_id=100 + i)
    result = ctx.pipeline.lifecycle.freeze(later)

    report = ctx.pipeline.lifecycle.get_report(result.report_id)
    trend = report.summary["trends"]["post_published"]
    assert trend["change_percent"] == 20.0
    assert trend["direction"] == "up"
    assert "12 new posts published ↑ 20.0%" in report.summary["highlights"]


def test_freeze_without_collecting_report_fails(ctx, database):
    with database.session() as session:
        active = ReportRepository(session).get_active()
        session.delete(active)

    result = ctx.pipeline.lifecycle.freeze()
    assert result.ok is False
    assert result.error == "no collecting report"


def test_freeze_storage_failure_keeps_events_open(ctx, monkeypatch):
    now = utc_now()
    _track(ctx, "post_published", now - timedelta(minutes=1), object_id=1)

    def broken(self, report_id, period_end):
        raise OperationalError("UPDATE events", {}, Exception("disk I/O error"))

    monkeypatch.setattr(EventRepository, "assign_to_report", broken)
    result = ctx.pipeline.lifecycle.freeze(now)

    assert result.ok is False
    assert "disk I/O error" in result.error
    assert ctx.pipeline.lifecycle.active_report().status == ReportStatus.COLLECTING
    assert ctx.pipeline.lifecycle.active_event_count() == 1
    assert ctx.pipeline.lifecycle.last_frozen() is None


def test_summary_transforms_and_listeners(ctx):
    seen = []

    def add_note(report_id, summary):
        summary.extra["note"] = f"report {report_id}"
        return summary

    ctx.extensions.add_summary_transform(add_note)
    ctx.extensions.add_freeze_listener(lambda report_id, summary: seen.append(report_id))
    ctx.extensions.add_freeze_listener(lambda report_id, summary: 1 / 0)

    result = ctx.pipeline.lifecycle.freeze()
    assert result.ok
    assert seen == [result.report_id]
    report = ctx.pipeline.lifecycle.get_report(result.report_id)
    assert report.summary["extra"] == {"note": f"report {result.report_id}"}


def test_status_only_moves_forward():
    report = models.Report(id=1, status=ReportStatus.COLLECTING)
    with pytest.raises(LifecycleError):
        advance(report, ReportStatus.DELIVERED)
    advance(report, ReportStatus.FROZEN)
    with pytest.raises(LifecycleError):
        advance(report, ReportStatus.COLLECTING)
    advance(report, ReportStatus.DELIVERED)
    with pytest.raises(LifecycleError):
        advance(report, ReportStatus.FROZEN)


def test_mark_delivered_requires_frozen(ctx):
    active_id = ctx.pipeline.lifecycle.active_report().id
    with pytest.raises(LifecycleError):
        ctx.pipeline.lifecycle.mark_delivered(active_id)
