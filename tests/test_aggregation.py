from activity_digest import models
from activity_digest.services.aggregation import Aggregator


def _event(event_type, user_name=None):
    payload = {"action": "x", "object": {"type": "post", "id": 1}}
    if user_name:
        payload["context"] = {"user_name": user_name}
    return models.Event(event_type=event_type, payload=payload)


def test_aggregate_orders_by_count_then_name():
    events = [
        _event("comment_posted"),
        _event("post_published"),
        _event("comment_posted"),
        _event("user_registered"),
        _event("post_published"),
    ]
    totals = Aggregator().aggregate(events)
    assert totals == {"comment_posted": 2, "post_published": 2, "user_registered": 1}
    assert list(totals) == ["comment_posted", "post_published", "user_registered"]


def test_aggregate_empty():
    assert Aggregator().aggregate([]) == {}


def test_top_contributors_counts_only_wanted_types():
    events = [
        _event("post_published", "Ann"),
        _event("post_published", "Ann"),
        _event("page_published", "Bob"),
        _event("post_edited", "Bob"),
        _event("post_edited", "Bob"),
        _event("post_published"),
    ]
    top = Aggregator().top_contributors(events)
    assert top == [{"name": "Ann", "count": 2}, {"name": "Bob", "count": 1}]


def test_top_contributors_limit():
    events = [_event("post_published", f"user{i}") for i in range(8)]
    assert len(Aggregator().top_contributors(events, limit=3)) == 3
