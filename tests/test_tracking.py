from datetime import timedelta

import pytest

from activity_digest.services.validators import ValidationError
from activity_digest.utils import utc_now


@pytest.fixture()
def tracker(ctx):
    return ctx.pipeline.tracker


def _stored(ctx):
    return {event.id: event for event in ctx.pipeline.lifecycle.recent_events(limit=100)}


def test_track_persists_validated_payload(ctx, tracker):
    result = tracker.track(
        "custom_signup",
        {
            "action": "signed_up",
            "object": {"type": "newsletter", "id": 5, "list": "weekly"},
            "context": {"user_id": "12", "user_name": "Ann"},
        },
        source="newsletter",
        subtype="weekly",
    )
    assert result.tracked
    event = _stored(ctx)[result.event_id]
    assert event.event_type == "custom_signup"
    assert event.event_subtype == "weekly"
    assert event.source == "newsletter"
    assert event.object_id == "5"
    assert event.user_id == 12
    assert event.report_id is None
    assert event.payload["object"] == {"type": "newsletter", "id": 5, "list": "weekly"}


def test_invalid_payload_raises_and_stores_nothing(ctx, tracker):
    with pytest.raises(ValidationError):
        tracker.track("custom", {"object": {"type": "post"}})
    assert _stored(ctx) == {}


def test_event_transform_can_rewrite_and_veto(ctx, tracker):
    def transform(event_type, payload):
        if payload.object_type == "secret":
            return None
        payload.metadata["seen"] = True
        return payload

    ctx.extensions.add_event_transform(transform)
    vetoed = tracker.track("custom", {"action": "x", "object": {"type": "secret"}})
    kept = tracker.track("custom", {"action": "x", "object": {"type": "thing"}})

    assert vetoed.to_dict() == {"tracked": False, "reason": "vetoed"}
    assert _stored(ctx)[kept.event_id].payload["metadata"] == {"seen": True}


def test_publish_is_throttled_per_object(tracker):
    now = utc_now()
    first = tracker.track_content_published("post", 1, "Hello", "<p>Hi there</p>", now=now)
    again = tracker.track_content_published(
        "post", 1, "Hello", "Hi", now=now + timedelta(seconds=1800)
    )
    other = tracker.track_content_published("post", 2, "Other", "", now=now)
    later = tracker.track_content_published(
        "post", 1, "Hello", "Hi", now=now + timedelta(seconds=3601)
    )
    assert first.tracked and other.tracked and later.tracked
    assert again.to_dict() == {"tracked": False, "reason": "throttled"}


def test_publish_records_word_count_and_author(ctx, tracker):
    result = tracker.track_content_published(
        "page", 3, "About", "<p>We build <b>small</b> tools.</p>", user_id=4, user_name="Bo"
    )
    event = _stored(ctx)[result.event_id]
    assert event.event_type == "page_published"
    assert event.payload["metadata"]["word_count"] == 4
    assert event.payload["context"] == {"user_id": 4, "user_name": "Bo"}


def test_untracked_content_type_is_ignored(tracker):
    result = tracker.track_content_published("attachment", 1, "Image")
    assert result.to_dict() == {"tracked": False, "reason": "untracked_type"}


def test_small_edits_are_skipped(tracker):
    text = "A fairly long paragraph about the weekly activity digest and its reports."
    result = tracker.track_content_edited("post", 1, "Post", text, text + "!")
    assert result.reason == "below_magnitude"


def test_large_edit_is_tracked_with_magnitude(ctx, tracker):
    result = tracker.track_content_edited(
        "post", 1, "Post", "short draft", "an entirely rewritten article with new content"
    )
    assert result.tracked
    event = _stored(ctx)[result.event_id]
    assert event.event_type == "post_edited"
    assert event.event_subtype == "post"
    assert event.payload["metadata"]["edit_magnitude"] >= 5
    assert event.payload["metadata"]["edit_size"] in {"moderate", "major"}


def test_edits_are_throttled(tracker):
    now = utc_now()
    first = tracker.track_content_edited("post", 1, "Post", "", "brand new text", now=now)
    second = tracker.track_content_edited(
        "post", 1, "Post", "brand new text", "something else entirely", now=now + timedelta(minutes=10)
    )
    assert first.tracked
    assert second.reason == "throttled"


def test_other_trackers(ctx, tracker):
    results = [
        tracker.track_content_deleted("post", 9, "Gone"),
        tracker.track_user_registered(3, "Cy", "subscriber"),
        tracker.track_user_role_changed(3, "Cy", "subscriber", "editor"),
        tracker.track_comment("approved", 11, 1, "Hello", "Dee"),
        tracker.track_package_updated("plugin", "akismet", "Akismet", "5.3", "5.2"),
        tracker.track_package_updated("core", "wordpress", "WordPress", "6.5"),
    ]
    assert all(result.tracked for result in results)
    stored = _stored(ctx)
    types = sorted(stored[result.event_id].event_type for result in results)
    assert types == [
        "comment_approved",
        "core_updated",
        "plugin_updated",
        "post_deleted",
        "user_registered",
        "user_role_changed",
    ]
    role_event = stored[results[2].event_id]
    assert role_event.payload["metadata"] == {"old_role": "subscriber", "new_role": "editor"}


def test_unknown_comment_status_and_package_kind(tracker):
    assert tracker.track_comment("trashed", 1, 1, "Post", "X").reason == "untracked_type"
    assert tracker.track_package_updated("widget", "w", "W", "1").reason == "untracked_type"
