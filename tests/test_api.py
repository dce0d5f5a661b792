from activity_digest.models import ReportStatus


def _event_body(object_id=1, event_type="post_published"):
    return {
        "event_type": event_type,
        "source": "core",
        "payload": {
            "action": "published",
            "object": {"type": "post", "id": object_id, "title": f"Post {object_id}"},
            "context": {"user_id": 1, "user_name": "Ann"},
        },
    }


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["ok"] is True
    assert data["payload"] == {"status": "ok"}
    assert data["timestamp"].endswith("Z")


def test_track_event_and_list_recent(client):
    resp = client.post("/api/events", json=_event_body())
    assert resp.status_code == 200
    payload = resp.get_json()["payload"]
    assert payload["tracked"] is True

    recent = client.get("/api/events/recent").get_json()["payload"]
    assert recent["unassigned"] == 1
    assert recent["events"][0]["event_type"] == "post_published"
    assert recent["events"][0]["title"] == "New post: Post 1"


def test_track_event_validation_error(client):
    resp = client.post("/api/events", json={"event_type": "custom", "payload": {"object": {}}})
    assert resp.status_code == 400
    data = resp.get_json()
    assert data["ok"] is False
    assert data["error"] == "Missing fields: action"


def test_track_event_rejects_non_string_object_type(client):
    body = {"event_type": "x", "payload": {"action": "a", "object": {"type": ["post"]}}}
    resp = client.post("/api/events", json=body)
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Missing fields: object.type"


def test_throttled_event_is_not_an_error(client):
    client.post("/api/events", json=_event_body())
    resp = client.post("/api/events", json=_event_body())
    assert resp.status_code == 200
    assert resp.get_json()["payload"] == {"tracked": False, "reason": "throttled"}


def test_freeze_and_inspect_report(client):
    client.post("/api/events", json=_event_body(1))
    client.post("/api/events", json=_event_body(2))

    frozen = client.post("/api/reports/freeze")
    assert frozen.status_code == 200
    result = frozen.get_json()["payload"]
    assert result["event_count"] == 2
    report_id = result["report_id"]

    listing = client.get("/api/reports").get_json()["payload"]["reports"]
    assert [item["id"] for item in listing] == [report_id]
    assert "summary" not in listing[0]

    detail = client.get(f"/api/reports/{report_id}").get_json()["payload"]["report"]
    assert detail["status"] == ReportStatus.FROZEN
    assert detail["summary"]["totals"] == {"post_published": 2}

    events = client.get(f"/api/reports/{report_id}/events").get_json()["payload"]["events"]
    assert len(events) == 2

    active = client.get("/api/reports/active").get_json()["payload"]["report"]
    assert active["id"] == result["next_report_id"]
    assert active["event_count"] == 0


def test_deliver_and_retry_endpoints(client, sender):
    client.post("/api/events", json=_event_body())
    report_id = client.post("/api/reports/freeze").get_json()["payload"]["report_id"]
    sender.failing.add("bob@example.com")

    resp = client.post(f"/api/reports/{report_id}/deliver")
    assert resp.status_code == 502
    data = resp.get_json()
    assert data["ok"] is False
    assert len(data["payload"]["attempts"]) == 2

    sender.failing.clear()
    retry = client.post("/api/deliveries/retry").get_json()["payload"]
    assert retry == {"retried": 1}

    attempts = client.get(f"/api/reports/{report_id}/deliveries").get_json()["payload"]
    assert {a["status"] for a in attempts["attempts"]} == {"sent"}
    detail = client.get(f"/api/reports/{report_id}").get_json()["payload"]["report"]
    assert detail["status"] == ReportStatus.FROZEN


def test_delivering_collecting_report_is_409(client, sender):
    client.post("/api/events", json=_event_body())
    active_id = client.get("/api/reports/active").get_json()["payload"]["report"]["id"]

    resp = client.post(f"/api/reports/{active_id}/deliver")
    assert resp.status_code == 409
    data = resp.get_json()
    assert data["error"] == f"Report {active_id} is still collecting"
    assert data["payload"]["status"] == ReportStatus.COLLECTING
    assert sender.sent == []


def test_unknown_report_is_404(client):
    assert client.get("/api/reports/999").status_code == 404
    assert client.get("/api/reports/999/events").status_code == 404
    assert client.get("/api/reports/999/deliveries").status_code == 404
    assert client.post("/api/reports/999/deliver").status_code == 404


def test_event_types(client):
    types = client.get("/api/event-types").get_json()["payload"]["event_types"]
    names = {item["name"] for item in types}
    assert {"post_published", "user_registered", "theme_updated"} <= names
