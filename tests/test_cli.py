import json

import pytest

from activity_digest import cli


@pytest.fixture()
def digest_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DIGEST_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("DIGEST_RECIPIENTS", "ops@example.com")
    monkeypatch.setenv("DIGEST_TRANSPORT", "log")
    monkeypatch.setenv("DIGEST_SCHEDULER", "0")
    monkeypatch.setenv("DIGEST_LOG_LEVEL", "WARNING")
    monkeypatch.delenv("DIGEST_ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return tmp_path


def test_track_freeze_deliver_flow(digest_env, capsys):
    base = ["--base-dir", str(digest_env)]
    payload = json.dumps({"action": "registered", "object": {"type": "user", "id": 1, "name": "Ann"}})

    assert cli.main(["track", "--event-type", "user_registered", "--payload", payload, *base]) == 0
    assert json.loads(capsys.readouterr().out)["tracked"] is True

    assert cli.main(["freeze", *base]) == 0
    frozen = json.loads(capsys.readouterr().out)
    assert frozen["event_count"] == 1

    assert cli.main(["deliver", *base]) == 0
    assert json.loads(capsys.readouterr().out) == {"report_id": frozen["report_id"], "delivered": True}

    assert cli.main(["show-report", str(frozen["report_id"]), "--events", *base]) == 0
    shown = json.loads(capsys.readouterr().out)
    assert shown["report"]["status"] == "delivered"
    assert len(shown["events"]) == 1

    assert cli.main(["reports", *base]) == 0
    assert len(json.loads(capsys.readouterr().out)["reports"]) == 1


def test_track_rejects_bad_json(digest_env, capsys):
    code = cli.main(["track", "--event-type", "x", "--payload", "{oops", "--base-dir", str(digest_env)])
    assert code == 1
    assert "not valid JSON" in json.loads(capsys.readouterr().out)["error"]


def test_unknown_report(digest_env, capsys):
    assert cli.main(["show-report", "42", "--base-dir", str(digest_env)]) == 1
    assert json.loads(capsys.readouterr().out)["error"] == "Report 42 not found"
