"""Shared pytest fixtures for the activity digest tests.

Every test gets its own in-memory SQLite database, a fully wired pipeline and a
recording sender, so modules can focus on behaviour rather than boilerplate.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Dict, List

import pytest

from activity_digest.bootstrap import bootstrap_pipeline
from activity_digest.config import (
    AppConfig,
    DeliveryConfig,
    ScheduleConfig,
    SummarizerConfig,
    TrackingConfig,
)
from activity_digest.database import Database


class RecordingSender:
    """Sender double that records calls and fails for chosen recipients."""

    def __init__(self) -> None:
        self.sent: List[Dict[str, object]] = []
        self.failing: set[str] = set()
        self.raising: set[str] = set()

    def send(self, recipient, subject, body, headers) -> bool:
        if recipient in self.raising:
            raise ConnectionError(f"connection to {recipient} refused")
        self.sent.append(
            {"recipient": recipient, "subject": subject, "body": body, "headers": headers}
        )
        return recipient not in self.failing

    @property
    def recipients(self) -> List[str]:
        return [item["recipient"] for item in self.sent]


@pytest.fixture()
def config(tmp_path: Path) -> AppConfig:
    return AppConfig(
        base_dir=tmp_path,
        database_url="sqlite://",
        tracking=TrackingConfig(throttle_window=timedelta(seconds=3600)),
        delivery=DeliveryConfig(
            recipients=["alice@example.com", "bob@example.com"],
            site_name="Test Site",
        ),
        summarizer=SummarizerConfig(api_key=""),
        schedule=ScheduleConfig(enabled=False),
        extra={"log_level": "WARNING"},
    )


@pytest.fixture()
def database(config: AppConfig) -> Database:
    db = Database(config.database_url)
    db.create_all()
    yield db
    db.drop_all()


@pytest.fixture()
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture()
def ctx(config: AppConfig, database: Database, sender: RecordingSender):
    context = bootstrap_pipeline(config=config, sender=sender, database=database)
    yield context
    context.shutdown()


@pytest.fixture()
def pipeline(ctx):
    return ctx.pipeline


@pytest.fixture()
def app(ctx):
    from activity_digest.app import create_app

    flask_app = create_app(ctx)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    """Flask test client for issuing HTTP requests."""
    return app.test_client()

