"""Configuration helpers for the activity digest pipeline."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Tuple


def _env(key: str, default: str) -> str:
    value = os.getenv(key, default)
    return value.strip() if isinstance(value, str) else default


def _env_int(key: str, default: int) -> int:
    try:
        return int(_env(key, str(default)))
    except ValueError:
        return default


def _env_float(key: str, default: float) -> float:
    try:
        return float(_env(key, str(default)))
    except ValueError:
        return default


def _env_bool(key: str, default: bool) -> bool:
    value = _env(key, str(default)).lower()
    if value in {"1", "true", "yes", "y"}:
        return True
    if value in {"0", "false", "no", "n"}:
        return False
    return default


def _env_list(key: str, default: str = "") -> List[str]:
    raw = _env(key, default)
    return [item.strip() for item in raw.replace(";", ",").split(",") if item.strip()]


@dataclass(slots=True)
class TrackingConfig:
    throttle_window: timedelta = timedelta(hours=1)
    min_edit_magnitude: int = 5
    tracked_content_types: Tuple[str, ...] = ("post", "page")


@dataclass(slots=True)
class ReportingConfig:
    report_type: str = "weekly"
    top_contributor_types: Tuple[str, ...] = ("post_published", "page_published")
    top_contributor_limit: int = 5


@dataclass(slots=True)
class DeliveryConfig:
    recipients: List[str] = field(default_factory=list)
    send_empty_reports: bool = False
    max_retries: int = 3
    retry_batch_size: int = 10
    transport: str = "log"
    from_name: str = "Activity Digest"
    from_email: str = "digest@localhost"
    smtp_host: str = "localhost"
    smtp_port: int = 25
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = False
    site_name: str = "My Site"
    report_url: str = ""


@dataclass(slots=True)
class SummarizerConfig:
    api_key: str = ""
    api_url: str = "https://api.anthropic.com/v1/messages"
    model: str = "claude-3-5-haiku-20241022"
    max_tokens: int = 500
    timeout: float = 30.0
    connect_timeout: float = 10.0
    retries: int = 2
    backoff_factor: float = 0.5
    recent_event_limit: int = 10

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass(slots=True)
class RetentionConfig:
    event_retention_days: int = 365


@dataclass(slots=True)
class ScheduleConfig:
    enabled: bool = False
    freeze_interval: timedelta = timedelta(days=7)
    deliver_interval: timedelta = timedelta(days=7)
    retry_interval: timedelta = timedelta(days=1)
    purge_interval: timedelta = timedelta(days=1)


@dataclass(slots=True)
class AppConfig:
    base_dir: Path
    database_url: str
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    summarizer: SummarizerConfig = field(default_factory=SummarizerConfig)
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def db_path(self) -> Path:
        if self.database_url.startswith("sqlite:///"):
            return Path(self.database_url[10:]).expanduser()
        return Path(self.base_dir / "activity_digest.db")


def load_config(base_dir: Path | None = None) -> AppConfig:
    base_dir = base_dir or Path(os.getenv("DIGEST_HOME", Path.cwd()))
    data_dir = base_dir / "data"
    data_dir.mkdir(parents=True, exist_ok=True)

    database_url = _env("DIGEST_DATABASE_URL", "")
    if not database_url:
        db_path = _env("DIGEST_DB_PATH", str(data_dir / "activity_digest.db"))
        database_url = f"sqlite:///{db_path}"

    tracking = TrackingConfig(
        throttle_window=timedelta(seconds=_env_int("DIGEST_THROTTLE_SECONDS", 3600)),
        min_edit_magnitude=_env_int("DIGEST_MIN_EDIT_MAGNITUDE", 5),
        tracked_content_types=tuple(_env_list("DIGEST_CONTENT_TYPES", "post,page")),
    )
    reporting = ReportingConfig(
        report_type=_env("DIGEST_REPORT_TYPE", "weekly"),
        top_contributor_types=tuple(
            _env_list("DIGEST_CONTRIBUTOR_TYPES", "post_published,page_published")
        ),
        top_contributor_limit=_env_int("DIGEST_CONTRIBUTOR_LIMIT", 5),
    )
    delivery = DeliveryConfig(
        recipients=_env_list("DIGEST_RECIPIENTS"),
        send_empty_reports=_env_bool("DIGEST_SEND_EMPTY_REPORTS", False),
        max_retries=_env_int("DIGEST_MAX_RETRIES", 3),
        retry_batch_size=_env_int("DIGEST_RETRY_BATCH", 10),
        transport=_env("DIGEST_TRANSPORT", "log").lower(),
        from_name=_env("DIGEST_FROM_NAME", "Activity Digest"),
        from_email=_env("DIGEST_FROM_EMAIL", "digest@localhost"),
        smtp_host=_env("DIGEST_SMTP_HOST", "localhost"),
        smtp_port=_env_int("DIGEST_SMTP_PORT", 25),
        smtp_user=_env("DIGEST_SMTP_USER", ""),
        smtp_password=_env("DIGEST_SMTP_PASSWORD", ""),
        smtp_use_tls=_env_bool("DIGEST_SMTP_TLS", False),
        site_name=_env("DIGEST_SITE_NAME", "My Site"),
        report_url=_env("DIGEST_REPORT_URL", ""),
    )
    summarizer = SummarizerConfig(
        api_key=_env("DIGEST_ANTHROPIC_API_KEY", _env("ANTHROPIC_API_KEY", "")),
        api_url=_env("DIGEST_SUMMARY_API_URL", "https://api.anthropic.com/v1/messages"),
        model=_env("DIGEST_SUMMARY_MODEL", "claude-3-5-haiku-20241022"),
        max_tokens=_env_int("DIGEST_SUMMARY_MAX_TOKENS", 500),
        timeout=_env_float("DIGEST_SUMMARY_TIMEOUT", 30.0),
        connect_timeout=_env_float("DIGEST_HTTP_CONNECT_TIMEOUT", 10.0),
        retries=_env_int("DIGEST_HTTP_RETRIES", 2),
        backoff_factor=_env_float("DIGEST_HTTP_BACKOFF", 0.5),
        recent_event_limit=_env_int("DIGEST_SUMMARY_RECENT_EVENTS", 10),
    )
    retention = RetentionConfig(
        event_retention_days=_env_int("DIGEST_RETENTION_DAYS", 365),
    )
    schedule = ScheduleConfig(
        enabled=_env_bool("DIGEST_SCHEDULER", False),
        freeze_interval=timedelta(hours=_env_int("DIGEST_FREEZE_INTERVAL_H", 24 * 7)),
        deliver_interval=timedelta(hours=_env_int("DIGEST_DELIVER_INTERVAL_H", 24 * 7)),
        retry_interval=timedelta(hours=_env_int("DIGEST_RETRY_INTERVAL_H", 24)),
        purge_interval=timedelta(hours=_env_int("DIGEST_PURGE_INTERVAL_H", 24)),
    )
    extra = {
        "profile": _env("DIGEST_PROFILE", "default"),
        "instance_id": _env("DIGEST_INSTANCE_ID", "digest-local"),
        "log_level": _env("DIGEST_LOG_LEVEL", "INFO"),
        "log_json": _env_bool("DIGEST_LOG_JSON", False),
    }

    return AppConfig(
        base_dir=base_dir,
        database_url=database_url,
        tracking=tracking,
        reporting=reporting,
        delivery=delivery,
        summarizer=summarizer,
        retention=retention,
        schedule=schedule,
        extra=extra,
    )
