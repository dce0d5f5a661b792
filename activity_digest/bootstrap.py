"""Bootstrap helpers that assemble all runtime components."""

from __future__ import annotations

import logging
from pathlib import Path

from requests import Session

from .config import AppConfig, load_config
from .database import Database
from .logging_setup import LoggerConfig, configure_logging
from .registry import EventTypeRegistry, default_registry
from .services.aggregation import Aggregator
from .services.delivery import DeliveryDispatcher
from .services.extensions import ExtensionPoints
from .services.lifecycle import ReportLifecycleManager
from .services.magnitude import MagnitudeScorer
from .services.mailer import MessageSender, build_sender
from .services.pipeline import DigestPipeline
from .services.retention import RetentionService
from .services.scheduler import SchedulerService
from .services.summarizer import NarrativeSummarizer
from .services.summary import SummaryBuilder
from .services.templates import DigestTemplate
from .services.throttle import ThrottleGate
from .services.tracking import EventTracker
from .services.trends import TrendCalculator


class BootstrapContext:
    def __init__(
        self,
        config: AppConfig,
        database: Database,
        registry: EventTypeRegistry,
        extensions: ExtensionPoints,
        pipeline: DigestPipeline,
        scheduler: SchedulerService,
    ) -> None:
        self.config = config
        self.database = database
        self.registry = registry
        self.extensions = extensions
        self.pipeline = pipeline
        self.scheduler = scheduler

    def shutdown(self) -> None:
        self.scheduler.stop()


def _build_scheduler(config: AppConfig, pipeline: DigestPipeline) -> SchedulerService:
    schedule = config.schedule
    scheduler = SchedulerService(schedule)
    scheduler.add_task("freeze", schedule.freeze_interval.total_seconds(), pipeline.freeze)
    scheduler.add_task(
        "deliver", schedule.deliver_interval.total_seconds(), pipeline.deliver_latest
    )
    scheduler.add_task("retry", schedule.retry_interval.total_seconds(), pipeline.retry)
    scheduler.add_task("purge", schedule.purge_interval.total_seconds(), pipeline.purge)
    return scheduler


def bootstrap_pipeline(
    base_dir: Path | None = None,
    config: AppConfig | None = None,
    sender: MessageSender | None = None,
    summarizer_session: Session | None = None,
    database: Database | None = None,
) -> BootstrapContext:
    config = config or load_config(base_dir)
    configure_logging(
        LoggerConfig.from_name(config.extra.get("log_level"), bool(config.extra.get("log_json")))
    )
    logging.getLogger("digest.bootstrap").info("Loaded config for %s", config.extra)
    database = database or Database(config.database_url)
    database.create_all()

    registry = default_registry()
    extensions = ExtensionPoints()
    summarizer = NarrativeSummarizer(config.summarizer, registry, session=summarizer_session)
    builder = SummaryBuilder(
        config, registry, Aggregator(), TrendCalculator(), summarizer=summarizer
    )
    lifecycle = ReportLifecycleManager(config, database, builder, extensions)
    tracker = EventTracker(
        config.tracking,
        database,
        ThrottleGate(config.tracking.throttle_window),
        MagnitudeScorer(),
        extensions,
    )
    dispatcher = DeliveryDispatcher(
        config.delivery,
        database,
        lifecycle,
        sender or build_sender(config.delivery),
        DigestTemplate(config.delivery, registry),
    )
    retention = RetentionService(config.retention, database)
    pipeline = DigestPipeline(config, registry, tracker, lifecycle, dispatcher, retention)

    lifecycle.ensure_collecting()
    scheduler = _build_scheduler(config, pipeline)
    if config.schedule.enabled:
        scheduler.start()
    return BootstrapContext(config, database, registry, extensions, pipeline, scheduler)
