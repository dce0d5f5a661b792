"""Logging configuration for the activity digest pipeline."""

from __future__ import annotations

import json
import logging
import re
import sys
from dataclasses import dataclass
from logging import Logger
from typing import Dict, Iterable

from .utils import utc_now

DEFAULT_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)


class SensitiveDataFilter(logging.Filter):
    """Masks API keys and passwords before records reach a handler."""

    _PATTERNS: Iterable[tuple[re.Pattern[str], str]] = (
        (re.compile(r"(api[_-]?key=)([^&\s]+)", re.I), r"\1***"),
        (re.compile(r"(x-api-key['\"]?\s*[:=]\s*['\"]?)([^'\"\s,}]+)", re.I), r"\1***"),
        (re.compile(r"(password=)([^&\s]+)", re.I), r"\1***"),
        (re.compile(r"Bearer\s+[A-Za-z0-9._-]+"), "Bearer ***"),
    )

    def __init__(self) -> None:
        super().__init__(name="SensitiveDataFilter")

    @staticmethod
    def _sanitize_value(value: object) -> object:
        if isinstance(value, str):
            sanitized = value
            for pattern, repl in SensitiveDataFilter._PATTERNS:
                sanitized = pattern.sub(repl, sanitized)
            return sanitized
        if isinstance(value, (list, tuple)):
            return type(value)(SensitiveDataFilter._sanitize_value(v) for v in value)
        if isinstance(value, dict):
            return {k: SensitiveDataFilter._sanitize_value(v) for k, v in value.items()}
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = self._sanitize_value(record.msg)
        if record.args:
            record.args = self._sanitize_value(record.args)
        return True


class JsonFormatter(logging.Formatter):
    """Formatter emitting one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        data = {
            "timestamp": utc_now().isoformat(timespec="milliseconds") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, ensure_ascii=False)


@dataclass(slots=True)
class LoggerConfig:
    level: int = logging.INFO
    fmt: str = DEFAULT_FORMAT
    enable_console: bool = True
    json: bool = False

    @classmethod
    def from_name(cls, level: str | int | None, json_output: bool = False) -> "LoggerConfig":
        resolved = logging.getLevelName(str(level or "INFO").upper())
        if isinstance(resolved, str):  # unknown name returns string
            resolved = logging.INFO
        return cls(level=resolved, json=json_output)


def configure_logging(config: LoggerConfig | None = None) -> Dict[str, Logger]:
    config = config or LoggerConfig()
    logging.basicConfig(
        level=config.level,
        format=config.fmt,
        stream=sys.stdout,
    )
    root = logging.getLogger()
    for handler in root.handlers:
        if not any(isinstance(f, SensitiveDataFilter) for f in handler.filters):
            handler.addFilter(SensitiveDataFilter())
        if config.json:
            handler.setFormatter(JsonFormatter())
    logging.debug("Logging initialized with level %s", config.level)
    return {
        "digest": logging.getLogger("digest"),
        "tracking": logging.getLogger("digest.tracking"),
        "lifecycle": logging.getLogger("digest.lifecycle"),
        "delivery": logging.getLogger("digest.delivery"),
        "scheduler": logging.getLogger("digest.scheduler"),
    }
