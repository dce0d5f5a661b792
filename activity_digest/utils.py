"""Utility helpers shared by tracking, reporting and delivery."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from html import unescape

_TAG_RE = re.compile(r"<[^>]+>")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*>.*?</\1>", re.I | re.S)
_SPACE_RE = re.compile(r"\s+")
_WORD_RE = re.compile(r"[^\W\d_]+(?:['-][^\W\d_]+)*", re.UNICODE)


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc).replace(tzinfo=None)


def iso(dt: datetime | None) -> str | None:
    if not dt:
        return None
    return dt.replace(microsecond=0).isoformat() + "Z"


def clamp(value: float, min_value: float = 0.0, max_value: float = 1.0) -> float:
    return max(min_value, min(max_value, value))


def strip_markup(text: str | None) -> str:
    """Drop tags and entities, collapse whitespace."""
    if not text:
        return ""
    cleaned = _SCRIPT_RE.sub(" ", text)
    cleaned = _TAG_RE.sub(" ", cleaned)
    cleaned = unescape(cleaned)
    return _SPACE_RE.sub(" ", cleaned).strip()


def word_count(text: str | None) -> int:
    return len(_WORD_RE.findall(strip_markup(text)))


def humanize(event_type: str) -> str:
    return event_type.replace("_", " ").title()
