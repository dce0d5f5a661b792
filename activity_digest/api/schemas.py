"""Response schema helpers for Flask views."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ..utils import iso, utc_now


@dataclass
class Envelope:
    ok: bool
    payload: Dict[str, Any]
    error: str | None = None
    timestamp: str | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "payload": self.payload,
            "error": self.error,
            "timestamp": self.timestamp or iso(utc_now()),
        }


def success(payload: Dict[str, Any]) -> Envelope:
    return Envelope(ok=True, payload=payload)


def failure(message: str, payload: Dict[str, Any] | None = None) -> Envelope:
    return Envelope(ok=False, payload=payload or {}, error=message)
