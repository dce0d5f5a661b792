"""Optional narrative summary of a report window via the Anthropic Messages API."""

from __future__ import annotations

import logging
from typing import Mapping, Sequence

import requests
from requests import Session

from .. import models
from ..config import SummarizerConfig
from ..registry import EventTypeRegistry
from ..utils import humanize
from .http import build_session, http_request, request_timeout
from .trends import TrendRecord

LOGGER = logging.getLogger("digest.summarizer")

ANTHROPIC_VERSION = "2023-06-01"


class SummarizerError(RuntimeError):
    pass


class NarrativeSummarizer:
    """Never raises: any failure degrades to ``None``."""

    def __init__(
        self,
        config: SummarizerConfig,
        registry: EventTypeRegistry,
        session: Session | None = None,
    ) -> None:
        self.config = config
        self.registry = registry
        self.session = session or build_session(config)

    def summarize(
        self,
        events: Sequence[models.Event],
        totals: Mapping[str, int],
        trends: Mapping[str, TrendRecord],
    ) -> str | None:
        if not self.config.enabled:
            return None
        prompt = self.build_prompt(events, totals, trends)
        try:
            return self._call_api(prompt)
        except (requests.RequestException, SummarizerError, ValueError) as exc:
            LOGGER.warning("Narrative summary unavailable: %s", exc)
            return None

    def build_prompt(
        self,
        events: Sequence[models.Event],
        totals: Mapping[str, int],
        trends: Mapping[str, TrendRecord],
    ) -> str:
        lines = [
            "You are a friendly coworker reviewing site activity for the week. "
            "Write a conversational summary as if you're telling a colleague what "
            "happened on their website. Use 'you' to address them directly. "
            "Keep it concise (3-5 sentences). Highlight the main activities only.",
            "",
            "## Event Summary",
            f"Total events this week: {len(events)}",
            "",
        ]
        if totals:
            lines.append("Event breakdown:")
            lines.extend(f"- {humanize(t)}: {count}" for t, count in totals.items())
            lines.append("")

        changed = {t: trend for t, trend in trends.items() if trend.direction != "same"}
        if changed:
            lines.append("## Trends vs. Last Week")
            for event_type, trend in changed.items():
                arrow = "↑" if trend.direction == "up" else "↓"
                lines.append(
                    f"- {humanize(event_type)}: {arrow} {abs(trend.change_percent)}% "
                    f"({trend.previous} → {trend.current})"
                )
            lines.append("")

        lines.append("## Recent Events")
        for event in list(events)[: self.config.recent_event_limit]:
            payload = event.payload or {}
            description = self.registry.ai_description(
                event.event_type, payload.get("object") or {}, payload.get("metadata") or {}
            )
            if description:
                lines.append(f"- {description}")

        lines.extend(
            [
                "",
                "## Instructions",
                "Write a friendly 3-5 sentence summary highlighting the most important "
                "activities. Mention trends if significant. Tell a story rather than "
                "listing numbers.",
            ]
        )
        return "\n".join(lines)

    def _call_api(self, prompt: str) -> str:
        response = http_request(
            "POST",
            self.config.api_url,
            session=self.session,
            logger=LOGGER,
            timeout=request_timeout(self.config),
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.config.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
            json={
                "model": self.config.model,
                "max_tokens": self.config.max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
        )
        if response.status_code != 200:
            raise SummarizerError(
                f"API returned status {response.status_code}: {response.text[:200]}"
            )
        data = response.json()
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise SummarizerError("Invalid API response format") from exc
        return str(text).strip() or None
