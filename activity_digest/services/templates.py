"""HTML rendering of a frozen report for delivery."""

from __future__ import annotations

from html import escape
from typing import Dict, List

from .. import models
from ..config import DeliveryConfig
from ..registry import EventTypeRegistry
from .summary import ReportSummary

_STYLE = """
body { font-family: -apple-system, "Segoe UI", Roboto, sans-serif; color: #333; background: #f5f5f5; }
.container { max-width: 600px; margin: 20px auto; background: #fff; border-radius: 8px; }
.header { background: #667eea; color: #fff; padding: 30px 20px; text-align: center; }
.content { padding: 30px 20px; }
.stat { display: inline-block; width: 45%; margin: 2%; padding: 12px; background: #f8f9fa; }
.trend.up { color: #28a745; } .trend.down { color: #dc3545; }
.highlights li { padding: 8px 12px; margin-bottom: 6px; background: #e7f3ff; list-style: none; }
.footer { background: #f8f9fa; padding: 20px; text-align: center; font-size: 13px; }
"""


class DigestTemplate:
    def __init__(self, config: DeliveryConfig, registry: EventTypeRegistry) -> None:
        self.config = config
        self.registry = registry

    def subject(self, report: models.Report) -> str:
        start = report.period_start
        end = report.period_end or report.period_start
        return (
            f"Your Weekly Activity Digest: {start:%b} {start.day} - "
            f"{end:%b} {end.day}, {end.year} | {self.config.site_name}"
        )

    def headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "text/html; charset=UTF-8",
            "From": f"{self.config.from_name} <{self.config.from_email}>",
        }

    def body(self, report: models.Report) -> str:
        summary = ReportSummary.from_dict(report.summary)
        start = report.period_start
        end = report.period_end or report.period_start
        period = f"{start:%B} {start.day}, {start.year} to {end:%B} {end.day}, {end.year}"
        if summary.total_events == 0:
            sections = [self._empty_state()]
        else:
            sections = [
                self._narrative(summary),
                self._statistics(summary),
                self._highlights(summary),
                self._top_contributors(summary),
            ]
        cta = ""
        if self.config.report_url:
            cta = (
                f'<p style="text-align:center"><a href="{escape(self.config.report_url)}">'
                "View Full Report</a></p>"
            )
        subject = escape(self.subject(report))
        return (
            '<!doctype html><html lang="en"><head><meta charset="utf-8" />'
            f"<title>{subject}</title><style>{_STYLE}</style></head><body>"
            '<div class="container">'
            f'<div class="header"><h1>Your Weekly Activity Digest</h1>'
            f'<div class="period">{escape(period)}</div></div>'
            f'<div class="content">{"".join(s for s in sections if s)}{cta}</div>'
            f'<div class="footer">Sent by {escape(self.config.site_name)}</div>'
            "</div></body></html>"
        )

    def _empty_state(self) -> str:
        return (
            '<div class="section empty-state"><h2>A quiet week</h2>'
            "<p>No activity was recorded during this period.</p></div>"
        )

    def _narrative(self, summary: ReportSummary) -> str:
        return (
            '<div class="section"><h2>This Week in Brief</h2>'
            f"<p>{escape(summary.narrative_text)}</p></div>"
        )

    def _statistics(self, summary: ReportSummary) -> str:
        cards: List[str] = []
        for event_type, count in summary.totals.items():
            label = escape(self.registry.stat_label(event_type))
            trend = summary.trends.get(event_type)
            trend_html = ""
            if trend and trend.direction != "same":
                arrow = "↑" if trend.direction == "up" else "↓"
                trend_html = (
                    f'<div class="trend {trend.direction}">'
                    f"{arrow} {abs(trend.change_percent):.1f}%</div>"
                )
            cards.append(
                f'<div class="stat"><div class="stat-label">{label}</div>'
                f'<div class="stat-value">{int(count)}</div>{trend_html}</div>'
            )
        return f'<div class="section"><h2>Statistics</h2>{"".join(cards)}</div>'

    def _highlights(self, summary: ReportSummary) -> str:
        if not summary.highlights:
            return ""
        items = "".join(f"<li>{escape(line)}</li>" for line in summary.highlights)
        return f'<div class="section"><h2>Highlights</h2><ul class="highlights">{items}</ul></div>'

    def _top_contributors(self, summary: ReportSummary) -> str:
        if not summary.top_contributors:
            return ""
        items = "".join(
            f"<li><span>{escape(str(item.get('name', '')))}</span> "
            f"<strong>{int(item.get('count', 0))}</strong></li>"
            for item in summary.top_contributors
        )
        return f'<div class="section"><h2>Top Contributors</h2><ul>{items}</ul></div>'
