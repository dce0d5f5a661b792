"""Command line interface for the activity digest."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from .bootstrap import bootstrap_pipeline
from .services.pipeline import PipelineResult


def _print(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _context(args):
    return bootstrap_pipeline(Path(args.base_dir) if args.base_dir else None)


def _emit(result: PipelineResult) -> int:
    if result.ok:
        _print(result.payload)
        return 0
    _print({"error": result.error, **result.payload})
    return 1


def cmd_runserver(args):
    from .app import create_app

    app = create_app()
    app.run(host=args.host, port=args.port)
    return 0


def cmd_track(args):
    try:
        payload = json.loads(args.payload)
    except json.JSONDecodeError as exc:
        _print({"error": f"payload is not valid JSON: {exc}"})
        return 1
    ctx = _context(args)
    try:
        return _emit(
            ctx.pipeline.track_event(
                {
                    "event_type": args.event_type,
                    "payload": payload,
                    "source": args.source,
                    "subtype": args.subtype,
                }
            )
        )
    finally:
        ctx.shutdown()


def cmd_freeze(args):
    ctx = _context(args)
    try:
        return _emit(ctx.pipeline.freeze())
    finally:
        ctx.shutdown()


def cmd_deliver(args):
    ctx = _context(args)
    try:
        if args.report_id is not None:
            return _emit(ctx.pipeline.deliver(args.report_id))
        return _emit(ctx.pipeline.deliver_latest())
    finally:
        ctx.shutdown()


def cmd_retry(args):
    ctx = _context(args)
    try:
        return _emit(ctx.pipeline.retry())
    finally:
        ctx.shutdown()


def cmd_purge(args):
    ctx = _context(args)
    try:
        return _emit(ctx.pipeline.purge())
    finally:
        ctx.shutdown()


def cmd_reports(args):
    ctx = _context(args)
    try:
        return _emit(ctx.pipeline.list_reports(limit=args.limit))
    finally:
        ctx.shutdown()


def cmd_show_report(args):
    ctx = _context(args)
    try:
        result = ctx.pipeline.get_report(args.report_id)
        if result.ok and args.events:
            events = ctx.pipeline.report_events(args.report_id)
            result.payload["events"] = events.payload.get("events", [])
        return _emit(result)
    finally:
        ctx.shutdown()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Activity digest CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    runserver = sub.add_parser("runserver", help="Start HTTP server")
    runserver.add_argument("--host", default="0.0.0.0")
    runserver.add_argument("--port", type=int, default=8060)
    runserver.set_defaults(func=cmd_runserver)

    track = sub.add_parser("track", help="Record a custom event")
    track.add_argument("--event-type", required=True)
    track.add_argument("--payload", required=True, help="JSON event payload")
    track.add_argument("--source", default="custom")
    track.add_argument("--subtype")
    track.add_argument("--base-dir")
    track.set_defaults(func=cmd_track)

    freeze = sub.add_parser("freeze", help="Freeze the collecting report")
    freeze.add_argument("--base-dir")
    freeze.set_defaults(func=cmd_freeze)

    deliver = sub.add_parser("deliver", help="Deliver a frozen report")
    deliver.add_argument("--report-id", type=int)
    deliver.add_argument("--base-dir")
    deliver.set_defaults(func=cmd_deliver)

    retry = sub.add_parser("retry", help="Retry failed deliveries")
    retry.add_argument("--base-dir")
    retry.set_defaults(func=cmd_retry)

    purge = sub.add_parser("purge", help="Delete expired events")
    purge.add_argument("--base-dir")
    purge.set_defaults(func=cmd_purge)

    reports = sub.add_parser("reports", help="List frozen reports")
    reports.add_argument("--limit", type=int, default=20)
    reports.add_argument("--base-dir")
    reports.set_defaults(func=cmd_reports)

    show = sub.add_parser("show-report", help="Show one report")
    show.add_argument("report_id", type=int)
    show.add_argument("--events", action="store_true", help="Include report events")
    show.add_argument("--base-dir")
    show.set_defaults(func=cmd_show_report)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
