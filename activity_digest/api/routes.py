"""Flask blueprint exposing the activity digest API."""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..models import ReportStatus
from ..services.pipeline import DigestPipeline, PipelineResult
from . import schemas


def _respond(result: PipelineResult, error_status: int = 400):
    envelope = (
        schemas.success(result.payload)
        if result.ok
        else schemas.failure(result.error or "error", result.payload)
    )
    return jsonify(envelope.to_dict()), (200 if result.ok else error_status)


def _int_arg(name: str, default: int) -> int:
    try:
        return max(0, int(request.args.get(name, default)))
    except (TypeError, ValueError):
        return default


def create_blueprint(pipeline: DigestPipeline) -> Blueprint:
    bp = Blueprint("digest_api", __name__)

    @bp.route("/health", methods=["GET"])
    def health():
        return jsonify(schemas.success({"status": "ok"}).to_dict())

    @bp.route("/events", methods=["POST"])
    def track_event():
        payload = request.get_json(force=True, silent=True) or {}
        return _respond(pipeline.track_event(payload))

    @bp.route("/events/recent", methods=["GET"])
    def recent_events():
        return _respond(pipeline.recent_events(limit=_int_arg("limit", 5)))

    @bp.route("/reports", methods=["GET"])
    def list_reports():
        result = pipeline.list_reports(
            limit=_int_arg("limit", 20), offset=_int_arg("offset", 0)
        )
        return _respond(result)

    @bp.route("/reports/active", methods=["GET"])
    def active_report():
        return _respond(pipeline.active_report(), error_status=404)

    @bp.route("/reports/<int:report_id>", methods=["GET"])
    def get_report(report_id: int):
        return _respond(pipeline.get_report(report_id), error_status=404)

    @bp.route("/reports/<int:report_id>/events", methods=["GET"])
    def report_events(report_id: int):
        result = pipeline.report_events(report_id, limit=_int_arg("limit", 100))
        return _respond(result, error_status=404)

    @bp.route("/reports/<int:report_id>/deliveries", methods=["GET"])
    def report_deliveries(report_id: int):
        return _respond(pipeline.report_deliveries(report_id), error_status=404)

    @bp.route("/reports/freeze", methods=["POST"])
    def freeze():
        return _respond(pipeline.freeze(), error_status=409)

    @bp.route("/reports/<int:report_id>/deliver", methods=["POST"])
    def deliver(report_id: int):
        result = pipeline.deliver(report_id)
        if not result.ok and not result.payload:
            return _respond(result, error_status=404)
        if result.payload.get("status") == ReportStatus.COLLECTING:
            return _respond(result, error_status=409)
        return _respond(result, error_status=502)

    @bp.route("/deliveries/retry", methods=["POST"])
    def retry():
        return _respond(pipeline.retry())

    @bp.route("/event-types", methods=["GET"])
    def event_types():
        return _respond(pipeline.event_types())

    return bp
