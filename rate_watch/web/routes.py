"""Trigger endpoints for the exchange rate and unit trust checks."""

from __future__ import annotations

from flask import Blueprint, Response, current_app, jsonify

from rate_watch import EXCHANGE_SOURCE, UNIT_TRUST_SOURCE, RateWatch
from rate_watch.utils.logger import get_logger

LOGGER = get_logger(__name__)

FAILURE_MESSAGE = "Failed to check exchange rates."

api_bp = Blueprint("api", __name__)


def _watch() -> RateWatch:
    return current_app.extensions["rate_watch"]


def _run_check(source: str):
    LOGGER.info("Manual trigger of %s check", source)
    try:
        result = _watch().check(source)
    except Exception as exc:
        LOGGER.exception("Error during manual trigger: %s", exc)
        return Response(FAILURE_MESSAGE, status=500, mimetype="text/plain")
    return jsonify(result.summary()), 200


@api_bp.route("/api/trigger-check", methods=["GET", "POST"])
def trigger_check():
    """Exchange rates from the bank PDF."""
    return _run_check(EXCHANGE_SOURCE)


@api_bp.route("/api/cal-check", methods=["GET", "POST"])
def cal_check():
    """Unit trust prices from the calculator pages."""
    return _run_check(UNIT_TRUST_SOURCE)


@api_bp.route("/health", methods=["GET"])
def health():
    ok, error = _watch().connection()
    payload = {"status": "ok" if ok else "error", "database": _watch().connection_info.backend.value}
    if error:
        payload["error"] = error
    return jsonify(payload), 200 if ok else 503
