"""
Sample ingest API blueprint for Spectre Web.

Accepts JSON arrays of aggregate samples, as sent by the collector's spectre
server sink, and queues them for the SQLite writer.
"""
from __future__ import annotations

from typing import List

from flask import Blueprint, current_app, jsonify, request

from spectre.sweep.model import Sample
from spectre_web.auth import require_auth

bp = Blueprint("api_collect", __name__)


def _error(status: int, message: str):
    return jsonify({"status": "error", "error": message}), status


@bp.post("/spectre/v1/collect")
def collect():
    require_auth()
    payload = request.get_json(silent=True)
    if not isinstance(payload, list):
        return _error(400, "request body must be a JSON array of samples")

    limit = current_app.config["SPECTRE_MAX_COLLECT_SAMPLES"]
    if len(payload) > limit:
        return _error(400, f"too many samples in one request (max {limit})")

    samples: List[Sample] = []
    for idx, item in enumerate(payload):
        if not isinstance(item, dict):
            return _error(400, f"sample {idx} is not an object")
        try:
            samples.append(Sample.from_dict(item))
        except ValueError as exc:
            return _error(400, f"sample {idx}: {exc}")

    if samples and not current_app.extensions["spectre_ingest"].submit(samples):
        return _error(503, "ingest queue full, retry later")

    return jsonify({"status": "success", "sampleCount": len(samples)})
