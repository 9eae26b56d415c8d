"""
Application factory for Spectre Web.

Wires together blueprints, the ingest writer, per-request DB connections and
request timing middleware.
"""
from __future__ import annotations

import atexit
from time import perf_counter
from typing import Optional

from flask import Flask, request

from spectre.util.logging import get_logger
from spectre_web.config import API_TOKEN, INGEST_QUEUE_SIZE, MAX_COLLECT_SAMPLES, RENDER_TIMEOUT_S
from spectre_web.db import init_db
from spectre_web.ingest import IngestWriter

logger = get_logger(__name__)


def create_app(
    db_path: str,
    *,
    token: Optional[str] = None,
    render_timeout_s: Optional[float] = None,
    ingest_queue_size: Optional[int] = None,
    max_collect_samples: Optional[int] = None,
    start_writer: bool = True,
) -> Flask:
    """Create and configure the Flask application.

    Keyword arguments override the SPECTRE_* environment configuration.
    The store is opened (and its schema created) here, so a bad db_path
    fails at startup with SinkUnavailableError.
    """
    app = Flask(__name__)

    app.config["SPECTRE_TOKEN"] = API_TOKEN if token is None else token
    app.config["SPECTRE_RENDER_TIMEOUT_S"] = (
        RENDER_TIMEOUT_S if render_timeout_s is None else float(render_timeout_s)
    )
    app.config["SPECTRE_MAX_COLLECT_SAMPLES"] = (
        MAX_COLLECT_SAMPLES if max_collect_samples is None else int(max_collect_samples)
    )

    # ------------------------------------------------------------------
    # Store: single background writer, read-only connection per request
    # ------------------------------------------------------------------
    writer = IngestWriter(
        db_path,
        INGEST_QUEUE_SIZE if ingest_queue_size is None else int(ingest_queue_size),
    )
    writer.open()
    if start_writer:
        writer.start()
    app.extensions["spectre_ingest"] = writer
    atexit.register(writer.close)

    init_db(app, db_path)

    # ------------------------------------------------------------------
    # Request timing middleware
    # ------------------------------------------------------------------

    @app.before_request
    def log_request_start():
        request._start_time = perf_counter()

    @app.after_request
    def log_request_end(response):
        if hasattr(request, "_start_time"):
            duration_ms = (perf_counter() - request._start_time) * 1000
            # Log slow requests (>500ms) or errors at debug level
            if duration_ms > 500 or response.status_code >= 400:
                logger.debug(
                    "%s %s -> %d (%.1fms)",
                    request.method,
                    request.path,
                    response.status_code,
                    duration_ms,
                    extra={"duration_ms": int(duration_ms)},
                )
        return response

    # ------------------------------------------------------------------
    # Register blueprints
    # ------------------------------------------------------------------
    from spectre_web.blueprints.api_collect import bp as api_collect_bp
    from spectre_web.blueprints.api_render import bp as api_render_bp

    app.register_blueprint(api_collect_bp)
    app.register_blueprint(api_render_bp)

    return app
