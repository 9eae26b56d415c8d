#!/usr/bin/env python3
"""
Spectre Web: Entry point.

Thin CLI shim that parses arguments and runs the Flask application.

Run:
    python spectre-web.py --db /tmp/spectre --host 0.0.0.0 --port 8080

Environment:
    SPECTRE_TOKEN               Protect /spectre/v1/collect with a bearer token (optional)
    SPECTRE_RENDER_TIMEOUT_S    Render query deadline in seconds (default 30)
    SPECTRE_INGEST_QUEUE        Collect requests buffered ahead of the writer (default 1000)
    SPECTRE_MAX_COLLECT_SAMPLES Largest accepted collect payload (default 10000)
"""
from __future__ import annotations

import argparse
import sys


def parse_args(argv=None):
    ap = argparse.ArgumentParser(
        description="Spectre Web: sample collection and waterfall rendering server"
    )
    ap.add_argument(
        "--db",
        default="/tmp/spectre",
        help="Path to the SQLite database file (default: /tmp/spectre)",
    )
    ap.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind the web server (default: 0.0.0.0)",
    )
    ap.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Port to listen on (default: 8080)",
    )
    ap.add_argument(
        "--log-level",
        default=None,
        help="DEBUG, INFO, WARNING or ERROR (default from SPECTRE_LOG_LEVEL or INFO)",
    )
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    from spectre.export.base import SinkUnavailableError
    from spectre.util.exit_codes import ExitCode
    from spectre.util.logging import configure_logging, get_logger
    from spectre_web import create_app

    configure_logging(level=args.log_level)
    try:
        app = create_app(args.db)
    except SinkUnavailableError as exc:
        get_logger("spectre_web").error("%s", exc)
        return ExitCode.SINK_UNAVAILABLE
    app.run(host=args.host, port=args.port, threaded=True)
    return ExitCode.SUCCESS


if __name__ == "__main__":
    sys.exit(main())
