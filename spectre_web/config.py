"""
Configuration constants and environment parsing for Spectre Web.

All SPECTRE_* environment variables read by the server are parsed here and
exported as module-level constants. create_app() copies them into app.config,
where blueprints read them.
"""
from __future__ import annotations

import os


def _env(name: str, default, cast):
    """Read SPECTRE_* settings; unset, empty or unparsable values fall back to default."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return cast(raw)
    except (ValueError, OverflowError):
        return default


def _positive_int(raw: str) -> int:
    return max(1, int(float(raw)))


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
API_TOKEN: str = os.getenv("SPECTRE_TOKEN", "")
"""Optional bearer token protecting the collect endpoint."""


# ---------------------------------------------------------------------------
# Ingest
# ---------------------------------------------------------------------------
INGEST_QUEUE_SIZE: int = _env("SPECTRE_INGEST_QUEUE", 1000, _positive_int)
"""Collect requests buffered ahead of the SQLite writer; beyond this the server answers 503."""

MAX_COLLECT_SAMPLES: int = _env("SPECTRE_MAX_COLLECT_SAMPLES", 10000, _positive_int)
"""Largest sample array accepted in one collect request."""


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------
RENDER_TIMEOUT_S: float = _env("SPECTRE_RENDER_TIMEOUT_S", 30.0, float)
"""Seconds a render may spend querying the store before answering 504 (<= 0 disables)."""
