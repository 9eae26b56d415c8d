"""
Spectre Web: Flask server for spectre sample collection and waterfall rendering.

This package provides the HTTP endpoints that:
- Accept aggregate samples from remote collectors (POST /spectre/v1/collect)
  and store them in the SQLite `spectre` table
- Render stored samples into waterfall images (GET /spectre/v1/render)

Usage:
    from spectre_web import create_app
    app = create_app(db_path="/tmp/spectre")
    app.run(host="0.0.0.0", port=8080)
"""
from __future__ import annotations

__version__ = "0.1.0"

# Import create_app so it's accessible from package root
from spectre_web.app import create_app

__all__ = ["create_app", "__version__"]
