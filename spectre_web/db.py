"""
Database helpers for Spectre Web.

Renders read through a short-lived read-only connection per request, stored
on flask.g and closed on app teardown. Writes go through the ingest writer.
"""
from __future__ import annotations

import os
import sqlite3
from typing import Optional

from flask import Flask, current_app, g


def open_db_ro(path: str) -> sqlite3.Connection:
    """
    Open a read-only SQLite connection.

    Args:
        path: Path to the SQLite database file.

    Returns:
        sqlite3.Connection configured for read-only access.
    """
    abspath = os.path.abspath(path)
    con = sqlite3.connect(f"file:{abspath}?mode=ro", uri=True, check_same_thread=False)
    con.execute("PRAGMA busy_timeout=2000;")
    return con


def get_con() -> sqlite3.Connection:
    """Read-only connection for the current request, opened on first use."""
    con: Optional[sqlite3.Connection] = g.get("spectre_con")
    if con is None:
        con = open_db_ro(current_app.config["SPECTRE_DB_PATH"])
        g.spectre_con = con
    return con


def close_con(_exc: Optional[BaseException] = None) -> None:
    con = g.pop("spectre_con", None)
    if con is not None:
        con.close()


def init_db(app: Flask, db_path: str) -> None:
    app.config["SPECTRE_DB_PATH"] = db_path
    app.teardown_appcontext(close_con)
