"""SQLite persistence for aggregate samples (table `spectre`)."""

from __future__ import annotations

import sqlite3
from typing import Iterable, Optional

from spectre.export.base import ExportCounts, SampleSink, SinkUnavailableError
from spectre.sweep.model import SAMPLE_COLUMNS, Sample
from spectre.util.logging import get_logger

logger = get_logger(__name__)

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS spectre (
    "ID"           INTEGER NOT NULL PRIMARY KEY AUTOINCREMENT,
    "Identifier"   TEXT NOT NULL,
    "Source"       TEXT NOT NULL,
    "FreqCenter"   INTEGER,
    "FreqLow"      INTEGER,
    "FreqHigh"     INTEGER,
    "DBHigh"       REAL,
    "DBLow"        REAL,
    "DBAvg"        REAL,
    "SampleCount"  INTEGER,
    "Start"        INTEGER,
    "End"          INTEGER
)
"""

CREATE_INDEXES_SQL = (
    "CREATE INDEX IF NOT EXISTS spectre_source_freq ON spectre (Source, Identifier, FreqCenter)",
    "CREATE INDEX IF NOT EXISTS spectre_start ON spectre (Start)",
)

INSERT_SAMPLE_SQL = "INSERT INTO spectre ({cols}) VALUES ({marks})".format(
    cols=", ".join(f'"{c}"' for c in SAMPLE_COLUMNS),
    marks=", ".join("?" for _ in SAMPLE_COLUMNS),
)


def ensure_schema(con: sqlite3.Connection) -> None:
    cur = con.cursor()
    cur.execute(CREATE_TABLE_SQL)
    for stmt in CREATE_INDEXES_SQL:
        cur.execute(stmt)
    con.commit()


def connect(path: str) -> sqlite3.Connection:
    """Open a writable connection configured for concurrent readers."""
    con = sqlite3.connect(path, timeout=30.0, check_same_thread=False)
    try:
        con.execute("PRAGMA journal_mode=WAL")
    except sqlite3.OperationalError:
        pass
    con.execute("PRAGMA busy_timeout=5000")
    return con


class SQLiteSink(SampleSink):
    name = "sqlite"

    def __init__(self, path: str) -> None:
        super().__init__()
        self.path = path
        self.con: Optional[sqlite3.Connection] = None

    def open(self) -> None:
        try:
            self.con = connect(self.path)
            ensure_schema(self.con)
        except sqlite3.Error as exc:
            raise SinkUnavailableError(f"unable to open sqlite DB {self.path!r}: {exc}") from exc

    def write(self, samples: Iterable[Sample]) -> ExportCounts:
        if self.con is None:
            raise SinkUnavailableError("sqlite sink used before open()")
        cur = self.con.cursor()
        pending = 0
        try:
            for sample in samples:
                try:
                    cur.execute(INSERT_SAMPLE_SQL, sample.to_row())
                except (sqlite3.Error, OverflowError, ValueError, TypeError) as exc:
                    # Out-of-range integers surface as OverflowError from the binding.
                    logger.warning("error storing in sqlite DB: %s", exc)
                    self.counts.record(False)
                    continue
                pending += 1
        except Exception:
            # Nothing from an aborted batch may ride along with the next commit.
            self.con.rollback()
            self.counts.record(False, pending)
            raise
        try:
            self.con.commit()
        except sqlite3.Error as exc:
            logger.error("sqlite commit failed: %s", exc, extra={"error_type": "db_write"})
            self.con.rollback()
            self.counts.record(False, pending)
            return self.counts
        self.counts.record(True, pending)
        return self.counts

    def close(self) -> None:
        if self.con is not None:
            try:
                self.con.close()
            finally:
                self.con = None
