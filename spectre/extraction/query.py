"""Filters and store queries used to plan and feed a waterfall render."""

from __future__ import annotations

import sqlite3
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

import numpy as np  # type: ignore

from spectre.sweep.model import MAX_SQLITE_INT
from spectre.util.time import EPOCH, to_epoch_ms, utc_now

MAX_FREQ_HZ = MAX_SQLITE_INT


@dataclass
class Filter:
    """Selects stored samples. Empty source/identifier match everything;
    identifier accepts SQL LIKE wildcards."""

    source: str = ""
    identifier: str = ""
    start_freq: int = 0
    end_freq: int = MAX_FREQ_HZ
    start_time: datetime = EPOCH
    end_time: datetime = field(default_factory=utc_now)

    def where(self) -> Tuple[str, List[Any]]:
        # NULL (a stored NaN) and infinite dB rows never take part in a render.
        conds = ["FreqLow >= ?", "FreqHigh <= ?", "Start >= ?", "End <= ?", "ABS(DBHigh) <= ?"]
        params: List[Any] = [
            int(self.start_freq),
            int(self.end_freq),
            to_epoch_ms(self.start_time),
            to_epoch_ms(self.end_time),
            sys.float_info.max,
        ]
        if self.source:
            conds.insert(0, "Source = ?")
            params.insert(0, self.source)
        if self.identifier:
            conds.append("Identifier LIKE ?")
            params.append(self.identifier)
        return " AND ".join(conds), params


@dataclass
class ImageOptions:
    """Requested raster size; 0 means use the resolution the data supports."""

    width: int = 0
    height: int = 0
    add_grid: bool = True

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("image width and height must not be negative")


@dataclass
class SampleRows:
    """Filtered rows as column arrays, in ascending row id order."""

    freq_center: np.ndarray
    freq_low: np.ndarray
    freq_high: np.ndarray
    db_high: np.ndarray
    start: np.ndarray
    end: np.ndarray

    def __len__(self) -> int:
        return int(self.freq_center.size)


def _query(con: sqlite3.Connection, sql: str, params: Sequence[Any]) -> List[tuple]:
    cur = con.cursor()
    # Plain tuples even when the connection installs a dict row factory.
    cur.row_factory = None
    cur.execute(sql, tuple(params))
    return cur.fetchall()


def count_distinct_frequencies(con: sqlite3.Connection, flt: Filter) -> int:
    """Distinct bin centers in range; bin centers stay fixed across a run,
    so this is the widest raster the data can fill."""
    where_sql, params = flt.where()
    rows = _query(con, f"SELECT COUNT(DISTINCT FreqCenter) FROM spectre WHERE {where_sql}", params)
    return int(rows[0][0] or 0)


def count_distinct_starts(con: sqlite3.Connection, flt: Filter) -> int:
    """Distinct start timestamps of the lowest in-range bin.

    Every bin of a sweep shares the time resolution, so one bin's count
    bounds the raster height.
    """
    where_sql, params = flt.where()
    sql = f"""
        SELECT COUNT(DISTINCT Start)
        FROM spectre
        WHERE {where_sql}
          AND FreqCenter = (SELECT MIN(FreqCenter) FROM spectre WHERE {where_sql})
    """
    rows = _query(con, sql, list(params) + list(params))
    return int(rows[0][0] or 0)


def fetch_rows(con: sqlite3.Connection, flt: Filter) -> SampleRows:
    where_sql, params = flt.where()
    rows = _query(
        con,
        f"""
        SELECT FreqCenter, FreqLow, FreqHigh, DBHigh, Start, End
        FROM spectre
        WHERE {where_sql}
        ORDER BY ID ASC
        """,
        params,
    )
    if not rows:
        empty_i = np.empty(0, dtype=np.int64)
        return SampleRows(empty_i, empty_i, empty_i, np.empty(0, dtype=np.float64), empty_i, empty_i)
    center, low, high, db_high, start, end = zip(*rows)
    return SampleRows(
        freq_center=np.asarray(center, dtype=np.int64),
        freq_low=np.asarray(low, dtype=np.int64),
        freq_high=np.asarray(high, dtype=np.int64),
        db_high=np.asarray(db_high, dtype=np.float64),
        start=np.asarray(start, dtype=np.int64),
        end=np.asarray(end, dtype=np.int64),
    )


def clamp_dimension(requested: int, ceiling: int) -> Tuple[int, bool]:
    """Return (pixels, capped). 0 selects the ceiling; larger requests are capped."""
    if requested == 0 or requested > ceiling:
        return ceiling, requested > ceiling
    return requested, False


def parse_optional_int(value: Optional[str], default: int) -> int:
    if value is None or str(value).strip() == "":
        return default
    return int(str(value).strip())
