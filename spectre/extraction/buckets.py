"""Ordinal bucketing and the peak-hold cell fold.

Rows are ranked by a key and split into near-equal groups by rank, the same
partition SQL's NTILE(k) OVER (ORDER BY key) produces: the first n % k groups
hold ceil(n/k) rows and the rest floor(n/k). Because groups follow rank rather
than value, every group is populated no matter how unevenly the samples are
spread over time or frequency.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np  # type: ignore


def ntile(keys: np.ndarray, buckets: int) -> np.ndarray:
    """Return the 0-based group of every row.

    Ties keep the incoming row order (stable sort), so callers pass rows
    already ordered by their storage id.
    """
    if buckets <= 0:
        raise ValueError("buckets must be positive")
    n = int(keys.size)
    if n == 0:
        return np.empty(0, dtype=np.int64)
    order = np.argsort(keys, kind="stable")
    ranks = np.empty(n, dtype=np.int64)
    ranks[order] = np.arange(n, dtype=np.int64)

    per_bucket, remainder = divmod(n, buckets)
    big_span = remainder * (per_bucket + 1)
    small = np.maximum(per_bucket, 1)
    return np.where(
        ranks < big_span,
        ranks // (per_bucket + 1),
        remainder + (ranks - big_span) // small,
    )


@dataclass
class CellGrid:
    """Per-cell aggregates, shape (height, width); row 0 is the earliest time."""

    db: np.ndarray          # max DBHigh, NaN where no row fell into the cell
    count: np.ndarray       # rows folded into the cell
    freq_low: np.ndarray    # min FreqLow
    freq_high: np.ndarray   # max FreqHigh
    start: np.ndarray       # min Start (epoch ms)
    end: np.ndarray         # max End (epoch ms)

    @property
    def populated(self) -> np.ndarray:
        return self.count > 0


def fold_cells(
    time_idx: np.ndarray,
    freq_idx: np.ndarray,
    height: int,
    width: int,
    *,
    db_high: np.ndarray,
    freq_low: np.ndarray,
    freq_high: np.ndarray,
    start: np.ndarray,
    end: np.ndarray,
) -> CellGrid:
    """Collapse rows into (time, freq) cells with peak-hold on DBHigh."""
    size = height * width
    flat = time_idx.astype(np.int64) * width + freq_idx.astype(np.int64)

    count = np.bincount(flat, minlength=size)
    db = np.full(size, -np.inf, dtype=np.float64)
    np.maximum.at(db, flat, db_high)
    db[count == 0] = np.nan

    int_max = np.iinfo(np.int64).max
    int_min = np.iinfo(np.int64).min
    f_low = np.full(size, int_max, dtype=np.int64)
    f_high = np.full(size, int_min, dtype=np.int64)
    t_start = np.full(size, int_max, dtype=np.int64)
    t_end = np.full(size, int_min, dtype=np.int64)
    np.minimum.at(f_low, flat, freq_low)
    np.maximum.at(f_high, flat, freq_high)
    np.minimum.at(t_start, flat, start)
    np.maximum.at(t_end, flat, end)

    shape = (height, width)
    return CellGrid(
        db=db.reshape(shape),
        count=count.reshape(shape),
        freq_low=f_low.reshape(shape),
        freq_high=f_high.reshape(shape),
        start=t_start.reshape(shape),
        end=t_end.reshape(shape),
    )
