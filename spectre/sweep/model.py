"""Sample and sweep option dataclasses shared by collection, export and extraction."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Tuple

from spectre.util.time import from_epoch_ms, to_epoch_ms

# Largest value an SQLite INTEGER column holds.
MAX_SQLITE_INT = 2**63 - 1

# Column order of the persisted `spectre` table (without the ID column).
SAMPLE_COLUMNS: Tuple[str, ...] = (
    "Identifier",
    "Source",
    "FreqCenter",
    "FreqLow",
    "FreqHigh",
    "DBHigh",
    "DBLow",
    "DBAvg",
    "SampleCount",
    "Start",
    "End",
)


@dataclass
class Sample:
    """Power reading for one frequency bin.

    A freshly parsed reading has db_low == db_high == db_avg and start == end.
    After merging it becomes an aggregate over one integration interval.
    """

    identifier: str
    source: str
    freq_center: int
    freq_low: int
    freq_high: int
    db_high: float
    db_low: float
    db_avg: float
    sample_count: int
    start: datetime
    end: datetime

    @classmethod
    def reading(
        cls,
        *,
        identifier: str,
        source: str,
        freq_low: int,
        freq_high: int,
        db: float,
        sample_count: int,
        timestamp: datetime,
    ) -> "Sample":
        return cls(
            identifier=identifier,
            source=source,
            freq_center=(freq_low + freq_high) // 2,
            freq_low=freq_low,
            freq_high=freq_high,
            db_high=db,
            db_low=db,
            db_avg=db,
            sample_count=sample_count,
            start=timestamp,
            end=timestamp,
        )

    def to_row(self) -> Tuple[Any, ...]:
        """Values in SAMPLE_COLUMNS order, timestamps as epoch milliseconds."""
        return (
            self.identifier,
            self.source,
            int(self.freq_center),
            int(self.freq_low),
            int(self.freq_high),
            float(self.db_high),
            float(self.db_low),
            float(self.db_avg),
            int(self.sample_count),
            to_epoch_ms(self.start),
            to_epoch_ms(self.end),
        )

    def to_dict(self) -> Dict[str, Any]:
        return dict(zip(SAMPLE_COLUMNS, self.to_row()))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Sample":
        """Build a sample from its JSON form; raises ValueError on bad input."""
        try:
            sample = cls(
                identifier=str(payload.get("Identifier") or ""),
                source=str(payload.get("Source") or ""),
                freq_center=int(payload["FreqCenter"]),
                freq_low=int(payload["FreqLow"]),
                freq_high=int(payload["FreqHigh"]),
                db_high=float(payload["DBHigh"]),
                db_low=float(payload["DBLow"]),
                db_avg=float(payload["DBAvg"]),
                sample_count=int(payload["SampleCount"]),
                start=from_epoch_ms(int(payload["Start"])),
                end=from_epoch_ms(int(payload["End"])),
            )
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            raise ValueError(f"invalid sample payload: {exc}") from exc
        if not all(math.isfinite(v) for v in (sample.db_low, sample.db_avg, sample.db_high)):
            raise ValueError("DBLow, DBAvg and DBHigh must be finite")
        if not sample.db_low <= sample.db_avg <= sample.db_high:
            raise ValueError("expected DBLow <= DBAvg <= DBHigh")
        if not 0 <= sample.freq_low <= sample.freq_center <= sample.freq_high <= MAX_SQLITE_INT:
            raise ValueError(f"expected 0 <= FreqLow <= FreqCenter <= FreqHigh <= {MAX_SQLITE_INT}")
        if not 1 <= sample.sample_count <= MAX_SQLITE_INT:
            raise ValueError(f"SampleCount must be within 1..{MAX_SQLITE_INT}")
        if sample.end < sample.start:
            raise ValueError("End must not be before Start")
        return sample


@dataclass(frozen=True)
class SweepOptions:
    """Parameters handed to the external sweep tool."""

    low_freq: int = 400_000_000
    high_freq: int = 450_000_000
    # FFT bin width in Hz; tools may pick a smaller, more convenient width.
    bin_size: int = 12_500
    # Samples per bin (hackrf_sweep only).
    sample_size: int = 8192
    integration_interval: float = 5.0

    def __post_init__(self) -> None:
        if self.high_freq <= self.low_freq:
            raise ValueError("high_freq must be greater than low_freq")
        if self.bin_size <= 0:
            raise ValueError("bin_size must be positive")
        if self.integration_interval <= 0:
            raise ValueError("integration_interval must be positive")
