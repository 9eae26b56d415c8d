"""Decode sweep tool text rows into per-bin readings.

Both hackrf_sweep and rtl_power print one row per sweep segment:

    date, time, segment_low_hz, segment_high_hz, bin_width_hz, samples, db_0, ..., db_n-1
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Iterable, Iterator, List

from spectre.sweep.model import Sample
from spectre.util.logging import get_logger

logger = get_logger(__name__)

HEADER_FIELDS = 6
_TIME_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d %H:%M:%S.%f")


class SweepParseError(ValueError):
    """A sweep row could not be decoded."""


def _parse_int(text: str, name: str) -> int:
    # The tools print integral values with a fractional suffix ("400000000.00").
    head = text.split(".", 1)[0]
    try:
        value = int(head)
    except ValueError:
        raise SweepParseError(f"invalid {name} {text!r}") from None
    if value < 0:
        raise SweepParseError(f"negative {name} {text!r}")
    return value


def _parse_timestamp(date_text: str, time_text: str) -> datetime:
    raw = f"{date_text} {time_text}"
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(raw, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise SweepParseError(f"invalid timestamp {raw!r}")


def _parse_db(text: str, index: int) -> float:
    try:
        value = float(text)
    except ValueError:
        raise SweepParseError(f"invalid dB value {text!r} in bin {index}") from None
    if not math.isfinite(value):
        raise SweepParseError(f"non-finite dB value {text!r} in bin {index}")
    return value


def bin_range(segment_low: int, segment_high: int, bin_width: int, index: int) -> tuple:
    """Return (low, high) of bin `index`; the last bin is clipped to the segment."""
    low = segment_low + index * bin_width
    high = min(low + bin_width, segment_high)
    return low, high


def parse_sweep_line(line: str, *, identifier: str, source: str) -> List[Sample]:
    """Decode one sweep row into one reading per bin.

    Raises:
        SweepParseError: if any header field, timestamp or dB value is unusable.
    """
    fields = [part.strip() for part in line.strip().split(",")]
    if len(fields) < HEADER_FIELDS:
        raise SweepParseError(f"expected at least {HEADER_FIELDS} fields, got {len(fields)}")

    timestamp = _parse_timestamp(fields[0], fields[1])
    segment_low = _parse_int(fields[2], "segment low frequency")
    segment_high = _parse_int(fields[3], "segment high frequency")
    bin_width = _parse_int(fields[4], "bin width")
    sample_count = _parse_int(fields[5], "sample count")
    if bin_width <= 0:
        raise SweepParseError(f"bin width must be positive, got {bin_width}")
    if sample_count < 1:
        raise SweepParseError(f"sample count must be >= 1, got {sample_count}")
    if segment_high < segment_low:
        raise SweepParseError("segment high frequency below segment low frequency")

    readings: List[Sample] = []
    for index, text in enumerate(fields[HEADER_FIELDS:]):
        db = _parse_db(text, index)
        low, high = bin_range(segment_low, segment_high, bin_width, index)
        if low >= segment_high:
            raise SweepParseError(f"bin {index} starts at {low}, beyond segment high frequency {segment_high}")
        readings.append(
            Sample.reading(
                identifier=identifier,
                source=source,
                freq_low=low,
                freq_high=high,
                db=db,
                sample_count=sample_count,
                timestamp=timestamp,
            )
        )
    return readings


class SweepLineParser:
    """Turn a stream of sweep rows into readings, skipping rows that fail to parse."""

    def __init__(self, identifier: str, source: str) -> None:
        self.identifier = identifier
        self.source = source
        self.parsed = 0
        self.skipped = 0

    def parse_line(self, line: str) -> List[Sample]:
        """Parse one row; bad rows are logged, counted and yield no readings."""
        if not line.strip():
            return []
        try:
            readings = parse_sweep_line(line, identifier=self.identifier, source=self.source)
        except SweepParseError as exc:
            self.skipped += 1
            logger.warning("error parsing line: %s", exc, extra={"source": self.source})
            return []
        self.parsed += 1
        return readings

    def parse(self, lines: Iterable[str]) -> Iterator[Sample]:
        for line in lines:
            yield from self.parse_line(line)
