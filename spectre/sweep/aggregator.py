"""Fold per-bin readings into per-frequency aggregates over an integration interval."""

from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, List

from spectre.sweep.model import Sample


def merge_samples(stored: Sample, sample: Sample) -> Sample:
    """Combine two samples of the same frequency bin.

    The average is weighted by sample_count, so folding readings in any order
    gives the same aggregate up to float rounding.
    """
    total = stored.sample_count + sample.sample_count
    avg = (stored.db_avg * stored.sample_count + sample.db_avg * sample.sample_count) / total
    low = min(stored.db_low, sample.db_low)
    high = max(stored.db_high, sample.db_high)
    return replace(
        stored,
        db_low=low,
        db_high=high,
        # Rounding can push the mean a hair outside [low, high].
        db_avg=min(max(avg, low), high),
        sample_count=total,
        start=min(stored.start, sample.start),
        end=max(stored.end, sample.end),
    )


class FrequencyBucketAggregator:
    """Accumulate readings keyed by center frequency until the next flush.

    ingest() and flush() share one lock, so a reading lands either in the table
    that is being drained or in the fresh one, never in both and never lost.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._buckets: Dict[int, Sample] = {}
        self.ingested = 0
        self.flushed = 0

    def ingest(self, sample: Sample) -> None:
        with self._lock:
            stored = self._buckets.get(sample.freq_center)
            if stored is None:
                self._buckets[sample.freq_center] = sample
            else:
                self._buckets[sample.freq_center] = merge_samples(stored, sample)
            self.ingested += 1

    def flush(self) -> List[Sample]:
        """Swap in an empty table and return the finished aggregates."""
        with self._lock:
            old, self._buckets = self._buckets, {}
            self.flushed += len(old)
        return [old[freq] for freq in sorted(old)]

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)
