import itertools
import random
import threading
from datetime import datetime, timedelta, timezone

import pytest

from spectre.sweep.aggregator import FrequencyBucketAggregator, merge_samples
from spectre.sweep.model import Sample

T0 = datetime(2021, 12, 1, 10, 0, 0, tzinfo=timezone.utc)


def _reading(db: float, *, count: int = 1, low: int = 400_000_000, seconds: float = 0.0) -> Sample:
    return Sample.reading(
        identifier="node-1",
        source="hackrf",
        freq_low=low,
        freq_high=low + 12_500,
        db=db,
        sample_count=count,
        timestamp=T0 + timedelta(seconds=seconds),
    )


def test_merge_weights_average_by_sample_count() -> None:
    merged = merge_samples(_reading(-20.0, count=10), _reading(-10.0, count=30, seconds=1))
    assert merged.db_avg == pytest.approx(-12.5)
    assert merged.db_low == -20.0
    assert merged.db_high == -10.0
    assert merged.sample_count == 40
    assert merged.start == T0
    assert merged.end == T0 + timedelta(seconds=1)


def test_merge_keeps_end_after_start_for_out_of_order_readings() -> None:
    merged = merge_samples(_reading(-20.0, seconds=5), _reading(-30.0, seconds=2))
    assert merged.start == T0 + timedelta(seconds=2)
    assert merged.end == T0 + timedelta(seconds=5)


def test_aggregate_is_independent_of_merge_order() -> None:
    readings = [_reading(db, count=c, seconds=i) for i, (db, c) in enumerate([(-40.0, 3), (-22.5, 1), (-31.0, 7), (-18.0, 2)])]
    results = []
    for perm in itertools.permutations(readings):
        agg = perm[0]
        for r in perm[1:]:
            agg = merge_samples(agg, r)
        results.append(agg)
    expected_avg = sum(r.db_avg * r.sample_count for r in readings) / sum(r.sample_count for r in readings)
    for agg in results:
        assert agg.db_avg == pytest.approx(expected_avg)
        assert agg.db_low <= agg.db_avg <= agg.db_high
        assert agg.sample_count == 13
        assert (agg.start, agg.end) == (T0, T0 + timedelta(seconds=3))


def test_flush_returns_sorted_aggregates_and_resets_table() -> None:
    agg = FrequencyBucketAggregator()
    agg.ingest(_reading(-20.0, low=400_025_000))
    agg.ingest(_reading(-30.0, low=400_000_000))
    agg.ingest(_reading(-10.0, low=400_025_000, seconds=1))
    assert len(agg) == 2

    batch = agg.flush()
    assert [s.freq_center for s in batch] == [400_006_250, 400_031_250]
    assert batch[1].sample_count == 2
    assert batch[1].db_high == -10.0
    assert len(agg) == 0
    assert agg.flush() == []
    assert agg.ingested == 3
    assert agg.flushed == 2


def test_first_reading_is_stored_verbatim() -> None:
    agg = FrequencyBucketAggregator()
    reading = _reading(-42.0, count=7)
    agg.ingest(reading)
    assert agg.flush() == [reading]


def test_concurrent_ingest_and_flush_lose_and_duplicate_nothing() -> None:
    agg = FrequencyBucketAggregator()
    per_thread = 2000
    threads = 4
    flushed = []
    done = threading.Event()

    def produce(seed: int) -> None:
        rng = random.Random(seed)
        for i in range(per_thread):
            agg.ingest(_reading(rng.uniform(-90, -10), low=400_000_000 + 12_500 * rng.randrange(8), seconds=i))

    def flush_loop() -> None:
        while not done.is_set():
            flushed.extend(agg.flush())
        flushed.extend(agg.flush())

    flusher = threading.Thread(target=flush_loop)
    flusher.start()
    producers = [threading.Thread(target=produce, args=(n,)) for n in range(threads)]
    for t in producers:
        t.start()
    for t in producers:
        t.join()
    done.set()
    flusher.join()

    assert sum(s.sample_count for s in flushed) == per_thread * threads
    assert agg.ingested == per_thread * threads
    assert len(agg) == 0
