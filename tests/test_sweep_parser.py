from datetime import datetime, timezone

import pytest

from spectre.sweep.parser import SweepLineParser, SweepParseError, bin_range, parse_sweep_line

EXAMPLE_ROW = "2021-12-01,10:00:01,400000000,400025000,12500,10,-20.0,-18.0"


def _parse(line: str):
    return parse_sweep_line(line, identifier="node-1", source="hackrf")


def test_example_row_yields_one_reading_per_bin() -> None:
    readings = _parse(EXAMPLE_ROW)
    assert [r.freq_center for r in readings] == [400006250, 400018750]
    assert [(r.freq_low, r.freq_high) for r in readings] == [(400000000, 400012500), (400012500, 400025000)]
    assert [r.db_avg for r in readings] == [-20.0, -18.0]
    ts = datetime(2021, 12, 1, 10, 0, 1, tzinfo=timezone.utc)
    for r in readings:
        assert r.sample_count == 10
        assert r.db_low == r.db_high == r.db_avg
        assert r.start == r.end == ts
        assert r.identifier == "node-1"
        assert r.source == "hackrf"


def test_tool_formatting_with_spaces_and_fractional_fields() -> None:
    row = "2021-12-01, 10:00:01.5, 400000000.00, 400025000.00, 12500.00, 10, -20.5, -18.25"
    readings = _parse(row)
    assert [r.freq_center for r in readings] == [400006250, 400018750]
    assert readings[0].start == datetime(2021, 12, 1, 10, 0, 1, 500000, tzinfo=timezone.utc)
    assert readings[1].db_high == -18.25


def test_irregular_final_bin_is_clipped_to_segment() -> None:
    readings = _parse("2021-12-01,10:00:01,400000000,400020000,12500,10,-20.0,-18.0")
    last = readings[-1]
    assert (last.freq_low, last.freq_high) == (400012500, 400020000)
    assert last.freq_center == 400016250


def test_bin_range_uses_segment_low_and_width() -> None:
    assert bin_range(1000, 5000, 1000, 0) == (1000, 2000)
    assert bin_range(1000, 5000, 1000, 3) == (4000, 5000)
    assert bin_range(1000, 4500, 1000, 3) == (4000, 4500)


def test_row_without_db_values_yields_nothing() -> None:
    assert _parse("2021-12-01,10:00:01,400000000,400025000,12500,10") == []


@pytest.mark.parametrize(
    "row",
    [
        "2021-12-01,10:00:01,400000000,400025000",
        "2021-13-01,10:00:01,400000000,400025000,12500,10,-20.0",
        "2021-12-01,10:00:01,abc,400025000,12500,10,-20.0",
        "2021-12-01,10:00:01,400000000,400025000,0,10,-20.0",
        "2021-12-01,10:00:01,400000000,400025000,12500,0,-20.0",
        "2021-12-01,10:00:01,400000000,400025000,12500,10,-20.0,loud",
        "2021-12-01,10:00:01,400000000,400025000,12500,10,nan",
        "2021-12-01,10:00:01,400000000,400025000,12500,10,-inf",
        "2021-12-01,10:00:01,-400000000,400025000,12500,10,-20.0",
        "2021-12-01,10:00:01,400000000,400025000,-12500,10,-20.0",
        "2021-12-01,10:00:01,400000000,400025000,12500,10,-20.0,-18.0,-17.0",
    ],
)
def test_malformed_rows_raise(row: str) -> None:
    with pytest.raises(SweepParseError):
        _parse(row)


def test_line_parser_skips_bad_rows_and_keeps_going() -> None:
    parser = SweepLineParser("node-1", "rtlsdr")
    lines = [EXAMPLE_ROW + "\n", "garbage\n", "\n", EXAMPLE_ROW]
    readings = list(parser.parse(lines))
    assert len(readings) == 4
    assert parser.parsed == 2
    assert parser.skipped == 1
    assert all(r.source == "rtlsdr" for r in readings)


def test_bins_tile_the_segment() -> None:
    dbs = ", ".join(str(-50.0 - i) for i in range(7))
    readings = _parse(f"2021-12-01, 10:00:01, 100000000, 100080000, 12000, 5, {dbs}")
    assert len(readings) == 7
    assert readings[0].freq_low == 100000000
    for prev, cur in zip(readings, readings[1:]):
        assert prev.freq_high == cur.freq_low
    assert readings[-1].freq_high == 100080000
    assert [r.freq_high - r.freq_low for r in readings] == [12000] * 6 + [8000]
