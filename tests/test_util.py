import argparse
import json
import logging
from datetime import datetime, timezone

import pytest

from spectre.util.duration import format_duration, parse_duration_to_seconds
from spectre.util.exit_codes import ExitCode
from spectre.util.logging import JSONFormatter, get_logger
from spectre.util.time import EPOCH, from_epoch_ms, to_epoch_ms


@pytest.mark.parametrize(
    "value,expected",
    [("30", 30.0), ("500ms", 0.5), ("5s", 5.0), ("10m", 600.0), ("2h", 7200.0), ("1d", 86400.0), (7, 7.0)],
)
def test_parse_duration_to_seconds(value, expected) -> None:
    assert parse_duration_to_seconds(value) == expected


def test_parse_duration_rejects_garbage() -> None:
    with pytest.raises(argparse.ArgumentTypeError):
        parse_duration_to_seconds("soon")
    with pytest.raises(argparse.ArgumentTypeError):
        parse_duration_to_seconds("5w")
    assert parse_duration_to_seconds("") is None


@pytest.mark.parametrize(
    "seconds,expected",
    [(0, "0s"), (45, "45s"), (1.5, "1.5s"), (125, "2m5s"), (3630, "1h0m30s"), (0.25, "0.25s")],
)
def test_format_duration(seconds, expected) -> None:
    assert format_duration(seconds) == expected


def test_epoch_ms_conversions() -> None:
    ts = datetime(2021, 12, 1, 10, 0, 1, tzinfo=timezone.utc)
    assert to_epoch_ms(ts) == 1638352801000
    assert to_epoch_ms(datetime(2021, 12, 1, 10, 0, 1)) == 1638352801000
    assert from_epoch_ms(1638352801000) == ts
    assert from_epoch_ms(0) == EPOCH


def test_exit_code_messages() -> None:
    assert ExitCode.message(ExitCode.NO_DATA) == "No data"
    assert ExitCode.message(99) == "Unknown exit code 99"


def test_get_logger_namespaces_foreign_names() -> None:
    assert get_logger("spectre.sweep.parser").name == "spectre.sweep.parser"
    assert get_logger("spectre_web.app").name == "spectre.spectre_web.app"
    assert get_logger("__main__").name == "spectre.main"


def test_json_formatter_carries_structured_fields() -> None:
    record = logging.LogRecord("spectre.sweep", logging.INFO, __file__, 1, "flushed %d", (3,), None)
    record.batch_size = 3
    record.identifier = "abc"
    payload = json.loads(JSONFormatter().format(record))
    assert payload["message"] == "flushed 3"
    assert payload["batch_size"] == 3
    assert payload["identifier"] == "abc"
    assert payload["ts"].endswith("Z")
