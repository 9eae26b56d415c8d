"""Sink contract shared by every export target."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, Iterable

from spectre.sweep.model import Sample
from spectre.util.logging import get_logger

logger = get_logger(__name__)

# Emit a progress line every this many samples.
COUNT_LOG_INTERVAL = 1000


class SinkUnavailableError(RuntimeError):
    """The export target cannot be used at all (raised from open())."""


@dataclass
class ExportCounts:
    total: int = 0
    success: int = 0
    error: int = 0

    def record(self, ok: bool, amount: int = 1) -> None:
        before = self.total
        self.total += amount
        if ok:
            self.success += amount
        else:
            self.error += amount
        if self.total // COUNT_LOG_INTERVAL != before // COUNT_LOG_INTERVAL:
            logger.info("Sample export counts: %s", self.as_dict())

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


class SampleSink:
    """Durable store or transmission target for aggregate samples.

    open() failing is fatal for the run. write() is best effort: failures of
    individual samples are logged and counted, never raised.
    """

    name = "sink"

    def __init__(self) -> None:
        self.counts = ExportCounts()

    def open(self) -> None:
        pass

    def write(self, samples: Iterable[Sample]) -> ExportCounts:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self) -> "SampleSink":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
