"""CSV export to a text stream (stdout by default)."""

from __future__ import annotations

import csv
import sys
from typing import IO, Iterable, Optional

from spectre.export.base import ExportCounts, SampleSink
from spectre.sweep.model import Sample
from spectre.util.logging import get_logger
from spectre.util.time import to_epoch_ms

logger = get_logger(__name__)

CSV_HEADER = (
    "FreqCenter",
    "FreqLow",
    "FreqHigh",
    "StartUnixMilli",
    "EndUnixMilli",
    "dBLow",
    "dBHigh",
    "dBAvg",
    "SampleCount",
)


class CSVSink(SampleSink):
    name = "csv"

    def __init__(self, stream: Optional[IO[str]] = None) -> None:
        super().__init__()
        self.stream = stream if stream is not None else sys.stdout
        self._writer = csv.writer(self.stream)

    def open(self) -> None:
        self._writer.writerow(CSV_HEADER)
        self.stream.flush()

    def write(self, samples: Iterable[Sample]) -> ExportCounts:
        for sample in samples:
            try:
                self._writer.writerow(
                    [
                        sample.freq_center,
                        sample.freq_low,
                        sample.freq_high,
                        to_epoch_ms(sample.start),
                        to_epoch_ms(sample.end),
                        f"{sample.db_low:f}",
                        f"{sample.db_high:f}",
                        f"{sample.db_avg:f}",
                        sample.sample_count,
                    ]
                )
            except (csv.Error, OSError) as exc:
                logger.warning("error writing CSV row: %s", exc)
                self.counts.record(False)
                continue
            self.counts.record(True)
        self.stream.flush()
        return self.counts
