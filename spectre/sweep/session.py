"""Collection session tying a sweep tool, the aggregator and a sink together.

Threads per session:
- producer: owns the tool output and pushes raw rows onto a bounded line queue
- parse loop (caller's thread): rows -> readings -> aggregator.ingest()
- flusher: every integration interval swaps the bucket table and queues the batch
- writer: hands queued batches to the sink

The batch queue is bounded. When the sink falls behind, the flusher blocks on
put() while parsing keeps folding readings into the live table, so a slow
sink stretches the effective integration interval instead of stalling the
parser or dropping readings. Memory stays bounded by the number of distinct
bin frequencies plus `batch_queue_size` batches.
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from spectre.export.base import SampleSink
from spectre.sweep.aggregator import FrequencyBucketAggregator
from spectre.sweep.model import Sample
from spectre.sweep.parser import SweepLineParser
from spectre.sweep.tools import ProducerError
from spectre.util.logging import get_logger, log_exception

logger = get_logger(__name__)

DEFAULT_LINE_QUEUE_SIZE = 10_000
DEFAULT_BATCH_QUEUE_SIZE = 16

_EOF = object()


@dataclass
class SessionStats:
    lines: int = 0
    skipped_lines: int = 0
    readings: int = 0
    batches: int = 0
    aggregates: int = 0
    elapsed_s: float = 0.0


class CollectionSession:
    """Run one collection from a line source into a sink until the source ends."""

    def __init__(
        self,
        lines: Iterable[str],
        parser: SweepLineParser,
        sink: SampleSink,
        *,
        integration_interval: float,
        aggregator: Optional[FrequencyBucketAggregator] = None,
        line_queue_size: int = DEFAULT_LINE_QUEUE_SIZE,
        batch_queue_size: int = DEFAULT_BATCH_QUEUE_SIZE,
        on_close: Optional[Callable[[], None]] = None,
    ) -> None:
        if integration_interval <= 0:
            raise ValueError("integration_interval must be positive")
        self.lines = lines
        self.parser = parser
        self.sink = sink
        self.integration_interval = float(integration_interval)
        self.aggregator = aggregator or FrequencyBucketAggregator()
        self.on_close = on_close
        self.stats = SessionStats()

        self._line_queue: "queue.Queue[object]" = queue.Queue(maxsize=max(1, line_queue_size))
        self._batch_queue: "queue.Queue[object]" = queue.Queue(maxsize=max(1, batch_queue_size))
        self._stop = threading.Event()
        self._producer_error: Optional[Exception] = None

    # ------------------------------------------------------------------
    # Threads
    # ------------------------------------------------------------------

    def _produce(self) -> None:
        try:
            for line in self.lines:
                self._line_queue.put(line)
        except Exception as exc:  # re-raised from run()
            self._producer_error = exc
        finally:
            self._line_queue.put(_EOF)

    def _flush_loop(self) -> None:
        while not self._stop.wait(self.integration_interval):
            self._flush_once()

    def _flush_once(self) -> None:
        batch = self.aggregator.flush()
        if not batch:
            return
        logger.debug("flushing %d aggregates", len(batch), extra={"batch_size": len(batch)})
        self._batch_queue.put(batch)

    def _write_loop(self) -> None:
        while True:
            item = self._batch_queue.get()
            if item is _EOF:
                return
            batch: List[Sample] = item  # type: ignore[assignment]
            try:
                self.sink.write(batch)
            except Exception:
                log_exception(logger, f"{self.sink.name} sink failed to write batch", error_type="sink_write")
                self.sink.counts.record(False, len(batch))
            self.stats.batches += 1
            self.stats.aggregates += len(batch)

    # ------------------------------------------------------------------
    # Main loop
    # ------------------------------------------------------------------

    def run(self) -> SessionStats:
        """Collect until the line source ends.

        Raises:
            SinkUnavailableError: the sink cannot be opened.
            ProducerError: the line source failed.
        """
        started = time.monotonic()
        self.sink.open()

        writer = threading.Thread(target=self._write_loop, name="spectre-writer", daemon=True)
        flusher = threading.Thread(target=self._flush_loop, name="spectre-flusher", daemon=True)
        producer = threading.Thread(target=self._produce, name="spectre-producer", daemon=True)
        writer.start()
        flusher.start()
        producer.start()

        try:
            while True:
                line = self._line_queue.get()
                if line is _EOF:
                    break
                self.stats.lines += 1
                for reading in self.parser.parse_line(line):  # type: ignore[arg-type]
                    self.aggregator.ingest(reading)
                    self.stats.readings += 1
        finally:
            self._stop.set()
            flusher.join()
            self._flush_once()
            self._batch_queue.put(_EOF)
            writer.join()
            self.sink.close()
            if self.on_close is not None:
                self.on_close()
            self.stats.skipped_lines = self.parser.skipped
            self.stats.elapsed_s = time.monotonic() - started
            logger.info(
                "session finished lines=%d skipped=%d readings=%d aggregates=%d counts=%s",
                self.stats.lines,
                self.stats.skipped_lines,
                self.stats.readings,
                self.stats.aggregates,
                self.sink.counts.as_dict(),
                extra={"duration_ms": int(self.stats.elapsed_s * 1000)},
            )

        if self._producer_error is not None:
            if isinstance(self._producer_error, ProducerError):
                raise self._producer_error
            raise ProducerError(f"sweep stream ended unexpectedly: {self._producer_error}") from self._producer_error
        return self.stats
