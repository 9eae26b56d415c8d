"""
Background writer for collected samples.

Collect requests only validate and enqueue; a single thread owns the SQLite
write connection and drains the queue. A full queue is reported to the caller
instead of blocking the request thread.
"""
from __future__ import annotations

import queue
import threading
from typing import List, Optional

from spectre.export.sqlite import SQLiteSink
from spectre.sweep.model import Sample
from spectre.util.logging import get_logger, log_exception

logger = get_logger(__name__)

_STOP = object()


class IngestWriter:
    """Single-writer queue in front of an SQLiteSink."""

    def __init__(self, db_path: str, maxsize: int) -> None:
        self.sink = SQLiteSink(db_path)
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=max(1, maxsize))
        self._thread: Optional[threading.Thread] = None

    def open(self) -> None:
        """Open the store (creating the schema); raises SinkUnavailableError."""
        self.sink.open()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="spectre-ingest", daemon=True)
        self._thread.start()

    def submit(self, samples: List[Sample]) -> bool:
        """Queue a batch; False when the queue is full."""
        try:
            self._queue.put_nowait(samples)
        except queue.Full:
            logger.warning("ingest queue full, rejecting %d samples", len(samples), extra={"batch_size": len(samples)})
            return False
        return True

    def drain(self) -> None:
        """Block until every queued batch has been written."""
        self._queue.join()

    def close(self) -> None:
        if self._thread is not None:
            self._queue.put(_STOP)
            self._thread.join()
            self._thread = None
        self.sink.close()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                batch: List[Sample] = item  # type: ignore[assignment]
                counted = self.sink.counts.total
                try:
                    self.sink.write(batch)
                except Exception:
                    log_exception(logger, "failed to store collected samples", error_type="db_write")
                    # Samples the sink did not get to count are failures too.
                    missing = len(batch) - (self.sink.counts.total - counted)
                    if missing > 0:
                        self.sink.counts.record(False, missing)
                else:
                    logger.debug("stored %d collected samples", len(batch), extra={"batch_size": len(batch)})
            finally:
                self._queue.task_done()
