"""Ship aggregate samples to a spectre server as JSON batches."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List
from urllib import error as urlerr
from urllib import parse as urlparse
from urllib import request as urlreq

from spectre.export.base import ExportCounts, SampleSink, SinkUnavailableError
from spectre.sweep.model import Sample
from spectre.util.logging import get_logger

logger = get_logger(__name__)

COLLECT_PATH = "/spectre/v1/collect"
DEFAULT_BATCH_SIZE = 100


class SpectreServerSink(SampleSink):
    """POST samples to `<server>/spectre/v1/collect` in batches of `batch_size`."""

    name = "spectre"

    def __init__(self, server: str, *, batch_size: int = 0, token: str = "", timeout: float = 10.0) -> None:
        super().__init__()
        self.server = server.rstrip("/")
        self.batch_size = batch_size if batch_size > 0 else DEFAULT_BATCH_SIZE
        self.token = token
        self.timeout = timeout
        self._pending: List[Sample] = []

    def open(self) -> None:
        parsed = urlparse.urlparse(self.server)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise SinkUnavailableError(f"invalid spectre server URL {self.server!r}")

    def write(self, samples: Iterable[Sample]) -> ExportCounts:
        for sample in samples:
            self._pending.append(sample)
            if len(self._pending) >= self.batch_size:
                self._send()
        return self.counts

    def close(self) -> None:
        if self._pending:
            self._send()

    def _send(self) -> None:
        batch, self._pending = self._pending, []
        try:
            reply = self._post([s.to_dict() for s in batch])
        except RuntimeError as exc:
            logger.warning("error POSTing samples: %s", exc, extra={"batch_size": len(batch)})
            self.counts.record(False, len(batch))
            return
        self.counts.record(True, len(batch))
        logger.debug(
            "submitted %s samples to server %s",
            reply.get("sampleCount", len(batch)),
            self.server,
            extra={"batch_size": len(batch)},
        )

    def _post(self, body: List[Dict[str, Any]]) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        data = json.dumps(body).encode("utf-8")
        req = urlreq.Request(self.server + COLLECT_PATH, data, headers=headers, method="POST")
        try:
            with urlreq.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urlerr.HTTPError as e:
            raise RuntimeError(f"server HTTP {e.code}: {e.read().decode('utf-8', errors='replace')}")
        except (urlerr.URLError, OSError) as e:
            raise RuntimeError(str(e))
        try:
            return json.loads(raw.decode("utf-8"))
        except ValueError:
            return {}
