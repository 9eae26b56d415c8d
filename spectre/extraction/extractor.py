"""Waterfall extraction: stored samples -> fixed-resolution dB matrix -> image.

Rendering happens in four passes over the filtered rows:

1. Resolution ceilings from the store (distinct bin centers for the width,
   distinct start times of the lowest bin for the height).
2. Rank-based assignment of every row to a time bucket (by Start) and a
   frequency bucket (by FreqCenter), see ``spectre.extraction.buckets``.
3. Peak-hold collapse of each (time, frequency) cell.
4. Global dB range and extents, then colorization and the optional grid.
"""

from __future__ import annotations

import io
import sqlite3
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

import numpy as np  # type: ignore
from PIL import Image

from spectre.extraction import query
from spectre.extraction.buckets import CellGrid, fold_cells, ntile
from spectre.extraction.colormap import colorize
from spectre.extraction.grid import draw_grid
from spectre.extraction.query import Filter, ImageOptions
from spectre.util.logging import get_logger
from spectre.util.time import from_epoch_ms

logger = get_logger(__name__)

# SQLite VM instructions between timeout checks.
PROGRESS_INTERVAL = 10_000

JPEG_QUALITY = 75


class NoDataError(LookupError):
    """No stored samples match the filter."""


class RenderError(RuntimeError):
    """The store could not be queried."""


class RenderTimeoutError(RenderError):
    """The store query ran past the render deadline."""


@dataclass
class SourceMetadata:
    low_freq: int
    high_freq: int
    start_time: datetime
    end_time: datetime


@dataclass
class RenderMetadata:
    width: int
    height: int
    freq_per_pixel: float
    sec_per_pixel: float


@dataclass
class Waterfall:
    matrix: np.ndarray  # (height, width) max dB per cell, NaN where empty
    cells: CellGrid
    db_min: float
    db_max: float
    source_meta: SourceMetadata
    render_meta: RenderMetadata


@dataclass
class RenderResult:
    image: Image.Image
    source_meta: SourceMetadata
    render_meta: RenderMetadata


class WaterfallExtractor:
    """Turn the rows selected by a Filter into a waterfall.

    `con` is any SQLite connection holding the `spectre` table; the extractor
    only reads. `timeout` bounds the store queries of a single call.
    """

    def __init__(self, con: sqlite3.Connection, *, timeout: Optional[float] = None) -> None:
        self.con = con
        self.timeout = timeout
        self._deadline: Optional[float] = None

    # ------------------------------------------------------------------
    # Store access
    # ------------------------------------------------------------------

    def _timed_out(self) -> int:
        if self._deadline is not None and time.monotonic() > self._deadline:
            return 1
        return 0

    def _run(self, fn, *args):
        try:
            return fn(self.con, *args)
        except sqlite3.OperationalError as exc:
            if self._deadline is not None and time.monotonic() > self._deadline:
                raise RenderTimeoutError(f"render query exceeded {self.timeout}s") from exc
            raise RenderError(f"unable to query sample store: {exc}") from exc
        except sqlite3.Error as exc:
            raise RenderError(f"unable to query sample store: {exc}") from exc

    def resolution_ceiling(self, flt: Filter) -> Tuple[int, int]:
        """(width, height) the filtered data can fill without empty columns or rows."""
        width = self._run(query.count_distinct_frequencies, flt)
        height = self._run(query.count_distinct_starts, flt)
        return width, height

    def plan(self, flt: Filter, options: ImageOptions) -> Tuple[int, int]:
        max_width, max_height = self.resolution_ceiling(flt)
        if max_width == 0 or max_height == 0:
            raise NoDataError("no samples match the filter")
        width, capped = query.clamp_dimension(options.width, max_width)
        if capped:
            logger.warning(
                "image width %d is more than the stored data can provide, reducing to %d pixels",
                options.width,
                max_width,
            )
        height, capped = query.clamp_dimension(options.height, max_height)
        if capped:
            logger.warning(
                "image height %d is more than the stored data can provide, reducing to %d pixels",
                options.height,
                max_height,
            )
        return width, height

    # ------------------------------------------------------------------
    # Extraction
    # ------------------------------------------------------------------

    def extract(self, flt: Filter, options: Optional[ImageOptions] = None) -> Waterfall:
        """Build the dB matrix for `flt`.

        Raises:
            NoDataError: nothing matches the filter.
            RenderError: the store failed (RenderTimeoutError past the deadline).
        """
        options = options or ImageOptions()
        started = time.monotonic()
        if self.timeout is not None:
            self._deadline = started + self.timeout
            self.con.set_progress_handler(self._timed_out, PROGRESS_INTERVAL)
        try:
            width, height = self.plan(flt, options)
            rows = self._run(query.fetch_rows, flt)
        finally:
            if self.timeout is not None:
                self.con.set_progress_handler(None, 0)
            self._deadline = None
        if len(rows) == 0:
            raise NoDataError("no samples match the filter")

        time_idx = ntile(rows.start, height)
        freq_idx = ntile(rows.freq_center, width)
        cells = fold_cells(
            time_idx,
            freq_idx,
            height,
            width,
            db_high=rows.db_high,
            freq_low=rows.freq_low,
            freq_high=rows.freq_high,
            start=rows.start,
            end=rows.end,
        )

        populated = cells.populated
        low_freq = int(cells.freq_low[populated].min())
        high_freq = int(cells.freq_high[populated].max())
        start_time = from_epoch_ms(int(cells.start[populated].min()))
        end_time = from_epoch_ms(int(cells.end[populated].max()))
        db_values = cells.db[populated]

        source_meta = SourceMetadata(
            low_freq=low_freq,
            high_freq=high_freq,
            start_time=start_time,
            end_time=end_time,
        )
        render_meta = RenderMetadata(
            width=width,
            height=height,
            freq_per_pixel=(high_freq - low_freq) / width,
            sec_per_pixel=(end_time - start_time).total_seconds() / height,
        )
        logger.debug(
            "extracted %dx%d waterfall from %d rows",
            width,
            height,
            len(rows),
            extra={"duration_ms": int((time.monotonic() - started) * 1000)},
        )
        return Waterfall(
            matrix=cells.db,
            cells=cells,
            db_min=float(db_values.min()),
            db_max=float(db_values.max()),
            source_meta=source_meta,
            render_meta=render_meta,
        )

    def render(self, flt: Filter, options: Optional[ImageOptions] = None) -> RenderResult:
        options = options or ImageOptions()
        waterfall = self.extract(flt, options)
        image = Image.fromarray(colorize(waterfall.matrix, waterfall.db_min, waterfall.db_max))
        if options.add_grid:
            meta = waterfall.source_meta
            image = draw_grid(image, meta.low_freq, meta.high_freq, meta.start_time, meta.end_time)
        return RenderResult(image=image, source_meta=waterfall.source_meta, render_meta=waterfall.render_meta)


def encode_image(image: Image.Image, image_type: str = "png") -> Tuple[bytes, str]:
    """Serialize a rendered image; anything but 'png' is encoded as JPEG."""
    buf = io.BytesIO()
    if (image_type or "").lower() == "png":
        image.save(buf, format="PNG")
        return buf.getvalue(), "image/png"
    image.convert("RGB").save(buf, format="JPEG", quality=JPEG_QUALITY)
    return buf.getvalue(), "image/jpeg"
