#!/usr/bin/env python3
"""Render a waterfall image from a spectre SQLite store."""

from __future__ import annotations

import argparse
import os
import sqlite3
import sys
from datetime import datetime, timezone
from typing import List, Optional

from spectre.extraction.extractor import NoDataError, RenderError, WaterfallExtractor, encode_image
from spectre.extraction.query import MAX_FREQ_HZ, Filter, ImageOptions
from spectre.util.exit_codes import ArgumentParser, ExitCode
from spectre.util.logging import configure_logging, get_logger

logger = get_logger(__name__)

TIME_FMT = "%Y-%m-%dT%H:%M:%S"


def _utc_time(text: str) -> datetime:
    try:
        return datetime.strptime(text, TIME_FMT).replace(tzinfo=timezone.utc)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"unable to parse {text!r}, expected format 2006-01-02T15:04:05") from exc


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = ArgumentParser(description="Render collected spectre samples into a waterfall image")
    p.add_argument("--sqlite-file", dest="sqlite_file", default="/tmp/spectre", help="SQLite DB file to read (default /tmp/spectre)")
    p.add_argument("--source", default="", help="Only samples of this source, e.g. rtlsdr or hackrf (default: any)")
    p.add_argument("--identifier", default="", help="Only samples of this collector; SQL LIKE wildcards allowed")
    p.add_argument("--start-freq", dest="start_freq", type=int, default=0, help="Lowest frequency in Hz")
    p.add_argument("--end-freq", dest="end_freq", type=int, default=MAX_FREQ_HZ, help="Highest frequency in Hz")
    p.add_argument("--start-time", dest="start_time", type=_utc_time, default=_utc_time("2000-01-02T15:04:05"), help="UTC, format 2006-01-02T15:04:05")
    p.add_argument("--end-time", dest="end_time", type=_utc_time, default=_utc_time("2100-01-02T15:04:05"), help="UTC, format 2006-01-02T15:04:05")
    p.add_argument("--img-path", dest="img_path", default="/tmp/out.jpg", help="Output file; .png writes PNG, anything else JPEG")
    p.add_argument("--img-width", dest="img_width", type=int, default=640, help="Width in pixels, 0 = what the data supports")
    p.add_argument("--img-height", dest="img_height", type=int, default=480, help="Height in pixels, 0 = what the data supports")
    p.add_argument("--no-grid", dest="add_grid", action="store_false", help="Do not draw the axis grid")
    p.add_argument("--timeout", type=float, default=None, help="Abort store queries after this many seconds")
    p.add_argument("--log-level", dest="log_level", default=None)
    args = p.parse_args(argv)
    if args.img_width < 0 or args.img_height < 0:
        p.error("--img-width and --img-height must not be negative")
    return args


def run(args: argparse.Namespace) -> int:
    path = os.path.abspath(args.sqlite_file)
    try:
        con = sqlite3.connect(f"file:{path}?mode=ro", uri=True)
    except sqlite3.Error as exc:
        logger.error("unable to open sqlite DB %s: %s", path, exc)
        return ExitCode.GENERAL_ERROR

    flt = Filter(
        source=args.source,
        identifier=args.identifier,
        start_freq=args.start_freq,
        end_freq=args.end_freq,
        start_time=args.start_time,
        end_time=args.end_time,
    )
    options = ImageOptions(width=args.img_width, height=args.img_height, add_grid=args.add_grid)
    try:
        result = WaterfallExtractor(con, timeout=args.timeout).render(flt, options)
    except NoDataError as exc:
        logger.error("%s", exc)
        return ExitCode.NO_DATA
    except RenderError as exc:
        logger.error("render failed: %s", exc, extra={"error_type": "render"})
        return ExitCode.GENERAL_ERROR
    finally:
        con.close()

    image_type = "png" if args.img_path.lower().endswith(".png") else "jpeg"
    data, _ = encode_image(result.image, image_type)
    with open(args.img_path, "wb") as fh:
        fh.write(data)

    meta, img = result.source_meta, result.render_meta
    logger.info(
        "wrote %s: %dx%d px, %d-%d Hz, %s - %s, %.2f Hz/px, %.3f s/px",
        args.img_path,
        img.width,
        img.height,
        meta.low_freq,
        meta.high_freq,
        meta.start_time.strftime(TIME_FMT),
        meta.end_time.strftime(TIME_FMT),
        img.freq_per_pixel,
        img.sec_per_pixel,
    )
    return ExitCode.SUCCESS


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level)
    code = run(args)
    if code != ExitCode.SUCCESS:
        logger.info("exiting with status %d: %s", code, ExitCode.message(code))
    return code


if __name__ == "__main__":
    sys.exit(main())
