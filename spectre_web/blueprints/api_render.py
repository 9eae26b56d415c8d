"""
Waterfall rendering API blueprint for Spectre Web.

GET /spectre/v1/render selects stored samples with query parameters and
returns the rendered image. Source and render metadata travel in
X-Spectre-* response headers.
"""
from __future__ import annotations

import sqlite3
from typing import Optional

from flask import Blueprint, Response, current_app, jsonify, request

from spectre.extraction.extractor import (
    NoDataError,
    RenderError,
    RenderResult,
    RenderTimeoutError,
    WaterfallExtractor,
    encode_image,
)
from spectre.extraction.query import MAX_FREQ_HZ, Filter, ImageOptions, parse_optional_int
from spectre.util.logging import get_logger
from spectre.util.time import from_epoch_ms, to_epoch_ms, utc_now
from spectre_web.db import get_con

bp = Blueprint("api_render", __name__)

logger = get_logger(__name__)


def _error(status: int, message: str):
    return jsonify({"status": "error", "error": message}), status


def parse_add_grid(value: Optional[str]) -> bool:
    """Grid is on unless explicitly disabled with 0/false/no/off."""
    if value is None:
        return True
    return value.strip().lower() not in ("0", "false", "no", "off")


def parse_render_request(args) -> tuple:
    """Build (Filter, ImageOptions, image_type) from query args; raises ValueError."""
    start_ms = parse_optional_int(args.get("startTime"), 0)
    end_ms = parse_optional_int(args.get("endTime"), to_epoch_ms(utc_now()))
    if start_ms < 0 or end_ms < 0:
        raise ValueError("startTime and endTime must not be negative")
    start_freq = parse_optional_int(args.get("startFreq"), 0)
    end_freq = parse_optional_int(args.get("endFreq"), MAX_FREQ_HZ)
    if not (0 <= start_freq <= MAX_FREQ_HZ and 0 <= end_freq <= MAX_FREQ_HZ):
        raise ValueError(f"startFreq and endFreq must be within 0..{MAX_FREQ_HZ}")
    try:
        start_time, end_time = from_epoch_ms(start_ms), from_epoch_ms(end_ms)
    except (OverflowError, ValueError, OSError):
        raise ValueError("startTime and endTime must be valid epoch milliseconds") from None
    flt = Filter(
        source=args.get("sdr", ""),
        identifier=args.get("identifier", ""),
        start_freq=start_freq,
        end_freq=end_freq,
        start_time=start_time,
        end_time=end_time,
    )
    options = ImageOptions(
        width=parse_optional_int(args.get("imgWidth"), 0),
        height=parse_optional_int(args.get("imgHeight"), 0),
        add_grid=parse_add_grid(args.get("addGrid")),
    )
    image_type = "png" if (args.get("imageType") or "").strip().lower() == "png" else "jpeg"
    return flt, options, image_type


def metadata_headers(result: RenderResult) -> dict:
    src, img = result.source_meta, result.render_meta
    return {
        "X-Spectre-Low-Freq": str(src.low_freq),
        "X-Spectre-High-Freq": str(src.high_freq),
        "X-Spectre-Start-Time": str(to_epoch_ms(src.start_time)),
        "X-Spectre-End-Time": str(to_epoch_ms(src.end_time)),
        "X-Spectre-Image-Width": str(img.width),
        "X-Spectre-Image-Height": str(img.height),
        "X-Spectre-Freq-Per-Pixel": f"{img.freq_per_pixel:.3f}",
        "X-Spectre-Sec-Per-Pixel": f"{img.sec_per_pixel:.6f}",
    }


@bp.get("/spectre/v1/render")
def render():
    try:
        flt, options, image_type = parse_render_request(request.args)
    except ValueError as exc:
        return _error(400, f"invalid render parameters: {exc}")

    timeout = current_app.config["SPECTRE_RENDER_TIMEOUT_S"]
    try:
        con = get_con()
        result = WaterfallExtractor(con, timeout=timeout if timeout > 0 else None).render(flt, options)
    except NoDataError:
        return _error(404, "no data")
    except RenderTimeoutError as exc:
        logger.warning("render timed out: %s", exc, extra={"error_type": "render_timeout"})
        return _error(504, str(exc))
    except (RenderError, sqlite3.Error) as exc:
        logger.error("render failed: %s", exc, extra={"error_type": "render"})
        return _error(500, f"render failed: {exc}")

    data, content_type = encode_image(result.image, image_type)
    return Response(data, mimetype=content_type, headers=metadata_headers(result))
