"""Axis grid drawn around a rendered waterfall.

The waterfall is pasted at (GRID_MARGIN_LEFT, GRID_MARGIN_TOP) on a white
canvas. Frequency ticks run along the top margin, time ticks down the left
margin, each labelled with the value at that pixel.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Union

from PIL import Image, ImageDraw, ImageFont

from spectre.util.duration import format_duration
from spectre.util.time import to_epoch_ms

GRID_MARGIN_TOP = 20    # pixels
GRID_MARGIN_LEFT = 150  # pixels
GRID_TICK_LEN = 10      # pixels
GRID_MIN_STEP_X = 100   # pixels
GRID_MIN_STEP_Y = 20    # pixels

GRID_COLOR = (0, 0, 0)
GRID_BACKGROUND_COLOR = (255, 255, 255)

TIME_LABEL_FMT = "%Y-%m-%dT%H:%M:%S"

_FREQ_SUFFIXES = ("Hz", "kHz", "MHz", "GHz", "THz")

Font = Union[ImageFont.ImageFont, ImageFont.FreeTypeFont]


def find_grid_step(extent: int, minimum: int) -> int:
    """Largest repeated halving of `extent` that stays at or above `minimum`."""
    step = int(extent)
    while step > minimum:
        half = step // 2
        if half < minimum:
            return step
        step = half
    return max(step, 1)


def readable_freq(freq: int) -> str:
    exp = 0
    f = float(freq)
    while f > 1000:
        f /= 1000.0
        exp += 1
    if exp >= len(_FREQ_SUFFIXES):
        return f"{int(freq)} Hz"
    return f"{freq / 1000 ** exp:.2f} {_FREQ_SUFFIXES[exp]}"


def _load_font() -> Font:
    try:
        return ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf", 10)
    except OSError:
        return ImageFont.load_default()


def draw_grid(
    image: Image.Image,
    low_freq: int,
    high_freq: int,
    start_time: datetime,
    end_time: datetime,
) -> Image.Image:
    """Return a new, larger image: `image` framed by labelled axes."""
    width, height = image.size
    canvas = Image.new("RGB", (width + GRID_MARGIN_LEFT, height + GRID_MARGIN_TOP), GRID_BACKGROUND_COLOR)
    canvas.paste(image.convert("RGB"), (GRID_MARGIN_LEFT, GRID_MARGIN_TOP))

    draw = ImageDraw.Draw(canvas)
    font = _load_font()

    x_step = find_grid_step(width, GRID_MIN_STEP_X)
    for i in range(0, width, x_step):
        x = GRID_MARGIN_LEFT + i
        draw.line([(x, GRID_MARGIN_TOP - GRID_TICK_LEN), (x, GRID_MARGIN_TOP)], fill=GRID_COLOR)
        freq = low_freq + (i * (high_freq - low_freq)) // width
        draw.text((x + 5, 4), readable_freq(freq), fill=GRID_COLOR, font=font)

    span_ms = to_epoch_ms(end_time) - to_epoch_ms(start_time)
    y_step = find_grid_step(height, GRID_MIN_STEP_Y)
    for i in range(0, height, y_step):
        y = GRID_MARGIN_TOP + i
        draw.line([(GRID_MARGIN_LEFT - GRID_TICK_LEN, y), (GRID_MARGIN_LEFT, y)], fill=GRID_COLOR)
        offset_ms = (i * span_ms) // height
        stamp = start_time + timedelta(milliseconds=offset_ms)
        draw.text((5, y - 9), format_duration(offset_ms / 1000.0), fill=GRID_COLOR, font=font)
        draw.text((5, y + 3), stamp.strftime(TIME_LABEL_FMT), fill=GRID_COLOR, font=font)

    return canvas
