"""Signal level to color mapping for waterfall rasters.

Seven stops, evenly spaced over the 16-bit level range:
black -> blue -> cyan -> green -> yellow -> red -> white.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np  # type: ignore

RGB = Tuple[int, int, int]

GRADIENT: Tuple[RGB, ...] = (
    (0, 0, 0),        # black
    (0, 0, 255),      # blue
    (0, 255, 255),    # cyan
    (0, 255, 0),      # green
    (255, 255, 0),    # yellow
    (255, 0, 0),      # red
    (255, 255, 255),  # white
)

MAX_LEVEL = 65535
STOP_LEVELS = tuple(i * MAX_LEVEL / (len(GRADIENT) - 1) for i in range(len(GRADIENT)))

# Used for every populated cell when all dB values are identical.
FLAT_LEVEL = MAX_LEVEL // 2
BACKGROUND_COLOR: RGB = (0, 0, 0)


def color_for_level(level: int) -> RGB:
    level = min(max(int(level), 0), MAX_LEVEL)
    for i in range(1, len(GRADIENT)):
        if level < STOP_LEVELS[i]:
            prev_c, curr_c = GRADIENT[i - 1], GRADIENT[i]
            fract = (level - STOP_LEVELS[i - 1]) / (STOP_LEVELS[i] - STOP_LEVELS[i - 1])
            return (
                int(round(prev_c[0] + (curr_c[0] - prev_c[0]) * fract)),
                int(round(prev_c[1] + (curr_c[1] - prev_c[1]) * fract)),
                int(round(prev_c[2] + (curr_c[2] - prev_c[2]) * fract)),
            )
    return GRADIENT[-1]


def normalize_levels(values: np.ndarray, db_min: float, db_max: float) -> np.ndarray:
    """Scale dB values to 0..MAX_LEVEL; NaN entries come back as 0.

    A zero (or non-finite) dB range maps everything to FLAT_LEVEL.
    """
    values = np.asarray(values, dtype=np.float64)
    db_range = db_max - db_min
    if not np.isfinite(db_range) or db_range <= 0:
        return np.full(values.shape, FLAT_LEVEL, dtype=np.uint16)
    scaled = np.rint((values - db_min) / db_range * MAX_LEVEL)
    scaled = np.nan_to_num(scaled, nan=0.0)
    return np.clip(scaled, 0, MAX_LEVEL).astype(np.uint16)


def colorize(matrix: np.ndarray, db_min: float, db_max: float) -> np.ndarray:
    """Map a (H, W) dB matrix to a (H, W, 3) uint8 RGB array.

    NaN cells (no samples) get BACKGROUND_COLOR.
    """
    levels = normalize_levels(matrix, db_min, db_max).astype(np.float64)
    stops = np.asarray(STOP_LEVELS, dtype=np.float64)
    gradient = np.asarray(GRADIENT, dtype=np.float64)
    rgb = np.empty(matrix.shape + (3,), dtype=np.uint8)
    for channel in range(3):
        rgb[..., channel] = np.rint(np.interp(levels, stops, gradient[:, channel])).astype(np.uint8)
    rgb[np.isnan(matrix)] = BACKGROUND_COLOR
    return rgb
