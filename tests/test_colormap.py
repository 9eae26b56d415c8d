import math

import numpy as np

from spectre.extraction.colormap import (
    BACKGROUND_COLOR,
    FLAT_LEVEL,
    GRADIENT,
    MAX_LEVEL,
    STOP_LEVELS,
    color_for_level,
    colorize,
    normalize_levels,
)


def test_gradient_ends() -> None:
    assert color_for_level(0) == (0, 0, 0)
    assert color_for_level(MAX_LEVEL) == (255, 255, 255)
    assert color_for_level(MAX_LEVEL + 10) == (255, 255, 255)
    assert color_for_level(-5) == (0, 0, 0)


def test_levels_interpolate_between_stops() -> None:
    assert color_for_level(10923) == (0, 0, 255)
    assert color_for_level(16384) == (0, 128, 255)
    assert color_for_level(32768) == (0, 255, 0)


def test_normalize_levels_spans_full_range() -> None:
    levels = normalize_levels(np.array([-100.0, -50.0, 0.0]), -100.0, 0.0)
    assert levels.tolist() == [0, 32768, 65535]


def test_zero_db_range_maps_to_flat_level() -> None:
    levels = normalize_levels(np.array([-40.0, -40.0]), -40.0, -40.0)
    assert levels.tolist() == [FLAT_LEVEL, FLAT_LEVEL]


def test_colorize_matches_scalar_mapping_and_masks_empty_cells() -> None:
    matrix = np.array([[-100.0, -50.0], [np.nan, 0.0]])
    rgb = colorize(matrix, -100.0, 0.0)
    assert rgb.shape == (2, 2, 3)
    assert rgb.dtype == np.uint8
    assert tuple(rgb[0, 0]) == color_for_level(0)
    assert tuple(rgb[0, 1]) == color_for_level(32768)
    assert tuple(rgb[1, 0]) == BACKGROUND_COLOR
    assert tuple(rgb[1, 1]) == color_for_level(MAX_LEVEL)


def test_colorize_flat_range_uses_single_color() -> None:
    rgb = colorize(np.full((2, 3), -40.0), -40.0, -40.0)
    expected = color_for_level(FLAT_LEVEL)
    assert {tuple(int(c) for c in px) for px in rgb.reshape(-1, 3)} == {expected}


def test_each_stop_level_maps_to_its_gradient_color() -> None:
    assert [color_for_level(math.ceil(level)) for level in STOP_LEVELS] == list(GRADIENT)
