from datetime import datetime, timezone

from PIL import Image

from spectre.extraction.grid import (
    GRID_BACKGROUND_COLOR,
    GRID_COLOR,
    GRID_MARGIN_LEFT,
    GRID_MARGIN_TOP,
    draw_grid,
    find_grid_step,
    readable_freq,
)


def test_find_grid_step_halves_down_to_minimum() -> None:
    assert find_grid_step(640, 100) == 160
    assert find_grid_step(480, 20) == 30
    assert find_grid_step(100, 100) == 100
    assert find_grid_step(50, 100) == 50


def test_readable_freq_units() -> None:
    assert readable_freq(999) == "999.00 Hz"
    assert readable_freq(12_500) == "12.50 kHz"
    assert readable_freq(400_000_000) == "400.00 MHz"
    assert readable_freq(2_400_000_000) == "2.40 GHz"


def test_draw_grid_frames_image_with_margins() -> None:
    source = Image.new("RGB", (200, 50), (10, 20, 30))
    start = datetime(2021, 12, 1, 10, 0, 0, tzinfo=timezone.utc)
    end = datetime(2021, 12, 1, 10, 5, 0, tzinfo=timezone.utc)
    framed = draw_grid(source, 400_000_000, 400_050_000, start, end)

    assert framed.size == (200 + GRID_MARGIN_LEFT, 50 + GRID_MARGIN_TOP)
    assert framed.getpixel((GRID_MARGIN_LEFT + 5, GRID_MARGIN_TOP + 5)) == (10, 20, 30)
    assert framed.getpixel((GRID_MARGIN_LEFT - 1, framed.height - 1)) == GRID_BACKGROUND_COLOR
    # Frequency tick above the first column.
    assert framed.getpixel((GRID_MARGIN_LEFT, GRID_MARGIN_TOP - 5)) == GRID_COLOR
    # Time tick left of the first row.
    assert framed.getpixel((GRID_MARGIN_LEFT - 5, GRID_MARGIN_TOP)) == GRID_COLOR
