from __future__ import annotations

import math
from typing import Sequence

from pixpen.models.domain import Box, PixelRect

NORMALIZED_MAX = 1000


def is_valid_box(candidate: Sequence[float]) -> bool:
    """
    Check a [ymin, xmin, ymax, xmax] candidate on the 0-1000 grid.

    All four values must be finite and inside [0, 1000], with a strictly
    positive extent on both axes. Zero-area and inverted boxes are rejected.
    """
    if len(candidate) != 4:
        return False
    try:
        values = [float(v) for v in candidate]
    except (TypeError, ValueError, OverflowError):
        return False
    if not all(math.isfinite(v) and 0 <= v <= NORMALIZED_MAX for v in values):
        return False
    ymin, xmin, ymax, xmax = values
    return ymin < ymax and xmin < xmax


def as_box(candidate: Sequence[float]) -> Box:
    ymin, xmin, ymax, xmax = (float(v) for v in candidate)
    return (ymin, xmin, ymax, xmax)


def box_area(box: Box) -> float:
    ymin, xmin, ymax, xmax = box
    return max((ymax - ymin) * (xmax - xmin), 0.0)


def to_pixel_rect(box: Box, width: int, height: int) -> PixelRect:
    """Map a normalized box onto a width x height pixel grid (extent floored at 1px)."""
    ymin, xmin, ymax, xmax = box
    x = _round_half_up(xmin / NORMALIZED_MAX * width)
    y = _round_half_up(ymin / NORMALIZED_MAX * height)
    w = max(1, _round_half_up((xmax - xmin) / NORMALIZED_MAX * width))
    h = max(1, _round_half_up((ymax - ymin) / NORMALIZED_MAX * height))
    return PixelRect(x=x, y=y, width=w, height=h)


def fits_canvas(rect: PixelRect, width: int, height: int) -> bool:
    return 0 <= rect.x < width and 0 <= rect.y < height and rect.width > 0 and rect.height > 0


def screen_to_canvas(
    x: float,
    y: float,
    display_width: float,
    display_height: float,
    canvas_width: int,
    canvas_height: int,
) -> tuple[float, float]:
    """Scale a pointer offset on the displayed element to natural pixel space."""
    if display_width <= 0 or display_height <= 0:
        raise ValueError("Display size must be positive")
    return x * canvas_width / display_width, y * canvas_height / display_height


def longest_edge_fit(width: int, height: int, max_edge: int) -> tuple[int, int]:
    """Size that keeps the aspect ratio with the longest edge capped at max_edge."""
    longest = max(width, height)
    if longest <= max_edge:
        return width, height
    scale = max_edge / longest
    return max(1, _round_half_up(width * scale)), max(1, _round_half_up(height * scale))


def _round_half_up(value: float) -> int:
    # Python's round() is banker's rounding; pixel edges round .5 up
    return int(math.floor(value + 0.5))
