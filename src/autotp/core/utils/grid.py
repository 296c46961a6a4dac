# src/autotp/core/utils/grid.py
from __future__ import annotations

import math


def get_grid_range(price: float, lower: float, upper: float, grids: int) -> tuple[float, float, float]:
    """
    Zone of the grid that contains `price`.

    The range [lower, upper] is split into `grids` zones of equal width.
    Returns (zone_lower, zone_upper, width).

    A price sitting exactly on a zone boundary gets the zone centred on it:
    (price - width, price + width). That includes price == lower, which yields
    a zone starting below `lower`. No validation: callers validate bounds at
    config load.
    """
    width = (upper - lower) / grids
    offset = price - lower
    if offset % width == 0:
        return price - width, price + width, width

    i = math.floor(offset / width)
    return lower + i * width, lower + (i + 1) * width, width
