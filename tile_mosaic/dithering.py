"""Floyd-Steinberg error-diffusion dithering over an 8-bit RGBA buffer.

Runs **before** tile lookup: every grid pixel is snapped to its palette
colour through the colour map and the quantisation error is pushed onto
the neighbours that have not been visited yet::

            *    7/16
    3/16  5/16   1/16

Error is integer arithmetic on the RGB channels only (alpha is quantised
but not diffused); each share is truncated toward zero and the receiving
channel is clamped to 0-255.
"""

from __future__ import annotations

import logging
from typing import Protocol

import numpy as np

logger = logging.getLogger(__name__)

# (dx, dy, weight / 16)
_KERNEL = ((1, 0, 7), (-1, 1, 3), (0, 1, 5), (1, 1, 1))


class ColorMap(Protocol):
    """Anything that can quantise an 8-bit RGBA pixel to a fixed colour set."""

    def index_of(self, color8: np.ndarray) -> int: ...

    def map_color(self, color8: np.ndarray) -> None: ...


def apply_dithering(grid: np.ndarray, color_map: ColorMap) -> None:
    """Dither *grid* in place against *color_map*.

    Args:
        grid:      (H, W, 4) uint8 - mutated in place, row-major order.
        color_map: Provides ``map_color`` for the per-pixel quantisation.
    """
    h, w = grid.shape[:2]
    logger.debug("Dithering %dx%d grid …", w, h)

    for y in range(h):
        for x in range(w):
            pixel = grid[y, x]
            old = pixel[:3].astype(np.int16)
            color_map.map_color(pixel)
            err = old - pixel[:3].astype(np.int16)
            if not err.any():
                continue

            for dx, dy, weight in _KERNEL:
                nx, ny = x + dx, y + dy
                if nx < 0 or nx >= w or ny >= h:
                    continue
                # int() truncates toward zero for negative error too
                share = np.array([int(e * weight / 16) for e in err], dtype=np.int16)
                target = grid[ny, nx, :3].astype(np.int16) + share
                grid[ny, nx, :3] = np.clip(target, 0, 255).astype(np.uint8)
