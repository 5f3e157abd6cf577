"""Compose the output mosaic: one palette tile per cell of the resized source."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable
from typing import Any

import numpy as np
from PIL import Image

from tile_mosaic.color_utils import to_float
from tile_mosaic.dithering import apply_dithering
from tile_mosaic.errors import PreconditionError
from tile_mosaic.image_io import as_rgba_array, blit, load_image, resize_exact, to_array
from tile_mosaic.palette import Palette

logger = logging.getLogger(__name__)


def compute_canvas_size(width: int, height: int, scale: float) -> tuple[int, int]:
    """Output canvas (w, h): the source size times *scale*, floored."""
    return math.floor(width * scale), math.floor(height * scale)


def compute_grid_size(
    canvas_width: int,
    canvas_height: int,
    tile_width: int,
    tile_height: int,
) -> tuple[int, int]:
    """Number of whole tiles that fit on the canvas, as (columns, rows).

    Leftover pixels on the right / bottom edge get no tile.
    """
    if tile_width < 1 or tile_height < 1:
        msg = f"Tile size must be positive, got {tile_width}x{tile_height}"
        raise PreconditionError(msg)
    grid_w = canvas_width // tile_width
    grid_h = canvas_height // tile_height
    if grid_w < 1 or grid_h < 1:
        msg = (
            f"Canvas {canvas_width}x{canvas_height} is smaller than one "
            f"{tile_width}x{tile_height} tile; increase the scale"
        )
        raise PreconditionError(msg)
    return grid_w, grid_h


def sample_grid(
    source: Image.Image | np.ndarray,
    scale: float,
    tile_width: int,
    tile_height: int,
) -> np.ndarray:
    """Resize *source* so each pixel is the colour sample of one output tile.

    Returns:
        (grid_h, grid_w, 4) uint8 array.
    """
    pixels = as_rgba_array(source)
    h, w = pixels.shape[:2]
    canvas_w, canvas_h = compute_canvas_size(w, h, scale)
    grid_w, grid_h = compute_grid_size(canvas_w, canvas_h, tile_width, tile_height)
    return resize_exact(pixels, (grid_w, grid_h))


def composite(
    source: Image.Image | np.ndarray,
    scale: float,
    tile_width: int,
    tile_height: int,
    palette: Palette,
    dither: bool = False,
    loader: Callable[[Any], Image.Image] = load_image,
    progress: Callable[[int, int], None] | None = None,
) -> np.ndarray:
    """Build the mosaic for *source* from the tiles in *palette*.

    Args:
        source:      Decoded source image (PIL or (H, W, 4) uint8).
        scale:       Canvas size relative to the source.
        tile_width:  Output width of every tile.
        tile_height: Output height of every tile.
        palette:     Candidate tiles with their mean colours.
        dither:      Floyd-Steinberg the cell grid against the palette first.
        loader:      Resolves a palette tile reference to an image.
        progress:    Optional ``(done, total)`` callback after each cell.

    Returns:
        (H, W, 4) uint8 canvas; pixels beyond the last whole tile stay
        transparent black.

    Raises:
        TileDecodeError: A winning tile could not be decoded. No partial
            canvas is returned.
    """
    pixels = as_rgba_array(source)
    h, w = pixels.shape[:2]
    canvas_w, canvas_h = compute_canvas_size(w, h, scale)

    grid = sample_grid(pixels, scale, tile_width, tile_height)
    grid_h, grid_w = grid.shape[:2]
    logger.info(
        "Canvas %dx%d, grid %dx%d of %dx%d tiles",
        canvas_w, canvas_h, grid_w, grid_h, tile_width, tile_height,
    )

    if dither:
        t0 = time.perf_counter()
        apply_dithering(grid, palette)
        logger.info("Dithering done  (%.1f s)", time.perf_counter() - t0)

    t0 = time.perf_counter()
    matches = palette.nearest_indices(to_float(grid).reshape(-1, 4))
    logger.info("Matched %d cells  (%.1f s)", len(matches), time.perf_counter() - t0)

    canvas = np.zeros((canvas_h, canvas_w, 4), dtype=np.uint8)
    resized: dict[int, np.ndarray] = {}
    total = grid_w * grid_h

    t0 = time.perf_counter()
    for cell, index in enumerate(matches.tolist()):
        y, x = divmod(cell, grid_w)
        tile = resized.get(index)
        if tile is None:
            image = loader(palette.tiles[index])
            tile = resize_exact(to_array(image), (tile_width, tile_height))
            resized[index] = tile
        blit(canvas, tile, x * tile_width, y * tile_height)
        if progress is not None:
            progress(cell + 1, total)

    logger.info(
        "Placed %d tiles using %d distinct images  (%.1f s)",
        total, len(resized), time.perf_counter() - t0,
    )
    return canvas
