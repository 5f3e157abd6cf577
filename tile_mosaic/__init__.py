"""
Tile Mosaic Generator
=====================

Rebuild a source image out of many small tile images. Each tile is
reduced to its mean RGBA colour; every cell of the resized source is
then filled with the tile whose colour is nearest under a redmean-style
perceptual metric, optionally after Floyd-Steinberg dithering.
"""

__version__ = "0.3.0"

from tile_mosaic.color_utils import QFACTOR, color_distance, color_distances
from tile_mosaic.compositor import (
    compute_canvas_size,
    compute_grid_size,
    composite,
    sample_grid,
)
from tile_mosaic.config import MosaicConfig
from tile_mosaic.dithering import ColorMap, apply_dithering
from tile_mosaic.errors import (
    MosaicError,
    PaletteCacheError,
    PreconditionError,
    TileDecodeError,
)
from tile_mosaic.image_io import load_image, resize_exact, save_image
from tile_mosaic.palette import Palette, PaletteEntry, average_color, build_palette

__all__ = [
    "QFACTOR",
    "ColorMap",
    "MosaicConfig",
    "MosaicError",
    "Palette",
    "PaletteCacheError",
    "PaletteEntry",
    "PreconditionError",
    "TileDecodeError",
    "apply_dithering",
    "average_color",
    "build_palette",
    "color_distance",
    "color_distances",
    "composite",
    "compute_canvas_size",
    "compute_grid_size",
    "load_image",
    "resize_exact",
    "sample_grid",
    "save_image",
]
