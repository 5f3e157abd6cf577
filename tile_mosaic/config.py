"""Centralised configuration via a frozen dataclass."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from tile_mosaic.errors import PreconditionError


@dataclass(frozen=True)
class MosaicConfig:
    """All tuneable parameters for a mosaic run.

    Attributes:
        tile_width:      Width of each placed tile in output pixels.
        tile_height:     Height of each placed tile in output pixels.
        scale:           Output canvas size relative to the source image.
        dither:          Floyd-Steinberg dither the cell grid before lookup.
        palette_dir:     Folder of candidate tile images.
        cache_path:      Optional palette cache file (read if present, else written).
        output_format:   Image format for saved files.
        save_comparison: Also write a Source | Mosaic preview.
        input_dir:       Folder to scan for source images (batch mode).
        output_dir:      Folder for results (batch mode).
    """

    # Tiles
    tile_width: int = 16
    tile_height: int = 16
    palette_dir: Path = field(default_factory=lambda: Path("tiles"))
    cache_path: Path | None = None

    # Composition
    scale: float = 1.0
    dither: bool = False

    # Output
    output_format: str = "png"
    save_comparison: bool = False

    # Paths
    input_dir: Path = field(default_factory=lambda: Path("images"))
    output_dir: Path = field(default_factory=lambda: Path("output"))

    SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
        {".jpg", ".jpeg", ".png", ".bmp", ".gif", ".tiff", ".tif", ".webp", ".jfif"}
    )

    def __post_init__(self) -> None:
        if self.tile_width < 1 or self.tile_height < 1:
            msg = f"Tile size must be positive, got {self.tile_width}x{self.tile_height}"
            raise PreconditionError(msg)
        if self.scale <= 0:
            msg = f"Scale must be positive, got {self.scale}"
            raise PreconditionError(msg)
