"""Exception hierarchy shared by the palette, compositor and CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Any


class MosaicError(Exception):
    """Base class for every error raised by tile_mosaic."""


class TileDecodeError(MosaicError):
    """A tile or source image could not be opened or decoded.

    Attributes:
        path: The file that failed (a ``Path``, or the file object's name).
        cause: The underlying Pillow / OS error.
    """

    def __init__(self, path: str | Path | Any, cause: Exception) -> None:
        if isinstance(path, (str, Path)):
            self.path = Path(path)
        else:
            self.path = getattr(path, "name", repr(path))
        self.cause = cause
        super().__init__(f"Cannot decode image '{self.path}': {cause}")


class PaletteCacheError(MosaicError):
    """A cached palette file is missing, truncated or malformed."""


class PreconditionError(MosaicError, ValueError):
    """Invalid input that indicates a programming error by the caller."""
