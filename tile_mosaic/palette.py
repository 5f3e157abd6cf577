"""Tile averaging, the immutable tile palette, and the palette cache file."""

from __future__ import annotations

import logging
import time
import zipfile
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path
from typing import Any, NamedTuple

import numpy as np
from PIL import Image

from tile_mosaic.color_utils import QFACTOR, color_distances, to_byte, to_float
from tile_mosaic.errors import PaletteCacheError, PreconditionError
from tile_mosaic.image_io import as_rgba_array, load_image

logger = logging.getLogger(__name__)


def average_color(image: Image.Image | np.ndarray) -> np.ndarray:
    """Mean RGBA colour of every pixel, in linear float space.

    No weighting and no alpha premultiplication. Sums are accumulated in
    float64 so a uniform tile averages back to exactly its own colour.

    Returns:
        (4,) float32 array.
    """
    pixels = as_rgba_array(image)
    if pixels.shape[0] == 0 or pixels.shape[1] == 0:
        msg = f"Cannot average a zero-area image (shape {pixels.shape})"
        raise PreconditionError(msg)

    floats = to_float(pixels).reshape(-1, 4)
    sums = floats.sum(axis=0, dtype=np.float64)
    return (sums / len(floats)).astype(np.float32)


class PaletteEntry(NamedTuple):
    """One tile and its representative colour."""

    tile: Any
    color: np.ndarray


class Palette:
    """Ordered, read-only set of tiles with precomputed mean colours.

    Lookups are a brute-force scan over every entry; on equal distance
    the entry listed first wins. Satisfies the :class:`~tile_mosaic.dithering.ColorMap`
    protocol so it can drive error diffusion directly.
    """

    def __init__(self, entries: Sequence[tuple[Any, Sequence[float]]]) -> None:
        entries = list(entries)
        if not entries:
            msg = "A palette needs at least one entry"
            raise PreconditionError(msg)

        self._tiles = tuple(tile for tile, _ in entries)
        colors = np.array([color for _, color in entries], dtype=np.float32)
        if colors.shape != (len(entries), 4):
            msg = f"Palette colours must be RGBA, got shape {colors.shape}"
            raise PreconditionError(msg)
        colors.setflags(write=False)
        self._colors = colors

    def __len__(self) -> int:
        return len(self._tiles)

    def __getitem__(self, index: int) -> PaletteEntry:
        return PaletteEntry(self._tiles[index], self._colors[index])

    def __iter__(self) -> Iterator[PaletteEntry]:
        for i in range(len(self)):
            yield self[i]

    def __repr__(self) -> str:
        return f"Palette({len(self)} entries)"

    @property
    def tiles(self) -> tuple[Any, ...]:
        return self._tiles

    @property
    def colors(self) -> np.ndarray:
        """(N, 4) float32, read-only."""
        return self._colors

    # -- Matching -------------------------------------------------------

    def nearest_indices(
        self,
        colors: np.ndarray,
        chunk_size: int = 512,
    ) -> np.ndarray:
        """Index of the nearest entry for each query colour.

        Args:
            colors: (M, 4) float RGBA queries.
            chunk_size: Queries scored per batch (controls peak RAM).

        Returns:
            (M,) int64 indices into the palette.
        """
        queries = np.asarray(colors, dtype=np.float32).reshape(-1, 4)
        out = np.empty(len(queries), dtype=np.int64)
        for i in range(0, len(queries), chunk_size):
            j = min(i + chunk_size, len(queries))
            dist = color_distances(
                self._colors[np.newaxis, :, :],
                queries[i:j, np.newaxis, :],
                0,
                QFACTOR,
            )
            # argmin returns the first occurrence, which is the tie-break.
            out[i:j] = np.argmin(dist, axis=1)
        return out

    def nearest_match(self, color: np.ndarray) -> PaletteEntry:
        """Entry whose colour is closest to *color* (float RGBA)."""
        return self[int(self.nearest_indices(np.asarray(color)[np.newaxis])[0])]

    def index_of(self, color8: np.ndarray) -> int:
        """Nearest entry index for an 8-bit RGBA colour."""
        return int(self.nearest_indices(to_float(color8)[np.newaxis])[0])

    def map_color(self, color8: np.ndarray) -> None:
        """Replace an 8-bit RGBA pixel, in place, with its nearest palette colour."""
        color8[...] = to_byte(self._colors[self.index_of(color8)])

    # -- Cache file -----------------------------------------------------

    def save(self, path: str | Path) -> None:
        """Write tile paths and float32 colours to an ``.npz`` file at *path*.

        Only path tiles (``str`` or ``Path``) can be cached, since they are
        stored as text and reloaded as ``Path``.

        Raises:
            PreconditionError: A tile reference is not a path.
        """
        bad = [t for t in self._tiles if not isinstance(t, (str, Path))]
        if bad:
            msg = f"Only path tiles can be cached, got {type(bad[0]).__name__} {bad[0]!r}"
            raise PreconditionError(msg)

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("wb") as fh:
            np.savez(
                fh,
                tiles=np.array([str(t) for t in self._tiles], dtype=np.str_),
                colors=self._colors,
            )
        logger.debug("Palette cache written to %s (%d entries)", path, len(self))

    @classmethod
    def load(cls, path: str | Path) -> Palette:
        """Read a palette written by :meth:`save`; tiles come back as ``Path``."""
        try:
            with np.load(path, allow_pickle=False) as data:
                tiles = [Path(t) for t in data["tiles"].tolist()]
                colors = data["colors"]
        # TypeError: a bare .npy array is not a context manager
        except (OSError, KeyError, TypeError, ValueError, zipfile.BadZipFile) as exc:
            msg = f"Cannot read palette cache '{path}': {exc}"
            raise PaletteCacheError(msg) from exc

        if colors.shape != (len(tiles), 4):
            msg = (
                f"Palette cache '{path}' is inconsistent: "
                f"{len(tiles)} tiles vs colours of shape {colors.shape}"
            )
            raise PaletteCacheError(msg)
        logger.debug("Palette cache read from %s (%d entries)", path, len(tiles))
        return cls(list(zip(tiles, colors, strict=True)))


def build_palette(
    tiles: Sequence[Any],
    loader: Callable[[Any], Image.Image] = load_image,
    progress: Callable[[int, int], None] | None = None,
) -> Palette:
    """Decode every candidate tile and average it into a :class:`Palette`.

    Args:
        tiles: Tile references in the order they should appear.
        loader: Turns a tile reference into an image; must raise
            :class:`~tile_mosaic.errors.TileDecodeError` on failure.
        progress: Optional ``(done, total)`` callback after each tile.

    Raises:
        TileDecodeError: The first tile that fails to decode aborts the build.
        PreconditionError: *tiles* is empty.
    """
    total = len(tiles)
    logger.info("Averaging %d tiles …", total)
    t0 = time.perf_counter()

    entries = []
    for i, tile in enumerate(tiles, 1):
        color = average_color(loader(tile))
        entries.append((tile, color))
        if progress is not None:
            progress(i, total)

    palette = Palette(entries)
    logger.info("Palette ready  (%.1f s)", time.perf_counter() - t0)
    return palette
