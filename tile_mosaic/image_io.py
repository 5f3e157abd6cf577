"""Image loading, exact resizing, blitting and saving."""

from __future__ import annotations

from pathlib import Path
from typing import IO

import numpy as np
from PIL import Image, ImageDraw, ImageFont
from scipy import ndimage
from skimage.transform import resize

from tile_mosaic.errors import PreconditionError, TileDecodeError


def load_image(path: str | Path | IO[bytes]) -> Image.Image:
    """Open and fully decode an image as RGBA.

    *path* may also be a binary file object, e.g. an upload buffer.

    Raises:
        TileDecodeError: The file is missing, unreadable, not an image,
            or larger than Pillow's decompression-bomb limit.
    """
    try:
        with Image.open(path) as img:
            return img.convert("RGBA")
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise TileDecodeError(path, exc) from exc


def to_array(image: Image.Image) -> np.ndarray:
    """Return the (H, W, 4) uint8 pixel buffer of *image*."""
    return np.array(image.convert("RGBA"), dtype=np.uint8)


def as_rgba_array(image: Image.Image | np.ndarray) -> np.ndarray:
    """Pixel buffer of a PIL image, or an already-decoded (H, W, 4) array.

    Arrays are not converted: anything other than four channels is rejected
    rather than reinterpreted.
    """
    if isinstance(image, Image.Image):
        return to_array(image)
    pixels = np.asarray(image)
    if pixels.ndim != 3 or pixels.shape[2] != 4:
        msg = f"Expected an (H, W, 4) RGBA array, got shape {pixels.shape}"
        raise PreconditionError(msg)
    return pixels


def resize_exact(array: np.ndarray, size: tuple[int, int]) -> np.ndarray:
    """Resize an (H, W, 4) uint8 image to exactly *size* = (w, h).

    A Gaussian pre-filter with sigma ``(factor - 1) / 2`` per downscaled
    axis suppresses aliasing, then a bilinear resample hits the exact
    target grid. Aspect ratio is *not* preserved.

    Returns:
        (h, w, 4) uint8 array.
    """
    out_w, out_h = size
    if out_w < 1 or out_h < 1:
        msg = f"Resize target must be at least 1x1, got {out_w}x{out_h}"
        raise PreconditionError(msg)

    h, w = array.shape[:2]
    if (w, h) == (out_w, out_h):
        return array.copy()

    img = array.astype(np.float64) / 255.0
    sigma = (
        max(0.0, (h / out_h - 1) / 2),
        max(0.0, (w / out_w - 1) / 2),
        0.0,
    )
    if sigma[0] > 0 or sigma[1] > 0:
        img = ndimage.gaussian_filter(img, sigma=sigma, mode="nearest")

    out = resize(
        img,
        (out_h, out_w, array.shape[2]),
        order=1,
        mode="edge",
        anti_aliasing=False,
        preserve_range=True,
    )
    return np.clip(np.rint(out * 255.0), 0, 255).astype(np.uint8)


def blit(canvas: np.ndarray, tile: np.ndarray, x: int, y: int) -> None:
    """Overwrite the region of *canvas* at pixel offset (x, y) with *tile*."""
    th, tw = tile.shape[:2]
    canvas[y : y + th, x : x + tw] = tile


def save_image(array: np.ndarray, path: str | Path) -> None:
    """Save an (H, W, 4) uint8 array, creating parent folders as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.fromarray(array.astype(np.uint8)).save(path)


def make_comparison_grid(
    source_path: str | Path,
    mosaic: np.ndarray,
    output_path: str | Path,
) -> None:
    """Create a 2-panel comparison: Source | Mosaic.

    The source is resized to the mosaic's dimensions so both panels line up.
    """
    mh, mw = mosaic.shape[:2]
    label_height = 36

    source = load_image(source_path).resize((mw, mh), Image.LANCZOS)
    mosaic_img = Image.fromarray(mosaic.astype(np.uint8))

    panels = [source, mosaic_img]
    labels = ["Source", f"Mosaic {mw}x{mh}"]

    gap = 8
    total_w = len(panels) * mw + (len(panels) - 1) * gap
    total_h = mh + label_height

    canvas = Image.new("RGBA", (total_w, total_h), (30, 30, 30, 255))
    draw = ImageDraw.Draw(canvas)

    try:
        font = ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", 18,
        )
    except OSError:
        font = ImageFont.load_default()

    for i, (panel, label) in enumerate(zip(panels, labels, strict=False)):
        x = i * (mw + gap)
        canvas.paste(panel, (x, label_height))

        bbox = draw.textbbox((0, 0), label, font=font)
        text_w = bbox[2] - bbox[0]
        tx = x + (mw - text_w) // 2
        draw.text((tx, 6), label, fill=(220, 220, 220), font=font)

    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    canvas.save(output_path)
