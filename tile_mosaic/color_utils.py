"""Colour conversion and the redmean-style distance metric."""

from __future__ import annotations

import numpy as np

# Divisor for the dithering tie-break term. Only affects ordering of exact ties.
QFACTOR = 64.0


def to_float(color8: np.ndarray) -> np.ndarray:
    """Convert (..., 4) uint8 RGBA → (..., 4) float32 in [0, 1]."""
    return np.asarray(color8, dtype=np.float32) / np.float32(255.0)


def to_byte(color: np.ndarray) -> np.ndarray:
    """Convert (..., 4) float RGBA → (..., 4) uint8, rounded and clamped."""
    scaled = np.rint(np.asarray(color, dtype=np.float32) * np.float32(255.0))
    return np.clip(scaled, 0, 255).astype(np.uint8)


def color_distances(
    c1: np.ndarray,
    c2: np.ndarray,
    q: int = 0,
    qfactor: float = QFACTOR,
) -> np.ndarray:
    """Perceptual distance between two broadcastable arrays of RGBA colours.

    Channel weights follow the "redmean" approximation: red and blue are
    weighted by the mean red level, green counts double, and a constant
    alpha term is added. Arithmetic is float32 and the result is truncated,
    so identical colours still score ``255 * 1024``.

    Args:
        c1: (..., 4) float RGBA - palette side.
        c2: (..., 4) float RGBA - query side.
        q: Quantisation signal used by error diffusion (0 for plain lookup).
        qfactor: Divisor for *q*; ignored when not positive.

    Returns:
        uint64 array of the broadcast shape without the channel axis.
    """
    c1 = np.asarray(c1, dtype=np.float32)
    c2 = np.asarray(c2, dtype=np.float32)

    dc = c2 - c1
    r = (c1[..., 0] + c2[..., 0]) / np.float32(2.0)

    dr = (np.float32(2.0) + r / np.float32(256.0)) * dc[..., 0] * dc[..., 0]
    dg = np.float32(4.0) * dc[..., 1] * dc[..., 1]
    db = (np.float32(2.0) + (np.float32(255.0) - r) / np.float32(256.0)) * dc[..., 2] * dc[..., 2]
    da = np.float32(255.0) - dc[..., 3] / np.float32(256.0)

    total = (dr + dg + db + da) * np.float32(1024.0)
    if qfactor > 0:
        total = total + np.float32(q) / np.float32(qfactor)

    return np.trunc(np.maximum(total, np.float32(0.0))).astype(np.uint64)


def color_distance(
    c1: np.ndarray,
    c2: np.ndarray,
    q: int = 0,
    qfactor: float = QFACTOR,
) -> int:
    """Distance between a single pair of colours (see :func:`color_distances`)."""
    return int(color_distances(c1, c2, q, qfactor))
