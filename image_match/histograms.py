"""
Chromaticity and texture histograms.

Color histograms are built over rg-chromaticity: each pixel contributes
r = R / (R+G+B) and g = G / (R+G+B), which removes overall brightness.
Each coordinate is quantized to round(value * (H-1)) and the 2-D H x H
histogram is flattened row-major (r index major) and normalized by the
number of contributing pixels.

The texture histogram is 1-D over log-compressed gradient magnitude,
so a handful of very strong edges does not swamp the distribution.

The bin count H defaults to IMAGE_MATCH_BINS from the environment.
"""

import os
import logging
from typing import Optional

import numpy as np

from .errors import InvalidInput

logger = logging.getLogger(__name__)

HIST_BINS = int(os.environ.get("IMAGE_MATCH_BINS", "16"))

# Upper end of log(1 + magnitude) for 8-bit magnitudes
LOG_MAGNITUDE_RANGE = float(np.log(256.0))


def _check_bins(bins: int) -> int:
    if bins is None or int(bins) < 1:
        raise InvalidInput(f"Bin count must be positive, got {bins}")
    return int(bins)


def chromaticity_histogram(grid: np.ndarray,
                           bins: int = HIST_BINS,
                           mask: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Compute a normalized rg-chromaticity histogram.

    Args:
        grid: B,G,R uint8 grid of shape (H, W, 3).
        bins: Bins per chromaticity axis.
        mask: Optional boolean mask; only pixels where it is True count.

    Returns:
        Float32 vector of bins * bins values summing to 1.

    Raises:
        InvalidInput: If no pixels contribute (empty grid or empty mask).
    """
    bins = _check_bins(bins)
    pixels = grid.reshape(-1, 3)
    if mask is not None:
        pixels = pixels[mask.reshape(-1)]

    count = pixels.shape[0]
    if count == 0:
        raise InvalidInput("Histogram region contains no pixels")

    pixels = pixels.astype(np.float64)
    blue, green, red = pixels[:, 0], pixels[:, 1], pixels[:, 2]
    divisor = blue + green + red
    # Black pixels fall back to r = g = 0
    divisor[divisor == 0] = 1.0

    r_index = _quantize(red / divisor, bins)
    g_index = _quantize(green / divisor, bins)

    hist = np.bincount(r_index * bins + g_index, minlength=bins * bins)
    return (hist / count).astype(np.float32)


def _quantize(values: np.ndarray, bins: int) -> np.ndarray:
    """Map [0, 1] values to round(value * (bins - 1)), clamped."""
    index = np.floor(values * (bins - 1) + 0.5).astype(np.int64)
    return np.clip(index, 0, bins - 1)


def texture_histogram(magnitude: np.ndarray, bins: int = HIST_BINS) -> np.ndarray:
    """
    Compute a normalized histogram of log-compressed gradient magnitude.

    Channels are averaged to one magnitude per pixel, compressed with
    log(1 + m), and binned uniformly over [0, log(256)].

    Args:
        magnitude: uint8 gradient magnitude grid, one or three channels.
        bins: Number of texture bins.

    Returns:
        Float32 vector of `bins` values summing to 1.
    """
    bins = _check_bins(bins)
    if magnitude.size == 0:
        raise InvalidInput("Magnitude grid is empty")

    values = magnitude.astype(np.float32)
    if values.ndim == 3:
        values = values.mean(axis=2)

    compressed = np.log1p(values).reshape(-1)
    index = np.floor(compressed / LOG_MAGNITUDE_RANGE * bins).astype(np.int64)
    index = np.clip(index, 0, bins - 1)

    hist = np.bincount(index, minlength=bins)
    return (hist / compressed.size).astype(np.float32)


def texture_bins_for_length(length: int) -> int:
    """
    Recover H from the length H*H + H of a texture+color vector.

    Returns 0 when no integer H produces the given length.
    """
    if length <= 0:
        return 0
    h = int((np.sqrt(1 + 4 * length) - 1) // 2)
    while h * h + h < length:
        h += 1
    return h if h * h + h == length else 0
