"""
Feature extraction methods.

Five interchangeable methods turn a pixel grid into a fixed-length
float32 feature vector:

    baseline    7x7 center block, 49 (gray) or 147 (color) values
    chistogram  rg-chromaticity histogram, H*H values
    mhistogram  whole-image + center histograms, 2*H*H values
    texture     chromaticity histogram + gradient texture histogram, H*H + H
    face        whole / face / background histograms, 3*H*H values

Vectors from different methods, or the same method with a different
bin count, are not comparable.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional

import numpy as np

from .detection import Detector, HaarFaceDetector
from .errors import InvalidInput, NoFaceDetected, UnknownMethod
from .filters import magnitude_image
from .histograms import HIST_BINS, chromaticity_histogram, texture_histogram
from .preprocessing import (center_block, center_region, channel_count,
                            check_grid, region_mask, to_grayscale)

logger = logging.getLogger(__name__)

BASELINE_SIZE = 7

_default_detector = None


class Method(str, Enum):
    BASELINE = "baseline"
    COLOR_HISTOGRAM = "chistogram"
    MULTI_HISTOGRAM = "mhistogram"
    TEXTURE_COLOR = "texture"
    FACE = "face"


def get_method(name) -> Method:
    """Resolve a method name, raising UnknownMethod if it is not one of ours."""
    if isinstance(name, Method):
        return name
    try:
        return Method(str(name).lower())
    except ValueError:
        valid = ", ".join(m.value for m in Method)
        raise UnknownMethod(f"Unknown feature method '{name}' (expected one of: {valid})")


def feature_length(method, bins: int = HIST_BINS, channels: int = 3) -> int:
    """Length of the vector a method produces."""
    method = get_method(method)
    if method is Method.BASELINE:
        return BASELINE_SIZE * BASELINE_SIZE * channels
    if method is Method.COLOR_HISTOGRAM:
        return bins * bins
    if method is Method.MULTI_HISTOGRAM:
        return 2 * bins * bins
    if method is Method.TEXTURE_COLOR:
        return bins * bins + bins
    return 3 * bins * bins


def default_detector() -> HaarFaceDetector:
    """Shared Haar detector, created on first use."""
    global _default_detector
    if _default_detector is None:
        _default_detector = HaarFaceDetector()
    return _default_detector


def extract_baseline(grid: np.ndarray, **_) -> np.ndarray:
    """
    Flatten the 7x7 block centered on the grid.

    Values are row-major and channel-interleaved (B, G, R) for color
    grids. Accepts single-channel or three-channel grids of at least
    7x7 pixels.
    """
    grid = check_grid(grid, channels=(1, 3))
    block = center_block(grid, BASELINE_SIZE)
    return block.reshape(-1).astype(np.float32)


def extract_color_histogram(grid: np.ndarray, bins: int = HIST_BINS, **_) -> np.ndarray:
    """Whole-image rg-chromaticity histogram (H*H values)."""
    grid = check_grid(grid)
    return chromaticity_histogram(grid, bins)


def extract_multi_histogram(grid: np.ndarray, bins: int = HIST_BINS, **_) -> np.ndarray:
    """
    Whole-image histogram followed by the histogram of the central
    50% x 50% region.
    """
    grid = check_grid(grid)
    center = center_region(grid.shape)
    if center.area == 0:
        raise InvalidInput(f"Grid {grid.shape[0]}x{grid.shape[1]} has no center region")

    whole = chromaticity_histogram(grid, bins)
    middle = chromaticity_histogram(grid[center.slices()], bins)
    return np.concatenate([whole, middle])


def extract_texture_color(grid: np.ndarray, bins: int = HIST_BINS, **_) -> np.ndarray:
    """Color histogram followed by an H-bin gradient texture histogram."""
    grid = check_grid(grid)
    color = chromaticity_histogram(grid, bins)
    texture = texture_histogram(magnitude_image(grid), bins)
    return np.concatenate([color, texture])


def extract_face_histogram(grid: np.ndarray,
                           bins: int = HIST_BINS,
                           detector: Optional[Detector] = None,
                           **_) -> np.ndarray:
    """
    Whole, face and background histograms.

    The face histogram covers the union of all detected rectangles
    (clipped to the grid); the background covers every other pixel.
    Each part is normalized by its own pixel count.

    Raises:
        NoFaceDetected: If the detector finds nothing.
        InvalidInput: If the face or background part has no pixels.
    """
    grid = check_grid(grid)
    detector = detector or default_detector()

    regions = list(detector(to_grayscale(grid)))
    if not regions:
        raise NoFaceDetected("No face detected")

    face_mask = region_mask(grid.shape, regions)
    if not face_mask.any():
        raise InvalidInput("Detected face regions lie outside the image")
    if face_mask.all():
        raise InvalidInput("Detected face regions leave no background")

    whole = chromaticity_histogram(grid, bins)
    face = chromaticity_histogram(grid, bins, mask=face_mask)
    background = chromaticity_histogram(grid, bins, mask=~face_mask)
    return np.concatenate([whole, face, background])


EXTRACTORS: Dict[Method, Callable[..., np.ndarray]] = {
    Method.BASELINE: extract_baseline,
    Method.COLOR_HISTOGRAM: extract_color_histogram,
    Method.MULTI_HISTOGRAM: extract_multi_histogram,
    Method.TEXTURE_COLOR: extract_texture_color,
    Method.FACE: extract_face_histogram,
}


def extract_features(grid: np.ndarray,
                     method,
                     bins: int = HIST_BINS,
                     detector: Optional[Detector] = None) -> np.ndarray:
    """
    Extract a feature vector with the named method.

    Args:
        grid: Pixel grid (B,G,R for color methods).
        method: Method or method name.
        bins: Histogram bin count (ignored by baseline).
        detector: Face detector for the face method; defaults to the
            OpenCV Haar cascade.

    Returns:
        Float32 feature vector of feature_length(method, bins) values.

    Raises:
        UnknownMethod, InvalidInput, NoFaceDetected
    """
    method = get_method(method)
    features = EXTRACTORS[method](grid, bins=bins, detector=detector)

    expected = feature_length(method, bins, channel_count(grid))
    if features.shape != (expected,):
        raise InvalidInput(
            f"{method.value} produced {features.size} values, expected {expected}"
        )
    return features
