"""
Separable 3x3 Sobel gradients and gradient magnitude.

Texture-aware features use the gradient magnitude as their texture
signal. Each gradient is two 1-D passes through cv2.sepFilter2D:

    sobel_x:  [-1, 0, 1] across columns, [1, 2, 1] down rows
    sobel_y:  [1, 2, 1] across columns, [1, 0, -1] down rows

Outputs are int16 since values range over [-1020, 1020]. The outer ring
of pixels, where the 3x3 support does not fit, is left at zero.
"""

import cv2
import numpy as np

_DIFFERENCE = np.array([-1, 0, 1], dtype=np.float32)
_DIFFERENCE_UP = np.array([1, 0, -1], dtype=np.float32)
_SMOOTH = np.array([1, 2, 1], dtype=np.float32)


def _separable(grid: np.ndarray, kernel_x: np.ndarray,
               kernel_y: np.ndarray) -> np.ndarray:
    out = cv2.sepFilter2D(grid, cv2.CV_16S, kernel_x, kernel_y,
                          borderType=cv2.BORDER_CONSTANT)
    out = out.reshape(grid.shape)
    out[0, ...] = 0
    out[-1, ...] = 0
    out[:, 0, ...] = 0
    out[:, -1, ...] = 0
    return out


def sobel_x(grid: np.ndarray) -> np.ndarray:
    """Horizontal gradient (positive to the right), int16, same shape."""
    return _separable(grid, _DIFFERENCE, _SMOOTH)


def sobel_y(grid: np.ndarray) -> np.ndarray:
    """Vertical gradient (positive up), int16, same shape."""
    return _separable(grid, _SMOOTH, _DIFFERENCE_UP)


def gradient_magnitude(gx: np.ndarray, gy: np.ndarray) -> np.ndarray:
    """
    Per-channel Euclidean magnitude sqrt(gx^2 + gy^2).

    gx and gy must come from the same source grid. Values are rounded
    and saturated into uint8.
    """
    mag = np.sqrt(gx.astype(np.float32) ** 2 + gy.astype(np.float32) ** 2)
    return cv2.convertScaleAbs(mag).reshape(gx.shape)


def magnitude_image(grid: np.ndarray) -> np.ndarray:
    """Gradient magnitude of a grid in one call."""
    return gradient_magnitude(sobel_x(grid), sobel_y(grid))
