"""
Pixel grid handling for feature extraction.

Loads images from disk, validates grid shape and channel count, and
builds the rectangular regions (center crop, detected faces, background)
that histogram methods are computed over.

Grids are uint8 ndarrays of shape (H, W) or (H, W, 3) in B,G,R order,
as returned by cv2.imread.
"""

import os
import logging
from typing import List, NamedTuple, Sequence, Tuple

import cv2
import numpy as np

from .errors import DecodeError, InvalidInput

logger = logging.getLogger(__name__)

# Extensions picked up when listing an image directory (comma separated)
IMAGE_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.environ.get("IMAGE_EXTENSIONS", ".jpg").split(",")
    if ext.strip()
)


class Region(NamedTuple):
    """Axis-aligned rectangle in pixel coordinates."""
    row: int
    col: int
    height: int
    width: int

    @property
    def area(self) -> int:
        return max(self.height, 0) * max(self.width, 0)

    def clip(self, shape: Tuple[int, ...]) -> "Region":
        """Clip the rectangle to a grid of the given shape."""
        rows, cols = shape[:2]
        r1 = min(max(self.row, 0), rows)
        c1 = min(max(self.col, 0), cols)
        r2 = min(max(self.row + self.height, 0), rows)
        c2 = min(max(self.col + self.width, 0), cols)
        return Region(r1, c1, max(r2 - r1, 0), max(c2 - c1, 0))

    def slices(self) -> Tuple[slice, slice]:
        return (slice(self.row, self.row + self.height),
                slice(self.col, self.col + self.width))


def normalize_image(image_np: np.ndarray) -> np.ndarray:
    """Ensure image is uint8, scaling up [0, 1] float input."""
    if image_np.dtype != np.uint8:
        if image_np.size and image_np.max() <= 1.0:
            image_np = (image_np * 255).astype(np.uint8)
        else:
            image_np = np.clip(image_np, 0, 255).astype(np.uint8)
    return image_np


def channel_count(grid: np.ndarray) -> int:
    """Number of channels in a grid; 2-D grids are single channel."""
    if grid.ndim == 2:
        return 1
    if grid.ndim == 3:
        return grid.shape[2]
    return 0


def check_grid(grid: np.ndarray, channels: Sequence[int] = (3,)) -> np.ndarray:
    """
    Validate a pixel grid and return it as uint8.

    Args:
        grid: Pixel grid to validate.
        channels: Accepted channel counts.

    Returns:
        The grid converted to uint8.

    Raises:
        InvalidInput: If the grid is empty or has an unaccepted
            channel count.
    """
    if grid is None or not isinstance(grid, np.ndarray):
        raise InvalidInput("Pixel grid must be a numpy array")
    if grid.size == 0 or grid.ndim < 2 or grid.shape[0] == 0 or grid.shape[1] == 0:
        raise InvalidInput("Pixel grid is empty")

    n = channel_count(grid)
    if n not in channels:
        raise InvalidInput(
            f"Expected {' or '.join(str(c) for c in channels)} channel(s), got {n}"
        )
    return normalize_image(grid)


def to_grayscale(grid: np.ndarray) -> np.ndarray:
    """Convert a B,G,R grid to a single intensity channel."""
    if channel_count(grid) == 1:
        return grid.reshape(grid.shape[:2])
    return cv2.cvtColor(grid, cv2.COLOR_BGR2GRAY)


def center_region(shape: Tuple[int, ...], fraction: float = 0.5) -> Region:
    """
    Central region covering `fraction` of each dimension.

    With the default fraction the region is offset 25% from every edge
    and spans 50% of the width and height.
    """
    rows, cols = shape[:2]
    offset = (1.0 - fraction) / 2.0
    return Region(int(rows * offset), int(cols * offset),
                  int(rows * fraction), int(cols * fraction))


def center_block(grid: np.ndarray, size: int = 7) -> np.ndarray:
    """
    Extract the size x size block centered on the grid.

    The block starts size // 2 pixels up and left of the integer
    center (rows // 2, cols // 2).

    Raises:
        InvalidInput: If the grid is smaller than the block.
    """
    rows, cols = grid.shape[:2]
    if rows < size or cols < size:
        raise InvalidInput(
            f"Grid {rows}x{cols} is smaller than the {size}x{size} block"
        )
    half = size // 2
    r0 = rows // 2 - half
    c0 = cols // 2 - half
    return grid[r0:r0 + size, c0:c0 + size]


def region_mask(shape: Tuple[int, ...], regions: Sequence[Region]) -> np.ndarray:
    """Boolean mask of the pixels inside any of the regions."""
    mask = np.zeros(shape[:2], dtype=bool)
    for region in regions:
        clipped = region.clip(shape)
        if clipped.area:
            mask[clipped.slices()] = True
    return mask


def load_image(path: str) -> np.ndarray:
    """
    Decode an image file into a B,G,R pixel grid.

    Raises:
        DecodeError: If the file is missing or cannot be decoded.
    """
    if not os.path.isfile(path):
        raise DecodeError(f"Image not found: {path}")
    image = cv2.imread(path)
    if image is None:
        raise DecodeError(f"Could not decode image: {path}")
    return image


def list_images(directory: str,
                extensions: Sequence[str] = None) -> List[str]:
    """
    List image files in a directory.

    Args:
        directory: Directory to scan (not recursive).
        extensions: Accepted extensions, compared case-insensitively.
            Defaults to IMAGE_EXTENSIONS.

    Returns:
        Sorted list of file paths.

    Raises:
        FileNotFoundError: If the directory does not exist.
    """
    if not os.path.isdir(directory):
        raise FileNotFoundError(f"Image directory does not exist: {directory}")

    extensions = {e.lower() for e in (extensions or IMAGE_EXTENSIONS)}
    paths = []
    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_file():
                continue
            if os.path.splitext(entry.name)[1].lower() in extensions:
                paths.append(entry.path)
    return sorted(paths)
