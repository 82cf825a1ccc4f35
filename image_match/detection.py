"""
Face detection for face-aware histograms.

A detector is any callable taking a grayscale grid and returning a list
of Region rectangles. HaarFaceDetector wraps OpenCV's bundled frontal
face cascade; tests inject stub detectors instead.
"""

import os
import logging
from typing import Callable, List

import cv2
import numpy as np

from .preprocessing import Region

logger = logging.getLogger(__name__)

FACE_SCALE_FACTOR = float(os.environ.get("FACE_SCALE_FACTOR", "1.1"))
FACE_MIN_NEIGHBORS = int(os.environ.get("FACE_MIN_NEIGHBORS", "4"))
FACE_CASCADE = os.environ.get(
    "FACE_CASCADE",
    os.path.join(cv2.data.haarcascades, "haarcascade_frontalface_default.xml"),
)

Detector = Callable[[np.ndarray], List[Region]]


class HaarFaceDetector:
    """Haar cascade face detector returning Region rectangles."""

    def __init__(self,
                 cascade_path: str = FACE_CASCADE,
                 scale_factor: float = FACE_SCALE_FACTOR,
                 min_neighbors: int = FACE_MIN_NEIGHBORS,
                 min_size: int = 30):
        self.cascade = cv2.CascadeClassifier(cascade_path)
        if self.cascade.empty():
            raise FileNotFoundError(f"Could not load face cascade: {cascade_path}")
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_size = (min_size, min_size)

    def __call__(self, gray: np.ndarray) -> List[Region]:
        faces = self.cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=self.min_size,
        )
        # detectMultiScale reports (x, y, w, h)
        regions = [Region(int(y), int(x), int(h), int(w)) for (x, y, w, h) in faces]
        logger.debug(f"Detected {len(regions)} face(s)")
        return regions
