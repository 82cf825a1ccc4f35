"""Shared test fixtures for image_match tests."""

import numpy as np
import cv2
import pytest

from image_match.preprocessing import Region


@pytest.fixture
def red_square_image():
    """Generate a 200x200 red square on white background (B,G,R)."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    img[40:160, 40:160] = [30, 30, 200]
    return img


@pytest.fixture
def blue_circle_image():
    """Generate a 200x200 blue circle on white background (B,G,R)."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 255
    cv2.circle(img, (100, 100), 60, (200, 30, 30), -1)
    return img


@pytest.fixture
def black_image():
    """Flat black 8x8 color image."""
    return np.zeros((8, 8, 3), dtype=np.uint8)


@pytest.fixture
def textured_image():
    """Generate a 200x200 checkerboard with strong edges."""
    img = np.ones((200, 200, 3), dtype=np.uint8) * 200
    for y in range(0, 200, 20):
        for x in range(0, 200, 20):
            if (x // 20 + y // 20) % 2 == 0:
                img[y:y+20, x:x+20] = [50, 50, 50]
    return img


@pytest.fixture
def noise_image():
    """Generate a 200x200 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (200, 200, 3), dtype=np.uint8)


class StubDetector:
    """Face detector returning fixed regions and recording its input."""

    def __init__(self, regions):
        self.regions = list(regions)
        self.calls = []

    def __call__(self, gray):
        self.calls.append(gray)
        return list(self.regions)


@pytest.fixture
def stub_detector():
    """Factory for detectors returning the given regions."""
    return StubDetector


@pytest.fixture
def no_face_detector():
    return StubDetector([])


@pytest.fixture
def corner_face_detector():
    """Reports a 4x4 face in the top-left corner."""
    return StubDetector([Region(0, 0, 4, 4)])


@pytest.fixture
def image_dir(tmp_path, red_square_image, blue_circle_image, textured_image):
    """Directory of three PNG images."""
    directory = tmp_path / "images"
    directory.mkdir()
    cv2.imwrite(str(directory / "red.png"), red_square_image)
    cv2.imwrite(str(directory / "blue.png"), blue_circle_image)
    cv2.imwrite(str(directory / "texture.png"), textured_image)
    return directory
