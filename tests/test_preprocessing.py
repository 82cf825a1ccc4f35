"""Tests for grid validation, regions and image loading."""

import numpy as np
import cv2
import pytest

from image_match.errors import DecodeError, InvalidInput
from image_match.preprocessing import (
    Region, center_region, center_block, check_grid, region_mask,
    load_image, list_images, normalize_image,
)


class TestRegion:

    def test_clip_inside(self):
        assert Region(2, 3, 4, 5).clip((20, 20)) == Region(2, 3, 4, 5)

    def test_clip_overhanging(self):
        assert Region(-2, 8, 6, 6).clip((10, 10)) == Region(0, 8, 4, 2)

    def test_clip_outside_has_no_area(self):
        assert Region(15, 15, 3, 3).clip((10, 10)).area == 0

    def test_center_region(self):
        assert center_region((200, 100)) == Region(50, 25, 100, 50)

    def test_region_mask_union(self):
        mask = region_mask((6, 6), [Region(0, 0, 2, 2), Region(1, 1, 2, 2)])
        assert mask.sum() == 7


class TestCheckGrid:

    def test_accepts_color(self, red_square_image):
        assert check_grid(red_square_image) is red_square_image

    def test_rejects_wrong_channels(self):
        with pytest.raises(InvalidInput, match="channel"):
            check_grid(np.zeros((5, 5), dtype=np.uint8))

    def test_rejects_empty(self):
        with pytest.raises(InvalidInput, match="empty"):
            check_grid(np.zeros((0, 5, 3), dtype=np.uint8))

    def test_rejects_non_array(self):
        with pytest.raises(InvalidInput):
            check_grid(None)

    def test_float_input_scaled(self):
        grid = check_grid(np.full((4, 4, 3), 0.5, dtype=np.float32))
        assert grid.dtype == np.uint8
        assert grid[0, 0, 0] == 127

    def test_normalize_keeps_uint8(self, noise_image):
        assert normalize_image(noise_image) is noise_image


class TestCenterBlock:

    def test_odd_sized_grid(self):
        grid = np.arange(100).reshape(10, 10)
        block = center_block(grid, 7)
        assert block[0, 0] == grid[2, 2]
        assert block.shape == (7, 7)


class TestImageFiles:

    def test_load_image(self, tmp_path, red_square_image):
        path = str(tmp_path / "red.png")
        cv2.imwrite(path, red_square_image)
        loaded = load_image(path)
        assert np.array_equal(loaded, red_square_image)

    def test_missing_image(self, tmp_path):
        with pytest.raises(DecodeError):
            load_image(str(tmp_path / "missing.jpg"))

    def test_corrupt_image(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"\x00\x01garbage")
        with pytest.raises(DecodeError):
            load_image(str(path))

    def test_list_images_filters_extensions(self, tmp_path):
        for name in ("b.jpg", "a.JPG", "c.png", "notes.txt"):
            (tmp_path / name).write_bytes(b"")
        (tmp_path / "sub.jpg").mkdir()
        names = [p.rsplit("/", 1)[-1] for p in list_images(str(tmp_path), (".jpg",))]
        assert names == ["a.JPG", "b.jpg"]

    def test_list_images_missing_directory(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            list_images(str(tmp_path / "nope"))
