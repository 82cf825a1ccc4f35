"""Tests for the command-line entry point."""

import numpy as np
import cv2
import pytest

from image_match.cli import main
from image_match.feature_store import append_features


@pytest.fixture
def jpg_dir(tmp_path, red_square_image, blue_circle_image, textured_image):
    directory = tmp_path / "db"
    directory.mkdir()
    for name, img in (("red.jpg", red_square_image), ("blue.jpg", blue_circle_image),
                      ("texture.jpg", textured_image)):
        cv2.imwrite(str(directory / name), img)
    return directory


class TestCli:

    def test_build_then_match(self, jpg_dir, tmp_path, capsys):
        out = str(tmp_path / "features.csv")
        assert main(["build", str(jpg_dir), "chistogram", out, "--bins", "8"]) == 0

        target = str(jpg_dir / "blue.jpg")
        assert main(["match", target, "chistogram", out, "2"]) == 0
        lines = capsys.readouterr().out.splitlines()
        assert "The top 2 image matches:" in lines
        assert lines[-2].startswith(f"1: {target}")
        assert lines[-1].startswith("2: ")

    def test_unknown_metric_fails_cleanly(self, jpg_dir, tmp_path, capsys):
        out = str(tmp_path / "features.csv")
        main(["build", str(jpg_dir), "baseline", out])
        code = main(["match", str(jpg_dir / "red.jpg"), "baseline", out, "1",
                     "--metric", "manhattan"])
        assert code == 1
        assert "Unknown distance metric" in capsys.readouterr().out

    def test_missing_feature_file(self, jpg_dir, tmp_path):
        code = main(["match", str(jpg_dir / "red.jpg"), "chistogram",
                     str(tmp_path / "missing.csv"), "3"])
        assert code == 1

    def test_build_empty_directory(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        assert main(["build", str(empty), "baseline", str(tmp_path / "x.csv")]) == 1

    def test_embedding_lookup(self, tmp_path, capsys):
        table = str(tmp_path / "resnet.csv")
        append_features(table, "pic.0001.jpg", np.zeros(4), reset=True)
        append_features(table, "pic.0002.jpg", np.ones(4))
        assert main(["match", "/images/pic.0002.jpg", "resnet", table, "1"]) == 0
        assert "1: pic.0002.jpg" in capsys.readouterr().out

    def test_custom_requires_histograms(self, tmp_path):
        table = str(tmp_path / "resnet.csv")
        append_features(table, "pic.0001.jpg", np.zeros(4), reset=True)
        assert main(["match", "pic.0001.jpg", "custom", table, "1"]) == 1

    def test_unknown_method_rejected_by_parser(self, tmp_path):
        with pytest.raises(SystemExit):
            main(["build", str(tmp_path), "sift", str(tmp_path / "x.csv")])
