"""Tests for feature CSV persistence."""

import numpy as np
import pytest

from image_match.feature_store import (
    append_features, read_features, format_tag, parse_tag,
)


class TestRoundTrip:

    def test_values_preserved_exactly(self, tmp_path):
        path = str(tmp_path / "features.csv")
        rng = np.random.RandomState(3)
        vectors = [rng.rand(n).astype(np.float32) for n in (16, 16, 5)]
        for i, v in enumerate(vectors):
            append_features(path, f"img{i}.jpg", v, reset=(i == 0))

        loaded = read_features(path)
        assert [name for name, _ in loaded.records] == ["img0.jpg", "img1.jpg", "img2.jpg"]
        for (_, got), expected in zip(loaded.records, vectors):
            assert got.dtype == np.float32
            assert np.array_equal(got, expected)

    def test_tiny_values_preserved(self, tmp_path):
        path = str(tmp_path / "tiny.csv")
        v = np.array([1e-8, 3.4e38, 0.0, -2.5], dtype=np.float32)
        append_features(path, "x", v, reset=True)
        assert np.array_equal(read_features(path).records[0][1], v)

    def test_identifier_with_comma(self, tmp_path):
        path = str(tmp_path / "f.csv")
        append_features(path, "dir/a,b.jpg", [1.0, 2.0], reset=True)
        assert read_features(path).records[0][0] == "dir/a,b.jpg"


class TestTagging:

    def test_tag_written_on_reset(self, tmp_path):
        path = str(tmp_path / "f.csv")
        append_features(path, "a.jpg", [0.5, 0.5], reset=True, method="chistogram", bins=16)
        append_features(path, "b.jpg", [1.0, 0.0])
        loaded = read_features(path)
        assert loaded.method == "chistogram"
        assert loaded.bins == 16
        assert len(loaded) == 2

    def test_untagged_file(self, tmp_path):
        path = tmp_path / "external.csv"
        path.write_text("a.jpg,0.1,0.2\nb.jpg,0.3,0.4\n")
        loaded = read_features(str(path))
        assert loaded.method is None
        assert loaded.bins is None
        assert len(loaded) == 2

    def test_reset_truncates(self, tmp_path):
        path = str(tmp_path / "f.csv")
        append_features(path, "old.jpg", [1.0], reset=True, method="baseline")
        append_features(path, "new.jpg", [2.0], reset=True, method="chistogram", bins=8)
        loaded = read_features(path)
        assert [name for name, _ in loaded.records] == ["new.jpg"]
        assert loaded.method == "chistogram"

    def test_tag_format(self):
        assert format_tag("face", 16) == "# method=face bins=16"
        assert parse_tag("# method=face bins=16") == ("face", 16)
        assert parse_tag("# method=baseline") == ("baseline", None)

    def test_hash_prefixed_identifiers_kept(self, tmp_path):
        path = str(tmp_path / "f.csv")
        append_features(path, "#1.jpg", [0.25, 0.75], reset=True, method="baseline")
        append_features(path, "#shots/#2.jpg", [0.5, 0.5])
        loaded = read_features(path)
        assert loaded.method == "baseline"
        assert [name for name, _ in loaded.records] == ["#1.jpg", "#shots/#2.jpg"]

    def test_untagged_hash_identifier_on_first_row(self, tmp_path):
        path = str(tmp_path / "f.csv")
        append_features(path, "# method=x.jpg", [1.0], reset=True)
        loaded = read_features(path)
        assert loaded.method is None
        assert [name for name, _ in loaded.records] == ["# method=x.jpg"]


class TestReadErrors:

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_features(str(tmp_path / "missing.csv"))

    def test_malformed_row_skipped(self, tmp_path):
        path = tmp_path / "f.csv"
        path.write_text("a.jpg,0.1,0.2\nb.jpg,oops,0.4\nc.jpg,0.5,0.6\n")
        loaded = read_features(str(path))
        assert [name for name, _ in loaded.records] == ["a.jpg", "c.jpg"]
