"""Tests for manifest parsing and the sample index."""

import os

import pytest

from seg_pipeline.data.manifest import SampleEntry, SampleIndex, load_manifest
from seg_pipeline.exceptions import ConfigurationError, ManifestError


class TestBasicManifest:
    """Tests for the two-field ``image mask`` grammar."""

    def test_round_trip(self, tmp_path):
        """Test that entries come back in manifest order."""
        manifest = tmp_path / "train.txt"
        manifest.write_text("a.png a_gt.png\nb.png b_gt.png\nc.png c_gt.png\n")

        index = load_manifest(manifest)

        assert len(index) == 3
        assert [e.image_path for e in index] == ["a.png", "b.png", "c.png"]
        assert [e.mask_path for e in index] == ["a_gt.png", "b_gt.png", "c_gt.png"]
        assert not index[0].has_manipulation_point

    def test_ignores_trailing_tokens_and_blank_lines(self, tmp_path):
        """Test that extra tokens and blank lines are skipped."""
        manifest = tmp_path / "train.txt"
        manifest.write_text("a.png a_gt.png extra 1 2\n\nb.png b_gt.png\n")

        index = load_manifest(manifest)

        assert len(index) == 2
        assert index[0] == SampleEntry("a.png", "a_gt.png")

    def test_rejects_single_token_line(self, tmp_path):
        """Test that a line without a mask path names its line number."""
        manifest = tmp_path / "train.txt"
        manifest.write_text("a.png a_gt.png\nlonely.png\n")

        with pytest.raises(ManifestError, match=":2"):
            load_manifest(manifest)

    def test_root_folder_prefixes_relative_paths_only(self, tmp_path):
        """Test that root_folder is joined to relative paths only."""
        absolute = os.path.join(str(tmp_path), "abs.png")
        manifest = tmp_path / "train.txt"
        manifest.write_text(f"rel.png rel_gt.png\n{absolute} {absolute}\n")

        index = load_manifest(manifest, root_folder="/data/root")

        assert index[0].image_path == os.path.join("/data/root", "rel.png")
        assert index[0].mask_path == os.path.join("/data/root", "rel_gt.png")
        assert index[1].image_path == absolute


class TestExtendedManifest:
    """Tests for the four-field grammar with manipulation points."""

    def test_round_trip(self, tmp_path):
        """Test that records may span lines and tabs."""
        manifest = tmp_path / "train.txt"
        manifest.write_text(
            "a.png a_gt.png 0.25 0.5\nb.png\tb_gt.png 0.75 0.125 c.png c_gt.png 0 1\n"
        )

        index = load_manifest(manifest, has_manipulation_data=True)

        assert len(index) == 3
        assert index[0] == SampleEntry("a.png", "a_gt.png", 0.25, 0.5)
        assert index[1] == SampleEntry("b.png", "b_gt.png", 0.75, 0.125)
        assert index[2].mp_x == 0.0 and index[2].mp_y == 1.0
        assert all(e.has_manipulation_point for e in index)

    def test_malformed_float_fails_whole_load(self, tmp_path):
        """Test that a non-numeric point names the offending record."""
        manifest = tmp_path / "train.txt"
        manifest.write_text("a.png a_gt.png 0.25 0.5\nb.png b_gt.png zero 0.1\n")

        with pytest.raises(ManifestError, match="record 2"):
            load_manifest(manifest, has_manipulation_data=True)

    def test_incomplete_record(self, tmp_path):
        """Test that a trailing partial record is rejected."""
        manifest = tmp_path / "train.txt"
        manifest.write_text("a.png a_gt.png 0.25 0.5\nb.png b_gt.png 0.1\n")

        with pytest.raises(ManifestError, match="incomplete"):
            load_manifest(manifest, has_manipulation_data=True)


class TestManifestErrors:
    """Tests for unreadable and empty manifests."""

    def test_missing_manifest_is_configuration_error(self, tmp_path):
        """Test that an unreadable file raises a ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Cannot open manifest"):
            load_manifest(tmp_path / "missing.txt")

    @pytest.mark.parametrize("content", ["", "\n\n  \n"])
    @pytest.mark.parametrize("extended", [False, True])
    def test_empty_manifest_rejected(self, tmp_path, content, extended):
        """Test that a manifest without records is rejected in both grammars."""
        manifest = tmp_path / "train.txt"
        manifest.write_text(content)

        with pytest.raises(ManifestError, match="no samples"):
            load_manifest(manifest, has_manipulation_data=extended)

    def test_sample_index_requires_entries(self):
        """Test that an empty SampleIndex cannot be built."""
        with pytest.raises(ManifestError):
            SampleIndex([])
