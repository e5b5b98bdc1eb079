"""Tests for decoding one image/mask pair into a batch region."""

import numpy as np
import pytest

from seg_pipeline.data.manifest import SampleEntry
from seg_pipeline.data.materialize import (
    center_crop_offsets,
    decode_image,
    materialize_sample,
    natural_size,
)
from seg_pipeline.exceptions import DecodeError, LabelError, SegmentationDataError, ShapeMismatchError

from conftest import write_png


@pytest.fixture
def row_sample(tmp_path):
    """1x3 image with columns A, B, C (distinct per channel) and a mask."""
    image = np.array(
        [[[10, 11, 12], [20, 21, 22], [30, 31, 32]]], dtype=np.uint8
    )
    mask = np.array([[0, 128, 255]], dtype=np.uint8)
    image_path = write_png(tmp_path / "row.png", image)
    mask_path = write_png(tmp_path / "row_mask.png", mask)
    return SampleEntry(image_path, mask_path, 0.3, 0.6), image, mask


class TestTransform:
    """Tests for mean subtraction, mirroring and mask binarization."""

    def test_unmirrored_sample_subtracts_mean(self, row_sample):
        """Test that each colour channel is offset by its own mean."""
        entry, image, _ = row_sample
        data = np.zeros((4, 1, 3), dtype=np.float32)

        materialize_sample(entry, False, (1.0, 2.0, 3.0), data)

        for c, mean in enumerate((1.0, 2.0, 3.0)):
            np.testing.assert_array_equal(data[c, 0], image[0, :, c].astype(np.float32) - mean)

    def test_mirror_reverses_columns_in_every_channel(self, row_sample):
        """Test that mirroring reverses columns and flips the label x."""
        entry, image, _ = row_sample
        data = np.zeros((4, 1, 3), dtype=np.float32)
        label = np.zeros(2, dtype=np.float32)

        materialize_sample(entry, True, (0.0, 0.0, 0.0), data, label)

        for c in range(3):
            np.testing.assert_array_equal(data[c, 0], image[0, ::-1, c].astype(np.float32))
        assert label[0] == pytest.approx(0.7)
        assert label[1] == pytest.approx(0.6)

    def test_unmirrored_label_is_copied(self, row_sample):
        """Test that the label is copied unchanged without mirroring."""
        entry, _, _ = row_sample
        data = np.zeros((4, 1, 3), dtype=np.float32)
        label = np.zeros(2, dtype=np.float32)

        materialize_sample(entry, False, (0.0, 0.0, 0.0), data, label)

        assert label[0] == pytest.approx(0.3)
        assert label[1] == pytest.approx(0.6)

    @pytest.mark.parametrize("mirror,expected", [(False, [0.0, 1.0, 1.0]), (True, [1.0, 1.0, 0.0])])
    def test_mask_is_binarized(self, tmp_path, mirror, expected):
        """Test that any positive mask value becomes 1.0."""
        image_path = write_png(tmp_path / "img.png", np.full((1, 3, 3), 200, dtype=np.uint8))
        mask_path = write_png(tmp_path / "mask.png", np.array([[0, 1, 255]], dtype=np.uint8))
        data = np.zeros((4, 1, 3), dtype=np.float32)

        materialize_sample(SampleEntry(image_path, mask_path), mirror, (0.0, 0.0, 0.0), data)

        np.testing.assert_array_equal(data[3, 0], np.array(expected, dtype=np.float32))

    def test_destination_outside_region_untouched(self, row_sample):
        """Test that only the given batch item is written."""
        entry, _, _ = row_sample
        batch = np.full((2, 4, 1, 3), -7.0, dtype=np.float32)

        materialize_sample(entry, False, (0.0, 0.0, 0.0), batch[1])

        assert np.all(batch[0] == -7.0)
        assert not np.any(batch[1] == -7.0)

    def test_center_crop_after_mirror(self, tmp_path):
        """Test that the centre crop is taken from the mirrored image."""
        image = np.arange(6 * 6 * 3, dtype=np.uint8).reshape(6, 6, 3)
        mask = np.zeros((6, 6), dtype=np.uint8)
        mask[:, 0] = 255
        entry = SampleEntry(
            write_png(tmp_path / "img.png", image), write_png(tmp_path / "mask.png", mask)
        )
        data = np.zeros((4, 4, 4), dtype=np.float32)

        materialize_sample(entry, True, (0.0, 0.0, 0.0), data, crop_size=4)

        expected = image[:, ::-1][1:5, 1:5]
        for c in range(3):
            np.testing.assert_array_equal(data[c], expected[..., c].astype(np.float32))
        assert not data[3].any()

    def test_returns_raw_decoded_arrays(self, row_sample):
        """Test that the preview arrays are the unmirrored decodes."""
        entry, image, mask = row_sample
        data = np.zeros((4, 1, 3), dtype=np.float32)

        raw_image, raw_mask = materialize_sample(entry, True, (0.0, 0.0, 0.0), data)

        np.testing.assert_array_equal(raw_image, image)
        np.testing.assert_array_equal(raw_mask, mask)


class TestMaterializeErrors:
    """Tests for decode, size and label failures."""

    def test_mask_image_size_mismatch_fails_fast(self, tmp_path):
        """Test that a mask of another size is rejected."""
        entry = SampleEntry(
            write_png(tmp_path / "img.png", np.zeros((2, 3, 3), dtype=np.uint8)),
            write_png(tmp_path / "mask.png", np.zeros((3, 3), dtype=np.uint8)),
        )
        data = np.zeros((4, 2, 3), dtype=np.float32)

        with pytest.raises(ShapeMismatchError, match="mask.png"):
            materialize_sample(entry, False, (0.0, 0.0, 0.0), data)

    def test_buffer_size_mismatch_fails_fast(self, row_sample):
        """Test that a sample not matching the buffer names the image."""
        entry, _, _ = row_sample
        data = np.zeros((4, 2, 2), dtype=np.float32)

        with pytest.raises(ShapeMismatchError, match="row.png"):
            materialize_sample(entry, False, (0.0, 0.0, 0.0), data)

    def test_missing_label_point_raises_label_error(self, tmp_path):
        """Test that a label request without a point stays in the pipeline hierarchy."""
        entry = SampleEntry(
            write_png(tmp_path / "img.png", np.zeros((1, 3, 3), dtype=np.uint8)),
            write_png(tmp_path / "mask.png", np.zeros((1, 3), dtype=np.uint8)),
        )
        data = np.zeros((4, 1, 3), dtype=np.float32)
        label = np.zeros(2, dtype=np.float32)

        with pytest.raises(LabelError, match="img.png") as excinfo:
            materialize_sample(entry, False, (0.0, 0.0, 0.0), data, label)
        assert isinstance(excinfo.value, SegmentationDataError)

    def test_missing_file_raises_decode_error(self, tmp_path):
        """Test that DecodeError carries the missing path."""
        missing = str(tmp_path / "missing.png")
        data = np.zeros((4, 1, 3), dtype=np.float32)

        with pytest.raises(DecodeError) as excinfo:
            materialize_sample(SampleEntry(missing, missing), False, (0.0, 0.0, 0.0), data)
        assert excinfo.value.path == missing

    def test_corrupt_file_raises_decode_error(self, tmp_path):
        """Test that undecodable bytes raise DecodeError."""
        corrupt = tmp_path / "corrupt.png"
        corrupt.write_bytes(b"not an image")

        with pytest.raises(DecodeError, match="corrupt.png"):
            decode_image(str(corrupt))


class TestGeometry:
    """Tests for size helpers."""

    def test_natural_size(self, row_sample):
        """Test that natural_size returns (height, width)."""
        entry, _, _ = row_sample
        assert natural_size(entry.image_path) == (1, 3)

    def test_center_crop_offsets(self):
        """Test crop offsets and the too-small case."""
        assert center_crop_offsets(6, 8, 4) == (1, 2)
        with pytest.raises(ShapeMismatchError):
            center_crop_offsets(3, 8, 4)
