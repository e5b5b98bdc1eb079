# src/seg_pipeline/data/materialize.py
"""
Sample materialization: decode, mirror, crop, mean-subtract and binarize one
image/mask pair directly into a caller-owned batch region.

Channel layout of the destination region ``[4, H, W]``:

- channels 0..2: decoded colour channels (OpenCV BGR order) minus the
  per-channel mean
- channel 3: mask, 1.0 where the raw mask is positive, else 0.0
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from ..constants import MASK_CHANNEL, NUM_COLOR_CHANNELS, NUM_OUTPUT_CHANNELS
from ..exceptions import DecodeError, LabelError, ShapeMismatchError
from .manifest import SampleEntry

logger = logging.getLogger(__name__)

__all__ = [
    "decode_image",
    "decode_mask",
    "natural_size",
    "center_crop_offsets",
    "materialize_sample",
]


def decode_image(path: str) -> np.ndarray:
    """Decode a colour image as ``H x W x 3`` uint8 (BGR)."""
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise DecodeError(str(path), f"Failed to read image: {path}")
    return image


def decode_mask(path: str) -> np.ndarray:
    """Decode a mask as single-channel ``H x W`` uint8."""
    mask = cv2.imread(str(path), cv2.IMREAD_GRAYSCALE)
    if mask is None:
        raise DecodeError(str(path), f"Failed to read mask: {path}")
    return mask


def natural_size(path: str) -> Tuple[int, int]:
    """Return ``(height, width)`` of the image at ``path``."""
    image = decode_image(path)
    return image.shape[0], image.shape[1]


def center_crop_offsets(height: int, width: int, crop_size: int) -> Tuple[int, int]:
    """Top-left corner of a centred ``crop_size`` square."""
    if height < crop_size or width < crop_size:
        raise ShapeMismatchError(
            f"Image of size {height}x{width} is smaller than crop_size={crop_size}"
        )
    return (height - crop_size) // 2, (width - crop_size) // 2


def materialize_sample(
    entry: SampleEntry,
    mirror: bool,
    mean_values: Sequence[float],
    data_out: np.ndarray,
    label_out: Optional[np.ndarray] = None,
    crop_size: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Fill one batch item in place.

    Args:
        entry: Manifest record to load
        mirror: Flip horizontally (pixels, mask and the label x coordinate)
        mean_values: Per-channel offsets subtracted from colour channels
        data_out: Destination view of shape ``[4, H, W]``
        label_out: Optional destination view of shape ``[2]``
        crop_size: Centre crop size, 0 keeps the natural size

    Returns:
        The decoded (image, mask) before mirroring or cropping, for preview

    Raises:
        DecodeError: If image or mask cannot be decoded
        LabelError: If ``label_out`` is given but the entry has no point
        ShapeMismatchError: If decoded sizes disagree with each other or with
            the destination region
    """
    image = decode_image(entry.image_path)
    mask = decode_mask(entry.mask_path)

    if mask.shape != image.shape[:2]:
        raise ShapeMismatchError(
            f"Mask {entry.mask_path} is {mask.shape[0]}x{mask.shape[1]} but image "
            f"{entry.image_path} is {image.shape[0]}x{image.shape[1]}"
        )
    raw_image, raw_mask = image, mask

    # Column w reads column W-1-w
    if mirror:
        image = image[:, ::-1, :]
        mask = mask[:, ::-1]

    if crop_size > 0:
        top, left = center_crop_offsets(image.shape[0], image.shape[1], crop_size)
        image = image[top:top + crop_size, left:left + crop_size]
        mask = mask[top:top + crop_size, left:left + crop_size]

    expected = tuple(data_out.shape)
    produced = (NUM_OUTPUT_CHANNELS, image.shape[0], image.shape[1])
    if produced != expected:
        raise ShapeMismatchError(
            f"{entry.image_path} yields a sample of shape {produced}, batch buffer "
            f"expects {expected}; all images must share one size unless crop_size is set"
        )

    mean = np.asarray(mean_values, dtype=np.float32).reshape(NUM_COLOR_CHANNELS, 1, 1)
    data_out[:NUM_COLOR_CHANNELS] = np.transpose(image, (2, 0, 1)).astype(np.float32) - mean
    data_out[MASK_CHANNEL] = (mask > 0).astype(np.float32)

    if label_out is not None:
        if not entry.has_manipulation_point:
            raise LabelError(f"Entry {entry.image_path} has no manipulation point")
        label_out[0] = 1.0 - entry.mp_x if mirror else entry.mp_x
        label_out[1] = entry.mp_y

    return raw_image, raw_mask
