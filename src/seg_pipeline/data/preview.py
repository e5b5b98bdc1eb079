# src/seg_pipeline/data/preview.py
"""
Live preview of samples as they are loaded (``show_level=1``).

Works on copies of the decoded arrays and never touches batch buffers.
"""

import logging

import cv2
import numpy as np

from ..constants import (
    PREVIEW_IMAGE_WINDOW,
    PREVIEW_MASK_WINDOW,
    PREVIEW_POINT_COLOR,
    PREVIEW_POINT_RADIUS,
    PREVIEW_WAIT_MS,
)
from .manifest import SampleEntry

logger = logging.getLogger(__name__)


def render_preview(entry: SampleEntry, image: np.ndarray) -> np.ndarray:
    """Return a copy of ``image`` with the manipulation point drawn on it."""
    canvas = image.copy()
    if entry.has_manipulation_point:
        x = int(entry.mp_x * image.shape[1])
        y = int(entry.mp_y * image.shape[0])
        cv2.circle(canvas, (x, y), PREVIEW_POINT_RADIUS, PREVIEW_POINT_COLOR, -1)
    return canvas


def show_preview(entry: SampleEntry, image: np.ndarray, mask: np.ndarray) -> None:
    cv2.imshow(PREVIEW_IMAGE_WINDOW, render_preview(entry, image))
    cv2.imshow(PREVIEW_MASK_WINDOW, mask)
    cv2.waitKey(PREVIEW_WAIT_MS)
