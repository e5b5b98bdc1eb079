"""Pytest configuration and shared fixtures for seg_pipeline tests."""

from pathlib import Path
from typing import List, Optional, Tuple

import cv2
import numpy as np
import pytest


def write_png(path: Path, array: np.ndarray) -> str:
    """Write ``array`` losslessly and return the path as a string."""
    assert cv2.imwrite(str(path), array), f"could not write {path}"
    return str(path)


def sample_id(data, item: int) -> int:
    """Recover the sample number encoded in channel 0 by `make_dataset`."""
    return int(round(float(data[item, 0, 0, 0]) / 10.0))


@pytest.fixture
def make_dataset(tmp_path):
    """
    Build ``n`` image/mask pairs and a manifest.

    Sample ``i`` is a uniform image whose channel ``c`` equals ``10 * i + c``,
    so ids survive mirroring. Its mask is foreground (255) on the left two
    columns only.
    """

    def _make(
        n: int,
        height: int = 4,
        width: int = 5,
        points: Optional[List[Tuple[float, float]]] = None,
        name: str = "manifest.txt",
    ):
        records = []
        for i in range(n):
            image = np.zeros((height, width, 3), dtype=np.uint8)
            for c in range(3):
                image[..., c] = 10 * i + c
            mask = np.zeros((height, width), dtype=np.uint8)
            mask[:, :2] = 255
            image_path = write_png(tmp_path / f"img_{i}.png", image)
            mask_path = write_png(tmp_path / f"mask_{i}.png", mask)
            records.append((image_path, mask_path))

        lines = []
        for i, (image_path, mask_path) in enumerate(records):
            if points is not None:
                x, y = points[i]
                lines.append(f"{image_path} {mask_path} {x} {y}")
            else:
                lines.append(f"{image_path} {mask_path}")
        manifest = tmp_path / name
        manifest.write_text("\n".join(lines) + "\n")
        return str(manifest), records

    return _make
