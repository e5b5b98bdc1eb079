# src/seg_pipeline/data/manifest.py
"""
Sample index loading.

Two manifest grammars are supported:

- extended: whitespace separated records ``image mask mp_x mp_y``
- basic: one record per line, the first two space delimited tokens are
  ``image mask`` and anything after them is ignored
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from ..constants import BASIC_RECORD_FIELDS, EXTENDED_RECORD_FIELDS
from ..exceptions import ManifestError

logger = logging.getLogger(__name__)

__all__ = ["SampleEntry", "SampleIndex", "load_manifest"]


@dataclass(frozen=True)
class SampleEntry:
    """One manifest record."""

    image_path: str
    mask_path: str
    mp_x: Optional[float] = None
    mp_y: Optional[float] = None

    @property
    def has_manipulation_point(self) -> bool:
        return self.mp_x is not None and self.mp_y is not None


class SampleIndex:
    """
    Fixed-size ordered collection of manifest entries.

    The entry set never changes after loading. Only the epoch shuffle reorders
    it, in place.
    """

    def __init__(self, entries: Sequence[SampleEntry], source: str = ""):
        if not entries:
            raise ManifestError(f"Manifest {source or '<memory>'} contains no samples")
        self._entries: List[SampleEntry] = list(entries)
        self.source = source

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, idx: int) -> SampleEntry:
        return self._entries[idx]

    def __iter__(self) -> Iterator[SampleEntry]:
        return iter(self._entries)

    @property
    def entries(self) -> List[SampleEntry]:
        """Mutable view used by the shuffler. Length must never change."""
        return self._entries

    def __repr__(self) -> str:
        return f"SampleIndex(source={self.source!r}, size={len(self)})"


def _resolve(path: str, root_folder: str) -> str:
    if root_folder and not os.path.isabs(path):
        return os.path.join(root_folder, path)
    return path


def _parse_extended(text: str, source: str, root_folder: str) -> List[SampleEntry]:
    tokens = text.split()
    if len(tokens) % EXTENDED_RECORD_FIELDS:
        raise ManifestError(
            f"{source}: expected records of {EXTENDED_RECORD_FIELDS} fields, "
            f"got {len(tokens)} tokens (trailing incomplete record)"
        )

    entries: List[SampleEntry] = []
    for start in range(0, len(tokens), EXTENDED_RECORD_FIELDS):
        image, mask, mp_x, mp_y = tokens[start:start + EXTENDED_RECORD_FIELDS]
        record = start // EXTENDED_RECORD_FIELDS + 1
        try:
            x, y = float(mp_x), float(mp_y)
        except ValueError as exc:
            raise ManifestError(
                f"{source}: record {record} has a malformed manipulation point "
                f"({mp_x!r}, {mp_y!r})"
            ) from exc
        entries.append(SampleEntry(_resolve(image, root_folder), _resolve(mask, root_folder), x, y))
    return entries


def _parse_basic(text: str, source: str, root_folder: str) -> List[SampleEntry]:
    entries: List[SampleEntry] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        tokens = line.split()[:BASIC_RECORD_FIELDS]
        if len(tokens) < BASIC_RECORD_FIELDS:
            raise ManifestError(
                f"{source}:{line_no}: expected '<image_path> <mask_path>', got {line!r}"
            )
        image, mask = tokens
        entries.append(SampleEntry(_resolve(image, root_folder), _resolve(mask, root_folder)))
        logger.debug("%s %s", image, mask)
    return entries


def load_manifest(
    manifest_path: Union[str, Path],
    has_manipulation_data: bool = False,
    root_folder: str = "",
) -> SampleIndex:
    """
    Load a manifest file into a SampleIndex.

    Args:
        manifest_path: Path to the manifest text file
        has_manipulation_data: Use the 4-field extended grammar
        root_folder: Optional prefix for relative image and mask paths

    Returns:
        SampleIndex in manifest order

    Raises:
        ManifestError: If the file is unreadable, empty, or malformed
    """
    source = str(manifest_path)
    logger.info("Opening file %s", source)
    try:
        with open(source, "r") as handle:
            text = handle.read()
    except OSError as exc:
        raise ManifestError(f"Cannot open manifest {source}: {exc}") from exc

    if has_manipulation_data:
        entries = _parse_extended(text, source, root_folder)
    else:
        entries = _parse_basic(text, source, root_folder)

    index = SampleIndex(entries, source=source)
    logger.info("Total number of image pairs: %d", len(index))
    return index
