# src/seg_pipeline/data/sampling.py
"""
Random streams for epoch shuffling and mirror augmentation.

The shuffle stream and the mirror stream are separate generators built from
two spawned seeds, so toggling mirroring never changes the visiting order.
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from .manifest import SampleIndex

logger = logging.getLogger(__name__)

__all__ = ["create_rng_streams", "shuffle_index", "MirrorDecider"]


def create_rng_streams(seed: Optional[int] = None) -> Tuple[np.random.Generator, np.random.Generator]:
    """
    Build the (shuffle_rng, mirror_rng) pair.

    With ``seed=None`` the root entropy is drawn from the OS, so restarts are
    not reproducible. A fixed seed reproduces both streams exactly.
    """
    root = np.random.SeedSequence(seed)
    shuffle_seq, mirror_seq = root.spawn(2)
    logger.debug("RNG streams seeded from entropy %s", root.entropy)
    return np.random.default_rng(shuffle_seq), np.random.default_rng(mirror_seq)


def shuffle_index(index: SampleIndex, rng: np.random.Generator) -> None:
    """Permute the index in place with an unbiased Fisher-Yates shuffle."""
    logger.info("Shuffle images")
    rng.shuffle(index.entries)


class MirrorDecider:
    """
    Per-sample horizontal mirror decision.

    Each call draws one 32-bit value and uses its parity. A disabled decider
    answers False without touching the stream.
    """

    def __init__(self, rng: np.random.Generator, enabled: bool = True):
        self.rng = rng
        self.enabled = enabled

    def should_mirror(self) -> bool:
        if not self.enabled:
            return False
        return bool(int(self.rng.integers(0, 2**32, dtype=np.uint64)) % 2)
