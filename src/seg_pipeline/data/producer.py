# src/seg_pipeline/data/producer.py
"""
Batch production loop body.

`BatchProducer` is the single owner of the sample index, its cursor and both
RNG streams. It runs only on the producer thread and shares nothing but the
buffer slot it is filling.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Sequence

import numpy as np

from .double_buffer import BufferSlot
from .manifest import SampleIndex
from .materialize import materialize_sample
from .preview import show_preview
from .sampling import MirrorDecider, shuffle_index

logger = logging.getLogger(__name__)

__all__ = ["BatchProducer"]


class BatchProducer:
    """
    Fills batch slots from a SampleIndex in cursor order.

    Args:
        index: Sample index, permuted in place on every wraparound when
            ``shuffle`` is enabled
        batch_size: Samples per batch
        mean_values: Per-channel mean subtracted from colour channels
        shuffle_rng: Generator driving the epoch shuffle
        mirror_rng: Generator driving mirror decisions
        shuffle: Reshuffle at every epoch boundary
        mirror: Enable random horizontal mirroring
        crop_size: Centre crop size, 0 disables cropping
        show_level: 1 opens a live preview window per sample
    """

    def __init__(
        self,
        index: SampleIndex,
        batch_size: int,
        mean_values: Sequence[float],
        shuffle_rng: np.random.Generator,
        mirror_rng: np.random.Generator,
        shuffle: bool = False,
        mirror: bool = False,
        crop_size: int = 0,
        show_level: int = 0,
    ):
        self.index = index
        self.batch_size = batch_size
        self.mean_values = tuple(mean_values)
        self.shuffle_rng = shuffle_rng
        self.decider = MirrorDecider(mirror_rng, enabled=mirror)
        self.shuffle = shuffle
        self.crop_size = crop_size
        self.show_level = show_level

        self.next_index = 0
        self.epoch = 0
        self.batches_produced = 0

    def advance(self) -> None:
        """Move the cursor one sample forward, reshuffling at wraparound."""
        self.next_index += 1
        if self.next_index >= len(self.index):
            self.next_index = 0
            self.epoch += 1
            if self.shuffle:
                shuffle_index(self.index, self.shuffle_rng)

    def fill(self, slot: BufferSlot, stop_event: Optional[threading.Event] = None) -> bool:
        """
        Materialize one full batch into ``slot``.

        Returns:
            True when all ``batch_size`` items were written, False when
            ``stop_event`` was set between samples

        Raises:
            DecodeError, ShapeMismatchError: On the first sample that cannot
                be materialized. The cursor is left on that sample.
        """
        slot.epoch = self.epoch
        for item_id in range(self.batch_size):
            if stop_event is not None and stop_event.is_set():
                return False

            entry = self.index[self.next_index]
            mirror = self.decider.should_mirror()
            label_out = slot.label_array[item_id] if slot.label_array is not None else None
            try:
                image, mask = materialize_sample(
                    entry,
                    mirror,
                    self.mean_values,
                    slot.data_array[item_id],
                    label_out,
                    crop_size=self.crop_size,
                )
            except Exception:
                logger.error(
                    "Failed to load sample %d of epoch %d (%s, %s)",
                    self.next_index,
                    self.epoch,
                    entry.image_path,
                    entry.mask_path,
                )
                raise

            if self.show_level == 1:
                show_preview(entry, image, mask)

            self.advance()

        slot.batch_index = self.batches_produced
        self.batches_produced += 1
        return True
