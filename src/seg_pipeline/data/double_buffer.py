# src/seg_pipeline/data/double_buffer.py
"""
Double-buffered handoff between the producer thread and the consumer.

Two fixed batch slots, indexed 0 and 1, are filled and read alternately.
Slot ownership only changes while holding the condition lock:

    FREE --acquire_back--> FILLING --publish--> READY --acquire_front--> HELD
      ^                       |                                           |
      +-------abandon---------+                  release on next acquire -+

The producer writes only a FILLING slot and the consumer reads only its HELD
slot, so a reader never observes a write in progress. A new fill starts only
once no slot is READY, so the producer is at most one batch ahead of the
consumer.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import List, Optional

import torch

from ..constants import LABEL_DIM, NUM_BUFFER_SLOTS, NUM_OUTPUT_CHANNELS
from ..exceptions import PipelineError

logger = logging.getLogger(__name__)

__all__ = ["SlotState", "BufferSlot", "DoubleBuffer"]


class SlotState(Enum):
    FREE = "free"
    FILLING = "filling"
    READY = "ready"
    HELD = "held"


class BufferSlot:
    """One pre-allocated batch region plus the metadata of its last fill."""

    def __init__(self, slot_id: int, batch_size: int, height: int, width: int, with_label: bool):
        self.slot_id = slot_id
        self.data = torch.zeros(batch_size, NUM_OUTPUT_CHANNELS, height, width, dtype=torch.float32)
        self.label = torch.zeros(batch_size, LABEL_DIM, dtype=torch.float32) if with_label else None
        # numpy views share storage with the tensors
        self.data_array = self.data.numpy()
        self.label_array = self.label.numpy() if self.label is not None else None
        self.state = SlotState.FREE
        self.epoch = 0
        self.batch_index = -1

    @property
    def nbytes(self) -> int:
        total = self.data.element_size() * self.data.nelement()
        if self.label is not None:
            total += self.label.element_size() * self.label.nelement()
        return total


class DoubleBuffer:
    """
    Two-slot bounded handoff with look-ahead of one batch.

    Args:
        batch_size: Samples per batch
        height: Output height
        width: Output width
        with_label: Allocate ``[batch_size, 2]`` label regions
    """

    def __init__(self, batch_size: int, height: int, width: int, with_label: bool = False):
        self.slots: List[BufferSlot] = [
            BufferSlot(i, batch_size, height, width, with_label) for i in range(NUM_BUFFER_SLOTS)
        ]
        self._cond = threading.Condition()
        self._write_idx = 0
        self._read_idx = 0
        self._held: Optional[int] = None
        self._closed = False
        self._error: Optional[BaseException] = None

    # ------------------------------------------------------------------ #
    # Producer side
    # ------------------------------------------------------------------ #

    def acquire_back(self) -> Optional[BufferSlot]:
        """
        Block until the next write slot is free and the last published batch
        has been taken by the consumer. Returns None once closed.
        """
        with self._cond:
            self._cond.wait_for(
                lambda: self._closed
                or (
                    self.slots[self._write_idx].state is SlotState.FREE
                    and not any(slot.state is SlotState.READY for slot in self.slots)
                )
            )
            if self._closed:
                return None
            slot = self.slots[self._write_idx]
            slot.state = SlotState.FILLING
            return slot

    def publish(self, slot: BufferSlot) -> None:
        """Hand a completely filled slot to the consumer."""
        with self._cond:
            if slot.state is not SlotState.FILLING:
                raise PipelineError(f"Slot {slot.slot_id} published in state {slot.state.value}")
            slot.state = SlotState.READY
            self._write_idx = (self._write_idx + 1) % NUM_BUFFER_SLOTS
            self._cond.notify_all()

    def abandon(self, slot: BufferSlot) -> None:
        """Return a partially written slot without publishing it."""
        with self._cond:
            if slot.state is SlotState.FILLING:
                slot.state = SlotState.FREE
            self._cond.notify_all()

    def fail(self, exc: BaseException) -> None:
        """Record a producer failure and wake the consumer."""
        with self._cond:
            self._error = exc
            self._cond.notify_all()

    # ------------------------------------------------------------------ #
    # Consumer side
    # ------------------------------------------------------------------ #

    def acquire_front(self, timeout: Optional[float] = None) -> BufferSlot:
        """
        Release the currently held slot and take the next ready one.

        Ready batches are handed out before a recorded producer failure is
        raised, so no completed batch is dropped.

        Raises:
            PipelineError: If the producer failed, the buffer was closed, or
                ``timeout`` elapsed
        """
        with self._cond:
            self._release_locked()
            if self._closed:
                raise PipelineError("Pipeline is closed")
            self._cond.wait_for(
                lambda: self.slots[self._read_idx].state is SlotState.READY
                or self._error is not None
                or self._closed,
                timeout=timeout,
            )
            if self._closed:
                raise PipelineError("Pipeline is closed")
            slot = self.slots[self._read_idx]
            if slot.state is SlotState.READY:
                slot.state = SlotState.HELD
                self._held = self._read_idx
                self._read_idx = (self._read_idx + 1) % NUM_BUFFER_SLOTS
                self._cond.notify_all()
                return slot
            if self._error is not None:
                raise PipelineError(f"Batch producer failed: {self._error}") from self._error
            raise PipelineError(f"Timed out after {timeout}s waiting for the next batch")

    def release_front(self) -> None:
        """Give the held slot back to the producer."""
        with self._cond:
            self._release_locked()

    def _release_locked(self) -> None:
        if self._held is not None:
            self.slots[self._held].state = SlotState.FREE
            self._held = None
            self._cond.notify_all()

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def states(self) -> List[SlotState]:
        with self._cond:
            return [slot.state for slot in self.slots]

    @property
    def nbytes(self) -> int:
        return sum(slot.nbytes for slot in self.slots)
