# src/seg_pipeline/data/__init__.py
"""
Data loading and batch assembly package.

Organized modules:
- manifest: SampleEntry / SampleIndex and manifest parsing
- sampling: RNG streams, epoch shuffler, mirror decider
- materialize: decode + mirror + mean subtraction into batch regions
- producer: background batch production loop body
- double_buffer: two-slot producer/consumer handoff
- pipeline: thread ownership and the configure/next_batch contract
- preview: optional OpenCV live preview
"""

from .manifest import SampleEntry, SampleIndex, load_manifest
from .sampling import create_rng_streams, shuffle_index, MirrorDecider
from .materialize import (
    decode_image,
    decode_mask,
    natural_size,
    center_crop_offsets,
    materialize_sample,
)
from .double_buffer import SlotState, BufferSlot, DoubleBuffer
from .producer import BatchProducer
from .pipeline import Batch, SegmentationPipeline, configure, next_batch

__all__ = [
    # Sample index
    "SampleEntry",
    "SampleIndex",
    "load_manifest",
    # Sampling
    "create_rng_streams",
    "shuffle_index",
    "MirrorDecider",
    # Materialization
    "decode_image",
    "decode_mask",
    "natural_size",
    "center_crop_offsets",
    "materialize_sample",
    # Handoff
    "SlotState",
    "BufferSlot",
    "DoubleBuffer",
    # Production
    "BatchProducer",
    "Batch",
    "SegmentationPipeline",
    "configure",
    "next_batch",
]
