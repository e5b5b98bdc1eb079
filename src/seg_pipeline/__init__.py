"""
Segmentation Pipeline Package

Prefetching, double-buffered batch assembly for image/mask segmentation
training with optional manipulation-point labels.
"""

from .config import SegmentationDataConfig
from .data.pipeline import Batch, SegmentationPipeline, configure, next_batch
from .exceptions import (
    ConfigurationError,
    DecodeError,
    LabelError,
    ManifestError,
    PipelineError,
    SegmentationDataError,
    ShapeMismatchError,
)

__all__ = [
    'SegmentationDataConfig',
    'SegmentationPipeline',
    'Batch',
    'configure',
    'next_batch',
    'SegmentationDataError',
    'ConfigurationError',
    'ManifestError',
    'DecodeError',
    'LabelError',
    'ShapeMismatchError',
    'PipelineError',
]
