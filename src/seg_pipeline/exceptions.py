# src/seg_pipeline/exceptions.py
"""
Exception hierarchy for the segmentation data pipeline.

Setup-time failures derive from ConfigurationError and are raised before the
producer thread starts. Production-time failures are raised on the producer
thread and resurface on the consumer as PipelineError.
"""

from typing import Optional


class SegmentationDataError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(SegmentationDataError):
    """Invalid pipeline options."""


class ManifestError(ConfigurationError):
    """Manifest could not be opened, was empty, or had a malformed record."""


class DecodeError(SegmentationDataError):
    """An image or mask file could not be read or decoded."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Failed to decode image: {path}")


class ShapeMismatchError(SegmentationDataError):
    """Decoded dimensions disagree with the batch buffer or with each other."""


class PipelineError(SegmentationDataError):
    """The producer thread failed or the pipeline was already closed."""


class LabelError(SegmentationDataError):
    """A label was requested for an entry without a manipulation point."""
