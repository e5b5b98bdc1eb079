# src/seg_pipeline/utils/__init__.py
"""
Utilities package: logging setup, metrics and pipeline diagnostics.
"""

from .logging import setup_logging, PipelineMetricsLogger
from .diagnostics import pipeline_diagnostics, check_pipeline_health

__all__ = [
    "setup_logging",
    "PipelineMetricsLogger",
    "pipeline_diagnostics",
    "check_pipeline_health",
]
