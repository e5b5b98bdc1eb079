# src/seg_pipeline/utils/diagnostics.py
"""
Pipeline diagnostics and memory monitoring helpers.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import psutil

logger = logging.getLogger(__name__)


def _bytes_to_mb(value: float) -> float:
    return value / 1024**2


def pipeline_diagnostics(pipeline: Any) -> Dict[str, Any]:
    """
    Inspect a live SegmentationPipeline: producer state, buffer usage and
    process memory.
    """
    producer = pipeline.producer
    process = psutil.Process()

    diagnostics: Dict[str, Any] = {
        "producer_alive": pipeline.is_running,
        "batches_produced": producer.batches_produced,
        "batches_consumed": pipeline.batches_consumed,
        "epoch": producer.epoch,
        "cursor": producer.next_index,
        "index_size": len(producer.index),
        "slot_states": [state.value for state in pipeline.buffer.states()],
        "buffer_memory_mb": _bytes_to_mb(pipeline.buffer.nbytes),
        "process_rss_mb": _bytes_to_mb(process.memory_info().rss),
        "process_threads": process.num_threads(),
        "producer_error": repr(pipeline.buffer.error) if pipeline.buffer.error else None,
    }

    logger.info("=" * 60)
    logger.info("Segmentation Pipeline Diagnostics")
    logger.info("=" * 60)
    logger.info("  - Producer alive: %s", diagnostics["producer_alive"])
    logger.info(
        "  - Batches produced/consumed: %d/%d",
        diagnostics["batches_produced"],
        diagnostics["batches_consumed"],
    )
    logger.info(
        "  - Epoch %d, cursor %d/%d",
        diagnostics["epoch"],
        diagnostics["cursor"],
        diagnostics["index_size"],
    )
    logger.info("  - Slots: %s", diagnostics["slot_states"])
    logger.info("  - Buffer memory: %.2f MB", diagnostics["buffer_memory_mb"])
    logger.info("  - Process RSS: %.2f MB", diagnostics["process_rss_mb"])
    if diagnostics["producer_error"]:
        logger.info("  - Producer error: %s", diagnostics["producer_error"])
    logger.info("=" * 60)
    return diagnostics


def check_pipeline_health(pipeline: Any) -> Dict[str, Any]:
    """
    Perform a set of heuristic checks on a pipeline configuration.
    """
    health = {
        "issues": [],
        "warnings": [],
        "recommendations": [],
    }
    config = pipeline.config

    if pipeline.buffer.error is not None:
        health["issues"].append(f"Producer failed: {pipeline.buffer.error}")
    elif not pipeline.is_running and not pipeline.buffer.closed:
        health["issues"].append("Producer thread is not running.")

    if config.batch_size > len(pipeline.index):
        health["warnings"].append(
            f"batch_size ({config.batch_size}) exceeds the number of samples "
            f"({len(pipeline.index)}); every batch repeats samples."
        )

    if not config.shuffle:
        health["recommendations"].append(
            "shuffle=False visits samples in manifest order every epoch."
        )

    if config.show_level == 1:
        health["warnings"].append(
            "show_level=1 opens a preview window per sample and slows production."
        )

    vm = psutil.virtual_memory()
    if vm.percent > 90:
        health["issues"].append(
            f"System memory usage is high ({vm.percent:.1f}%). Risk of OOM."
        )

    return health


__all__ = [
    "pipeline_diagnostics",
    "check_pipeline_health",
]
