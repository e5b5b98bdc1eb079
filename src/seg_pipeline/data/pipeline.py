# src/seg_pipeline/data/pipeline.py
"""
Prefetching segmentation data pipeline.

A single background thread assembles batches into a double buffer while the
training loop consumes the previous one. The host-facing contract is two
functions:

    >>> handle = configure({"source": "train.txt", "batch_size": 4})
    >>> data, label = next_batch(handle)
    >>> handle.close()
"""

from __future__ import annotations

import logging
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

import torch

from ..config import SegmentationDataConfig
from ..constants import LABEL_DIM, NUM_OUTPUT_CHANNELS, PRODUCER_JOIN_TIMEOUT_S, PRODUCER_THREAD_NAME
from ..exceptions import PipelineError
from ..utils.logging import PipelineMetricsLogger
from .double_buffer import DoubleBuffer
from .manifest import SampleIndex, load_manifest
from .materialize import natural_size
from .producer import BatchProducer
from .sampling import create_rng_streams, shuffle_index

logger = logging.getLogger(__name__)

__all__ = ["Batch", "SegmentationPipeline", "configure", "next_batch"]


@dataclass
class Batch:
    """
    One consumer-visible batch.

    ``data`` and ``label`` are views of the front buffer slot and stay valid
    until the next call to `SegmentationPipeline.next_batch`.
    """

    data: torch.Tensor
    label: Optional[torch.Tensor]
    epoch: int
    batch_index: int


def _produce_batches(
    buffer: DoubleBuffer,
    producer: BatchProducer,
    stop_event: threading.Event,
    metrics_logger: Optional[PipelineMetricsLogger],
) -> None:
    # Must not reference the owning pipeline
    while not stop_event.is_set():
        slot = buffer.acquire_back()
        if slot is None:
            break

        start = time.perf_counter()
        try:
            completed = producer.fill(slot, stop_event)
        except Exception as exc:
            logger.error("Batch producer stopped: %s", exc)
            buffer.abandon(slot)
            buffer.fail(exc)
            return

        if not completed:
            buffer.abandon(slot)
            break

        fill_time = time.perf_counter() - start
        buffer.publish(slot)
        if metrics_logger is not None:
            metrics_logger.log_scalars(
                {"fill_time_s": fill_time, "epoch": float(slot.epoch)},
                slot.batch_index,
                prefix="producer",
            )
    logger.debug("Producer thread exiting")


def _shutdown(stop_event: threading.Event, buffer: DoubleBuffer) -> None:
    stop_event.set()
    buffer.close()


class SegmentationPipeline:
    """
    Owns the sample index, the producer thread and the double buffer.

    Setup (manifest load, initial shuffle, buffer allocation) runs in the
    constructor and raises `ConfigurationError` before any thread exists.

    Args:
        config: Validated pipeline configuration
        metrics_logger: Optional sink for per-batch timings
        start: Start the producer thread immediately
    """

    def __init__(
        self,
        config: SegmentationDataConfig,
        metrics_logger: Optional[PipelineMetricsLogger] = None,
        start: bool = True,
    ):
        config.validate()
        self.config = config
        self.metrics_logger = metrics_logger

        index = load_manifest(config.source, config.has_manipulation_data, config.root_folder)
        shuffle_rng, mirror_rng = create_rng_streams(config.seed)
        if config.shuffle:
            shuffle_index(index, shuffle_rng)

        if config.crop_size > 0:
            height = width = config.crop_size
        else:
            height, width = natural_size(index[0].image_path)
        logger.info("Batch spatial size: %dx%d", height, width)

        self.buffer = DoubleBuffer(config.batch_size, height, width, config.has_manipulation_data)
        self.producer = BatchProducer(
            index,
            config.batch_size,
            config.mean_value,
            shuffle_rng,
            mirror_rng,
            shuffle=config.shuffle,
            mirror=config.mirror,
            crop_size=config.crop_size,
            show_level=config.show_level,
        )

        self.data_shape = (config.batch_size, NUM_OUTPUT_CHANNELS, height, width)
        self.label_shape = (config.batch_size, LABEL_DIM) if config.has_manipulation_data else None
        logger.info("output data size: %s", ",".join(str(d) for d in self.data_shape))
        if self.label_shape is not None:
            logger.info("label size: %s", ",".join(str(d) for d in self.label_shape))

        self.batches_consumed = 0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        # A dropped handle still stops its producer
        self._finalizer = weakref.finalize(self, _shutdown, self._stop_event, self.buffer)
        if start:
            self.start()

    @property
    def index(self) -> SampleIndex:
        return self.producer.index

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            raise PipelineError("Producer thread already started")
        if self.buffer.closed:
            raise PipelineError("Pipeline is closed")
        self._thread = threading.Thread(
            target=_produce_batches,
            args=(self.buffer, self.producer, self._stop_event, self.metrics_logger),
            name=PRODUCER_THREAD_NAME,
            daemon=True,
        )
        self._thread.start()
        logger.debug("Producer thread started")

    def next_batch(self, timeout: Optional[float] = None) -> Batch:
        """
        Return the next fully formed batch.

        Releases the previously returned batch to the producer, then blocks
        until the next one is ready.

        Raises:
            PipelineError: If the producer failed (original error chained),
                the pipeline is closed, or ``timeout`` elapsed
        """
        if self._thread is None:
            raise PipelineError("Producer thread not started")
        start = time.perf_counter()
        slot = self.buffer.acquire_front(timeout)
        wait_time = time.perf_counter() - start
        self.batches_consumed += 1
        if self.metrics_logger is not None:
            self.metrics_logger.log_scalars(
                {"wait_time_s": wait_time}, slot.batch_index, prefix="consumer"
            )
        return Batch(slot.data, slot.label, slot.epoch, slot.batch_index)

    def close(self) -> None:
        """Stop the producer at its next safe point and join it."""
        self._finalizer()
        if self._thread is not None:
            while self._thread.is_alive():
                self._thread.join(PRODUCER_JOIN_TIMEOUT_S)
                if self._thread.is_alive():
                    logger.warning(
                        "Producer thread still running after %.0fs, waiting for in-flight decode",
                        PRODUCER_JOIN_TIMEOUT_S,
                    )
        logger.debug("Pipeline closed after %d batches", self.batches_consumed)

    def __enter__(self) -> 'SegmentationPipeline':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __iter__(self) -> 'SegmentationPipeline':
        return self

    def __next__(self) -> Batch:
        return self.next_batch()


def configure(
    options: Union[SegmentationDataConfig, Mapping[str, Any]],
    metrics_logger: Optional[PipelineMetricsLogger] = None,
) -> SegmentationPipeline:
    """
    Build and start a pipeline from host options.

    Call ``close()`` on the returned handle (or use it as a context manager)
    to join the producer. A handle dropped without ``close()`` stops its
    producer when it is garbage collected, without joining it.
    """
    if isinstance(options, SegmentationDataConfig):
        config = options
    else:
        config = SegmentationDataConfig.from_dict(options)
    return SegmentationPipeline(config, metrics_logger=metrics_logger)


def next_batch(
    handle: SegmentationPipeline, timeout: Optional[float] = None
) -> Tuple[torch.Tensor, Optional[torch.Tensor]]:
    """Return ``(data, label)`` for the next batch. ``label`` is None without manipulation data."""
    batch = handle.next_batch(timeout)
    return batch.data, batch.label
