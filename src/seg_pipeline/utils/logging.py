import os
import logging
import logging.handlers
from typing import Dict, Optional

from torch.utils.tensorboard import SummaryWriter

from seg_pipeline.constants import DEFAULT_LOG_DIR, LOG_FILE_BACKUP_COUNT, LOG_FILE_MAX_BYTES


def setup_logging(log_dir: str = DEFAULT_LOG_DIR, log_level: int = logging.INFO) -> logging.Logger:
    """
    Set up console and rotating file logging for the pipeline.

    Args:
        log_dir: Directory for log files (default: DEFAULT_LOG_DIR)
        log_level: Logging level (default: INFO)

    Returns:
        Configured logger
    """
    os.makedirs(log_dir, exist_ok=True)
    logger = logging.getLogger("seg_pipeline")
    logger.setLevel(log_level)

    # Clear existing handlers
    if logger.handlers:
        for handler in logger.handlers:
            handler.close()
        logger.handlers = []

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(threadName)s - %(levelname)s - %(message)s')

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Rotating file handler - 10MB max size, keep 5 backups
    log_file = os.path.join(log_dir, "pipeline.log")
    file_handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUP_COUNT
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


class PipelineMetricsLogger:
    """
    Wrapper for logging pipeline timings to both logger and tensorboard.

    The producer thread and the consumer both report through one instance.
    """
    def __init__(self, log_dir: Optional[str] = None, log_every: int = 1):
        self.logger = logging.getLogger("seg_pipeline.metrics")
        self.log_every = max(1, log_every)

        # TensorBoard only when a directory is given
        self.writer = None
        if log_dir is not None:
            tensorboard_dir = os.path.join(log_dir, "tensorboard")
            os.makedirs(tensorboard_dir, exist_ok=True)
            self.writer = SummaryWriter(tensorboard_dir)

    def log_scalars(self, metrics: Dict[str, float], step: int, prefix: str = "") -> None:
        """
        Log scalar metrics to both logger and tensorboard.

        Args:
            metrics: Dictionary of metric name to value
            step: Batch number
            prefix: Optional prefix for metric names
        """
        for key, value in metrics.items():
            name = f"{prefix}/{key}" if prefix else key

            if step % self.log_every == 0:
                self.logger.debug("%s: %.4f (step %d)", name, value, step)

            if self.writer is not None:
                self.writer.add_scalar(name, value, step)

    def close(self) -> None:
        """Close tensorboard writer"""
        if self.writer is not None:
            self.writer.close()
