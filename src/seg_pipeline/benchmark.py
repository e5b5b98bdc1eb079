#!/usr/bin/env python
"""
Run the segmentation pipeline from an INI configuration and report
throughput.

    python -m seg_pipeline.benchmark train.ini --batches 100
"""

import argparse
import logging
import time
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .config import create_data_config, load_config_file
from .data.pipeline import SegmentationPipeline
from .utils.diagnostics import pipeline_diagnostics
from .utils.logging import PipelineMetricsLogger, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Benchmark the prefetching segmentation data pipeline'
    )

    parser.add_argument(
        'config',
        type=str,
        help='Path to configuration file'
    )
    parser.add_argument('--batches', type=int, default=50, help='Number of batches to consume')
    parser.add_argument('--log_dir', type=str, default=None,
                        help='Write rotating logs and TensorBoard scalars here')

    # Allow command-line overrides for key parameters
    parser.add_argument('--source', type=str, help='Override manifest path')
    parser.add_argument('--batch_size', type=int, help='Override batch size')
    parser.add_argument('--crop_size', type=int, help='Override crop size')
    parser.add_argument('--seed', type=int, help='Override RNG seed')
    parser.add_argument('--no_progress', action='store_true', help='Disable the progress bar')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.log_dir:
        setup_logging(args.log_dir)
    else:
        logging.basicConfig(level=logging.INFO)

    config_path = Path(args.config)
    logger.info("Loading configuration from: %s", config_path)
    config_dict = load_config_file(config_path)

    overrides = {}
    for key in ('source', 'batch_size', 'crop_size', 'seed'):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if overrides:
        logger.info("Applying command-line overrides: %s", overrides)

    config = create_data_config(config_dict, overrides)
    metrics_logger = PipelineMetricsLogger(args.log_dir) if args.log_dir else None

    samples = 0
    start = time.perf_counter()
    with SegmentationPipeline(config, metrics_logger=metrics_logger) as pipeline:
        for _ in tqdm(range(args.batches), desc='batches', disable=args.no_progress):
            batch = pipeline.next_batch()
            samples += batch.data.shape[0]
        elapsed = time.perf_counter() - start
        pipeline_diagnostics(pipeline)

    if metrics_logger is not None:
        metrics_logger.close()

    rate = samples / elapsed if elapsed > 0 else float('inf')
    print(f"Consumed {args.batches} batches ({samples} samples) in {elapsed:.2f}s: {rate:.1f} samples/s")
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
