#!/usr/bin/env python
"""
Configuration for the segmentation data pipeline.

Options can be supplied as a mapping (the host's option dictionary) or loaded
from an INI file and turned into a `SegmentationDataConfig`.
"""

import configparser
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .constants import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_CROP_SIZE,
    DEFAULT_MEAN_VALUES,
    DEFAULT_SHOW_LEVEL,
    NUM_COLOR_CHANNELS,
)
from .exceptions import ConfigurationError


# Type alias for configuration values - more specific than Any
ConfigValue = Union[bool, int, float, str, Tuple[float, ...], None]


@dataclass
class SegmentationDataConfig:
    """Configuration for the segmentation data pipeline"""
    # Manifest
    source: str = ''
    root_folder: str = ''
    has_manipulation_data: bool = False

    # Batching
    batch_size: int = DEFAULT_BATCH_SIZE
    shuffle: bool = False

    # Per-sample transform
    mean_value: Tuple[float, ...] = field(default_factory=lambda: DEFAULT_MEAN_VALUES)
    mirror: bool = False
    crop_size: int = DEFAULT_CROP_SIZE  # 0 = natural image size

    # Diagnostics
    show_level: int = DEFAULT_SHOW_LEVEL

    # RNG seed for both streams, None draws fresh OS entropy
    seed: Optional[int] = None

    def __post_init__(self):
        self.mean_value = _normalize_mean(self.mean_value)

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> 'SegmentationDataConfig':
        """Build a config from a host option mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise ConfigurationError(f"Unknown pipeline options: {unknown}")
        config = cls(**{k: v for k, v in options.items() if v is not None})
        config.validate()
        return config

    def validate(self) -> None:
        if not self.source:
            raise ConfigurationError("'source' (manifest path) is required")
        if int(self.batch_size) <= 0:
            raise ConfigurationError(f"batch_size must be positive, got {self.batch_size}")
        if int(self.crop_size) < 0:
            raise ConfigurationError(f"crop_size must be >= 0, got {self.crop_size}")
        if len(self.mean_value) != NUM_COLOR_CHANNELS:
            raise ConfigurationError(
                f"mean_value needs {NUM_COLOR_CHANNELS} values, got {len(self.mean_value)}"
            )
        if self.seed is not None and int(self.seed) < 0:
            raise ConfigurationError(f"seed must be non-negative, got {self.seed}")


def _normalize_mean(value: Any) -> Tuple[float, ...]:
    # A single mean value applies to every channel
    if isinstance(value, (int, float)):
        return (float(value),) * NUM_COLOR_CHANNELS
    if isinstance(value, str):
        value = [v for v in value.split(',') if v.strip()]
    try:
        values = tuple(float(v) for v in value)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid mean_value: {value!r}") from exc
    if len(values) == 1:
        return values * NUM_COLOR_CHANNELS
    return values


def parse_config_value(value: str) -> ConfigValue:
    """Parse configuration value to appropriate type.

    Returns:
        Parsed value as bool, int, float, tuple of floats, str, or None
    """
    # Boolean values
    if value.lower() in ['true', 'yes', 'on']:
        return True
    elif value.lower() in ['false', 'no', 'off']:
        return False

    # Empty string
    if value.strip() == '':
        return None

    # Comma separated numbers (mean_value = 104, 117, 123)
    if ',' in value:
        try:
            return tuple(float(v) for v in value.split(',') if v.strip())
        except ValueError:
            return value

    # Try to parse as number
    try:
        # Try integer first
        if '.' not in value:
            return int(value)
        else:
            return float(value)
    except ValueError:
        # Return as string
        return value


def load_config_file(config_path: Path) -> Dict[str, Any]:
    """Load configuration from INI file"""
    config_path = Path(config_path)
    if not config_path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    config = configparser.ConfigParser()
    config.read(config_path)

    # Flatten configuration into single dictionary
    config_dict = {}
    for section in config.sections():
        for key, value in config[section].items():
            parsed = parse_config_value(value)
            # Paths stay strings even when they look numeric
            if key in ('source', 'root_folder'):
                parsed = value.strip() or None
            config_dict[key] = parsed

    return config_dict


def create_data_config(config_dict: Dict[str, Any],
                       overrides: Optional[Dict[str, Any]] = None) -> SegmentationDataConfig:
    """Create SegmentationDataConfig from configuration dictionary"""
    config_dict = dict(config_dict)
    # Apply any command-line overrides
    if overrides:
        config_dict.update(overrides)

    # Filter out None values
    config_dict = {k: v for k, v in config_dict.items() if v is not None}

    return SegmentationDataConfig.from_dict(config_dict)
