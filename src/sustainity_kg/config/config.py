"""Configuration management utilities."""

from enum import Enum
import json
import logging
from pathlib import Path
from typing import Any

from dacite import Config, from_dict
import yaml

from ..errors import ConfigError
from .schemas import PipelineConfig

logger = logging.getLogger(__name__)

DACITE_CONFIG = Config(strict=True, cast=[Enum], type_hooks={float: float})


def load_config(config_path: str | Path) -> PipelineConfig:
    """Load configuration from a file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    with open(config_path, encoding="utf-8") as f:
        if config_path.suffix.lower() in [".yaml", ".yml"]:
            config_data = yaml.safe_load(f)
        elif config_path.suffix.lower() == ".json":
            config_data = json.load(f)
        else:
            raise ConfigError(f"Unsupported configuration format: {config_path.suffix}")

    config = parse_config(config_data or {})
    logger.debug(f"Loaded configuration from {config_path}")
    return config


def parse_config(config_data: dict[str, Any]) -> PipelineConfig:
    """Build and validate a configuration from plain data."""
    try:
        config: PipelineConfig = from_dict(
            data_class=PipelineConfig, data=config_data, config=DACITE_CONFIG
        )
    except Exception as e:
        raise ConfigError(f"Failed to parse configuration: {e}") from e

    validate_config(config)
    return config


def validate_config(config: PipelineConfig) -> None:
    """Check constraints the schema types cannot express."""
    scoring = config.scoring
    if scoring.default_weight < 0:
        raise ConfigError("scoring.default_weight must not be negative")

    negative = sorted(k for k, v in scoring.weights.items() if v < 0)
    if negative:
        raise ConfigError(f"Negative scoring weights for: {', '.join(negative)}")

    if config.processing.workers is not None and config.processing.workers < 1:
        raise ConfigError("processing.workers must be at least 1")

    if config.processing.queue_size < 1:
        raise ConfigError("processing.queue_size must be at least 1")

    if config.processing.log_every < 1:
        raise ConfigError("processing.log_every must be at least 1")

    if config.store.keep_versions < 1:
        raise ConfigError("store.keep_versions must be at least 1")

    if config.store.commit_every < 1:
        raise ConfigError("store.commit_every must be at least 1")

    names = [source.name for source in config.sources]
    duplicated = sorted({name for name in names if names.count(name) > 1})
    if duplicated:
        raise ConfigError(f"Duplicated source names: {', '.join(duplicated)}")

    for source in config.sources:
        if "\x00" in source.name or source.name.startswith("advisor:"):
            raise ConfigError(f"Invalid source name: {source.name!r}")

    for advisor in config.advisors:
        if advisor.score_scale <= 0:
            raise ConfigError(f"Advisor {advisor.name}: score_scale must be positive")

    for kind, level in config.logging.issue_levels.items():
        if not isinstance(logging.getLevelName(level.upper()), int):
            raise ConfigError(f"Unknown log level {level!r} for {kind} issues")
