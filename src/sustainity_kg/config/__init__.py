"""Configuration management for the Sustainity KG Pipeline."""

from .config import load_config, parse_config, validate_config
from .schemas import (
    AdvisorConfig,
    BuilderConfig,
    ClassificationRule,
    ClassifierConfig,
    LoggingConfig,
    PipelineConfig,
    ProcessingConfig,
    ProviderConfig,
    ScoringConfig,
    SourceConfig,
    StoreConfig,
)

__all__ = [
    "AdvisorConfig",
    "BuilderConfig",
    "ClassificationRule",
    "ClassifierConfig",
    "LoggingConfig",
    "PipelineConfig",
    "ProcessingConfig",
    "ProviderConfig",
    "ScoringConfig",
    "SourceConfig",
    "StoreConfig",
    "load_config",
    "parse_config",
    "validate_config",
]
