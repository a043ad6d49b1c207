"""Dump providers for obtaining raw dumps from different locations."""

from pathlib import Path

from ..config.schemas import ProviderConfig
from ..errors import ConfigError
from .base import BaseProvider
from .file import FileProvider
from .http import HttpProvider

PROVIDERS: dict[str, type[BaseProvider]] = {
    "file": FileProvider,
    "http": HttpProvider,
}


def create_provider(
    name: str, config: ProviderConfig, cache_dir: str | Path = "cache"
) -> BaseProvider:
    """Instantiate the provider configured for a source."""
    provider_class = PROVIDERS.get(config.provider_type)
    if provider_class is None:
        raise ConfigError(f"Unknown provider type: {config.provider_type}")
    return provider_class(name, cache_dir)


__all__ = [
    "PROVIDERS",
    "BaseProvider",
    "FileProvider",
    "HttpProvider",
    "create_provider",
]
