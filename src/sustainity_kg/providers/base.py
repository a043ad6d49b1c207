"""Base provider class for locating dumps."""

from abc import ABC, abstractmethod
import logging
from pathlib import Path
from typing import Any

from ..config.schemas import ProviderConfig


class BaseProvider(ABC):
    """Abstract base class for dump providers."""

    def __init__(self, name: str, cache_dir: str | Path = "cache"):
        """Initialize provider.

        Args:
            name: Name of the data source
            cache_dir: Directory for downloaded dumps
        """
        self.name = name
        self.cache_dir = Path(cache_dir)
        self.logger = logging.getLogger(f"provider.{name}")

    @abstractmethod
    def fetch(self, config: ProviderConfig) -> Path:
        """Make the dump available locally.

        Args:
            config: Provider-specific configuration

        Returns:
            Path of the local dump file

        Raises:
            DumpIoError: If the dump cannot be obtained
        """
        pass

    @abstractmethod
    def get_cache_key_fields(self, config: ProviderConfig) -> dict[str, Any]:
        """Get the values that identify the dump's content.

        Args:
            config: Full provider configuration

        Returns:
            Dict of fingerprint field names and their values
        """
        pass
