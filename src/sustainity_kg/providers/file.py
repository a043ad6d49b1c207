"""File provider for local dumps."""

from pathlib import Path
from typing import Any

from ..config.schemas import ProviderConfig
from ..errors import DumpIoError
from .base import BaseProvider


class FileProvider(BaseProvider):
    """Provider for dumps already present on the local filesystem."""

    def fetch(self, config: ProviderConfig) -> Path:
        """Locate a local dump.

        Args:
            config: Must contain 'file_path'

        Returns:
            Path of the dump
        """
        file_path = config.file_path
        if not file_path:
            raise DumpIoError("FileProvider requires 'file_path' in config")

        path = Path(file_path)

        if not path.is_file():
            raise DumpIoError(f"File not found: {path}")

        self.logger.info(f"Using dump {path} ({path.stat().st_size} bytes)")
        return path

    def get_cache_key_fields(self, config: ProviderConfig) -> dict[str, Any]:
        """File path, size and modification time identify the dump."""
        file_path = config.file_path
        cache_fields: dict[str, Any] = {
            "file_path": str(file_path) if file_path else None
        }

        if file_path and Path(file_path).exists():
            stat = Path(file_path).stat()
            cache_fields["file_size"] = stat.st_size
            cache_fields["file_mtime"] = str(stat.st_mtime)

        return cache_fields
