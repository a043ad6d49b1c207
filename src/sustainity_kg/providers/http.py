"""HTTP provider for downloading dumps into the local cache directory."""

import json
import os
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import requests
from tqdm import tqdm

from ..config.schemas import ProviderConfig
from ..errors import DumpIoError
from .base import BaseProvider


class HttpProvider(BaseProvider):
    """Provider that streams a dump from an HTTP(S) endpoint to disk.

    The response's ETag and Last-Modified headers are kept next to a
    finished download and identify the dump. Later runs revalidate it with a
    conditional request and download again only when the server has a newer
    dump. A download without either header is always fetched again.
    """

    def __init__(self, name: str, cache_dir: str | Path = "cache"):
        super().__init__(name, cache_dir)
        self.token = os.getenv("DUMP_HTTP_TOKEN")

    def target_path(self, config: ProviderConfig) -> Path:
        filename = Path(urlparse(config.url).path).name or f"{self.name}.json.gz"
        return self.cache_dir / self.name / filename

    def fetch(self, config: ProviderConfig) -> Path:
        url = config.url
        if not url:
            raise DumpIoError("HttpProvider requires 'url' in configuration")

        target = self.target_path(config)
        headers = self._build_headers()
        conditional = self._conditional_headers(target)
        headers.update(conditional)

        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + ".part")
        timeout = max(int(config.timeout), 1)

        if conditional:
            self.logger.info(f"Revalidating downloaded dump {target}")
        else:
            self.logger.info(f"Downloading dump from {url}")
        try:
            with requests.get(
                url, headers=headers, timeout=timeout, stream=True
            ) as response:
                if conditional and response.status_code == 304:
                    self.logger.info(f"Reusing unchanged dump {target}")
                    return target
                response.raise_for_status()
                total_size = int(response.headers.get("content-length", 0))

                with (
                    open(partial, "wb") as f,
                    tqdm(
                        total=total_size, unit="B", unit_scale=True, desc=target.name
                    ) as pbar,
                ):
                    for chunk in response.iter_content(chunk_size=config.chunk_size):
                        f.write(chunk)
                        pbar.update(len(chunk))

                validators = {
                    "etag": response.headers.get("ETag"),
                    "last_modified": response.headers.get("Last-Modified"),
                }
        except (requests.RequestException, OSError) as e:
            partial.unlink(missing_ok=True)
            raise DumpIoError(f"Failed to download {url}: {e}") from e

        partial.replace(target)
        self._validators_path(target).write_text(json.dumps(validators))
        self.logger.info(f"Downloaded {target.stat().st_size} bytes to {target}")
        return target

    def get_cache_key_fields(self, config: ProviderConfig) -> dict[str, Any]:
        """URL plus the ETag or Last-Modified header of the download."""
        fields: dict[str, Any] = {"url": config.url}
        fields.update(self._load_validators(self.target_path(config)))
        return fields

    def _load_validators(self, target: Path) -> dict[str, str | None]:
        validators_path = self._validators_path(target)
        if not validators_path.exists():
            return {}
        return json.loads(validators_path.read_text())

    def _conditional_headers(self, target: Path) -> dict[str, str]:
        """Headers that ask the server to skip an unchanged download."""
        if not target.is_file() or target.stat().st_size == 0:
            return {}
        validators = self._load_validators(target)
        headers: dict[str, str] = {}
        etag = validators.get("etag")
        if etag:
            headers["If-None-Match"] = etag
        last_modified = validators.get("last_modified")
        if last_modified:
            headers["If-Modified-Since"] = last_modified
        return headers

    def _validators_path(self, target: Path) -> Path:
        return target.with_name(target.name + ".headers.json")

    def _build_headers(self) -> dict[str, str]:
        headers = {"Accept-Encoding": "identity"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers
