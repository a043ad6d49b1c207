"""Tests for the HTTP provider."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests
from sustainity_kg.config import ProviderConfig
from sustainity_kg.errors import DumpIoError
from sustainity_kg.providers import HttpProvider

URL = "https://dumps.example.org/wikidata/latest-all.json.gz"


def mock_response(
    chunks: list[bytes], headers: dict[str, str], status_code: int = 200
) -> MagicMock:
    response = MagicMock()
    response.status_code = status_code
    response.__enter__.return_value = response
    response.headers = headers
    response.iter_content.return_value = chunks
    return response


@pytest.fixture
def config() -> ProviderConfig:
    return ProviderConfig(provider_type="http", url=URL, chunk_size=4)


class TestHttpProvider:
    """Test downloading dumps into the cache directory."""

    @patch("sustainity_kg.providers.http.requests.get")
    def test_download(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        mock_get.return_value = mock_response(
            [b"abcd", b"ef"],
            {"content-length": "6", "ETag": '"v1"', "Last-Modified": "yesterday"},
        )
        provider = HttpProvider("wikidata", tmp_path)

        path = provider.fetch(config)

        assert path == tmp_path / "wikidata" / "latest-all.json.gz"
        assert path.read_bytes() == b"abcdef"
        assert not path.with_name(path.name + ".part").exists()
        assert provider.get_cache_key_fields(config) == {
            "url": URL,
            "etag": '"v1"',
            "last_modified": "yesterday",
        }
        _, kwargs = mock_get.call_args
        assert kwargs["stream"] is True
        assert "Authorization" not in kwargs["headers"]

    @patch.dict("os.environ", {"DUMP_HTTP_TOKEN": "secret"})
    @patch("sustainity_kg.providers.http.requests.get")
    def test_token_is_sent(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        mock_get.return_value = mock_response([b"x"], {})

        HttpProvider("wikidata", tmp_path).fetch(config)

        _, kwargs = mock_get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer secret"

    @patch("sustainity_kg.providers.http.requests.get")
    def test_download_without_validators_is_fetched_again(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        target = tmp_path / "wikidata" / "latest-all.json.gz"
        target.parent.mkdir(parents=True)
        target.write_bytes(b"cached")
        mock_get.return_value = mock_response([b"fresh"], {})

        assert HttpProvider("wikidata", tmp_path).fetch(config) == target

        assert target.read_bytes() == b"fresh"
        _, kwargs = mock_get.call_args
        assert "If-None-Match" not in kwargs["headers"]

    @patch("sustainity_kg.providers.http.requests.get")
    def test_unchanged_download_is_reused(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        mock_get.return_value = mock_response(
            [b"cached"], {"ETag": '"v1"', "Last-Modified": "yesterday"}
        )
        provider = HttpProvider("wikidata", tmp_path)
        target = provider.fetch(config)

        mock_get.return_value = mock_response([], {}, status_code=304)
        assert provider.fetch(config) == target

        assert target.read_bytes() == b"cached"
        _, kwargs = mock_get.call_args
        assert kwargs["headers"]["If-None-Match"] == '"v1"'
        assert kwargs["headers"]["If-Modified-Since"] == "yesterday"
        assert provider.get_cache_key_fields(config)["etag"] == '"v1"'

    @patch("sustainity_kg.providers.http.requests.get")
    def test_changed_download_is_replaced(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        mock_get.return_value = mock_response([b"old"], {"ETag": '"v1"'})
        provider = HttpProvider("wikidata", tmp_path)
        target = provider.fetch(config)

        mock_get.return_value = mock_response([b"new"], {"ETag": '"v2"'})
        assert provider.fetch(config) == target

        assert target.read_bytes() == b"new"
        _, kwargs = mock_get.call_args
        assert kwargs["headers"]["If-None-Match"] == '"v1"'
        assert "If-Modified-Since" not in kwargs["headers"]
        assert provider.get_cache_key_fields(config) == {
            "url": URL,
            "etag": '"v2"',
            "last_modified": None,
        }

    @patch("sustainity_kg.providers.http.requests.get")
    def test_request_failure(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        mock_get.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(DumpIoError):
            HttpProvider("wikidata", tmp_path).fetch(config)

        assert not (tmp_path / "wikidata" / "latest-all.json.gz").exists()

    @patch("sustainity_kg.providers.http.requests.get")
    def test_http_error_leaves_no_partial_file(
        self, mock_get: MagicMock, tmp_path: Path, config: ProviderConfig
    ) -> None:
        response = mock_response([], {})
        response.raise_for_status.side_effect = requests.HTTPError("404")
        mock_get.return_value = response

        with pytest.raises(DumpIoError):
            HttpProvider("wikidata", tmp_path).fetch(config)

        assert list((tmp_path / "wikidata").iterdir()) == []

    def test_missing_url(self, tmp_path: Path) -> None:
        with pytest.raises(DumpIoError):
            HttpProvider("wikidata", tmp_path).fetch(ProviderConfig("http"))

    def test_cache_key_fields_before_download(
        self, tmp_path: Path, config: ProviderConfig
    ) -> None:
        fields = HttpProvider("wikidata", tmp_path).get_cache_key_fields(config)
        assert json.loads(json.dumps(fields)) == {"url": URL}
