"""Tests for the shared HTTP helpers."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from common import http_client
from constants import Constants


def _response(status_code=200, text="", chunks=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = {"Content-Type": "application/json"}
    response.text = text
    response.iter_content.return_value = chunks or []
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} error")
    return response


class TestGetJson:
    """get_json / robust_get behaviour."""

    @patch("common.http_client.requests.get")
    def test_parses_and_caches(self, mock_get):
        mock_get.return_value = _response(text='{"versions": ["1.0.0"]}')

        first = http_client.get_json("https://feed.example/index.json")
        second = http_client.get_json("https://feed.example/index.json")

        assert first == second
        assert first[0] == 200
        assert first[2] == {"versions": ["1.0.0"]}
        assert mock_get.call_count == 1

    @patch("common.http_client.requests.get")
    def test_invalid_json(self, mock_get):
        mock_get.return_value = _response(text="<html>")
        status, _, data = http_client.get_json("https://feed.example/index.json")
        assert status == 200
        assert data is None

    @patch("common.http_client.requests.get", side_effect=requests.ConnectionError("refused"))
    def test_retries_then_gives_up(self, mock_get):
        Constants.HTTP_RETRY_MAX = 2
        status, headers, data = http_client.get_json("https://feed.example/index.json")
        assert (status, headers, data) == (0, {}, None)
        assert mock_get.call_count == 2

    @patch("common.http_client.requests.get")
    def test_throttled_responses_not_cached(self, mock_get):
        mock_get.side_effect = [_response(status_code=429), _response(text="{}")]
        assert http_client.get_json("https://feed.example/index.json")[0] == 429
        assert http_client.get_json("https://feed.example/index.json")[0] == 200
        assert mock_get.call_count == 2

    @patch("common.http_client.requests.get")
    def test_server_errors_not_cached(self, mock_get):
        mock_get.side_effect = [_response(status_code=503), _response(text="{}")]
        assert http_client.get_json("https://feed.example/index.json")[0] == 503
        assert http_client.get_json("https://feed.example/index.json")[0] == 200


class TestDownloadFile:
    """download_file streaming."""

    @patch("common.http_client.requests.get")
    def test_writes_file(self, mock_get, tmp_path):
        mock_get.return_value = _response(chunks=[b"PK", b"", b"data"])
        target = tmp_path / "pkg.nupkg"

        assert http_client.download_file("https://feed.example/pkg.nupkg", str(target)) == 6
        assert target.read_bytes() == b"PKdata"
        assert not (tmp_path / "pkg.nupkg.part").exists()

    @patch("common.http_client.requests.get")
    def test_http_error_leaves_nothing(self, mock_get, tmp_path):
        mock_get.return_value = _response(status_code=404)
        target = tmp_path / "pkg.nupkg"

        with pytest.raises(requests.HTTPError):
            http_client.download_file("https://feed.example/pkg.nupkg", str(target))
        assert list(tmp_path.iterdir()) == []

    @patch("common.http_client.requests.get")
    def test_interrupted_stream_removes_partial(self, mock_get, tmp_path):
        response = _response()
        response.iter_content.side_effect = requests.ConnectionError("reset")
        mock_get.return_value = response

        with pytest.raises(requests.ConnectionError):
            http_client.download_file("https://feed.example/pkg.nupkg", str(tmp_path / "pkg.nupkg"))
        assert list(tmp_path.iterdir()) == []
