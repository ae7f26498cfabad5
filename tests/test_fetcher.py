"""Tests for the NuGet package fetcher."""

import io
import os
import zipfile
from unittest.mock import patch

import pytest
import requests

from installer.fetcher import NuGetPackageFetcher
from installer.models import FetchError

SOURCE = "https://api.nuget.org/v3/index.json"
BASE = "https://api.nuget.org/v3-flatcontainer/"
PACKAGE = "Microsoft.Security.DevOps.Cli"
PACKAGE_ID = PACKAGE.lower()

SERVICE_INDEX = {
    "version": "3.0.0",
    "resources": [
        {"@id": "https://api.nuget.org/v3/registration5-gz-semver2/", "@type": "RegistrationsBaseUrl/3.6.0"},
        {"@id": BASE, "@type": "PackageBaseAddress/3.0.0"},
    ],
}


def nupkg_bytes():
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr(f"{PACKAGE}.nuspec", "<package/>")
        archive.writestr("tools/guardian", "#!/bin/sh\necho guardian\n")
    return buf.getvalue()


def fake_download(payload):
    def _download(url, destination):
        with open(destination, "wb") as fh:
            fh.write(payload)
        return len(payload)
    return _download


@pytest.fixture
def fetcher():
    return NuGetPackageFetcher()


class TestPickVersion:
    """Version selection from feed candidates."""

    CANDIDATES = ["0.9.0", "1.0.0", "1.2.0", "1.10.0", "2.0.0-beta", "1.11.0-rc.1"]

    def test_latest_is_highest_stable(self, fetcher):
        assert fetcher.pick_version("Latest", self.CANDIDATES) == "1.10.0"

    def test_latest_prerelease(self, fetcher):
        assert fetcher.pick_version("LatestPreRelease", self.CANDIDATES) == "2.0.0-beta"

    def test_major_wildcard(self, fetcher):
        assert fetcher.pick_version("0.*", self.CANDIDATES) == "0.9.0"
        assert fetcher.pick_version("1.*", self.CANDIDATES) == "1.10.0"

    def test_minor_wildcard(self, fetcher):
        assert fetcher.pick_version("1.2.*", self.CANDIDATES) == "1.2.0"

    def test_exact_case_insensitive(self, fetcher):
        assert fetcher.pick_version("2.0.0-BETA", self.CANDIDATES) == "2.0.0-beta"

    def test_exact_missing(self, fetcher):
        with pytest.raises(FetchError, match="not found"):
            fetcher.pick_version("3.0.0", self.CANDIDATES)

    def test_no_match(self, fetcher):
        with pytest.raises(FetchError):
            fetcher.pick_version("5.*", self.CANDIDATES)


class TestFetch:
    """End-to-end fetch with mocked HTTP."""

    @patch("installer.fetcher.download_file")
    @patch("installer.fetcher.get_json")
    def test_downloads_and_extracts(self, mock_get_json, mock_download, fetcher, tmp_path):
        mock_get_json.side_effect = [
            (200, {}, SERVICE_INDEX),
            (200, {}, {"versions": ["1.0.0", "1.1.0"]}),
        ]
        mock_download.side_effect = fake_download(nupkg_bytes())

        result = fetcher.fetch(SOURCE, PACKAGE, "Latest", str(tmp_path))

        assert result.success is True
        assert result.resolved_version == "1.1.0"
        assert result.was_cached is False
        exe = tmp_path / PACKAGE_ID / "1.1.0" / "tools" / "guardian"
        assert exe.is_file()
        if os.name != "nt":
            assert os.access(str(exe), os.X_OK)
        assert mock_download.call_args[0][0] == f"{BASE}{PACKAGE_ID}/1.1.0/{PACKAGE_ID}.1.1.0.nupkg"
        # archive and staging folders are cleaned up
        assert sorted(os.listdir(tmp_path / PACKAGE_ID)) == ["1.1.0"]

    @patch("installer.fetcher.download_file")
    @patch("installer.fetcher.get_json")
    def test_existing_version_is_cached(self, mock_get_json, mock_download, fetcher, tmp_path):
        (tmp_path / PACKAGE_ID / "1.1.0").mkdir(parents=True)
        mock_get_json.side_effect = [
            (200, {}, SERVICE_INDEX),
            (200, {}, {"versions": ["1.1.0"]}),
        ]

        result = fetcher.fetch(SOURCE, PACKAGE, "1.1.0", str(tmp_path))

        assert result.was_cached is True
        mock_download.assert_not_called()

    @patch("installer.fetcher.get_json")
    def test_service_index_unavailable(self, mock_get_json, fetcher, tmp_path):
        mock_get_json.return_value = (0, {}, None)
        with pytest.raises(FetchError, match="service index"):
            fetcher.fetch(SOURCE, PACKAGE, "Latest", str(tmp_path))

    @patch("installer.fetcher.get_json")
    def test_missing_package_base_address(self, mock_get_json, fetcher, tmp_path):
        mock_get_json.return_value = (200, {}, {"resources": []})
        with pytest.raises(FetchError, match="PackageBaseAddress"):
            fetcher.fetch(SOURCE, PACKAGE, "Latest", str(tmp_path))

    @patch("installer.fetcher.get_json")
    def test_unknown_package(self, mock_get_json, fetcher, tmp_path):
        mock_get_json.side_effect = [(200, {}, SERVICE_INDEX), (404, {}, None)]
        with pytest.raises(FetchError, match="not found"):
            fetcher.fetch(SOURCE, PACKAGE, "Latest", str(tmp_path))

    @patch("installer.fetcher.download_file")
    @patch("installer.fetcher.get_json")
    def test_download_error_becomes_fetch_error(self, mock_get_json, mock_download, fetcher, tmp_path):
        mock_get_json.side_effect = [
            (200, {}, SERVICE_INDEX),
            (200, {}, {"versions": ["1.0.0"]}),
        ]
        mock_download.side_effect = requests.ConnectionError("reset")

        with pytest.raises(FetchError, match="reset"):
            fetcher.fetch(SOURCE, PACKAGE, "1.0.0", str(tmp_path))
        assert not (tmp_path / PACKAGE_ID / "1.0.0").exists()

    @patch("installer.fetcher.download_file")
    @patch("installer.fetcher.get_json")
    def test_corrupt_archive(self, mock_get_json, mock_download, fetcher, tmp_path):
        mock_get_json.side_effect = [
            (200, {}, SERVICE_INDEX),
            (200, {}, {"versions": ["1.0.0"]}),
        ]
        mock_download.side_effect = fake_download(b"not a zip")

        with pytest.raises(FetchError, match="Invalid package archive"):
            fetcher.fetch(SOURCE, PACKAGE, "1.0.0", str(tmp_path))
        assert os.listdir(tmp_path / PACKAGE_ID) == []
