"""NuGet package fetcher: resolve a version on a V3 feed and extract it locally.

Produces the same layout a ``dotnet restore`` into the versions directory
would: ``<destination>/<package id>/<version>/tools/<executable>`` with the
package id and version lower-cased.
"""
from __future__ import annotations

import logging
import os
import re
import shutil
import stat
import zipfile
from typing import List, Optional, Tuple

import requests
import semantic_version

from constants import Constants
from common.http_client import download_file, get_json
from common.logging_utils import extra_context, is_debug_enabled, safe_url, Timer
from .models import FetchError, FetchResult
from .versions import includes_prerelease, is_wildcard

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json"}


def _version_from_str(v: str) -> Optional[semantic_version.Version]:
    """Safely parse a version string, coercing NuGet four-part versions."""
    try:
        return semantic_version.Version(v)
    except ValueError:
        try:
            return semantic_version.Version.coerce(v)
        except ValueError:
            return None


def _normalize_wildcard(spec_str: str) -> Optional[str]:
    """Convert ``1.*``/``1.2.*`` wildcards into a SimpleSpec range."""
    s = spec_str.strip().lower()

    m = re.match(r'^(\d+)\.(\d+)\.\*$', s)
    if m:
        major, minor = int(m.group(1)), int(m.group(2))
        return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

    m = re.match(r'^(\d+)\.\*$', s)
    if m:
        major = int(m.group(1))
        return f">={major}.0.0,<{major + 1}.0.0"

    if s == '*':
        return ">=0.0.0"
    return None


class NuGetPackageFetcher:
    """Fetch a package version from a NuGet V3 feed."""

    def _package_base_address(self, source_url: str) -> str:
        status_code, _, index_data = get_json(source_url, headers=HEADERS_JSON)
        if status_code != 200 or not isinstance(index_data, dict):
            raise FetchError(f"Unable to read service index {safe_url(source_url)} (status {status_code})")

        for resource in index_data.get("resources", []):
            if resource.get("@type") == Constants.NUGET_PACKAGE_BASE_TYPE and resource.get("@id"):
                base = resource["@id"]
                return base if base.endswith("/") else base + "/"
        raise FetchError(f"Service index {safe_url(source_url)} has no {Constants.NUGET_PACKAGE_BASE_TYPE} resource")

    def list_versions(self, base_address: str, package_id: str) -> List[str]:
        """Return every published version of package_id."""
        url = f"{base_address}{package_id}/index.json"
        status_code, _, data = get_json(url, headers=HEADERS_JSON)
        if status_code == 404:
            raise FetchError(f"Package {package_id} not found on feed")
        if status_code != 200 or not isinstance(data, dict):
            raise FetchError(f"Unable to list versions of {package_id} (status {status_code})")
        return [v for v in data.get("versions", []) if isinstance(v, str)]

    def pick_version(self, version_spec: str, candidates: List[str]) -> str:
        """Select the version to download for version_spec.

        Raises:
            FetchError: if no candidate satisfies version_spec.
        """
        if not is_wildcard(version_spec):
            wanted = version_spec.strip().lower()
            for candidate in candidates:
                if candidate.lower() == wanted:
                    return candidate
            raise FetchError(f"Version {version_spec} not found")

        allow_prerelease = includes_prerelease(version_spec)
        spec = None
        if Constants.VERSION_WILDCARD in version_spec:
            normalized = _normalize_wildcard(version_spec)
            if normalized is None:
                raise FetchError(f"Unsupported version wildcard '{version_spec}'")
            spec = semantic_version.SimpleSpec(normalized)

        parsed: List[Tuple[semantic_version.Version, str]] = []
        for candidate in candidates:
            ver = _version_from_str(candidate)
            if ver is None:
                continue
            if ver.prerelease and not allow_prerelease:
                continue
            if spec is not None and not spec.match(ver):
                continue
            parsed.append((ver, candidate))

        if not parsed:
            raise FetchError(f"No versions match '{version_spec}'")
        parsed.sort(key=lambda item: item[0], reverse=True)
        return parsed[0][1]

    def _extract(self, archive_path: str, package_directory: str) -> None:
        staging = os.path.join(
            os.path.dirname(package_directory),
            f".{os.path.basename(package_directory)}.staging-{os.getpid()}",
        )
        shutil.rmtree(staging, ignore_errors=True)
        try:
            with zipfile.ZipFile(archive_path) as archive:
                archive.extractall(staging)
        except zipfile.BadZipFile as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise FetchError(f"Invalid package archive {archive_path}: {exc}") from exc

        executable = os.path.join(staging, Constants.TOOLS_DIRECTORY_NAME, Constants.EXECUTABLE_NAME)
        if os.name != "nt" and os.path.isfile(executable):
            mode = os.stat(executable).st_mode
            os.chmod(executable, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        try:
            os.replace(staging, package_directory)
        except OSError:
            # Another writer published the same version first
            shutil.rmtree(staging, ignore_errors=True)
            if not os.path.isdir(package_directory):
                raise

    def fetch(self, source_url: str, package_name: str, version_spec: str, destination: str) -> FetchResult:
        """Make version_spec of package_name available beneath destination.

        Raises:
            FetchError: on any failure; callers are expected to retry.
        """
        package_id = package_name.lower()
        with Timer() as t:
            base_address = self._package_base_address(source_url)
            version = self.pick_version(version_spec, self.list_versions(base_address, package_id)).lower()

            package_root = os.path.join(destination, package_id)
            package_directory = os.path.join(package_root, version)
            if os.path.isdir(package_directory):
                logger.info("%s %s already present in %s", package_name, version, package_root)
                return FetchResult(success=True, resolved_version=version, was_cached=True)

            os.makedirs(package_root, exist_ok=True)
            archive_name = f"{package_id}.{version}.nupkg"
            archive_path = os.path.join(package_root, archive_name)
            url = f"{base_address}{package_id}/{version}/{archive_name}"
            logger.info("Downloading %s %s...", package_name, version)
            try:
                download_file(url, archive_path)
                self._extract(archive_path, package_directory)
            except (requests.RequestException, OSError) as exc:
                raise FetchError(f"Failed to fetch {package_name} {version}: {exc}") from exc
            finally:
                if os.path.exists(archive_path):
                    os.remove(archive_path)

        if is_debug_enabled(logger):
            logger.debug(
                "Package fetched",
                extra=extra_context(
                    event="fetch",
                    component="fetcher",
                    action="fetch",
                    outcome="success",
                    target=package_directory,
                    duration_ms=t.duration_ms(),
                ),
            )
        return FetchResult(success=True, resolved_version=version, was_cached=False)
