"""CLI package installer.

Flow: honor explicit overrides, reuse a cached version, otherwise fetch the
package (with bounded retries) and validate the executable landed on disk.
Fetch failures are only reported through the final validation so a flaky
feed and a missing version surface as the same InstallError.
"""
from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from constants import Constants, EnvVars
from common.logging_utils import extra_context, is_debug_enabled
from .fetcher import NuGetPackageFetcher
from .models import InstallError, InstallResult, InstallSource, ResolvedLocation
from .versions import (
    find_latest_version_directory,
    includes_prerelease,
    is_installed,
    is_wildcard,
    resolve_location,
)

logger = logging.getLogger(__name__)


def ensure_directory(directory: str) -> None:
    """Create directory if it does not exist yet."""
    os.makedirs(directory, exist_ok=True)


class PackageInstaller:
    """Installs the CLI package into the agent's tool directory.

    Args:
        env: Environment to read overrides from (defaults to os.environ).
        fetcher: Object exposing ``fetch(source_url, package_name,
            version_spec, destination)``.
        max_retries: Retries after the first failed fetch attempt.
    """

    def __init__(self, env: Optional[Mapping[str, str]] = None, fetcher=None,
                 max_retries: Optional[int] = None,
                 package_name: Optional[str] = None,
                 source_url: Optional[str] = None):
        self.env = os.environ if env is None else env
        self.fetcher = fetcher or NuGetPackageFetcher()
        self.max_retries = Constants.INSTALL_MAX_RETRIES if max_retries is None else max_retries
        self.package_name = package_name or Constants.PACKAGE_NAME
        self.source_url = source_url or Constants.PACKAGE_SOURCE_URL
        self.last_error: Optional[BaseException] = None

    def agent_directory(self) -> str:
        root = self.env.get(EnvVars.AGENT_ROOT_DIRECTORY) or os.path.expanduser("~")
        return os.path.join(root, Constants.AGENT_DIRECTORY_NAME)

    def install(self, version_spec: str) -> InstallResult:
        """Make version_spec of the CLI available and return its location.

        Raises:
            InstallError: if the executable is missing after all attempts.
        """
        logger.info("Installing %s...", self.package_name)

        file_path = self.env.get(EnvVars.FILE_PATH)
        if file_path:
            logger.info("CLI File Path overridden by %%%s%%: %s", EnvVars.FILE_PATH, file_path)
            return InstallResult(
                location=ResolvedLocation.from_file_path(file_path),
                version=None,
                source=InstallSource.OVERRIDE_FILE,
            )

        directory = self.env.get(EnvVars.DIRECTORY)
        if directory:
            logger.info("CLI Directory overridden by %%%s%%: %s", EnvVars.DIRECTORY, directory)
            location = ResolvedLocation.from_directory(directory)
            logger.debug("cliFilePath = %s", location.file_path)
            return InstallResult(location=location, version=None, source=InstallSource.OVERRIDE_DIRECTORY)

        agent_directory = self.agent_directory()
        logger.debug("agentDirectory = %s", agent_directory)
        ensure_directory(agent_directory)

        # An overridden packages directory is used as given
        packages_directory = self.env.get(EnvVars.PACKAGES_DIRECTORY)
        if not packages_directory:
            packages_directory = os.path.join(agent_directory, Constants.PACKAGES_DIRECTORY_NAME)
            ensure_directory(packages_directory)
        logger.debug("packagesDirectory = %s", packages_directory)

        agent_versions_directory = os.path.join(agent_directory, Constants.VERSIONS_DIRECTORY_NAME)
        logger.debug("agentVersionsDirectory = %s", agent_versions_directory)
        ensure_directory(agent_versions_directory)

        versions_root = os.path.join(agent_versions_directory, self.package_name.lower())
        logger.debug("versionsDirectory = %s", versions_root)

        # Version directories are laid out lower-cased
        version_key = version_spec.strip().lower()

        if is_installed(versions_root, version_key):
            return InstallResult(
                location=resolve_location(versions_root, version_key),
                version=version_key,
                source=InstallSource.CACHE,
                was_cached=True,
                packages_directory=packages_directory,
            )

        fetch_result = self._fetch_with_retry(version_spec, agent_versions_directory)

        location = None
        version: Optional[str] = version_key
        if is_wildcard(version_spec):
            package_directory = find_latest_version_directory(
                versions_root, include_prerelease=includes_prerelease(version_spec)
            )
            if package_directory:
                version = os.path.basename(package_directory)
                location = ResolvedLocation.from_package_directory(package_directory)
        else:
            location = resolve_location(versions_root, version_key)

        if location is None or not os.path.exists(location.file_path):
            if self.last_error is not None:
                logger.debug("Last fetch error: %s", self.last_error)
            raise InstallError(f"CLI v{version_spec} was not found after installation.")

        logger.info("Installed %s v%s.", self.package_name, version)
        return InstallResult(
            location=location,
            version=version,
            source=InstallSource.FETCH,
            was_cached=bool(fetch_result and fetch_result.was_cached),
            packages_directory=packages_directory,
        )

    def _fetch_with_retry(self, version_spec: str, destination: str):
        """Attempt the fetch up to max_retries + 1 times; never raises."""
        self.last_error = None
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                result = self.fetcher.fetch(self.source_url, self.package_name, version_spec, destination)
                self.last_error = None
                return result
            except Exception as exc:  # pylint: disable=broad-exception-caught
                self.last_error = exc
                logger.debug("Fetch attempt %d of %d failed: %s", attempt, attempts, exc)
                if is_debug_enabled(logger):
                    logger.debug(
                        "Fetch attempt failed",
                        extra=extra_context(
                            event="fetch_attempt",
                            component="installer",
                            action="fetch",
                            outcome="failed",
                            attempt=attempt,
                        ),
                    )
        logger.warning("Unable to fetch %s %s after %d attempts.", self.package_name, version_spec, attempts)
        return None
