"""Version resolution against the local versions directory.

The versions root holds one subdirectory per installed package version
(``<versions root>/<version>/tools/<executable>``). Helpers here decide
whether a requested specifier is already present and pick the latest
installed version when a wildcard was requested.
"""

import logging
import os
import re
from typing import List, Optional

import semantic_version

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled
from .models import ResolvedLocation, VersionDirectory

logger = logging.getLogger(__name__)


def is_wildcard(version_spec: str) -> bool:
    """Return True if version_spec asks for "the latest" rather than an exact version."""
    spec = (version_spec or "").strip()
    if Constants.VERSION_WILDCARD in spec:
        return True
    return spec.lower() in (Constants.VERSION_LATEST, Constants.VERSION_LATEST_PRERELEASE)


def includes_prerelease(version_spec: str) -> bool:
    """Return True if the wildcard version_spec also accepts pre-release versions."""
    return (version_spec or "").strip().lower() == Constants.VERSION_LATEST_PRERELEASE


def resolve_location(versions_root: str, version: str) -> ResolvedLocation:
    """Return the install location of an exact version beneath versions_root."""
    package_directory = os.path.join(versions_root, version)
    location = ResolvedLocation.from_package_directory(package_directory)
    logger.debug("packageDirectory = %s", package_directory)
    logger.debug("cliFilePath = %s", location.file_path)
    return location


def is_installed(versions_root: str, version_spec: str) -> bool:
    """Return True if the exact version_spec is already present on disk.

    Wildcards never match so a "latest" request always reaches the package
    source.
    """
    if is_wildcard(version_spec):
        logger.debug(
            "CLI version contains a latest quantifier: %s. Continuing with install...",
            version_spec,
        )
        return False

    location = resolve_location(versions_root, version_spec)
    if os.path.isdir(location.directory):
        logger.info("CLI v%s already installed.", version_spec)
        return True
    return False


def parse_version_directory(name: str) -> Optional[VersionDirectory]:
    """Parse a version directory name, or return None if it is not one.

    Accepts one to six dot separated numbers optionally followed by a
    ``-tag`` pre-release suffix, e.g. ``1.2.3`` or ``0.180.0-beta``.
    """
    if not name or re.match(Constants.VERSION_DIRECTORY_PATTERN, name) is None:
        return None
    numbers, _, tag = name.partition("-")
    parts = [int(p) for p in numbers.split(".") if p]
    return VersionDirectory(name=name, parts=parts, prerelease=tag or None)


def _pad(parts: List[int], width: int) -> List[int]:
    return parts + [0] * (width - len(parts))


def is_newer(candidate: VersionDirectory, latest: VersionDirectory, include_prerelease: bool = False) -> bool:
    """Return True if candidate should displace latest.

    Numbers compare component by component (missing components count as 0).
    On numeric equality a release beats a pre-release, and with
    include_prerelease two pre-releases compare by their tag as plain strings.
    """
    width = max(len(candidate.parts), len(latest.parts))
    for part, latest_part in zip(_pad(candidate.parts, width), _pad(latest.parts, width)):
        if part > latest_part:
            return True
        if part < latest_part:
            return False

    if latest.is_prerelease and not candidate.is_prerelease:
        return True
    if include_prerelease and candidate.is_prerelease and latest.is_prerelease:
        return candidate.prerelease > latest.prerelease
    return False


def get_directories(directory: str) -> List[str]:
    """Return the names of subdirectories of directory, sorted.

    os.path.isdir follows symlinks, so linked version folders count.
    """
    return sorted(
        name for name in os.listdir(directory)
        if os.path.isdir(os.path.join(directory, name))
    )


def find_latest_version_directory(versions_root: str, include_prerelease: bool = False) -> Optional[str]:
    """Return the path of the highest version directory under versions_root.

    Returns None when versions_root is missing or holds no valid version
    directory. Pre-release directories are only considered with
    include_prerelease.
    """
    logger.debug("Searching for all version folders in: %s", versions_root)
    if not os.path.isdir(versions_root):
        logger.debug("Versions directory does not exist: %s", versions_root)
        return None

    latest: Optional[VersionDirectory] = None
    for name in get_directories(versions_root):
        logger.debug("Evaluating version directory: %s", name)
        candidate = parse_version_directory(name)
        if candidate is None:
            logger.debug("Skipping invalid version directory: %s", name)
            continue
        if candidate.is_prerelease and not include_prerelease:
            logger.debug("Skipping pre-release version directory: %s", name)
            continue

        if latest is None or is_newer(candidate, latest, include_prerelease):
            logger.debug("Setting latest version directory: %s", name)
            latest = candidate

    latest_directory = os.path.join(versions_root, latest.name) if latest else None
    if is_debug_enabled(logger):
        logger.debug(
            "Resolved latest version directory",
            extra=extra_context(
                event="decision",
                component="versions",
                action="find_latest",
                outcome="found" if latest_directory else "none",
                target=latest_directory,
            ),
        )
    return latest_directory


def is_version_greater_than_or_equal_to(version: Optional[str], minimum: str) -> bool:
    """Compare two loosely formatted versions; an unknown version is never >=."""
    if not version:
        return False
    try:
        return semantic_version.Version.coerce(version) >= semantic_version.Version.coerce(minimum)
    except ValueError:
        logger.debug("Unable to compare versions %s and %s", version, minimum)
        return False
