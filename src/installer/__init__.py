"""CLI package installation.

This package provides acquisition of the security CLI:
- versions.py: locating installed versions and picking the latest
- fetcher.py: downloading a version from a NuGet V3 feed
- installer.py: override/cache/fetch/validate orchestration
"""

from .models import (  # noqa: F401
    FetchError,
    FetchResult,
    InstallError,
    InstallResult,
    InstallSource,
    ResolvedLocation,
)
from .fetcher import NuGetPackageFetcher  # noqa: F401
from .installer import PackageInstaller  # noqa: F401
from .versions import (  # noqa: F401
    find_latest_version_directory,
    is_installed,
    is_version_greater_than_or_equal_to,
    is_wildcard,
    resolve_location,
)

__all__ = [
    "FetchError",
    "FetchResult",
    "InstallError",
    "InstallResult",
    "InstallSource",
    "ResolvedLocation",
    "NuGetPackageFetcher",
    "PackageInstaller",
    "find_latest_version_directory",
    "is_installed",
    "is_version_greater_than_or_equal_to",
    "is_wildcard",
    "resolve_location",
]
