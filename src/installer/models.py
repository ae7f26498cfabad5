"""Data models for package installation and version resolution."""

import os
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from constants import Constants


class InstallError(Exception):
    """The CLI package could not be made available."""


class FetchError(Exception):
    """A single package fetch attempt failed; retried by the installer."""


class InstallSource(Enum):
    """Where the install location came from."""
    OVERRIDE_FILE = "override-file"
    OVERRIDE_DIRECTORY = "override-directory"
    CACHE = "cache"
    FETCH = "fetch"


@dataclass(frozen=True)
class ResolvedLocation:
    """Install directory of the CLI and the executable inside it."""
    directory: str
    file_path: str

    @classmethod
    def from_package_directory(cls, package_directory: str) -> "ResolvedLocation":
        """Derive the location from a ``<versions root>/<version>`` directory."""
        directory = os.path.join(package_directory, Constants.TOOLS_DIRECTORY_NAME)
        return cls.from_directory(directory)

    @classmethod
    def from_directory(cls, directory: str) -> "ResolvedLocation":
        """Derive the location from the directory holding the executable."""
        return cls(directory=directory, file_path=os.path.join(directory, Constants.EXECUTABLE_NAME))

    @classmethod
    def from_file_path(cls, file_path: str) -> "ResolvedLocation":
        """Wrap an explicit executable path."""
        return cls(directory=os.path.dirname(file_path), file_path=file_path)


@dataclass
class VersionDirectory:
    """A parsed ``<versions root>/<name>`` entry."""
    name: str
    parts: List[int]
    prerelease: Optional[str]

    @property
    def is_prerelease(self) -> bool:
        return self.prerelease is not None


@dataclass
class FetchResult:
    """Outcome of one successful fetch."""
    success: bool
    resolved_version: str
    was_cached: bool


@dataclass
class InstallResult:
    """Outcome of PackageInstaller.install, handed to the invocation step."""
    location: ResolvedLocation
    version: Optional[str]
    source: InstallSource
    was_cached: bool = False
    packages_directory: Optional[str] = None
