"""Constants used in the project."""

from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    INSTALL_ERROR = 3
    CLI_ERROR = 4


class TaskResult(Enum):
    """Task results understood by the pipeline agent.

    Args:
        Enum (string): Value passed to ``##vso[task.complete result=...]``.
    """

    SUCCEEDED = "Succeeded"
    FAILED = "Failed"


class EnvVars:  # pylint: disable=too-few-public-methods
    """Environment variable names read or written by the task."""

    AGENT_ROOT_DIRECTORY = "AGENT_ROOTDIRECTORY"
    STAGING_DIRECTORY = "BUILD_STAGINGDIRECTORY"
    SYSTEM_DEBUG = "SYSTEM_DEBUG"
    TF_BUILD = "TF_BUILD"

    VERSION = "MSDO_VERSION"
    FILE_PATH = "MSDO_FILEPATH"
    DIRECTORY = "MSDO_DIRECTORY"
    PACKAGES_DIRECTORY = "MSDO_PACKAGES_DIRECTORY"
    INSTALLED_VERSION = "MSDO_INSTALLEDVERSION"
    SARIF_FILE = "MSDO_SARIF_FILE"
    DEBUG_BUNDLE = "MSDO_DEBUG_BUNDLE"

    GDN_LOGGER_LEVEL = "GDN_LOGGERLEVEL"
    GDN_SETTINGS_FOLDERS = "GDN_SETTINGS_FOLDERS"

    LOG_LEVEL = "SECDEVOPS_LOG_LEVEL"
    CONFIG = "SECDEVOPS_CONFIG"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    # Package acquisition
    PACKAGE_NAME = "Microsoft.Security.DevOps.Cli"
    PACKAGE_SOURCE_URL = "https://api.nuget.org/v3/index.json"
    EXECUTABLE_NAME = "guardian"
    TOOLS_DIRECTORY_NAME = "tools"
    AGENT_DIRECTORY_NAME = "_msdo"
    PACKAGES_DIRECTORY_NAME = "packages"
    VERSIONS_DIRECTORY_NAME = "versions"
    INSTALL_MAX_RETRIES = 2

    # Version specifiers
    CLI_VERSION_DEFAULT = "Latest"
    VERSION_WILDCARD = "*"
    VERSION_LATEST = "latest"
    VERSION_LATEST_PRERELEASE = "latestprerelease"
    VERSION_DIRECTORY_PATTERN = r"^(\d+\.?){1,6}(-\w+)?$"

    # CLI invocation
    SARIF_DIRECTORY_NAME = ".gdn"
    SARIF_FILE_NAME = "msdo.sarif"
    DEBUG_BUNDLE_NAME = "msdo-debug"
    ARTIFACT_NAME_DEFAULT = "CodeAnalysisLogs"
    TELEMETRY_ENVIRONMENT_DEFAULT = "azdevops"
    EXPORT_FILE_MIN_VERSION = "0.183.0"

    # HTTP
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests
    DOWNLOAD_CHUNK_SIZE = 64 * 1024
    HTTP_RETRY_MAX = 3
    HTTP_CACHE_TTL_SEC = 300
    NUGET_PACKAGE_BASE_TYPE = "PackageBaseAddress/3.0.0"
