"""Configuration overrides for runtime tunables.

Values come from an optional YAML file (``--config`` or SECDEVOPS_CONFIG)
and from CLI flags, applied in that order onto Constants. Applying overrides
never raises: bad values are logged and ignored so the task still runs with
defaults.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

import yaml

from constants import Constants, EnvVars

logger = logging.getLogger(__name__)

# section -> {yaml key: (Constants attribute, type)}
_CONFIG_MAP = {
    "installer": {
        "package_name": ("PACKAGE_NAME", str),
        "source_url": ("PACKAGE_SOURCE_URL", str),
        "executable_name": ("EXECUTABLE_NAME", str),
        "max_retries": ("INSTALL_MAX_RETRIES", int),
        "default_version": ("CLI_VERSION_DEFAULT", str),
    },
    "http": {
        "timeout": ("REQUEST_TIMEOUT", int),
        "retry_max": ("HTTP_RETRY_MAX", int),
        "cache_ttl": ("HTTP_CACHE_TTL_SEC", int),
    },
    "cli": {
        "artifact_name": ("ARTIFACT_NAME_DEFAULT", str),
        "telemetry_environment": ("TELEMETRY_ENVIRONMENT_DEFAULT", str),
    },
}


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load a YAML configuration file, returning {} when absent or invalid."""
    if not config_path:
        return {}

    if not os.path.isfile(config_path):
        logger.warning("Config file not found: %s", config_path)
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return {}

    if not isinstance(data, dict):
        logger.warning("Ignoring config %s: top level must be a mapping", config_path)
        return {}
    return data


def apply_config(config: Dict[str, Any]) -> None:
    """Apply known config sections onto Constants."""
    for section, keys in _CONFIG_MAP.items():
        values = config.get(section)
        if not isinstance(values, dict):
            continue
        for key, (attribute, cast) in keys.items():
            if key not in values or values[key] is None:
                continue
            try:
                setattr(Constants, attribute, cast(values[key]))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid value for %s.%s: %r", section, key, values[key])


def apply_cli_overrides(args) -> None:
    """Apply CLI flag overrides with highest precedence."""
    if getattr(args, "PACKAGE_SOURCE", None):
        Constants.PACKAGE_SOURCE_URL = args.PACKAGE_SOURCE
    if getattr(args, "MAX_RETRIES", None) is not None:
        Constants.INSTALL_MAX_RETRIES = int(args.MAX_RETRIES)


def configure(args) -> None:
    """Load the config file named by args/environment and apply all overrides."""
    config_path = getattr(args, "CONFIG", None) or os.environ.get(EnvVars.CONFIG)
    config = load_config(config_path)
    if config:
        logger.debug("Loaded config from: %s", config_path)
    apply_config(config)
    apply_cli_overrides(args)
