"""Pipeline task host: variables and agent logging commands.

The agent reads ``##vso[...]`` commands from the task's stdout. Only the
handful of commands the task needs are implemented: setting variables,
uploading artifacts and completing the task with a result.
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Dict, Mapping, Optional, TextIO

from constants import EnvVars, TaskResult

logger = logging.getLogger(__name__)

# Escaping rules for the data and property parts of logging commands
_DATA_ESCAPES = (("%", "%AZP25"), ("\r", "%0D"), ("\n", "%0A"))
_PROPERTY_ESCAPES = _DATA_ESCAPES + ((";", "%3B"), ("]", "%5D"))


def _escape(value: str, escapes) -> str:
    for raw, escaped in escapes:
        value = value.replace(raw, escaped)
    return value


def _env_name(name: str) -> str:
    """Map a pipeline variable name to its environment variable name."""
    return name.replace(".", "_").replace(" ", "_").upper()


class TaskHost:
    """Thin wrapper over the agent's environment and logging command channel.

    Args:
        env: Environment mapping (defaults to os.environ); variables set
            through the host are written back into it.
        stream: Where logging commands are written (defaults to sys.stdout).
    """

    def __init__(self, env: Optional[Dict[str, str]] = None, stream: Optional[TextIO] = None):
        self.env = os.environ if env is None else env
        self._stream = stream
        self.result: Optional[TaskResult] = None

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def command(self, name: str, properties: Optional[Mapping[str, object]] = None, data: str = "") -> None:
        """Write a ``##vso[name prop=value;]data`` logging command."""
        props = ""
        if properties:
            props = " " + ";".join(
                f"{key}={_escape(str(value), _PROPERTY_ESCAPES)}"
                for key, value in properties.items() if value is not None
            ) + ";"
        self.stream.write(f"##vso[{name}{props}]{_escape(data, _DATA_ESCAPES)}\n")
        self.stream.flush()

    def get_variable(self, name: str) -> Optional[str]:
        return self.env.get(_env_name(name))

    def get_bool_variable(self, name: str) -> bool:
        return str(self.get_variable(name) or "").strip().lower() == "true"

    def set_variable(self, name: str, value: str, is_output: bool = False) -> None:
        """Set a variable for this process and for later pipeline steps."""
        self.env[_env_name(name)] = value
        logger.debug("%s = %s", name, value)
        self.command(
            "task.setvariable",
            {"variable": name, "isOutput": "true" if is_output else None},
            value,
        )

    def is_debug(self) -> bool:
        return self.get_bool_variable(EnvVars.SYSTEM_DEBUG)

    def upload_artifact(self, artifact_name: str, path: str, container_folder: Optional[str] = None) -> None:
        self.command(
            "artifact.upload",
            {"containerfolder": container_folder, "artifactname": artifact_name},
            path,
        )

    def set_result(self, result: TaskResult, message: str = "") -> None:
        """Complete the task with result; message is logged for failures."""
        self.result = result
        if result == TaskResult.FAILED and message:
            logger.error("%s", message)
        self.command("task.complete", {"result": result.value}, message)
