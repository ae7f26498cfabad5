"""Run an external executable and report its exit code."""

from __future__ import annotations

import logging
import os
import subprocess
from typing import List, Mapping, Optional, Sequence

logger = logging.getLogger(__name__)


class ToolRunError(Exception):
    """The tool could not be started or exited with a failing code."""

    def __init__(self, message: str, exit_code: Optional[int] = None):
        super().__init__(message)
        self.exit_code = exit_code


class ToolRunner:
    """Builder for a single tool invocation.

    Example:
        ToolRunner("/path/guardian").arg("init").arg("--force").exec()
    """

    def __init__(self, file_path: str):
        self.file_path = file_path
        self.args: List[str] = []

    def arg(self, value: str) -> "ToolRunner":
        self.args.append(str(value))
        return self

    def extend(self, values: Optional[Sequence[str]]) -> "ToolRunner":
        for value in values or []:
            self.arg(value)
        return self

    def command_line(self) -> List[str]:
        return [self.file_path] + self.args

    def exec(self, ignore_return_code: bool = False, env: Optional[Mapping[str, str]] = None) -> int:
        """Run the tool, streaming its output, and return its exit code.

        Raises:
            ToolRunError: if the tool cannot be started, or exits non-zero
                and ignore_return_code is False.
        """
        cmd = self.command_line()
        logger.info("[command]%s", " ".join(cmd))
        try:
            result = subprocess.run(cmd, env=dict(env) if env is not None else os.environ.copy(), check=False)  # noqa: S603
        except OSError as exc:
            raise ToolRunError(f"Unable to run {self.file_path}: {exc}") from exc

        if result.returncode != 0 and not ignore_return_code:
            raise ToolRunError(
                f"{os.path.basename(self.file_path)} failed with exit code {result.returncode}",
                exit_code=result.returncode,
            )
        return result.returncode
