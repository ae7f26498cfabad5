"""Installs and runs the security CLI for a pipeline task.

Resolves the requested CLI version, installs it, runs ``guardian init`` and
``guardian run`` with the task's arguments, then publishes the SARIF file
(and optionally a debug bundle) for later pipeline steps.
"""
from __future__ import annotations

import logging
import os
import shutil
from typing import Callable, List, Optional, Sequence

from constants import Constants, EnvVars, TaskResult
from installer import InstallResult, PackageInstaller, is_version_greater_than_or_equal_to
from task_lib import TaskHost
from tool_runner import ToolRunError, ToolRunner

logger = logging.getLogger(__name__)

SEPARATOR = "-" * 78


class CliClient:
    """Client for one task run.

    Args:
        task: Task host used for variables and logging commands.
        installer_factory: Callable returning a PackageInstaller for the
            task's environment.
        runner_factory: Callable building a ToolRunner for an executable.
    """

    def __init__(self, task: Optional[TaskHost] = None,
                 installer_factory: Optional[Callable[[], PackageInstaller]] = None,
                 runner_factory: Callable[[str], ToolRunner] = ToolRunner):
        self.task = task or TaskHost()
        self.installer_factory = installer_factory or (lambda: PackageInstaller(env=self.task.env))
        self.runner_factory = runner_factory

    def resolve_cli_version(self) -> str:
        """Return the CLI version to install (MSDO_VERSION or Latest)."""
        cli_version = self.task.env.get(EnvVars.VERSION) or Constants.CLI_VERSION_DEFAULT

        if Constants.VERSION_WILDCARD in cli_version:
            # Partial wildcards ("1.*") resolve to Latest
            cli_version = Constants.CLI_VERSION_DEFAULT

        return cli_version

    def publish_install(self, result: InstallResult) -> None:
        """Expose the install location to this process and later steps."""
        self.task.set_variable(EnvVars.DIRECTORY, result.location.directory)
        self.task.set_variable(EnvVars.FILE_PATH, result.location.file_path)
        if result.version:
            self.task.set_variable(EnvVars.INSTALLED_VERSION, result.version)
        if result.packages_directory:
            self.task.set_variable(EnvVars.PACKAGES_DIRECTORY, result.packages_directory)

    def setup_environment(self) -> Optional[InstallResult]:
        """Install the CLI unless MSDO_FILEPATH already points at it."""
        logger.info(SEPARATOR)

        result = None
        if not self.task.env.get(EnvVars.FILE_PATH):
            result = self.installer_factory().install(self.resolve_cli_version())
            self.publish_install(result)

        packages_directory = self.task.env.get(EnvVars.PACKAGES_DIRECTORY)
        if packages_directory:
            self.task.env[EnvVars.GDN_SETTINGS_FOLDERS] = f"Install={packages_directory}"

        logger.info(SEPARATOR)
        return result

    def get_cli_file_path(self) -> Optional[str]:
        cli_file_path = self.task.env.get(EnvVars.FILE_PATH)
        logger.debug("cliFilePath = %s", cli_file_path)
        return cli_file_path

    def init(self) -> None:
        """Run ``guardian init --force``; failures are not fatal."""
        try:
            self.runner_factory(self.get_cli_file_path()).arg("init").arg("--force").exec(env=self.task.env)
        except ToolRunError as exc:
            logger.debug("%s", exc)

    def sarif_file(self) -> str:
        staging_directory = self.task.env.get(EnvVars.STAGING_DIRECTORY) or os.getcwd()
        return os.path.join(staging_directory, Constants.SARIF_DIRECTORY_NAME, Constants.SARIF_FILE_NAME)

    def build_run(self, input_args: Optional[Sequence[str]], sarif_file: str,
                  telemetry_environment: str) -> ToolRunner:
        tool = self.runner_factory(self.get_cli_file_path()).arg("run").extend(input_args)
        tool.arg("--logger-pipeline")

        logger_level = self.task.get_variable(EnvVars.GDN_LOGGER_LEVEL)
        logger.debug("GDN_LOGGERLEVEL = %s", logger_level)
        if self.task.is_debug():
            tool.arg("--logger-level").arg("trace")
            tool.arg("--logger-show-level")
        elif logger_level:
            tool.arg("--logger-level").arg(logger_level)

        if is_version_greater_than_or_equal_to(
                self.task.env.get(EnvVars.INSTALLED_VERSION), Constants.EXPORT_FILE_MIN_VERSION):
            tool.arg("--export-file")
        else:
            # Older CLIs only export breaking results through this flag
            tool.arg("--export-breaking-results-to-file").arg(sarif_file)

        tool.arg("--telemetry-environment").arg(telemetry_environment)
        return tool

    def publish_debug_bundle(self, artifact_name: str) -> Optional[str]:
        """Zip the CLI's working folder and upload it next to the SARIF file."""
        gdn_directory = os.path.dirname(self.sarif_file())
        if not os.path.isdir(gdn_directory):
            logger.warning("Debug bundle requested but %s does not exist.", gdn_directory)
            return None
        base_name = os.path.join(os.path.dirname(gdn_directory), Constants.DEBUG_BUNDLE_NAME)
        bundle = shutil.make_archive(base_name, "zip", root_dir=gdn_directory)
        logger.info("Debug bundle written to %s", bundle)
        self.task.upload_artifact(artifact_name, bundle)
        return bundle

    def run(self, input_args: Optional[Sequence[str]] = None,
            successful_exit_codes: Optional[List[int]] = None,
            publish: bool = True,
            publish_artifact_name: Optional[str] = None,
            telemetry_environment: str = Constants.TELEMETRY_ENVIRONMENT_DEFAULT) -> int:
        """Install and run the CLI; returns the CLI exit code (1 on setup failure)."""
        if successful_exit_codes is None:
            successful_exit_codes = [0]
        sarif_file = self.sarif_file()
        logger.debug("sarifFile = %s", sarif_file)

        try:
            self.setup_environment()
            self.init()
            tool = self.build_run(input_args, sarif_file, telemetry_environment)
            self.task.set_variable(EnvVars.SARIF_FILE, sarif_file)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            logger.error("Exception occurred while initializing MSDO:")
            self.task.set_result(TaskResult.FAILED, str(exc))
            return 1

        try:
            logger.debug("Running Microsoft Security DevOps...")
            exit_code = tool.exec(ignore_return_code=True, env=self.task.env)
        except ToolRunError as exc:
            self.task.set_result(TaskResult.FAILED, str(exc))
            return 1

        artifact_name = (publish_artifact_name or "").strip() or Constants.ARTIFACT_NAME_DEFAULT
        if publish and os.path.exists(sarif_file):
            self.task.upload_artifact(artifact_name, sarif_file)
        if self.task.get_bool_variable(EnvVars.DEBUG_BUNDLE):
            self.publish_debug_bundle(artifact_name)

        if exit_code not in successful_exit_codes:
            self.task.set_result(TaskResult.FAILED, f"MSDO CLI exited with an error exit code: {exit_code}")
        return exit_code
