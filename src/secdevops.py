"""secdevops-task - installs and runs the security DevOps CLI in a pipeline task.

    Returns:
        int: Exit code
"""
import logging
import os
import sys

from constants import Constants, EnvVars, ExitCodes, TaskResult
from common.logging_utils import configure_logging, extra_context, is_debug_enabled
from args import parse_args
from cli_client import CliClient
from installer import InstallError
from task_config import configure
from task_lib import TaskHost

logger = logging.getLogger(__name__)


def setup_logging(args) -> None:
    """Configure logging from --loglevel/--logfile."""
    # Honor CLI --loglevel by passing it to centralized logger via env
    if getattr(args, "LOG_LEVEL", None):
        os.environ[EnvVars.LOG_LEVEL] = str(args.LOG_LEVEL).upper()
    configure_logging()

    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def install_command(args, task: TaskHost) -> int:
    """Install the CLI and publish its location as pipeline variables."""
    client = CliClient(task=task)
    if getattr(args, "CLI_VERSION", None):
        task.env[EnvVars.VERSION] = args.CLI_VERSION
    try:
        result = client.installer_factory().install(client.resolve_cli_version())
    except InstallError as exc:
        logger.error("%s", exc)
        return ExitCodes.INSTALL_ERROR.value
    except OSError as exc:
        logger.error("Unable to prepare install directories: %s", exc)
        return ExitCodes.FILE_ERROR.value

    client.publish_install(result)
    logger.info("CLI available at: %s", result.location.file_path)
    return ExitCodes.SUCCESS.value


def run_command(args, task: TaskHost) -> int:
    """Install and run the CLI, mapping its outcome onto an exit code."""
    cli_args = list(getattr(args, "CLI_ARGS", None) or [])
    if cli_args and cli_args[0] == "--":
        cli_args = cli_args[1:]

    client = CliClient(task=task)
    successful_exit_codes = getattr(args, "SUCCESS_EXIT_CODES", None) or [0]
    exit_code = client.run(
        cli_args,
        successful_exit_codes=successful_exit_codes,
        publish=getattr(args, "PUBLISH", True),
        publish_artifact_name=getattr(args, "ARTIFACT_NAME", None),
        telemetry_environment=getattr(args, "TELEMETRY_ENVIRONMENT", None)
        or Constants.TELEMETRY_ENVIRONMENT_DEFAULT,
    )
    # A failed setup reports 1, which may also be an allowed CLI exit code
    if task.result == TaskResult.FAILED or exit_code not in successful_exit_codes:
        return ExitCodes.CLI_ERROR.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    configure(args)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI start",
            extra=extra_context(event="function_entry", component="cli", action=args.action)
        )

    task = TaskHost()
    if args.action == "install":
        code = install_command(args, task)
    else:
        code = run_command(args, task)

    if is_debug_enabled(logger):
        logger.debug(
            "CLI finished",
            extra=extra_context(event="function_exit", component="cli", action=args.action, exit_code=code)
        )
    sys.exit(code)


if __name__ == "__main__":
    main()
