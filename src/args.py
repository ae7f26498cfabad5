"""Argument parsing functionality for the security DevOps task."""

import argparse


def _add_common(parser):
    parser.add_argument("--loglevel",
                        dest="LOG_LEVEL",
                        help="Set the logging level",
                        action="store",
                        type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        default='INFO')
    parser.add_argument("--logfile",
                        dest="LOG_FILE",
                        help="Log output file",
                        action="store",
                        type=str)
    parser.add_argument("-c", "--config",
                        dest="CONFIG",
                        help="Path to configuration file (YAML)",
                        action="store",
                        type=str)
    parser.add_argument("--source",
                        dest="PACKAGE_SOURCE",
                        help="NuGet V3 service index used to fetch the CLI package",
                        action="store",
                        type=str)
    parser.add_argument("--max-retries",
                        dest="MAX_RETRIES",
                        help="Retries after a failed package fetch (default: 2)",
                        action="store",
                        type=int)


def parse_args(argv=None):
    """Parses the arguments passed to the program."""
    parser = argparse.ArgumentParser(
        prog="secdevops-task",
        description="Installs and runs the security DevOps CLI in a pipeline task",
        add_help=True,
    )
    subparsers = parser.add_subparsers(dest="action", required=True)

    install = subparsers.add_parser("install", help="Install the CLI and publish its location")
    _add_common(install)
    install.add_argument("-v", "--version",
                         dest="CLI_VERSION",
                         help="CLI version to install: exact (1.2.3), Latest, LatestPreRelease "
                              "(default: MSDO_VERSION or Latest)",
                         action="store",
                         type=str)

    run = subparsers.add_parser("run", help="Install the CLI and run it")
    _add_common(run)
    run.add_argument("--no-publish",
                     dest="PUBLISH",
                     help="Do not upload the SARIF file as a build artifact",
                     action="store_false")
    run.add_argument("--artifact-name",
                     dest="ARTIFACT_NAME",
                     help="Artifact name for uploaded results (default: CodeAnalysisLogs)",
                     action="store",
                     type=str)
    run.add_argument("--telemetry-environment",
                     dest="TELEMETRY_ENVIRONMENT",
                     help="Telemetry environment reported by the CLI (default: azdevops)",
                     action="store",
                     type=str)
    run.add_argument("--success-exit-code",
                     dest="SUCCESS_EXIT_CODES",
                     help="Exit code treated as success; repeatable (default: 0)",
                     action="append",
                     type=int)
    run.add_argument("CLI_ARGS",
                     help="Arguments passed to 'guardian run' (use -- to separate)",
                     nargs=argparse.REMAINDER)

    return parser.parse_args(argv)
