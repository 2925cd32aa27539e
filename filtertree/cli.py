#!/usr/bin/env python3
"""Command-line interface for FilterTree.

This module provides the CLI for inspecting rclone filter files against a
directory tree:
- Argument parsing and validation
- Rule file / directory resolution from positional arguments
- Configuration loading (YAML file, environment, arguments)
- Logging setup

Example:
    >>> from filtertree.cli import parse_arguments
    >>> args = parse_arguments(['myfilters.txt', '/data', '--checkers', '8'])
"""

import argparse
import os
import sys
import traceback
from typing import Any, Dict, List, Optional, Tuple

from filtertree.core.config import ConfigManager, ConfigSource
from filtertree.core.constants import FILTERTREE_VERSION, ErrorCode, FilterTreeError, Limits
from filtertree.core.logging import LogLevel, Logger, set_global_logger

# Version information
VERSION = FILTERTREE_VERSION
DESCRIPTION = "FilterTree - browse a directory tree through an rclone filter file"

SORT_CHOICES = ["name", "size", "files", "modified"]


class CLIError(FilterTreeError):
    """Exception raised for CLI-related errors."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INVALID_INPUT):
        super().__init__(message, error_code)


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
        CLIError: If validation fails
    """
    parser = argparse.ArgumentParser(
        prog="filtertree",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Use filter.txt against the current directory
  filtertree

  # Browse a directory with the default filter.txt
  filtertree test/folder_a

  # Use a specific filter file against a directory
  filtertree myfilters.txt test/folder_a

  # Scan with 8 concurrent listings, largest directories first
  filtertree --checkers 8 --sort size -p test/folder_a

  # Show the rule file as it would be saved
  filtertree -f filters.txt -p /data --print-rules
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}",
    )

    parser.add_argument(
        "filter_file",
        nargs="?",
        metavar="FILTER_FILE",
        help="rclone filter file (default: filter.txt), or a directory to browse",
    )

    parser.add_argument(
        "directory",
        nargs="?",
        metavar="DIRECTORY",
        help="Directory to browse (default: current directory)",
    )

    parser.add_argument(
        "-f",
        "--file",
        metavar="FILE",
        type=str,
        help="Path to the rclone filter file",
    )

    parser.add_argument(
        "-p",
        "--path",
        metavar="DIR",
        type=str,
        help="Base directory to browse",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Configuration file path (YAML format)",
    )

    # Scan options
    scan_group = parser.add_argument_group("scan options")

    scan_group.add_argument(
        "--checkers",
        metavar="N",
        type=int,
        help=f"Number of concurrent directory listings (default: {Limits.DEFAULT_CHECKERS})",
    )

    scan_group.add_argument(
        "--sort",
        choices=SORT_CHOICES,
        help="Sibling ordering (default: name)",
    )

    # Output options
    output_group = parser.add_argument_group("output options")

    output_group.add_argument(
        "--depth",
        metavar="N",
        type=int,
        help="Print the tree down to depth N (default: unlimited)",
    )

    output_group.add_argument(
        "--print-rules",
        action="store_true",
        help="Print the rule lines as they would be saved",
    )

    # Logging options
    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write log messages to FILE",
    )

    parsed = parser.parse_args(args)

    _validate_arguments(parsed)

    return parsed


def _validate_arguments(args: argparse.Namespace) -> None:
    """
    Validate parsed arguments.

    Args:
        args: Parsed arguments namespace

    Raises:
        CLIError: If validation fails
    """
    if args.depth is not None and args.depth < 0:
        raise CLIError(f"Depth must not be negative: {args.depth}")

    if args.config:
        if not os.path.exists(args.config):
            raise CLIError(f"Configuration file does not exist: {args.config}", ErrorCode.NOT_FOUND)

        if not os.path.isfile(args.config):
            raise CLIError(f"Configuration path is not a file: {args.config}")


def resolve_paths(
    args: argparse.Namespace, default_rule_file: str = Limits.DEFAULT_RULE_FILE
) -> Tuple[str, str]:
    """
    Work out which rule file and which directory to use.

    Without -f, a lone positional naming an existing directory is the
    directory to browse; otherwise the first positional is the rule file and
    the second the directory. -p always wins over a positional directory.

    Args:
        args: Parsed arguments namespace
        default_rule_file: Rule file used when none is given

    Returns:
        (rule_file, root_path)
    """
    positionals = [p for p in (args.filter_file, args.directory) if p]
    rule_file = args.file
    root_path = args.path or "."

    if rule_file is None:
        if not positionals:
            rule_file = default_rule_file
        elif os.path.isdir(positionals[0]) and not args.path:
            root_path = positionals[0]
            rule_file = default_rule_file
        else:
            rule_file = positionals[0]
            if len(positionals) > 1 and not args.path:
                root_path = positionals[1]
    elif positionals and not args.path:
        root_path = positionals[0]

    return rule_file, root_path


def build_config_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Build configuration dictionary from command-line arguments.

    Only options given on the command line are included, so lower
    precedence sources keep their values otherwise.

    Args:
        args: Parsed arguments namespace

    Returns:
        Configuration dictionary for the CLI_ARGS source
    """
    scan: Dict[str, Any] = {}
    if args.checkers is not None:
        scan["checkers"] = args.checkers
    if args.sort:
        scan["sort"] = args.sort

    logging_config: Dict[str, Any] = {}
    if args.debug:
        logging_config["level"] = "DEBUG"
    if args.log_file:
        logging_config["file"] = args.log_file

    config: Dict[str, Any] = {}
    if scan:
        config["scan"] = scan
    if logging_config:
        config["logging"] = logging_config

    return {"filtertree": config}


def load_config(args: argparse.Namespace) -> ConfigManager:
    """
    Load configuration from defaults, the optional YAML file, the
    environment and the command line.

    Raises:
        ConfigError: If the configuration file cannot be loaded
    """
    config = ConfigManager(config_file=args.config)
    config.load_dict(build_config_from_args(args), source=ConfigSource.CLI_ARGS)
    return config


def setup_logging(args: argparse.Namespace, config: ConfigManager) -> Logger:
    """
    Setup logging based on arguments and configuration.

    Args:
        args: Parsed arguments namespace
        config: Loaded configuration

    Returns:
        Configured logger instance, also installed as the global logger
    """
    log_level = LogLevel.DEBUG if args.debug else config.get("filtertree.logging.level", "WARNING")
    log_file = config.get("filtertree.logging.file")

    try:
        logger = Logger("filtertree", level=log_level)
    except ValueError:
        raise CLIError(f"Invalid log level: {log_level}")

    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))
        logger.debug("Logging to file", file=log_file)

    set_global_logger(logger)
    return logger


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Parses arguments, loads configuration and hands over to
    filtertree.main for the scan.

    Returns:
        Process exit code
    """
    try:
        args = parse_arguments(argv)
        config = load_config(args)
        logger = setup_logging(args, config)

        from filtertree.main import run_filtertree

        return run_filtertree(args, config, logger)

    except FilterTreeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return int(e.error_code)

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return int(ErrorCode.INTERRUPTED)

    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        traceback.print_exc()
        return int(ErrorCode.INTERNAL_ERROR)


if __name__ == "__main__":
    sys.exit(main())
