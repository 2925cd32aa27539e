#!/usr/bin/env python3
"""Main entry point for a FilterTree run.

This module handles:
- Session setup from configuration (rule file, root, checkers, sort mode)
- Running the scan with SIGINT cancelling it
- Printing the annotated tree and, on request, the serialized rules

Example:
    >>> from filtertree.main import run_filtertree
    >>> run_filtertree(args, config, logger)
"""

import argparse
import os
import signal
import sys
import threading
from typing import List, Optional, TextIO

from filtertree.core.config import ConfigError, ConfigManager
from filtertree.core.constants import ErrorCode, Limits, SortMode
from filtertree.core.logging import Logger
from filtertree.core.paths import format_size
from filtertree.session import FilterSession
from filtertree.tree.node import FileNode
from filtertree.tree.scanner import ScanComplete, ScanEvent, ScanProgress

# Seconds between checks for SIGINT while the scan thread runs
WAIT_INTERVAL = 0.1


def format_node(node: FileNode) -> str:
    """One tree line: marker, name and size information."""
    if node.is_dir:
        total_size, total_files = node.stats()
        noun = "file" if total_files == 1 else "files"
        return f"{node.filter_state.marker} {node.name}/ ({format_size(total_size)}, {total_files} {noun})"
    return f"{node.filter_state.marker} {node.name} ({format_size(node.size)})"


def render_tree(root: FileNode, max_depth: Optional[int] = None) -> List[str]:
    """
    Render a tree as indented lines, two spaces per level.

    Args:
        root: Tree root (depth 0)
        max_depth: Deepest level to include, None for all

    Returns:
        Lines in pre-order
    """
    lines = []
    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        lines.append("  " * depth + format_node(node))
        if node.is_dir and (max_depth is None or depth < max_depth):
            stack.extend((child, depth + 1) for child in reversed(node.children))
    return lines


class FilterTreeMain:
    """
    Main class for a FilterTree command-line run.

    Handles session setup, the scan lifecycle, SIGINT and output.
    """

    def __init__(
        self,
        args: argparse.Namespace,
        config: ConfigManager,
        logger: Logger,
        out: Optional[TextIO] = None,
    ):
        """
        Initialize the controller.

        Args:
            args: Parsed command-line arguments
            config: Loaded configuration
            logger: Logger instance
            out: Stream the tree is printed to (default: stdout)
        """
        self.args = args
        self.config = config
        self.logger = logger
        self.out = out or sys.stdout
        self.session: Optional[FilterSession] = None
        self.interrupted = threading.Event()
        self._previous_handler = None

    def create_session(self) -> FilterSession:
        """
        Build the session from arguments and configuration.

        Raises:
            CLIError: If the directory to browse is unusable
            ConfigError: If a configured value is invalid
        """
        from filtertree.cli import CLIError, resolve_paths

        default_rule_file = self.config.get("filtertree.rules.file", Limits.DEFAULT_RULE_FILE)
        rule_file, root_path = resolve_paths(self.args, default_rule_file)

        if not os.path.exists(root_path):
            raise CLIError(f"Directory does not exist: {root_path}", ErrorCode.NOT_FOUND)
        if not os.path.isdir(root_path):
            raise CLIError(f"Not a directory: {root_path}")

        checkers = self.config.get("filtertree.scan.checkers", Limits.DEFAULT_CHECKERS)
        if not isinstance(checkers, int) or checkers < 1:
            self.logger.warning(
                "Invalid checker count, using default",
                checkers=checkers,
                default=Limits.DEFAULT_CHECKERS,
            )
            checkers = Limits.DEFAULT_CHECKERS

        sort_name = self.config.get("filtertree.scan.sort", "name")
        try:
            sort_mode = SortMode.from_name(str(sort_name))
        except ValueError as e:
            raise ConfigError(str(e))

        self.logger.info("Using rule file", rule_file=rule_file, root=root_path)

        self.session = FilterSession(
            root_path,
            rule_file,
            concurrency=checkers,
            sort_mode=sort_mode,
            progress_dir_interval=self.config.get(
                "filtertree.scan.progress_dir_interval", Limits.PROGRESS_DIR_INTERVAL
            ),
            progress_file_interval=self.config.get(
                "filtertree.scan.progress_file_interval", Limits.PROGRESS_FILE_INTERVAL
            ),
            logger=self.logger,
        )
        self.session.add_listener(self._on_scan_event)
        return self.session

    def _on_scan_event(self, event: ScanEvent) -> None:
        if isinstance(event, ScanProgress):
            self.logger.info(event.message, dirs=event.dirs, files=event.files)
        elif isinstance(event, ScanComplete) and event.error:
            self.logger.error("Scan ended with an error", error=event.error)

    def setup_signal_handlers(self) -> None:
        """Make SIGINT cancel the running scan instead of killing the process."""

        def signal_handler(signum, frame):
            self.logger.info("Received SIGINT, cancelling scan...")
            self.interrupted.set()
            if self.session is not None:
                self.session.cancel_scan()

        if threading.current_thread() is not threading.main_thread():
            self.logger.debug("Not on the main thread, SIGINT handler not installed")
            return

        self._previous_handler = signal.signal(signal.SIGINT, signal_handler)
        self.logger.debug("Signal handlers registered")

    def restore_signal_handlers(self) -> None:
        if self._previous_handler is not None:
            signal.signal(signal.SIGINT, self._previous_handler)
            self._previous_handler = None

    def run_scan(self) -> FileNode:
        """Scan in the background and wait, staying responsive to SIGINT."""
        root = self.session.start_scan()
        while not self.session.wait(WAIT_INTERVAL):
            pass
        return root

    def print_output(self, root: FileNode) -> None:
        for line in render_tree(root, self.args.depth):
            print(line, file=self.out)

        if self.args.print_rules:
            print(file=self.out)
            for line in self.session.serialized_rules():
                print(line, file=self.out)

    def run(self) -> int:
        """
        Run one scan and print the result.

        Returns:
            Exit code (ErrorCode value)
        """
        try:
            self.create_session()
            self.session.load_rules()
            self.setup_signal_handlers()

            root = self.run_scan()

            if self.interrupted.is_set():
                self.logger.warning("Scan cancelled")
                return int(ErrorCode.INTERRUPTED)

            self.print_output(root)
            return int(ErrorCode.SUCCESS)

        finally:
            self.restore_signal_handlers()


def run_filtertree(args: argparse.Namespace, config: ConfigManager, logger: Logger) -> int:
    """
    Run FilterTree for parsed arguments.

    Args:
        args: Parsed command-line arguments
        config: Loaded configuration
        logger: Logger instance

    Returns:
        Exit code
    """
    return FilterTreeMain(args, config, logger).run()


def main():
    """Entry point when run as a module (python -m filtertree.main)."""
    from filtertree.cli import main as cli_main

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
