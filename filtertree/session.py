#!/usr/bin/env python3
"""Filter editing session.

A session ties the components together for one root directory and one rule
file:
- loads the RuleSet and scans the tree with a shared FilterResolver
- applies edits (toggle, invert, reset) and re-resolves affected nodes
- serializes and saves the edited rules

Editing starts with the first edit: the overlay is seeded with every loaded
rule, so rules the user never touched keep their place when saved. Until
then the ordered (rclone) policy is used.

Example:
    >>> session = FilterSession("/data", "filter.txt")
    >>> session.load_rules()
    >>> root = session.scan()
    >>> session.toggle(root.find("build"))
    >>> session.save().success
    True
"""

import os
from typing import Iterable, List, Optional

from filtertree.core.constants import FilterState, Limits, SortMode
from filtertree.core.logging import Logger, get_logger
from filtertree.core.paths import edit_pattern, filter_path
from filtertree.rules.overlay import Overlay
from filtertree.rules.resolver import FilterResolver
from filtertree.rules.ruleset import RuleSet, load_rule_file, parse_rule_lines
from filtertree.rules.serializer import SaveResult, save_rule_file, serialize_rules
from filtertree.tree.node import FileNode
from filtertree.tree.scanner import ScanListener, TreeScanner
from filtertree.tree.sorting import resort_tree


class FilterSession:
    """Interactive editing state for one root and one rule file."""

    def __init__(
        self,
        root_path: str,
        rule_file: str = Limits.DEFAULT_RULE_FILE,
        concurrency: int = Limits.DEFAULT_CHECKERS,
        sort_mode: SortMode = SortMode.NAME,
        progress_dir_interval: int = Limits.PROGRESS_DIR_INTERVAL,
        progress_file_interval: int = Limits.PROGRESS_FILE_INTERVAL,
        logger: Optional[Logger] = None,
    ):
        """Initialize session.

        Args:
            root_path: Directory to browse
            rule_file: Rule file to load and save
            concurrency: Scanner worker count
            sort_mode: Initial sibling ordering
            progress_dir_interval: Scanner progress interval in directories
            progress_file_interval: Scanner progress interval in files
            logger: Optional logger
        """
        self.root_path = os.path.abspath(root_path)
        self.rule_file = str(rule_file)
        self.concurrency = concurrency
        self.sort_mode = sort_mode
        self.progress_dir_interval = progress_dir_interval
        self.progress_file_interval = progress_file_interval
        self.logger = logger or get_logger()

        self.rule_set = RuleSet()
        self.overlay: Optional[Overlay] = None
        self._resolver = FilterResolver(self.rule_set)

        self.root: Optional[FileNode] = None
        self.scanner: Optional[TreeScanner] = None
        self._listeners: List[ScanListener] = []

    @property
    def resolver(self) -> FilterResolver:
        return self._resolver

    @property
    def editing(self) -> bool:
        return self.overlay is not None

    def _set_rules(self, rule_set: RuleSet, overlay: Optional[Overlay]) -> None:
        self.rule_set = rule_set
        self.overlay = overlay
        self._resolver.rule_set = rule_set
        self._resolver.overlay = overlay

    # Rules

    def load_rules(self) -> RuleSet:
        """Load the rule file, discarding any edits."""
        self._set_rules(load_rule_file(self.rule_file, self.logger), None)
        return self.rule_set

    def filter_path(self, node: FileNode) -> str:
        return filter_path(self.root_path, node.path)

    def resolve(self, node: FileNode) -> FilterState:
        return self._resolver.resolve(self.filter_path(node))

    # Scanning

    def add_listener(self, listener: ScanListener) -> None:
        self._listeners.append(listener)

    def _new_scanner(self) -> TreeScanner:
        scanner = TreeScanner(
            self.root_path,
            self._resolver,
            concurrency=self.concurrency,
            sort_mode=self.sort_mode,
            progress_dir_interval=self.progress_dir_interval,
            progress_file_interval=self.progress_file_interval,
            logger=self.logger,
        )
        for listener in self._listeners:
            scanner.add_listener(listener)
        return scanner

    def _stop_running_scan(self) -> None:
        if self.scanner is not None and self.scanner.is_running:
            self.scanner.cancel()
            self.scanner.wait()

    def scan(self) -> FileNode:
        """Scan synchronously, replacing any previous tree."""
        self._stop_running_scan()
        self.scanner = self._new_scanner()
        self.root = self.scanner.scan()
        return self.root

    def start_scan(self) -> FileNode:
        """Scan in the background; the returned root fills in as it runs."""
        self._stop_running_scan()
        self.scanner = self._new_scanner()
        self.root = self.scanner.start()
        return self.root

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self.scanner is None or self.scanner.wait(timeout)

    def cancel_scan(self) -> None:
        if self.scanner is not None:
            self.scanner.cancel()

    def refresh(self) -> FileNode:
        """Discard the tree and rescan from a fresh root. Edits are kept."""
        self.logger.info("Refreshing directory tree", root=self.root_path)
        return self.scan()

    # Edits

    def _begin_editing(self) -> Overlay:
        if self.overlay is None:
            self._set_rules(self.rule_set, Overlay.from_rule_set(self.rule_set))
        return self.overlay

    def toggle(self, node: FileNode) -> FilterState:
        """Cycle a node's state (Unset -> Include -> Exclude -> Unset).

        Directories are recorded as "dir/**" so the edit covers their
        contents; descendants are re-resolved.

        Returns:
            The node's new state
        """
        overlay = self._begin_editing()
        state = node.filter_state.next()
        node.filter_state = state

        pattern = edit_pattern(self.root_path, node.path, node.is_dir)
        overlay.set(pattern, state)
        self.logger.debug("Toggled filter", pattern=pattern, state=state.name)

        if node.is_dir:
            for child in node.descendants():
                child.filter_state = self.resolve(child)
        return state

    def invert(self, nodes: Optional[Iterable[FileNode]] = None) -> int:
        """Swap Include and Exclude on nodes (default: the visible ones).

        Returns:
            Number of nodes that changed
        """
        overlay = self._begin_editing()
        targets = list(nodes) if nodes is not None else self.visible_nodes()

        changed = 0
        for node in targets:
            state = node.filter_state
            if state == FilterState.UNSET:
                continue
            inverted = state.inverted()
            node.filter_state = inverted
            overlay.set(edit_pattern(self.root_path, node.path, node.is_dir), inverted)
            changed += 1

        self.reapply_filters()
        self.logger.debug("Inverted filters", nodes=changed)
        return changed

    def reset(self) -> None:
        """Discard all uncommitted edits and go back to the loaded rules."""
        self._set_rules(self.rule_set, None)
        self.reapply_filters()

    def reapply_filters(self, node: Optional[FileNode] = None) -> None:
        """Re-resolve node (default: the root) and everything below it."""
        start = node or self.root
        if start is None:
            return
        for current in start.walk():
            current.filter_state = self.resolve(current)

    # View helpers

    def set_sort_mode(self, mode: SortMode) -> None:
        self.sort_mode = mode
        if self.root is not None:
            resort_tree(self.root, mode)

    def visible_nodes(self) -> List[FileNode]:
        """Pre-order nodes whose ancestors are all expanded."""
        if self.root is None:
            return []
        visible = []
        stack = [self.root]
        while stack:
            node = stack.pop()
            visible.append(node)
            if node.is_dir and node.expanded:
                stack.extend(reversed(node.children))
        return visible

    # Persistence

    def serialized_rules(self) -> List[str]:
        return serialize_rules(self.rule_set, self.overlay)

    def save(self) -> SaveResult:
        """Write the edited rules to the rule file.

        On success the written rules become the loaded rule set and editing
        ends. On failure nothing in memory changes, so saving can be retried.
        """
        lines = self.serialized_rules()
        result = save_rule_file(self.rule_file, lines, self.logger)
        if result.success:
            self._set_rules(parse_rule_lines(lines, self.logger), None)
            self.reapply_filters()
        return result
