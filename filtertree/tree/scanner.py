#!/usr/bin/env python3
"""Concurrent, level-synchronous directory scanner.

The scanner walks a directory tree breadth first. Every directory of one
level is listed by a pool bounded to ``concurrency`` workers; the next level
starts only after all listings of the current one finished. Each discovered
entry gets its filter state from the resolver.

Progress is reported to listeners as ScanProgress events, and exactly one
ScanComplete event follows once the traversal ended (or was cancelled) and
the aggregate statistics were recomputed bottom-up.

Example:
    >>> resolver = FilterResolver(load_rule_file("filter.txt"))
    >>> scanner = TreeScanner("/data", resolver, concurrency=8)
    >>> root = scanner.scan()
    >>> root.total_files
    1234
"""

import concurrent.futures
import os
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from filtertree.core.constants import FilterState, Limits, SortMode
from filtertree.core.logging import Logger, get_logger
from filtertree.core.paths import filter_path
from filtertree.rules.resolver import FilterResolver
from filtertree.tree.node import FileNode
from filtertree.tree.sorting import resort_tree, sort_children


@dataclass(frozen=True)
class ScanProgress:
    """Cumulative counts while a scan is running."""

    dirs: int
    files: int
    message: str = "Scanning directories..."


@dataclass(frozen=True)
class ScanComplete:
    """Emitted once per scan, after statistics were recomputed."""

    root: FileNode
    cancelled: bool
    dirs: int
    files: int
    error: Optional[str] = None


ScanEvent = Union[ScanProgress, ScanComplete]
ScanListener = Callable[[ScanEvent], None]


def calculate_stats(node: FileNode) -> Tuple[int, int]:
    """Recompute total size and file count of every directory below node.

    Args:
        node: Subtree root

    Returns:
        (total_size, total_files) of node; a file counts as (size, 1)
    """
    if not node.is_dir:
        return node.size, 1

    # Reversed pre-order visits every directory after all of its subdirectories
    directories = [n for n in node.walk() if n.is_dir]
    for directory in reversed(directories):
        total_size = 0
        total_files = 0
        for child in directory.children:
            if child.is_dir:
                size, files = child.stats()
            else:
                size, files = child.size, 1
            total_size += size
            total_files += files
        directory.set_stats(total_size, total_files)

    return node.stats()


class TreeScanner:
    """Builds an annotated FileNode tree for one root directory.

    Listeners are called from worker threads for progress events and from
    the scanning thread for the completion event.
    """

    def __init__(
        self,
        root_path: str,
        resolver: FilterResolver,
        concurrency: int = Limits.DEFAULT_CHECKERS,
        sort_mode: SortMode = SortMode.NAME,
        progress_dir_interval: int = Limits.PROGRESS_DIR_INTERVAL,
        progress_file_interval: int = Limits.PROGRESS_FILE_INTERVAL,
        logger: Optional[Logger] = None,
    ):
        """Initialize scanner.

        Args:
            root_path: Directory to scan
            resolver: Resolver consulted once per discovered entry
            concurrency: Maximum number of directories listed at once
            sort_mode: Sibling ordering
            progress_dir_interval: Emit progress every N directories
            progress_file_interval: Emit progress every M files
            logger: Optional logger

        Raises:
            ValueError: If concurrency is less than 1
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.root_path = os.path.abspath(root_path)
        self.resolver = resolver
        self.concurrency = concurrency
        self.sort_mode = sort_mode
        self.progress_dir_interval = max(1, progress_dir_interval)
        self.progress_file_interval = max(1, progress_file_interval)
        self.logger = logger or get_logger()

        self.root: Optional[FileNode] = None
        self._cancel = threading.Event()
        self._counter_lock = threading.Lock()
        self._dirs = 0
        self._files = 0
        self._listeners: List[ScanListener] = []
        self._thread: Optional[threading.Thread] = None

    # Listeners

    def add_listener(self, listener: ScanListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: ScanListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: ScanEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                self.logger.warning("Scan listener failed", error=str(e))

    # Lifecycle

    @property
    def counts(self) -> Tuple[int, int]:
        """(directories, files) scanned so far."""
        with self._counter_lock:
            return self._dirs, self._files

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def cancel(self) -> None:
        """Stop scheduling work. Listings already running are allowed to finish."""
        self._cancel.set()

    def new_root(self) -> FileNode:
        """Create the root node, resolved and marked as loading."""
        return FileNode(
            path=self.root_path,
            name=os.path.basename(self.root_path) or self.root_path,
            is_dir=True,
            loading=True,
            expanded=True,
            filter_state=self.resolver.resolve(filter_path(self.root_path, self.root_path)),
        )

    def _reset(self) -> None:
        self._cancel.clear()
        with self._counter_lock:
            self._dirs = 0
            self._files = 0

    def scan(self, root: Optional[FileNode] = None) -> FileNode:
        """Scan synchronously and return the completed root.

        Each call starts from a fresh root (unless one is given) and resets
        the counters; a previous tree is never modified.
        """
        self._reset()
        root = root or self.new_root()
        self.root = root
        return self._run(root, propagate=True)

    def start(self, root: Optional[FileNode] = None) -> FileNode:
        """Scan on a background thread.

        Returns:
            The root node, which fills in while the scan runs
        """
        if self.is_running:
            raise RuntimeError("Scan already running")

        self._reset()
        root = root or self.new_root()
        self.root = root
        self._thread = threading.Thread(
            target=self._run, args=(root,), name="filtertree-scanner", daemon=True
        )
        self._thread.start()
        return root

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Wait for a background scan. Returns True once it has finished."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self, root: FileNode, propagate: bool = False) -> FileNode:
        error = None
        with self.logger.add_context(root=self.root_path):
            self.logger.info("Scan started", checkers=self.concurrency)
            try:
                self._traverse(root)
            except Exception as e:
                if propagate:
                    raise
                self.logger.exception("Scan failed", e)
                error = str(e)

            calculate_stats(root)
            if self.sort_mode in (SortMode.SIZE, SortMode.FILE_COUNT):
                # Mid-scan ordering used incomplete aggregates
                resort_tree(root, self.sort_mode)

            dirs, files = self.counts
            self.logger.info(
                "Scan finished", dirs=dirs, files=files, cancelled=self.cancelled
            )

        self._emit(ScanComplete(root=root, cancelled=self.cancelled, dirs=dirs, files=files, error=error))
        return root

    # Traversal

    def _traverse(self, root: FileNode) -> None:
        queue = [root]
        level = 0

        while queue and not self._cancel.is_set():
            current_level, queue = queue, []
            self.logger.debug("Scanning level", level=level, directories=len(current_level))

            with concurrent.futures.ThreadPoolExecutor(
                max_workers=self.concurrency, thread_name_prefix="filtertree-worker"
            ) as executor:
                futures = [
                    executor.submit(self._scan_directory, node)
                    for node in current_level
                    if node.is_dir
                ]
                # Join barrier: the next level starts after every listing of this one
                concurrent.futures.wait(futures)

            for future in futures:
                queue.extend(future.result())
            level += 1

        # Directories discovered but never listed after a cancel
        for node in queue:
            node.stop_loading()

    def _scan_directory(self, node: FileNode) -> List[FileNode]:
        """List one directory and publish its children.

        Returns:
            Child directories, to be scanned on the next level
        """
        if self._cancel.is_set():
            node.stop_loading()
            return []

        try:
            with os.scandir(node.path) as it:
                entries = list(it)
        except OSError as e:
            self.logger.debug("Directory not readable", path=node.path, error=str(e))
            node.mark_unreadable()
            return []

        self._count_directory()

        children: List[FileNode] = []
        subdirectories: List[FileNode] = []

        for entry in entries:
            child = self._make_node(entry, node)
            if child.is_dir:
                subdirectories.append(child)
            else:
                self._count_file()
            children.append(child)

        sort_children(children, self.sort_mode)
        node.publish_children(children)
        return subdirectories

    def _make_node(self, entry: os.DirEntry, parent: FileNode) -> FileNode:
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            is_dir = False

        size = 0
        mod_time = None
        try:
            st = entry.stat(follow_symlinks=False)
            mod_time = datetime.fromtimestamp(st.st_mtime)
            if not is_dir:
                size = st.st_size
        except OSError:
            # Entry vanished between listing and stat; keep it with zeros
            pass

        state: FilterState = self.resolver.resolve(filter_path(self.root_path, entry.path))

        return FileNode(
            path=entry.path,
            name=entry.name,
            is_dir=is_dir,
            size=size,
            mod_time=mod_time,
            parent=parent,
            filter_state=state,
            loading=is_dir,
        )

    def _count_directory(self) -> None:
        with self._counter_lock:
            self._dirs += 1
            dirs, files = self._dirs, self._files
        if dirs % self.progress_dir_interval == 0:
            self._emit(ScanProgress(dirs=dirs, files=files))

    def _count_file(self) -> None:
        with self._counter_lock:
            self._files += 1
            dirs, files = self._dirs, self._files
        if files % self.progress_file_interval == 0:
            self._emit(ScanProgress(dirs=dirs, files=files))
