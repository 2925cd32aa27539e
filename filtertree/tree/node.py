"""
FilterTree Tree: annotated file nodes.

A FileNode is one filesystem entry with its cached filter state and, for
directories, the aggregate size and file count of everything below it.
Each node guards its mutable fields with its own read/write lock. During a
scan exactly one worker writes a given node, and it publishes the children,
totals and loading flag in a single write so readers never see a partial
child list.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from filtertree.core.constants import FilterState


class ReadWriteLock:
    """Many concurrent readers or one writer.

    Writers wait for active readers to drain; new readers queue behind a
    waiting writer so a busy observer cannot starve the scanner.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class FileNode:
    """A file or directory in the scanned tree.

    Attributes:
        path: Absolute filesystem path
        name: Basename
        is_dir: True for directories
        size: Own size in bytes (0 for directories)
        mod_time: Modification time, or None if it could not be read
        parent: Parent node, None for the root
        filter_state: Cached result of the resolver
        expanded: Whether a client shows this directory's children
    """

    def __init__(
        self,
        path: str,
        name: str,
        is_dir: bool = False,
        size: int = 0,
        mod_time: Optional[datetime] = None,
        parent: Optional["FileNode"] = None,
        filter_state: FilterState = FilterState.UNSET,
        loading: bool = False,
        expanded: bool = False,
    ):
        self.path = path
        self.name = name
        self.is_dir = is_dir
        self.size = size
        self.mod_time = mod_time
        self.parent = parent
        self.expanded = expanded

        self._lock = ReadWriteLock()
        self._children: List["FileNode"] = []
        self._filter_state = filter_state
        self._total_size = 0
        self._total_files = 0
        self._loading = loading

    # Guarded fields

    @property
    def children(self) -> List["FileNode"]:
        """Snapshot of the children list."""
        with self._lock.read():
            return list(self._children)

    @property
    def loading(self) -> bool:
        with self._lock.read():
            return self._loading

    @property
    def filter_state(self) -> FilterState:
        with self._lock.read():
            return self._filter_state

    @filter_state.setter
    def filter_state(self, state: FilterState) -> None:
        with self._lock.write():
            self._filter_state = state

    @property
    def total_size(self) -> int:
        with self._lock.read():
            return self._total_size

    @property
    def total_files(self) -> int:
        with self._lock.read():
            return self._total_files

    def stats(self) -> Tuple[int, int]:
        """(total_size, total_files) read under one lock."""
        with self._lock.read():
            return self._total_size, self._total_files

    def publish_children(self, children: List["FileNode"]) -> None:
        """Store a completed listing and clear the loading flag.

        Totals are computed from the immediate children only; subdirectory
        contributions are filled in by the post-scan recomputation.
        """
        total_size = 0
        total_files = 0
        for child in children:
            if child.is_dir:
                size, files = child.stats()
                total_size += size
                total_files += files
            else:
                total_size += child.size
                total_files += 1

        with self._lock.write():
            self._children = list(children)
            self._total_size = total_size
            self._total_files = total_files
            self._loading = False

    def mark_unreadable(self) -> None:
        """Record a failed listing: no children, no longer loading."""
        with self._lock.write():
            self._children = []
            self._total_size = 0
            self._total_files = 0
            self._loading = False

    def stop_loading(self) -> None:
        """Clear the loading flag of a directory the scan never listed."""
        with self._lock.write():
            self._loading = False

    def set_stats(self, total_size: int, total_files: int) -> None:
        with self._lock.write():
            self._total_size = total_size
            self._total_files = total_files

    def replace_children_order(self, children: List["FileNode"]) -> None:
        """Swap in a reordered list of the same children."""
        with self._lock.write():
            self._children = list(children)

    # Traversal helpers

    def walk(self) -> Iterator["FileNode"]:
        """Pre-order traversal of this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def descendants(self) -> Iterator["FileNode"]:
        walker = self.walk()
        next(walker)
        return walker

    def depth(self) -> int:
        depth = 0
        node = self.parent
        while node is not None:
            depth += 1
            node = node.parent
        return depth

    def find(self, relative: str) -> Optional["FileNode"]:
        """Find a descendant by forward-slash path relative to this node."""
        node: Optional[FileNode] = self
        for part in [p for p in relative.split("/") if p and p != "."]:
            if node is None:
                return None
            node = next((child for child in node.children if child.name == part), None)
        return node

    def __repr__(self) -> str:
        kind = "dir" if self.is_dir else "file"
        return f"FileNode({self.name!r}, {kind}, {self.filter_state.name})"
