"""
FilterTree Tree - scanned directory trees annotated with filter states.

Public API:
    FileNode: One file or directory with cached filter state and aggregates
    ReadWriteLock: Per-node lock (many readers, one writer)
    TreeScanner: Bounded-concurrency breadth-first scanner
    ScanProgress, ScanComplete: Scanner events
    calculate_stats: Bottom-up aggregate recomputation
    sort_children, resort_tree: Sibling ordering
"""

from .node import FileNode, ReadWriteLock
from .scanner import ScanComplete, ScanEvent, ScanProgress, TreeScanner, calculate_stats
from .sorting import resort_tree, sort_children

__all__ = [
    "FileNode",
    "ReadWriteLock",
    "TreeScanner",
    "ScanEvent",
    "ScanProgress",
    "ScanComplete",
    "calculate_stats",
    "resort_tree",
    "sort_children",
]
