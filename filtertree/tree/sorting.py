"""Sibling ordering for scanned trees. Directories always come first."""

from typing import Any, Callable, Dict, List, Tuple

from filtertree.core.constants import SortMode
from filtertree.tree.node import FileNode


def _by_name(node: FileNode) -> Tuple[Any, ...]:
    return (not node.is_dir, node.name.lower())


def _by_size(node: FileNode) -> Tuple[Any, ...]:
    size = node.total_size if node.is_dir else node.size
    return (not node.is_dir, -size)


def _by_file_count(node: FileNode) -> Tuple[Any, ...]:
    # Files have no count of their own and fall back to name order
    if node.is_dir:
        return (False, -node.total_files, "")
    return (True, 0, node.name.lower())


def _by_modified(node: FileNode) -> Tuple[Any, ...]:
    # Unknown times sort last
    stamp = -node.mod_time.timestamp() if node.mod_time else float("inf")
    return (not node.is_dir, stamp)


_SORT_KEYS: Dict[SortMode, Callable[[FileNode], Tuple[Any, ...]]] = {
    SortMode.NAME: _by_name,
    SortMode.SIZE: _by_size,
    SortMode.FILE_COUNT: _by_file_count,
    SortMode.LAST_MODIFIED: _by_modified,
}


def sort_children(children: List[FileNode], mode: SortMode = SortMode.NAME) -> List[FileNode]:
    """Sort a list of sibling nodes in place and return it.

    Args:
        children: Sibling nodes
        mode: Active sort mode

    Returns:
        The same list, sorted
    """
    children.sort(key=_SORT_KEYS.get(mode, _by_name))
    return children


def resort_tree(node: FileNode, mode: SortMode) -> None:
    """Re-sort every directory below node, e.g. after the sort mode changed."""
    for current in node.walk():
        if current.is_dir:
            children = current.children
            if children:
                current.replace_children_order(sort_children(children, mode))
