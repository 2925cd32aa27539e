"""
FilterTree Core: Path normalization

Filesystem paths are turned into the forward-slash, root-relative strings
that rule patterns are matched against. The root is always passed in
explicitly so the conversion is a pure function of its arguments.
"""
import os
from typing import Union

from filtertree.core.constants import FilterPath, Pattern

PathLike = Union[str, "os.PathLike[str]"]


def filter_path(root: PathLike, path: PathLike) -> FilterPath:
    """Convert an absolute filesystem path into a rule-matching path.

    Args:
        root: Configured scan root
        path: Path of an entry under the root

    Returns:
        "/" followed by the root-relative path with forward slashes.
        The root itself becomes "/.". A path that cannot be made relative
        to the root (different drive) falls back to "/" + its basename.

    Example:
        >>> filter_path("/data", "/data/docs/a.txt")
        '/docs/a.txt'
        >>> filter_path("/data", "/data")
        '/.'
    """
    abs_root = os.path.abspath(os.fspath(root))
    abs_path = os.path.abspath(os.fspath(path))
    try:
        rel = os.path.relpath(abs_path, abs_root)
    except ValueError:
        return "/" + os.path.basename(abs_path).replace(os.sep, "/")
    return "/" + rel.replace(os.sep, "/")


def edit_pattern(root: PathLike, path: PathLike, is_dir: bool) -> Pattern:
    """Pattern recorded when the user toggles an entry.

    Directories get "/**" so the rule covers the directory and everything
    below it; the leading "/" is dropped to match the rule-file convention.
    """
    pattern = filter_path(root, path)
    if is_dir:
        pattern = pattern.rstrip("/") + "/**"
    return pattern.lstrip("/")


def format_size(size: int) -> str:
    """Human readable size with 1024-based units ("1.5 KB")."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}B"
