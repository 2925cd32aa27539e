"""
FilterTree Core: Constants and Type Definitions

This module provides system-wide constants, error codes, and the enums shared
by the rule engine and the tree scanner.
"""
from enum import IntEnum
from typing import TypeAlias

# Version information
FILTERTREE_VERSION = "1.0.0"


# Error codes (also used as CLI exit codes)
class ErrorCode(IntEnum):
    """Standardized error codes for FilterTree operations."""

    SUCCESS = 0  # Operation completed successfully
    INVALID_INPUT = 1  # Bad path, invalid configuration
    NOT_FOUND = 2  # File or resource doesn't exist
    PERMISSION_DENIED = 3  # Insufficient permissions
    INTERNAL_ERROR = 6  # Bug in FilterTree
    INTERRUPTED = 130  # Cancelled by SIGINT


class FilterTreeError(Exception):
    """Base exception carrying an ErrorCode."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.INTERNAL_ERROR):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


# Type aliases for clarity
Pattern: TypeAlias = str
FilterPath: TypeAlias = str  # root-relative, forward slashes, leading "/"


class FilterState(IntEnum):
    """Effective filter state of a path.

    The integer values give the cycle used by the toggle edit:
    UNSET -> INCLUDE -> EXCLUDE -> UNSET.
    """

    UNSET = 0
    INCLUDE = 1
    EXCLUDE = 2

    def next(self) -> "FilterState":
        """Return the next state in the toggle cycle."""
        return FilterState((self.value + 1) % 3)

    def inverted(self) -> "FilterState":
        """Swap INCLUDE and EXCLUDE; UNSET stays UNSET."""
        if self is FilterState.INCLUDE:
            return FilterState.EXCLUDE
        if self is FilterState.EXCLUDE:
            return FilterState.INCLUDE
        return self

    @property
    def marker(self) -> str:
        """Short marker used when printing a tree."""
        return {FilterState.UNSET: "[ ]", FilterState.INCLUDE: "[+]", FilterState.EXCLUDE: "[-]"}[self]


class SortMode(IntEnum):
    """Ordering of sibling nodes. Directories always come first."""

    NAME = 0
    SIZE = 1
    FILE_COUNT = 2
    LAST_MODIFIED = 3

    @classmethod
    def from_name(cls, name: str) -> "SortMode":
        """Parse a sort mode from its CLI/config spelling."""
        aliases = {
            "name": cls.NAME,
            "size": cls.SIZE,
            "files": cls.FILE_COUNT,
            "file_count": cls.FILE_COUNT,
            "count": cls.FILE_COUNT,
            "modified": cls.LAST_MODIFIED,
            "mtime": cls.LAST_MODIFIED,
            "last_modified": cls.LAST_MODIFIED,
        }
        try:
            return aliases[name.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown sort mode: {name}") from None


# Resource limits and defaults
class Limits:
    """Scanner defaults and limits."""

    DEFAULT_CHECKERS = 4

    # Progress events
    PROGRESS_DIR_INTERVAL = 10  # emit every N directories
    PROGRESS_FILE_INTERVAL = 500  # emit every M files

    # Rule file
    DEFAULT_RULE_FILE = "filter.txt"
    RULE_FILE_ENCODING = "utf-8"


# Rule file line prefixes
INCLUDE_PREFIX = "+ "
EXCLUDE_PREFIX = "- "
COMMENT_PREFIX = "#"

# Patterns that match everything at the top level; new rules go before them
CATCH_ALL_PATTERNS = frozenset({"*", "**"})
