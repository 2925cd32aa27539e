#!/usr/bin/env python3
r"""Glob pattern compilation for rclone-style filter rules.

This module turns rule-file patterns into reusable matchers:
- ``*`` matches within one path segment, ``**`` crosses segments
- ``**/`` matches zero or more whole segments (``a/**/b`` matches ``a/b``)
- ``?``, ``[...]`` character classes and ``{a,b}`` alternation
- ``dir/**`` also matches the bare ``dir`` entry
- Leading ``/`` is ignored on both pattern and path; matching is case-sensitive

Each pattern is compiled once and cached, so resolving thousands of paths
never recompiles a regex.

Example:
    >>> matcher = compile_pattern("src/**/*.py")
    >>> matcher.match("/src/pkg/main.py")
    True
    >>> pattern_to_regex("*.{txt,md}")
    '[^/]*\\.(?:txt|md)'
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import List, Optional, Pattern

from filtertree.core.logging import get_logger

# Characters with special meaning in a regex that are literal in a glob
_REGEX_SPECIALS = frozenset(".^$+()|\\")


def _split_alternatives(body: str) -> List[str]:
    """Split the inside of a ``{...}`` group on top-level commas."""
    parts = []
    depth = 0
    start = 0
    for i, char in enumerate(body):
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
        elif char == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
    parts.append(body[start:])
    return parts


def pattern_to_regex(pattern: str) -> str:
    """Translate a glob pattern into an (unanchored) regular expression.

    Args:
        pattern: Glob pattern in the rule-file dialect

    Returns:
        Regex source matching the same paths
    """
    result = []
    i = 0
    length = len(pattern)

    while i < length:
        char = pattern[i]

        if char == "*":
            if i + 1 < length and pattern[i + 1] == "*":
                if i + 2 < length and pattern[i + 2] == "/":
                    # **/ is zero or more whole directories
                    result.append("(?:.*/)?")
                    i += 3
                else:
                    result.append(".*")
                    i += 2
            else:
                result.append("[^/]*")
                i += 1

        elif char == "?":
            result.append("[^/]")
            i += 1

        elif char == "[":
            end = pattern.find("]", i + 1)
            if end != -1:
                result.append(pattern[i : end + 1])
                i = end + 1
            else:
                result.append("\\[")
                i += 1

        elif char == "{":
            j = i + 1
            depth = 1
            while j < length and depth > 0:
                if pattern[j] == "{":
                    depth += 1
                elif pattern[j] == "}":
                    depth -= 1
                j += 1
            if depth == 0:
                alternatives = _split_alternatives(pattern[i + 1 : j - 1])
                result.append("(?:" + "|".join(pattern_to_regex(alt) for alt in alternatives) + ")")
                i = j
            else:
                result.append("\\{")
                i += 1

        elif char in _REGEX_SPECIALS:
            result.append("\\" + char)
            i += 1

        else:
            result.append(char)
            i += 1

    return "".join(result)


@dataclass(frozen=True)
class CompiledPattern:
    """An immutable matcher derived from one glob pattern.

    Attributes:
        pattern: The original pattern string
        regex: Anchored regex source
        compiled: Compiled regex, or None when the regex failed to compile
            (matching then falls back to exact string equality)
        dir_prefix: For patterns ending in ``/**``, the part before it
    """

    pattern: str
    regex: str
    compiled: Optional[Pattern]
    dir_prefix: Optional[str] = None

    @property
    def stripped(self) -> str:
        return self.pattern.lstrip("/")

    def match(self, path: str) -> bool:
        """Check whether a root-relative path matches this pattern.

        Args:
            path: Forward-slash path, with or without a leading "/"

        Returns:
            True if the path matches
        """
        if not self.pattern:
            return False

        clean_path = path.lstrip("/")

        if self.dir_prefix is not None:
            if clean_path == self.dir_prefix or clean_path.startswith(self.dir_prefix + "/"):
                return True

        if self.compiled is None:
            return self.stripped == clean_path

        return self.compiled.fullmatch(clean_path) is not None

    def __call__(self, path: str) -> bool:
        return self.match(path)


@lru_cache(maxsize=4096)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Compile a glob pattern into a reusable matcher.

    Compilation never raises: a pattern whose translation is not a valid
    regex degrades to exact-equality matching.

    Args:
        pattern: Glob pattern

    Returns:
        Cached CompiledPattern for this pattern string
    """
    clean = pattern.lstrip("/")
    regex = "^" + pattern_to_regex(clean) + "$"

    compiled: Optional[Pattern]
    try:
        compiled = re.compile(regex)
    except re.error as e:
        get_logger().warning("Pattern falls back to exact match", pattern=pattern, error=str(e))
        compiled = None

    dir_prefix = clean[: -len("/**")] if clean.endswith("/**") else None

    return CompiledPattern(pattern=pattern, regex=regex, compiled=compiled, dir_prefix=dir_prefix)


def matches(pattern: str, path: str) -> bool:
    """Check if path matches a glob pattern.

    Example:
        >>> matches("dir/**", "/dir")
        True
        >>> matches("dir/**", "/dirX")
        False
    """
    return compile_pattern(pattern).match(path)
