#!/usr/bin/env python3
"""Ordered filter rules loaded from an rclone-style rule file.

Rule file format (UTF-8, one directive per line):
- ``+ pattern`` includes, ``- pattern`` excludes
- blank lines and lines starting with ``#`` are ignored
- anything else is skipped

Rules are evaluated first-match-wins in file order, so an earlier broad
rule shadows a later specific one.

Example:
    >>> rules = parse_rule_lines(["- *.log", "+ keep.log"])
    >>> rules.resolve("/keep.log")
    <FilterState.EXCLUDE: 2>
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Union

from filtertree.core.constants import (
    COMMENT_PREFIX,
    EXCLUDE_PREFIX,
    INCLUDE_PREFIX,
    FilterState,
    Limits,
)
from filtertree.core.logging import Logger, get_logger
from filtertree.rules.patterns import CompiledPattern, compile_pattern


@dataclass(frozen=True)
class Rule:
    """A single filter directive: a pattern and the state it assigns."""

    pattern: str
    state: FilterState
    matcher: CompiledPattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "matcher", compile_pattern(self.pattern))

    def applies_to(self, path: str) -> bool:
        """True if the pattern equals the path or matches it."""
        return self.pattern == path or self.matcher.match(path)


def parse_rule_line(line: str) -> Optional[Rule]:
    """Parse one rule-file line.

    Returns:
        The rule, or None for blank, comment and unrecognized lines
    """
    line = line.strip()
    if not line or line.startswith(COMMENT_PREFIX):
        return None
    if line.startswith(INCLUDE_PREFIX):
        return Rule(line[len(INCLUDE_PREFIX):], FilterState.INCLUDE)
    if line.startswith(EXCLUDE_PREFIX):
        return Rule(line[len(EXCLUDE_PREFIX):], FilterState.EXCLUDE)
    return None


class RuleSet:
    """Read-only, ordered sequence of rules.

    The order is the order of the rule file and is semantically significant.
    """

    def __init__(self, rules: Optional[Iterable[Rule]] = None):
        self._rules: tuple = tuple(rules or ())

    def resolve(self, path: str) -> FilterState:
        """Resolve a path with first-match-wins semantics.

        Args:
            path: Root-relative filter path (see ``core.paths.filter_path``)

        Returns:
            State of the first rule that applies, or UNSET
        """
        for rule in self._rules:
            if rule.applies_to(path):
                return rule.state
        return FilterState.UNSET

    def patterns(self) -> List[str]:
        """Patterns in file order."""
        return [rule.pattern for rule in self._rules]

    def index_of(self, pattern: str) -> int:
        """Position of the first rule with this pattern, or -1."""
        for i, rule in enumerate(self._rules):
            if rule.pattern == pattern:
                return i
        return -1

    def __contains__(self, pattern: object) -> bool:
        return any(rule.pattern == pattern for rule in self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __getitem__(self, index: int) -> Rule:
        return self._rules[index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleSet):
            return NotImplemented
        return self._rules == other._rules

    def __repr__(self) -> str:
        return f"RuleSet({list(self._rules)!r})"


def parse_rule_lines(lines: Iterable[str], logger: Optional[Logger] = None) -> RuleSet:
    """Build a RuleSet from rule-file lines, skipping anything unrecognized."""
    logger = logger or get_logger()
    rules = []
    for lineno, line in enumerate(lines, start=1):
        rule = parse_rule_line(line)
        if rule is not None:
            rules.append(rule)
        elif line.strip() and not line.strip().startswith(COMMENT_PREFIX):
            logger.debug("Skipping unrecognized rule line", line=lineno, text=line.strip())
    return RuleSet(rules)


def load_rule_file(path: Union[str, Path], logger: Optional[Logger] = None) -> RuleSet:
    """Load a rule file.

    A missing or unreadable file is treated as an empty rule set.

    Args:
        path: Rule file path
        logger: Optional logger

    Returns:
        Parsed RuleSet
    """
    logger = logger or get_logger()
    try:
        with open(path, "r", encoding=Limits.RULE_FILE_ENCODING) as f:
            lines: Sequence[str] = f.read().splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Rule file not readable, starting with no rules", file=str(path), error=str(e))
        return RuleSet()

    rule_set = parse_rule_lines(lines, logger)
    logger.info("Loaded rule file", file=str(path), rules=len(rule_set))
    return rule_set
