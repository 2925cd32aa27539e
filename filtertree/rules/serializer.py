#!/usr/bin/env python3
"""Rule serialization: RuleSet + Overlay back into rule-file lines.

Original rules keep their order and take the overlay's current state. Rules
the overlay removed are dropped; rules it never touched are kept as is. New
overlay patterns are inserted just before the first remaining rule they
refine, so more specific rules always precede broader ones and
first-match-wins keeps the edited meaning.

Example:
    >>> rules = parse_rule_lines(["+ dir1/**", "- *"])
    >>> overlay = Overlay.from_rule_set(rules)
    >>> overlay.set("dir1/tmp/**", FilterState.EXCLUDE)
    >>> serialize_rules(rules, overlay)
    ['- dir1/tmp/**', '+ dir1/**', '- *']
"""

import contextlib
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from filtertree.core.constants import (
    CATCH_ALL_PATTERNS,
    EXCLUDE_PREFIX,
    INCLUDE_PREFIX,
    FilterState,
    Limits,
)
from filtertree.core.logging import Logger, get_logger
from filtertree.rules.overlay import Overlay
from filtertree.rules.patterns import compile_pattern
from filtertree.rules.ruleset import RuleSet


@dataclass
class SaveResult:
    """Outcome of writing a rule file."""

    success: bool
    path: str
    lines: List[str] = field(default_factory=list)
    error: Optional[str] = None


def format_rule(pattern: str, state: FilterState) -> Optional[str]:
    """Render one directive; UNSET has no rule-file form."""
    if state == FilterState.INCLUDE:
        return INCLUDE_PREFIX + pattern
    if state == FilterState.EXCLUDE:
        return EXCLUDE_PREFIX + pattern
    return None


def pattern_directory(pattern: str) -> str:
    """Directory prefix of a pattern.

    "TV/**" -> "TV"; "TV/Show/*.mkv" -> "TV"; "*.log" -> "*.log".
    """
    pattern = pattern.lstrip("/")
    if pattern.endswith("/**"):
        return pattern[: -len("/**")]
    return pattern.split("/", 1)[0]


def should_insert_before(new_pattern: str, existing_pattern: str) -> bool:
    """Whether a new rule must precede an existing one to take effect.

    Args:
        new_pattern: Pattern of a rule that was not in the rule file
        existing_pattern: Pattern of a rule already in the output

    Returns:
        True if the new rule is more specific than the existing one, or
        the existing glob already covers the new pattern
    """
    if existing_pattern in CATCH_ALL_PATTERNS:
        return True

    new_dir = pattern_directory(new_pattern)
    existing_dir = pattern_directory(existing_pattern)

    if new_dir == existing_dir:
        return len(new_pattern) > len(existing_pattern) or (
            "/" in new_pattern and "/**" not in existing_pattern
        )

    if existing_dir and new_dir.startswith(existing_dir + "/"):
        return True

    # A broader glob such as "*.log" covering "important.log"
    if len(new_pattern) > len(existing_pattern):
        matcher = compile_pattern(existing_pattern)
        return matcher.match(new_pattern) or matcher.match(new_dir)

    return False


def serialize_rules(rule_set: RuleSet, overlay: Optional[Overlay]) -> List[str]:
    """Produce ordered rule-file lines for a rule set and its edits.

    Args:
        rule_set: Rules as loaded, in file order
        overlay: Current edits, or None when nothing was edited

    Returns:
        Lines without trailing newlines
    """
    if overlay is None:
        return [line for line in (format_rule(r.pattern, r.state) for r in rule_set) if line]

    remaining: List[Tuple[str, FilterState]] = []
    seen = set()
    for rule in rule_set:
        if rule.pattern in seen:
            continue
        state = overlay.lookup(rule.pattern)
        if state is None:
            if overlay.is_superseded(rule.pattern):
                continue
            state = rule.state
        seen.add(rule.pattern)
        remaining.append((rule.pattern, state))

    slots: Dict[int, List[Tuple[str, FilterState]]] = {}
    for pattern, state in overlay.items():
        if pattern in rule_set:
            continue
        slot = len(remaining)
        for index, (existing, _) in enumerate(remaining):
            if should_insert_before(pattern, existing):
                slot = index
                break
        slots.setdefault(slot, []).append((pattern, state))

    lines: List[str] = []

    def emit_slot(index: int) -> None:
        for pattern, state in sorted(slots.get(index, []), key=lambda item: -len(item[0])):
            lines.append(format_rule(pattern, state))

    for index, (pattern, state) in enumerate(remaining):
        emit_slot(index)
        lines.append(format_rule(pattern, state))
    emit_slot(len(remaining))

    return lines


def save_rule_file(
    path: Union[str, Path], lines: Sequence[str], logger: Optional[Logger] = None
) -> SaveResult:
    """Write rule lines to a file.

    The file is written next to its destination and moved into place, so a
    failed write leaves the previous file intact. Failures are returned, not
    raised.

    Args:
        path: Destination rule file
        lines: Lines from serialize_rules
        logger: Optional logger

    Returns:
        SaveResult describing the outcome
    """
    logger = logger or get_logger()
    target = Path(path)
    content = "".join(line + "\n" for line in lines)
    tmp_name = None

    try:
        directory = target.parent if str(target.parent) else Path(".")
        with tempfile.NamedTemporaryFile(
            "w",
            encoding=Limits.RULE_FILE_ENCODING,
            dir=directory,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as f:
            tmp_name = f.name
            f.write(content)
        os.replace(tmp_name, target)
    except OSError as e:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)
        logger.error("Failed to save rule file", file=str(target), error=str(e))
        return SaveResult(success=False, path=str(target), lines=list(lines), error=str(e))

    logger.info("Saved rule file", file=str(target), rules=len(lines))
    return SaveResult(success=True, path=str(target), lines=list(lines))
