"""FilterTree Rules System.

This module provides rclone-style filter rules:
- patterns: glob compilation and matching
- RuleSet: ordered rules loaded from a rule file
- Overlay: uncommitted pattern edits
- FilterResolver: ordered and overlay-aware resolution
- serializer: turning rules and edits back into rule-file lines
"""

from .overlay import Overlay
from .patterns import CompiledPattern, compile_pattern, matches, pattern_to_regex
from .resolver import FilterResolver
from .ruleset import Rule, RuleSet, load_rule_file, parse_rule_line, parse_rule_lines
from .serializer import (
    SaveResult,
    format_rule,
    pattern_directory,
    save_rule_file,
    serialize_rules,
    should_insert_before,
)

__all__ = [
    # Pattern matching
    "CompiledPattern",
    "compile_pattern",
    "matches",
    "pattern_to_regex",
    # Rules
    "Rule",
    "RuleSet",
    "parse_rule_line",
    "parse_rule_lines",
    "load_rule_file",
    # Edits and resolution
    "Overlay",
    "FilterResolver",
    # Serialization
    "SaveResult",
    "format_rule",
    "pattern_directory",
    "save_rule_file",
    "serialize_rules",
    "should_insert_before",
]
