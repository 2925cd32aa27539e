#!/usr/bin/env python3
"""Effective filter state resolution.

Two policies combine the loaded rules with live edits:

- Ordered: first-match-wins over the rule file order. An earlier broad rule
  shadows a later specific one, matching rclone.
- Overlay-aware: among overlay entries that apply to the path the longest
  pattern wins. With no applicable edit, the ordered policy runs over the
  rules the overlay has not superseded (recorded or removed patterns).

Example:
    >>> overlay = Overlay()
    >>> overlay.set("*.log", FilterState.EXCLUDE)
    >>> overlay.set("important.log", FilterState.INCLUDE)
    >>> FilterResolver(RuleSet(), overlay).resolve("/important.log")
    <FilterState.INCLUDE: 1>
"""

from typing import Optional

from filtertree.core.constants import FilterState
from filtertree.rules.overlay import Overlay
from filtertree.rules.ruleset import RuleSet


class FilterResolver:
    """Resolves the effective FilterState of a path.

    Resolution reads the rule set and overlay and never mutates them.
    """

    def __init__(self, rule_set: RuleSet, overlay: Optional[Overlay] = None):
        """Initialize resolver.

        Args:
            rule_set: Rules loaded from the rule file
            overlay: Live edits; None while editing is inactive
        """
        self.rule_set = rule_set
        self.overlay = overlay

    @property
    def editing(self) -> bool:
        return self.overlay is not None

    def resolve(self, path: str) -> FilterState:
        """Resolve a path with the policy matching the editing state."""
        if self.overlay is None:
            return self.resolve_ordered(path)
        return self.resolve_with_overlay(path)

    def resolve_ordered(self, path: str) -> FilterState:
        """First-match-wins over the rule set alone."""
        return self.rule_set.resolve(path)

    def resolve_with_overlay(self, path: str) -> FilterState:
        """Longest applicable overlay pattern, else ordered over untouched rules."""
        overlay = self.overlay if self.overlay is not None else Overlay()

        best_pattern: Optional[str] = None
        best_state = FilterState.UNSET
        for pattern, state in overlay.matching(path):
            # Strictly longer only: the first of equal-length patterns wins
            if best_pattern is None or len(pattern) > len(best_pattern):
                best_pattern = pattern
                best_state = state

        if best_pattern is not None:
            return best_state

        for rule in self.rule_set:
            if overlay.is_superseded(rule.pattern):
                continue
            if rule.applies_to(path):
                return rule.state

        return FilterState.UNSET

    def __call__(self, path: str) -> FilterState:
        return self.resolve(path)
