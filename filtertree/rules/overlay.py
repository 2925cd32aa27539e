#!/usr/bin/env python3
"""Uncommitted interactive rule edits.

The overlay maps pattern -> FilterState. Setting a pattern to UNSET removes
it, so "no entry" and "Unset" are the same thing. Every pattern the overlay
ever recorded or removed stays superseded: a rule-file rule with that pattern
no longer applies while editing and is dropped on save. Each key keeps its
compiled matcher so resolution never recompiles.

Scanner workers read the overlay while the editing session may change it,
so every access goes through one lock.
"""

import threading
from typing import Dict, List, Optional, Set, Tuple

from filtertree.core.constants import FilterState
from filtertree.rules.patterns import CompiledPattern, compile_pattern
from filtertree.rules.ruleset import RuleSet


class Overlay:
    """Thread-safe mapping of pattern to FilterState."""

    def __init__(self):
        self._states: Dict[str, FilterState] = {}
        self._matchers: Dict[str, CompiledPattern] = {}
        self._superseded: Set[str] = set()
        self._lock = threading.RLock()

    @classmethod
    def from_rule_set(cls, rule_set: RuleSet) -> "Overlay":
        """Seed an overlay with every rule of a rule set.

        For a pattern listed more than once the first occurrence wins, as it
        does under first-match-wins.
        """
        overlay = cls()
        for rule in rule_set:
            if rule.pattern not in overlay:
                overlay.set(rule.pattern, rule.state)
        return overlay

    def set(self, pattern: str, state: FilterState) -> None:
        """Record a state for a pattern; UNSET removes the entry."""
        if state == FilterState.UNSET:
            self.remove(pattern)
            return
        with self._lock:
            self._superseded.add(pattern)
            self._states[pattern] = FilterState(state)
            if pattern not in self._matchers:
                self._matchers[pattern] = compile_pattern(pattern)

    def get(self, pattern: str) -> FilterState:
        with self._lock:
            return self._states.get(pattern, FilterState.UNSET)

    def lookup(self, pattern: str) -> Optional[FilterState]:
        """State for a pattern, or None when it has no entry."""
        with self._lock:
            return self._states.get(pattern)

    def remove(self, pattern: str) -> bool:
        """Remove a pattern. Returns True if it was present."""
        with self._lock:
            self._superseded.add(pattern)
            self._matchers.pop(pattern, None)
            return self._states.pop(pattern, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._superseded.update(self._states)
            self._states.clear()
            self._matchers.clear()

    def is_superseded(self, pattern: str) -> bool:
        """Whether a rule-file rule with this pattern was replaced by an edit."""
        with self._lock:
            return pattern in self._superseded

    def matching(self, path: str) -> List[Tuple[str, FilterState]]:
        """Entries whose pattern equals the path or matches it."""
        with self._lock:
            entries = [(p, s, self._matchers[p]) for p, s in self._states.items()]
        return [(p, s) for p, s, matcher in entries if p == path or matcher.match(path)]

    def items(self) -> List[Tuple[str, FilterState]]:
        """Snapshot of (pattern, state) pairs in insertion order."""
        with self._lock:
            return list(self._states.items())

    def as_dict(self) -> Dict[str, FilterState]:
        with self._lock:
            return dict(self._states)

    def __contains__(self, pattern: object) -> bool:
        with self._lock:
            return pattern in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Overlay):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self) -> str:
        return f"Overlay({self.as_dict()!r})"
