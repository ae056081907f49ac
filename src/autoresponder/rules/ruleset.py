"""
Ordered, append-only collection of rules shared by all sessions.

Writers append under a lock; readers take an immutable snapshot under the
same lock and iterate that, so a rule registered while a session is
evaluating a request only applies from the next request on.

    rules = RuleSet([Rule("a", "1"), Rule("ab", "2")])
    [r.response for r in rules.matching("abc")]   # ["1", "2"]

Every matching rule fires, in registration order. There is no first-match
short-circuit and identical replies are not deduplicated.
"""

import threading
from typing import Iterable, Iterator, List, Tuple

from .rule import Rule


class RuleSet:
    """Thread-safe ordered sequence of Rules."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._lock = threading.Lock()
        self._rules: List[Rule] = []
        self.extend(rules)

    def add(self, rule: Rule) -> Rule:
        """Append a rule; returns it for convenience."""
        if not isinstance(rule, Rule):
            raise TypeError(f"Expected Rule, got {type(rule).__name__}")
        with self._lock:
            self._rules.append(rule)
        return rule

    def extend(self, rules: Iterable[Rule]) -> None:
        for rule in rules:
            self.add(rule)

    def snapshot(self) -> Tuple[Rule, ...]:
        """Rules registered so far, in order."""
        with self._lock:
            return tuple(self._rules)

    def matching(self, request: str) -> List[Rule]:
        """Rules whose trigger matches `request`, in registration order."""
        return [rule for rule in self.snapshot() if rule.matches(request)]

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rules)

    def __repr__(self) -> str:
        return f"RuleSet({len(self)} rules)"
