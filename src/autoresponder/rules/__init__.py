"""
=============================================================================
RULE ENGINE
=============================================================================

Everything that decides WHAT to send back, independent of sockets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  Rule       trigger + mode + reply (optionally file-backed)         │
    │  RuleSet    ordered, thread-safe, append-only collection            │
    │  loader     JSON rules file → list of Rules                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .rule import CONTENT_PLACEHOLDER, FileSource, MatchMode, Rule
from .ruleset import RuleSet
from .loader import load_rules, parse_rules

__all__ = [
    "CONTENT_PLACEHOLDER",
    "FileSource",
    "MatchMode",
    "Rule",
    "RuleSet",
    "load_rules",
    "parse_rules",
]
