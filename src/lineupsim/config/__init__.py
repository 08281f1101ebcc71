"""Configuration helpers for roster rules and engine defaults."""

from .roster import RosterRules, Slot, get_rules, get_rules_by_key, get_slots, iter_rules, normalize_platform

__all__ = [
    "RosterRules",
    "Slot",
    "get_rules",
    "get_rules_by_key",
    "get_slots",
    "iter_rules",
    "normalize_platform",
]
