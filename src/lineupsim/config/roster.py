"""Roster configuration for supported platform/sport combinations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, Mapping, Tuple, Union


@dataclass(frozen=True)
class Slot:
    name: str
    allowed_positions: FrozenSet[str]
    priority: int
    required: bool = True

    @property
    def is_flex(self) -> bool:
        return len(self.allowed_positions) > 1


@dataclass(frozen=True)
class RosterRules:
    platform: str
    sport: str
    salary_cap: int
    slots: Tuple[Slot, ...]
    team_max_players: int | None = None

    @property
    def roster_order(self) -> Tuple[str, ...]:
        return tuple(slot.name for slot in self.slots)

    @property
    def slot_positions(self) -> Mapping[str, FrozenSet[str]]:
        return {slot.name: slot.allowed_positions for slot in self.slots}


def _layout(*entries: Tuple[str, Iterable[str]]) -> Tuple[Slot, ...]:
    # Priority follows declaration order; tables list concrete slots before flex.
    return tuple(
        Slot(name=name, allowed_positions=frozenset(positions), priority=idx + 1)
        for idx, (name, positions) in enumerate(entries)
    )


_NBA_ALL = ("PG", "SG", "SF", "PF", "C")
_MLB_OF = ("OF", "LF", "CF", "RF")
_NHL_W = ("W", "LW", "RW")

_ROSTER_RULES: Dict[Tuple[str, str], RosterRules] = {
    ("DK", "NBA"): RosterRules(
        platform="DK",
        sport="NBA",
        salary_cap=50_000,
        slots=_layout(
            ("PG", ["PG"]),
            ("SG", ["SG"]),
            ("SF", ["SF"]),
            ("PF", ["PF"]),
            ("C", ["C"]),
            ("G", ["PG", "SG"]),
            ("F", ["SF", "PF"]),
            ("UTIL", _NBA_ALL),
        ),
    ),
    ("FD", "NBA"): RosterRules(
        platform="FD",
        sport="NBA",
        salary_cap=60_000,
        slots=_layout(
            ("PG", ["PG"]),
            ("PG", ["PG"]),
            ("SG", ["SG"]),
            ("SG", ["SG"]),
            ("SF", ["SF"]),
            ("SF", ["SF"]),
            ("PF", ["PF"]),
            ("PF", ["PF"]),
            ("C", ["C"]),
        ),
        team_max_players=4,
    ),
    ("DK", "NFL"): RosterRules(
        platform="DK",
        sport="NFL",
        salary_cap=50_000,
        slots=_layout(
            ("QB", ["QB"]),
            ("RB", ["RB"]),
            ("RB", ["RB"]),
            ("WR", ["WR"]),
            ("WR", ["WR"]),
            ("WR", ["WR"]),
            ("TE", ["TE"]),
            ("DST", ["DST"]),
            ("FLEX", ["RB", "WR", "TE"]),
        ),
    ),
    ("FD", "NFL"): RosterRules(
        platform="FD",
        sport="NFL",
        salary_cap=60_000,
        slots=_layout(
            ("QB", ["QB"]),
            ("RB", ["RB"]),
            ("RB", ["RB"]),
            ("WR", ["WR"]),
            ("WR", ["WR"]),
            ("WR", ["WR"]),
            ("TE", ["TE"]),
            ("DEF", ["D", "DST"]),
            ("FLEX", ["RB", "WR", "TE"]),
        ),
        team_max_players=4,
    ),
    ("DK", "MLB"): RosterRules(
        platform="DK",
        sport="MLB",
        salary_cap=50_000,
        slots=_layout(
            ("P", ["P", "SP", "RP"]),
            ("P", ["P", "SP", "RP"]),
            ("C", ["C"]),
            ("1B", ["1B"]),
            ("2B", ["2B"]),
            ("3B", ["3B"]),
            ("SS", ["SS"]),
            ("OF", _MLB_OF),
            ("OF", _MLB_OF),
            ("OF", _MLB_OF),
        ),
        team_max_players=5,
    ),
    ("FD", "MLB"): RosterRules(
        platform="FD",
        sport="MLB",
        salary_cap=35_000,
        slots=_layout(
            ("P", ["P", "SP", "RP"]),
            ("C/1B", ["C", "1B"]),
            ("2B", ["2B"]),
            ("3B", ["3B"]),
            ("SS", ["SS"]),
            ("OF", _MLB_OF),
            ("OF", _MLB_OF),
            ("OF", _MLB_OF),
            ("UTIL", ("C", "1B", "2B", "3B", "SS") + _MLB_OF),
        ),
        team_max_players=4,
    ),
    ("DK", "NHL"): RosterRules(
        platform="DK",
        sport="NHL",
        salary_cap=50_000,
        slots=_layout(
            ("C", ["C"]),
            ("C", ["C"]),
            ("W", _NHL_W),
            ("W", _NHL_W),
            ("W", _NHL_W),
            ("D", ["D"]),
            ("D", ["D"]),
            ("G", ["G"]),
            ("UTIL", ("C", "D") + _NHL_W),
        ),
    ),
    ("FD", "NHL"): RosterRules(
        platform="FD",
        sport="NHL",
        salary_cap=55_000,
        slots=_layout(
            ("C", ["C"]),
            ("C", ["C"]),
            ("W", _NHL_W),
            ("W", _NHL_W),
            ("W", _NHL_W),
            ("W", _NHL_W),
            ("D", ["D"]),
            ("D", ["D"]),
            ("G", ["G"]),
        ),
        team_max_players=4,
    ),
    ("DK", "GOLF"): RosterRules(
        platform="DK",
        sport="GOLF",
        salary_cap=50_000,
        slots=_layout(*[("G", ["G"])] * 6),
    ),
    ("FD", "GOLF"): RosterRules(
        platform="FD",
        sport="GOLF",
        salary_cap=60_000,
        slots=_layout(*[("G", ["G"])] * 6),
    ),
}

_PLATFORM_ALIASES = {
    "DK": "DK",
    "DRAFTKINGS": "DK",
    "FD": "FD",
    "FANDUEL": "FD",
}


def normalize_platform(platform: str) -> str:
    key = platform.strip().upper()
    if key not in _PLATFORM_ALIASES:
        raise KeyError(f"Unsupported platform {platform!r}")
    return _PLATFORM_ALIASES[key]


def iter_rules() -> Iterable[RosterRules]:
    """Return an iterator of all configured rule sets."""

    return _ROSTER_RULES.values()


def get_rules(sport: str, platform: str) -> RosterRules:
    """Fetch rules for a sport/platform pair, raising KeyError if missing."""

    key = (normalize_platform(platform), sport.strip().upper())
    if key not in _ROSTER_RULES:
        raise KeyError(f"No roster rules configured for sport={sport!r}, platform={platform!r}")
    return _ROSTER_RULES[key]


def get_slots(sport: str, platform: str) -> Tuple[Slot, ...]:
    """Ordered slot layout for a sport/platform pair."""

    return get_rules(sport, platform).slots


def get_rules_by_key(key: Union[str, Tuple[str, str]]) -> RosterRules:
    """Resolve rules using either "PLATFORM_SPORT" or (sport, platform)."""

    if isinstance(key, tuple):
        sport, platform = key
        return get_rules(sport, platform)

    if not isinstance(key, str):
        raise TypeError("key must be a str or (sport, platform) tuple")

    parts = key.split("_", 1)
    if len(parts) != 2:
        raise ValueError(f"key must look like 'PLATFORM_SPORT', got {key!r}")

    platform, sport = parts
    return get_rules(sport, platform)
