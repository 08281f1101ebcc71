"""Lineup value objects produced by the optimizer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from lineupsim.config.roster import Slot
from lineupsim.models.player import Player


@dataclass(frozen=True)
class LineupSlot:
    slot: Slot
    player: Player


@dataclass(frozen=True)
class Lineup:
    lineup_id: str
    assignments: Tuple[LineupSlot, ...]
    stack_tags: Tuple[str, ...] = ()

    @property
    def players(self) -> Tuple[Player, ...]:
        return tuple(entry.player for entry in self.assignments)

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return tuple(entry.player.player_id for entry in self.assignments)

    @property
    def total_salary(self) -> int:
        return sum(entry.player.salary for entry in self.assignments)

    @property
    def total_projection(self) -> float:
        return float(sum(entry.player.projection for entry in self.assignments))

    def differs_from(self, other: "Lineup") -> int:
        """Number of players in this lineup that are absent from ``other``."""

        return len(set(self.player_ids) - set(other.player_ids))
