"""Slot eligibility and player-to-slot assignment."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from lineupsim.config.roster import Slot
from lineupsim.errors import InsufficientPlayers, NoFeasibleAssignment
from lineupsim.models.contest import Contest
from lineupsim.models.lineup import Lineup, LineupSlot
from lineupsim.models.player import Player


logger = logging.getLogger(__name__)


def can_fill(player: Player, slot: Slot) -> bool:
    return player.position in slot.allowed_positions


def priority_order(slots: Sequence[Slot]) -> List[int]:
    """Slot indices sorted by priority; declaration order breaks ties."""

    return sorted(range(len(slots)), key=lambda idx: (slots[idx].priority, idx))


def assign_players_to_slots(players: Sequence[Player], slots: Sequence[Slot]) -> List[LineupSlot]:
    """Assign each player to one slot, returned in slot declaration order.

    Slots are filled in priority order. Among the eligible players still free,
    the one eligible for the fewest upcoming slots is taken; input order breaks
    ties, so callers that need a stable result should pass players in a stable
    order (e.g. sorted by ``player_id``). When a required slot has no free
    candidate, already placed players are shuffled along an augmenting path
    before the slot is declared unfillable.
    """

    if len(players) < len(slots):
        raise InsufficientPlayers(len(players), len(slots))

    order = priority_order(slots)
    slot_to_player: Dict[int, int] = {}
    player_to_slot: Dict[int, int] = {}

    for position, slot_idx in enumerate(order):
        slot = slots[slot_idx]
        upcoming = [slots[idx] for idx in order[position + 1:]]
        candidates = [
            pidx
            for pidx, player in enumerate(players)
            if pidx not in player_to_slot and can_fill(player, slot)
        ]
        if candidates:
            chosen = min(
                candidates,
                key=lambda pidx: (sum(1 for other in upcoming if can_fill(players[pidx], other)), pidx),
            )
            slot_to_player[slot_idx] = chosen
            player_to_slot[chosen] = slot_idx
            continue

        if _augment(slot_idx, players, slots, slot_to_player, player_to_slot, set()):
            logger.debug("Slot %s filled by reassigning earlier slots", slot.name)
            continue

        if slot.required:
            raise NoFeasibleAssignment(slot)

    return [
        LineupSlot(slot=slots[idx], player=players[slot_to_player[idx]])
        for idx in range(len(slots))
        if idx in slot_to_player
    ]


def _augment(
    slot_idx: int,
    players: Sequence[Player],
    slots: Sequence[Slot],
    slot_to_player: Dict[int, int],
    player_to_slot: Dict[int, int],
    visited: set[int],
) -> bool:
    slot = slots[slot_idx]
    for pidx, player in enumerate(players):
        if pidx in visited or not can_fill(player, slot):
            continue
        visited.add(pidx)
        current: Optional[int] = player_to_slot.get(pidx)
        if current is None or _augment(current, players, slots, slot_to_player, player_to_slot, visited):
            slot_to_player[slot_idx] = pidx
            player_to_slot[pidx] = slot_idx
            return True
    return False


def place_players(players: Sequence[Player], slots: Sequence[Slot]) -> Optional[Dict[int, int]]:
    """Seat every given player in a distinct slot.

    Returns a mapping of slot index to player index, or ``None`` when the
    players cannot all be seated. Unlike :func:`assign_players_to_slots` the
    slots do not all need to be covered.
    """

    if len(players) > len(slots):
        return None
    order = priority_order(slots)
    slot_to_player: Dict[int, int] = {}
    for pidx in range(len(players)):
        if not _seat(pidx, players, slots, order, slot_to_player, set()):
            return None
    return slot_to_player


def _seat(
    pidx: int,
    players: Sequence[Player],
    slots: Sequence[Slot],
    order: Sequence[int],
    slot_to_player: Dict[int, int],
    visited: set[int],
) -> bool:
    for slot_idx in order:
        if slot_idx in visited or not can_fill(players[pidx], slots[slot_idx]):
            continue
        visited.add(slot_idx)
        holder = slot_to_player.get(slot_idx)
        if holder is None or _seat(holder, players, slots, order, slot_to_player, visited):
            slot_to_player[slot_idx] = pidx
            return True
    return False


def lineup_violations(lineup: Lineup, contest: Contest) -> List[str]:
    """Describe every roster rule the lineup breaks; empty when valid."""

    problems: List[str] = []
    required = [slot for slot in contest.slots if slot.required]
    if len(lineup.assignments) != len(required):
        problems.append(f"expected {len(required)} assignments, got {len(lineup.assignments)}")

    ids = lineup.player_ids
    if len(set(ids)) != len(ids):
        problems.append("player assigned to more than one slot")

    for entry in lineup.assignments:
        if not can_fill(entry.player, entry.slot):
            problems.append(f"{entry.player.player_id} ({entry.player.position}) cannot fill {entry.slot.name}")

    remaining = list(contest.slots)
    for entry in lineup.assignments:
        if entry.slot in remaining:
            remaining.remove(entry.slot)
        else:
            problems.append(f"slot {entry.slot.name} is not part of the contest layout")
    for slot in remaining:
        if slot.required:
            problems.append(f"slot {slot.name} left empty")

    if lineup.total_salary > contest.salary_cap:
        problems.append(f"salary {lineup.total_salary} exceeds cap {contest.salary_cap}")

    if contest.team_max_players is not None:
        per_team: Dict[str, int] = {}
        for player in lineup.players:
            per_team[player.team] = per_team.get(player.team, 0) + 1
        for team, count in per_team.items():
            if team and count > contest.team_max_players:
                problems.append(f"{count} players from {team} exceeds limit {contest.team_max_players}")
    return problems
