"""Candidate correlated player groupings ranked for the optimizer objective."""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from lineupsim.models.player import Player
from lineupsim.optimizer.correlation import CorrelationMatrix, build_correlation_matrix


logger = logging.getLogger(__name__)

LEVERAGE_WEIGHT = 0.25
DEFAULT_PER_GROUP = 5

_PASS_CATCHERS = {"WR", "TE"}
_PITCHERS = {"P", "SP", "RP"}


class StackType(str, Enum):
    TEAM = "team"
    GAME = "game"
    MINI = "mini"
    QB = "qb"


@dataclass(frozen=True)
class Stack:
    type: StackType
    players: Tuple[Player, ...]
    score: float
    key: str
    correlation: float
    projection: float
    salary: int

    @property
    def player_ids(self) -> Tuple[str, ...]:
        return tuple(player.player_id for player in self.players)

    @property
    def tag(self) -> str:
        return f"{self.type.value}:{self.key}"


def _top(players: Iterable[Player], count: int) -> List[Player]:
    return sorted(players, key=lambda p: (-p.projection, p.player_id))[:count]


def _leverage(group: Sequence[Player], pool_mean: float, contest_type: str) -> float:
    avg_own = sum(p.ownership for p in group) / len(group) / 100.0
    group_mean = sum(p.projection for p in group) / len(group)
    ratio = group_mean / pool_mean if pool_mean > 0 else 1.0
    leverage = LEVERAGE_WEIGHT * (1.0 - avg_own) * ratio
    return -leverage if contest_type == "cash" else leverage


class _StackCollector:
    def __init__(self, matrix: CorrelationMatrix, pool_mean: float, contest_type: str):
        self.matrix = matrix
        self.pool_mean = pool_mean
        self.contest_type = contest_type
        self.stacks: Dict[Tuple[StackType, Tuple[str, ...]], Stack] = {}

    def add(self, stack_type: StackType, key: str, group: Sequence[Player]) -> None:
        ordered = tuple(sorted(group, key=lambda p: p.player_id))
        ids = tuple(p.player_id for p in ordered)
        if len(set(ids)) != len(ids) or (stack_type, ids) in self.stacks:
            return
        correlation = self.matrix.total_correlation(ids)
        score = correlation + _leverage(ordered, self.pool_mean, self.contest_type)
        self.stacks[(stack_type, ids)] = Stack(
            type=stack_type,
            players=ordered,
            score=score,
            key=f"{key}:{'+'.join(ids)}",
            correlation=correlation,
            projection=sum(p.projection for p in ordered),
            salary=sum(p.salary for p in ordered),
        )


def _team_sport_stacks(collector: _StackCollector, players: Sequence[Player], sport: str, per_group: int) -> None:
    by_team: Dict[str, List[Player]] = defaultdict(list)
    for player in players:
        if not player.team:
            continue
        if sport == "MLB" and player.position in _PITCHERS:
            continue
        by_team[player.team].append(player)

    for team, members in sorted(by_team.items()):
        top = _top(members, per_group)
        for pair in combinations(top, 2):
            collector.add(StackType.MINI, team, pair)
        for trio in combinations(top, 3):
            collector.add(StackType.TEAM, team, trio)

    by_game: Dict[str, Dict[str, List[Player]]] = defaultdict(lambda: defaultdict(list))
    for team, members in by_team.items():
        for player in members:
            if player.game_key is not None:
                by_game[player.game_key][team].append(player)

    for game, teams in sorted(by_game.items()):
        if len(teams) < 2:
            continue
        for team, members in sorted(teams.items()):
            opponents = [p for other, group in teams.items() if other != team for p in group]
            for pair in combinations(_top(members, max(2, per_group - 1)), 2):
                for bring_back in _top(opponents, 3):
                    collector.add(StackType.GAME, game, (*pair, bring_back))

    if sport == "NFL":
        for qb in (p for p in players if p.position == "QB" and p.team):
            catchers = _top((p for p in players if p.team == qb.team and p.position in _PASS_CATCHERS), per_group)
            for catcher in catchers:
                collector.add(StackType.QB, qb.team, (qb, catcher))
            for pair in combinations(catchers, 2):
                collector.add(StackType.QB, qb.team, (qb, *pair))


def _golf_stacks(collector: _StackCollector, players: Sequence[Player], per_group: int) -> None:
    by_country: Dict[str, List[Player]] = defaultdict(list)
    by_tee_group: Dict[str, List[Player]] = defaultdict(list)
    for player in players:
        if player.country:
            by_country[player.country.upper()].append(player)
        if player.game_id:
            by_tee_group[player.game_id].append(player)

    for country, members in sorted(by_country.items()):
        for pair in combinations(_top(members, per_group), 2):
            collector.add(StackType.MINI, f"country-{country}", pair)
    for group, members in sorted(by_tee_group.items()):
        for pair in combinations(_top(members, per_group), 2):
            collector.add(StackType.MINI, f"tee-{group}", pair)


def get_optimal_stacks(
    players: Sequence[Player],
    sport: str,
    *,
    contest_type: str = "gpp",
    matrix: Optional[CorrelationMatrix] = None,
    limit: Optional[int] = None,
    per_group: int = DEFAULT_PER_GROUP,
) -> List[Stack]:
    """Enumerate and rank correlated groupings, best first."""

    sport_key = sport.upper()
    pool = sorted(players, key=lambda p: p.player_id)
    if not pool:
        return []
    if matrix is None:
        matrix = build_correlation_matrix(pool, sport_key)
    pool_mean = sum(p.projection for p in pool) / len(pool)
    collector = _StackCollector(matrix, pool_mean, contest_type)

    if sport_key == "GOLF":
        _golf_stacks(collector, pool, per_group)
    else:
        _team_sport_stacks(collector, pool, sport_key, per_group)

    stacks = sorted(collector.stacks.values(), key=lambda stack: (-stack.score, stack.tag))
    logger.info(
        "Ranked %s %s stacks (%s contest)%s",
        len(stacks),
        sport_key,
        contest_type,
        f", keeping top {limit}" if limit is not None else "",
    )
    if limit is not None:
        stacks = stacks[:limit]
    return stacks
