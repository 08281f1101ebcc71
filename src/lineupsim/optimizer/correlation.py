"""Pairwise player correlations from team, game and (golf) field signals."""

from __future__ import annotations

import logging
from collections import defaultdict
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from lineupsim.models.player import Player


logger = logging.getLogger(__name__)

# Teammate position-pair tables. Missing pairs fall back to the sport default.
_TEAMMATE_TABLES: Dict[str, Dict[str, Dict[str, float]]] = {
    "NBA": {
        "PG": {"PG": 0.0, "SG": 0.35, "SF": 0.25, "PF": 0.20, "C": 0.30},
        "SG": {"PG": 0.35, "SG": 0.0, "SF": 0.20, "PF": 0.15, "C": 0.25},
        "SF": {"PG": 0.25, "SG": 0.20, "SF": 0.0, "PF": 0.20, "C": 0.20},
        "PF": {"PG": 0.20, "SG": 0.15, "SF": 0.20, "PF": 0.0, "C": 0.35},
        "C": {"PG": 0.30, "SG": 0.25, "SF": 0.20, "PF": 0.35, "C": 0.0},
    },
    "NFL": {
        "QB": {"QB": 0.0, "RB": 0.10, "WR": 0.50, "TE": 0.40, "DST": -0.20},
        "RB": {"QB": 0.10, "RB": -0.30, "WR": -0.10, "TE": -0.05, "DST": 0.15},
        "WR": {"QB": 0.50, "RB": -0.10, "WR": 0.25, "TE": 0.10, "DST": -0.10},
        "TE": {"QB": 0.40, "RB": -0.05, "WR": 0.10, "TE": 0.0, "DST": -0.05},
        "DST": {"QB": -0.20, "RB": 0.15, "WR": -0.10, "TE": -0.05, "DST": 0.0},
    },
    "MLB": {
        "P": {"P": -0.50, "C": 0.20, "1B": 0.0, "2B": 0.0, "3B": 0.0, "SS": 0.0, "OF": 0.0},
        "C": {"P": 0.20, "C": 0.0, "1B": 0.10, "2B": 0.10, "3B": 0.10, "SS": 0.10, "OF": 0.10},
        "1B": {"P": 0.0, "C": 0.10, "1B": 0.0, "2B": 0.25, "3B": 0.20, "SS": 0.20, "OF": 0.30},
        "2B": {"P": 0.0, "C": 0.10, "1B": 0.25, "2B": 0.0, "3B": 0.25, "SS": 0.30, "OF": 0.25},
        "3B": {"P": 0.0, "C": 0.10, "1B": 0.20, "2B": 0.25, "3B": 0.0, "SS": 0.25, "OF": 0.25},
        "SS": {"P": 0.0, "C": 0.10, "1B": 0.20, "2B": 0.30, "3B": 0.25, "SS": 0.0, "OF": 0.25},
        "OF": {"P": 0.0, "C": 0.10, "1B": 0.30, "2B": 0.25, "3B": 0.25, "SS": 0.25, "OF": 0.35},
    },
    "NHL": {
        "C": {"C": 0.20, "W": 0.45, "D": 0.25, "G": 0.30},
        "W": {"C": 0.45, "W": 0.40, "D": 0.20, "G": 0.30},
        "D": {"C": 0.25, "W": 0.20, "D": 0.35, "G": 0.35},
        "G": {"C": 0.30, "W": 0.30, "D": 0.35, "G": 0.0},
    },
}

_TEAMMATE_DEFAULT = {"NBA": 0.20, "NFL": 0.10, "MLB": 0.15, "NHL": 0.20}

_SPORT_BASE_WEIGHT = {"NBA": 1.0, "NFL": 1.0, "MLB": 1.0, "NHL": 1.0, "GOLF": 1.0}

_TEAMMATE_CAP = 0.6

_POSITION_ALIASES = {
    "NFL": {"D": "DST", "DEF": "DST", "D/ST": "DST"},
    "MLB": {"SP": "P", "RP": "P", "LF": "OF", "CF": "OF", "RF": "OF"},
    "NHL": {"LW": "W", "RW": "W"},
}

GOLF_SAME_COUNTRY = 0.10
GOLF_SAME_TEE_GROUP = 0.15
GOLF_SIMILAR_SALARY = 0.08
GOLF_SALARY_BAND = 0.15
GOLF_MIN, GOLF_MAX = -0.3, 0.6


def _canonical_position(sport: str, position: str) -> str:
    position = position.upper()
    return _POSITION_ALIASES.get(sport, {}).get(position, position)


def _pair_key(a: str, b: str) -> Tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class CorrelationMatrix:
    """Sparse symmetric correlation lookup; read-only once built."""

    def __init__(
        self,
        correlations: Mapping[Tuple[str, str], float],
        clusters: Mapping[str, Optional[str]],
    ):
        self._pairs: Dict[Tuple[str, str], float] = {}
        self._rows: Dict[str, Dict[str, float]] = defaultdict(dict)
        for (a, b), value in correlations.items():
            if a == b or value == 0.0:
                continue
            value = max(-1.0, min(1.0, float(value)))
            self._pairs[_pair_key(a, b)] = value
            self._rows[a][b] = value
            self._rows[b][a] = value
        self._clusters: Dict[str, Optional[str]] = dict(clusters)
        members: Dict[str, List[str]] = defaultdict(list)
        for player_id, cluster in self._clusters.items():
            if cluster is not None:
                members[cluster].append(player_id)
        self._members = {key: tuple(sorted(ids)) for key, ids in members.items()}

    def __len__(self) -> int:
        return len(self._pairs)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._clusters

    def __getitem__(self, player_id: str) -> "_Row":
        return _Row(self, player_id)

    def get(self, a: str, b: str) -> float:
        if a == b:
            return 1.0
        return self._pairs.get(_pair_key(a, b), 0.0)

    def row(self, player_id: str) -> Dict[str, float]:
        return dict(self._rows.get(player_id, {}))

    def pairs(self) -> Dict[Tuple[str, str], float]:
        return dict(self._pairs)

    def lineup_correlation(self, player_ids: Sequence[str]) -> float:
        """Mean pairwise correlation of a group of players."""

        pairs = list(combinations(player_ids, 2))
        if not pairs:
            return 0.0
        return sum(self.get(a, b) for a, b in pairs) / len(pairs)

    def total_correlation(self, player_ids: Sequence[str]) -> float:
        return sum(self.get(a, b) for a, b in combinations(player_ids, 2))

    def strongly_correlated(self, player_id: str, threshold: float) -> List[str]:
        return sorted(other for other, value in self._rows.get(player_id, {}).items() if value >= threshold)

    def negatively_correlated(self, player_id: str, threshold: float) -> List[str]:
        return sorted(other for other, value in self._rows.get(player_id, {}).items() if value <= -threshold)

    def cluster_of(self, player_id: str) -> Optional[str]:
        return self._clusters.get(player_id)

    def clusters(self) -> Dict[str, Tuple[str, ...]]:
        return dict(self._members)

    def average_cluster_correlation(self, player_id: str) -> float:
        """Mean positive correlation to the other members of the player's cluster."""

        cluster = self._clusters.get(player_id)
        if cluster is None:
            return 0.0
        others = [other for other in self._members.get(cluster, ()) if other != player_id]
        if not others:
            return 0.0
        return sum(max(0.0, self.get(player_id, other)) for other in others) / len(others)


class _Row(Mapping[str, float]):
    def __init__(self, matrix: CorrelationMatrix, player_id: str):
        self._matrix = matrix
        self._player_id = player_id

    def __getitem__(self, other: str) -> float:
        return self._matrix.get(self._player_id, other)

    def __iter__(self):
        return iter(self._matrix.row(self._player_id))

    def __len__(self) -> int:
        return len(self._matrix.row(self._player_id))


def _teammate_correlation(sport: str, pos1: str, pos2: str) -> float:
    table = _TEAMMATE_TABLES.get(sport)
    if table is None:
        return 0.2
    value = table.get(pos1, {}).get(pos2)
    if value is None:
        value = _TEAMMATE_DEFAULT.get(sport, 0.2)
    return min(_TEAMMATE_CAP, value)


def _opponent_correlation(sport: str, pos1: str, pos2: str) -> float:
    if sport == "NBA":
        return 0.15
    if sport == "NFL":
        if (pos1 == "QB" and pos2 in {"WR", "TE"}) or (pos2 == "QB" and pos1 in {"WR", "TE"}):
            return 0.25
        if {pos1, pos2} == {"RB", "DST"}:
            return -0.30
        return 0.10
    if sport == "MLB":
        if pos1 == "P" or pos2 == "P":
            return -0.25
        return 0.10
    if sport == "NHL":
        if pos1 == "G" or pos2 == "G":
            return -0.20
        return 0.15
    return 0.05


def _golf_correlation(p1: Player, p2: Player) -> float:
    correlation = 0.0
    if p1.country and p2.country and p1.country.upper() == p2.country.upper():
        correlation += GOLF_SAME_COUNTRY
    if p1.game_id and p1.game_id == p2.game_id:
        correlation += GOLF_SAME_TEE_GROUP
    if p1.salary > 0 and p2.salary > 0:
        gap = abs(p1.salary - p2.salary) / ((p1.salary + p2.salary) / 2)
        if gap < GOLF_SALARY_BAND:
            correlation += GOLF_SIMILAR_SALARY * (1.0 - gap / GOLF_SALARY_BAND)
    return max(GOLF_MIN, min(GOLF_MAX, correlation))


def pair_correlation(p1: Player, p2: Player, sport: str) -> float:
    """Correlation coefficient for a single pair of players."""

    sport = sport.upper()
    if sport == "GOLF":
        return _golf_correlation(p1, p2)

    weight = _SPORT_BASE_WEIGHT.get(sport, 1.0)
    pos1 = _canonical_position(sport, p1.position)
    pos2 = _canonical_position(sport, p2.position)
    correlation = 0.0
    if p1.team and p1.team == p2.team:
        correlation += weight * _teammate_correlation(sport, pos1, pos2)
    elif p1.game_key is not None and p1.game_key == p2.game_key:
        correlation += weight * _opponent_correlation(sport, pos1, pos2)
    return max(-1.0, min(1.0, correlation))


def _cluster_key(player: Player, sport: str) -> Optional[str]:
    if sport == "GOLF":
        if player.country:
            return f"country:{player.country.upper()}"
        if player.game_id:
            return f"tee:{player.game_id}"
        return None
    if player.game_key is not None:
        return f"game:{player.game_key}"
    if player.team:
        return f"team:{player.team}"
    return None


def build_correlation_matrix(players: Iterable[Player], sport: str) -> CorrelationMatrix:
    """Build the pairwise correlation matrix for one player pool."""

    pool = sorted(players, key=lambda p: p.player_id)
    sport_key = sport.upper()
    correlations: Dict[Tuple[str, str], float] = {}
    for p1, p2 in combinations(pool, 2):
        value = pair_correlation(p1, p2, sport_key)
        if value != 0.0:
            correlations[(p1.player_id, p2.player_id)] = value
    clusters = {player.player_id: _cluster_key(player, sport_key) for player in pool}
    matrix = CorrelationMatrix(correlations, clusters)
    logger.info(
        "Built %s correlation matrix – players=%s, nonzero pairs=%s, clusters=%s",
        sport_key,
        len(pool),
        len(matrix),
        len(matrix.clusters()),
    )
    return matrix
