"""Greedy construction plus local search for batches of salary-cap lineups."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
import random
import threading
import time
from collections import Counter, defaultdict, deque
from typing import Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator
from scipy.optimize import linear_sum_assignment

from lineupsim.config.settings import max_attempts, optimization_timeout
from lineupsim.errors import (
    DeadlineExceeded,
    InfeasibleConstraints,
    InsufficientPlayers,
    LineupGenerationPartial,
)
from lineupsim.models import Contest, Lineup, Player
from lineupsim.optimizer.correlation import CorrelationMatrix, build_correlation_matrix
from lineupsim.optimizer.slots import (
    assign_players_to_slots,
    can_fill,
    lineup_violations,
    place_players,
    priority_order,
)
from lineupsim.optimizer.stacking import Stack, get_optimal_stacks


logger = logging.getLogger(__name__)

STACK_BONUS_POINTS = 10.0
SEED_STACKS_PER_ATTEMPT = 3
JITTER_STEP = 0.03
JITTER_MAX = 0.25
DIVERSITY_PENALTY_RATE = 0.08
EXPOSURE_PENALTY_RATE = 0.15

_UNFILLABLE = 1e9


def _normalize_percentage(value: float | None) -> float | None:
    if value is None:
        return None
    if value < 0:
        return 0.0
    return value if value <= 1.0 else value / 100.0


class OptimizeConfig(BaseModel):
    num_lineups: int = Field(default=1, ge=1)
    min_different_players: int = Field(default=2, ge=0)
    max_exposure: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    correlation_weight: float = Field(default=1.0, ge=0.0)
    use_correlations: bool = True
    optimize_for: Literal["ceiling", "floor", "balanced"] = "balanced"
    timeout_seconds: Optional[float] = Field(default_factory=optimization_timeout, ge=0.0)
    deadline: Optional[float] = None
    seed: int = 0
    top_stacks: int = Field(default=10, ge=0)
    max_attempts: int = Field(default_factory=max_attempts, ge=1)
    max_improvement_iterations: int = Field(default=100, ge=0)
    lock_player_ids: List[str] = Field(default_factory=list)
    exclude_player_ids: List[str] = Field(default_factory=list)
    max_from_one_team: Optional[int] = Field(default=None, ge=1)

    @field_validator("max_exposure")
    @classmethod
    def _exposure_fraction(cls, value: float | None) -> float | None:
        return _normalize_percentage(value)

    @property
    def stack_weight(self) -> float:
        return self.correlation_weight if self.use_correlations else 0.0


@dataclass(frozen=True)
class PlayerUsage:
    player_id: str
    name: str
    team: str
    position: str
    count: int
    exposure: float


@dataclass
class OptimizationResult:
    lineups: List[Lineup]
    requested: int
    warnings: List[str] = field(default_factory=list)
    deadline_exceeded: bool = False
    diversity_relaxed: bool = False
    effective_min_different: int = 0
    stacks: List[Stack] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def complete(self) -> bool:
        return len(self.lineups) >= self.requested

    def player_usage(self) -> List[PlayerUsage]:
        total = len(self.lineups)
        if total == 0:
            return []
        counts: Counter[str] = Counter()
        players: Dict[str, Player] = {}
        for lineup in self.lineups:
            for player in lineup.players:
                counts[player.player_id] += 1
                players.setdefault(player.player_id, player)
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        return [
            PlayerUsage(
                player_id=player_id,
                name=players[player_id].name,
                team=players[player_id].team,
                position=players[player_id].position,
                count=count,
                exposure=count / total,
            )
            for player_id, count in ordered
        ]

    def raise_for_partial(self) -> None:
        if self.complete:
            return
        message = self.warnings[-1] if self.warnings else "Unable to build lineup"
        if self.deadline_exceeded:
            raise DeadlineExceeded(self.lineups, message, self.warnings)
        raise LineupGenerationPartial(self.lineups, message, self.warnings)


@dataclass
class _Candidate:
    players: Tuple[Player, ...]
    value: float

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(player.player_id for player in self.players)


class _LineupSearch:
    """Single-threaded search state for one batch request."""

    def __init__(
        self,
        pool: Sequence[Player],
        contest: Contest,
        config: OptimizeConfig,
        stacks: Sequence[Stack],
        locks: Sequence[Player],
    ):
        self.pool = list(pool)
        self.contest = contest
        self.config = config
        self.slots = list(contest.slots)
        self.order = priority_order(self.slots)
        self.cap = contest.salary_cap
        self.stacks = list(stacks)
        self.stack_sets = [frozenset(stack.player_ids) for stack in self.stacks]
        self.locks = list(locks)
        self.lock_ids = {player.player_id for player in self.locks}
        limits = [value for value in (contest.team_max_players, config.max_from_one_team) if value is not None]
        self.team_limit: Optional[int] = min(limits) if limits else None
        self.points = {player.player_id: player.points(config.optimize_for) for player in self.pool}

        salaries = np.array([player.salary for player in self.pool], dtype=float)
        eligible = np.array(
            [[can_fill(player, slot) for player in self.pool] for slot in self.slots],
            dtype=bool,
        ).reshape(len(self.slots), len(self.pool))
        self.costs = np.where(eligible, salaries[np.newaxis, :], _UNFILLABLE)
        self.eligible = [[int(i) for i in np.flatnonzero(eligible[idx])] for idx in range(len(self.slots))]

    def assignment_fill(self, slot_idxs: Sequence[int], player_idxs: Sequence[int]) -> Optional[Tuple[int, frozenset[int]]]:
        if not slot_idxs:
            return 0, frozenset()
        if len(player_idxs) < len(slot_idxs):
            return None
        columns = np.asarray(player_idxs, dtype=int)
        sub = self.costs[np.ix_(np.asarray(slot_idxs, dtype=int), columns)]
        rows, cols = linear_sum_assignment(sub)
        total = float(sub[rows, cols].sum())
        if total >= _UNFILLABLE:
            return None
        return int(round(total)), frozenset(int(columns[c]) for c in cols)

    def cheapest_fill(
        self,
        slot_idxs: Sequence[int],
        player_idxs: Sequence[int],
        team_counts: Optional[Counter[str]] = None,
    ) -> Optional[Tuple[int, frozenset[int]]]:
        """Minimum salary needed to fill ``slot_idxs`` from ``player_idxs``.

        ``team_counts`` holds players already taken per team; with a team limit
        the fill never takes a team past it.
        """

        fill = self.assignment_fill(slot_idxs, player_idxs)
        if fill is None or self.team_limit is None:
            return fill
        counts = Counter(team_counts or {})
        counts.update(self.pool[idx].team for idx in fill[1] if self.pool[idx].team)
        if all(count <= self.team_limit for count in counts.values()):
            return fill
        return self._capped_fill(slot_idxs, player_idxs, team_counts or Counter())

    def _capped_fill(
        self,
        slot_idxs: Sequence[int],
        player_idxs: Sequence[int],
        team_counts: Counter[str],
    ) -> Optional[Tuple[int, frozenset[int]]]:
        """Min-cost flow: source -> team (remaining capacity) -> player -> slot -> sink."""

        limit = self.team_limit
        n_slots = len(slot_idxs)
        # Per team and slot only the n_slots cheapest eligible players can appear in a cheapest fill.
        keep: set[int] = set()
        for slot_idx in slot_idxs:
            by_team: Dict[str, List[int]] = defaultdict(list)
            for idx in player_idxs:
                if self.costs[slot_idx, idx] < _UNFILLABLE:
                    by_team[self.pool[idx].team].append(idx)
            for members in by_team.values():
                members.sort(key=lambda i: (self.pool[i].salary, i))
                keep.update(members[:n_slots])

        source, sink = 0, 1
        heads: List[List[int]] = [[], []]
        to: List[int] = []
        capacity: List[int] = []
        cost: List[int] = []

        def add_node() -> int:
            heads.append([])
            return len(heads) - 1

        def add_edge(u: int, v: int, cap: int, weight: int) -> int:
            edge = len(to)
            heads[u].append(edge)
            to.append(v)
            capacity.append(cap)
            cost.append(weight)
            heads[v].append(edge + 1)
            to.append(u)
            capacity.append(0)
            cost.append(-weight)
            return edge

        slot_nodes = {slot_idx: add_node() for slot_idx in slot_idxs}
        for node in slot_nodes.values():
            add_edge(node, sink, 1, 0)

        team_nodes: Dict[str, Optional[int]] = {}
        player_edges: List[Tuple[int, int]] = []
        for idx in sorted(keep):
            player = self.pool[idx]
            if player.team:
                if player.team not in team_nodes:
                    remaining = limit - team_counts[player.team]
                    team_node = None
                    if remaining > 0:
                        team_node = add_node()
                        add_edge(source, team_node, remaining, 0)
                    team_nodes[player.team] = team_node
                team_node = team_nodes[player.team]
                if team_node is None:
                    continue
                player_node = add_node()
                add_edge(team_node, player_node, 1, 0)
            else:
                player_node = add_node()
                add_edge(source, player_node, 1, 0)
            for slot_idx, slot_node in slot_nodes.items():
                if self.costs[slot_idx, idx] < _UNFILLABLE:
                    player_edges.append((add_edge(player_node, slot_node, 1, player.salary), idx))

        total = 0
        for _ in range(n_slots):
            dist = [math.inf] * len(heads)
            via = [-1] * len(heads)
            queued = [False] * len(heads)
            dist[source] = 0
            queue = deque([source])
            queued[source] = True
            while queue:
                u = queue.popleft()
                queued[u] = False
                for edge in heads[u]:
                    v = to[edge]
                    if capacity[edge] > 0 and dist[u] + cost[edge] < dist[v]:
                        dist[v] = dist[u] + cost[edge]
                        via[v] = edge
                        if not queued[v]:
                            queued[v] = True
                            queue.append(v)
            if dist[sink] == math.inf:
                return None
            node = sink
            while node != source:
                edge = via[node]
                capacity[edge] -= 1
                capacity[edge ^ 1] += 1
                node = to[edge ^ 1]
            total += int(dist[sink])
        return total, frozenset(idx for edge, idx in player_edges if capacity[edge] == 0)

    def value(self, players: Iterable[Player], adjusted: Dict[str, float]) -> float:
        ids = set()
        total = 0.0
        for player in players:
            ids.add(player.player_id)
            total += adjusted[player.player_id]
        weight = self.config.stack_weight
        if weight > 0.0:
            bonus = sum(stack.score for stack, members in zip(self.stacks, self.stack_sets) if members <= ids)
            total += weight * bonus * STACK_BONUS_POINTS
        return total

    def stack_tags(self, ids: Iterable[str]) -> Tuple[str, ...]:
        id_set = set(ids)
        return tuple(stack.tag for stack, members in zip(self.stacks, self.stack_sets) if members <= id_set)

    def _team_ok(self, counts: Counter[str], player: Player) -> bool:
        if self.team_limit is None or not player.team:
            return True
        return counts[player.team] < self.team_limit

    def construct(
        self,
        seed_players: Sequence[Player],
        available: Sequence[int],
        adjusted: Dict[str, float],
        jitter: Dict[str, float],
    ) -> Optional[Dict[int, Player]]:
        """Greedy value-per-dollar fill, reserving the cheapest completion."""

        fixed = list(self.locks) + [player for player in seed_players if player.player_id not in self.lock_ids]
        placement = place_players(fixed, self.slots)
        if placement is None:
            return None
        assignment = {slot_idx: fixed[pidx] for slot_idx, pidx in placement.items()}
        used = {player.player_id for player in fixed}
        salary = sum(player.salary for player in fixed)
        team_counts: Counter[str] = Counter(player.team for player in fixed if player.team)
        if salary > self.cap:
            return None
        if self.team_limit is not None and any(count > self.team_limit for count in team_counts.values()):
            return None

        available_set = set(available)
        open_slots = [idx for idx in self.order if idx not in assignment]
        for position, slot_idx in enumerate(open_slots):
            rest = open_slots[position + 1:]
            free = [idx for idx in available if self.pool[idx].player_id not in used]
            base = self.cheapest_fill(rest, free, team_counts)
            if base is None:
                return None
            base_cost, base_members = base
            base_teams = Counter(self.pool[idx].team for idx in base_members if self.pool[idx].team)

            best: Optional[int] = None
            best_key: Tuple[float, int] | None = None
            for idx in self.eligible[slot_idx]:
                player = self.pool[idx]
                if idx not in available_set or player.player_id in used:
                    continue
                if salary + player.salary > self.cap or not self._team_ok(team_counts, player):
                    continue
                reserve_cost = base_cost
                crowded = (
                    self.team_limit is not None
                    and bool(player.team)
                    and team_counts[player.team] + base_teams[player.team] >= self.team_limit
                )
                if idx in base_members or crowded:
                    after = team_counts.copy()
                    if player.team:
                        after[player.team] += 1
                    reserve = self.cheapest_fill(rest, [other for other in free if other != idx], after)
                    if reserve is None:
                        continue
                    reserve_cost = reserve[0]
                if salary + player.salary + reserve_cost > self.cap:
                    continue
                per_dollar = adjusted[player.player_id] * jitter.get(player.player_id, 1.0) / max(player.salary, 1)
                key = (per_dollar, -idx)
                if best_key is None or key > best_key:
                    best, best_key = idx, key
            if best is None:
                return None
            chosen = self.pool[best]
            assignment[slot_idx] = chosen
            used.add(chosen.player_id)
            salary += chosen.salary
            if chosen.team:
                team_counts[chosen.team] += 1
        return assignment

    def improve(
        self,
        assignment: Dict[int, Player],
        available: Sequence[int],
        adjusted: Dict[str, float],
    ) -> Dict[int, Player]:
        """Hill-climb with single-player swaps until no swap improves the value."""

        current = dict(assignment)
        available_set = set(available)
        for _ in range(self.config.max_improvement_iterations):
            players = list(current.values())
            base_value = self.value(players, adjusted)
            salary = sum(player.salary for player in players)
            used = {player.player_id for player in players}
            team_counts: Counter[str] = Counter(player.team for player in players if player.team)

            best_gain = 1e-9
            best_move: Optional[Tuple[int, Player]] = None
            for slot_idx, incumbent in current.items():
                if incumbent.player_id in self.lock_ids:
                    continue
                others = [player for idx, player in current.items() if idx != slot_idx]
                if incumbent.team:
                    team_counts[incumbent.team] -= 1
                for idx in self.eligible[slot_idx]:
                    candidate = self.pool[idx]
                    if idx not in available_set or candidate.player_id in used:
                        continue
                    if salary - incumbent.salary + candidate.salary > self.cap:
                        continue
                    if not self._team_ok(team_counts, candidate):
                        continue
                    gain = self.value(others + [candidate], adjusted) - base_value
                    if gain > best_gain:
                        best_gain, best_move = gain, (slot_idx, candidate)
                if incumbent.team:
                    team_counts[incumbent.team] += 1
            if best_move is None:
                break
            slot_idx, candidate = best_move
            current[slot_idx] = candidate
        return current

    def best_candidate(
        self,
        available: Sequence[int],
        adjusted: Dict[str, float],
        rng: random.Random,
        attempt: int,
    ) -> Optional[_Candidate]:
        scale = min(JITTER_MAX, JITTER_STEP * attempt)
        jitter = {player.player_id: 1.0 + scale * rng.uniform(-1.0, 1.0) for player in self.pool} if scale else {}

        seeds: List[Tuple[Player, ...]] = [()]
        if self.config.stack_weight > 0.0 and self.stacks:
            allowed = {self.pool[idx].player_id for idx in available}
            usable = [stack for stack in self.stacks if set(stack.player_ids) <= allowed]
            if usable:
                offset = (attempt * SEED_STACKS_PER_ATTEMPT) % len(usable)
                rotated = usable[offset:] + usable[:offset]
                seeds.extend(stack.players for stack in rotated[:SEED_STACKS_PER_ATTEMPT])

        best: Optional[_Candidate] = None
        for seed_players in seeds:
            assignment = self.construct(seed_players, available, adjusted, jitter)
            if assignment is None:
                continue
            assignment = self.improve(assignment, available, adjusted)
            players = tuple(assignment.values())
            value = self.value(players, adjusted)
            if best is None or value > best.value + 1e-9:
                best = _Candidate(players=players, value=value)
        return best


def _prepare_pool(
    players: Sequence[Player],
    config: OptimizeConfig,
    warnings: List[str],
) -> Tuple[List[Player], List[Player]]:
    seen: Dict[str, Player] = {}
    for player in players:
        if player.player_id in seen:
            message = f"Duplicate player id {player.player_id}; keeping the first entry"
            logger.warning(message)
            warnings.append(message)
            continue
        seen[player.player_id] = player

    excluded = set(config.exclude_player_ids)
    pool = sorted((p for pid, p in seen.items() if pid not in excluded), key=lambda p: p.player_id)
    by_id = {player.player_id: player for player in pool}

    locks: List[Player] = []
    for pid in dict.fromkeys(config.lock_player_ids):
        if pid in excluded:
            raise InfeasibleConstraints(f"player {pid} is both locked and excluded")
        if pid not in by_id:
            raise InfeasibleConstraints(f"locked player {pid} is not in the player pool")
        locks.append(by_id[pid])
    return pool, locks


def _check_feasible(search: _LineupSearch, pool: Sequence[Player], contest: Contest) -> None:
    required = [slot for slot in contest.slots if slot.required]
    if len(pool) < len(required):
        raise InsufficientPlayers(len(pool), len(required))
    # Raises NoFeasibleAssignment naming the first slot the pool cannot cover.
    assign_players_to_slots(pool, contest.slots)

    placement = place_players(search.locks, search.slots)
    if placement is None:
        raise InfeasibleConstraints("locked players cannot all be placed in the roster slots")
    lock_teams: Counter[str] = Counter(player.team for player in search.locks if player.team)
    limit = search.team_limit
    if limit is not None:
        crowded = sorted(team for team, count in lock_teams.items() if count > limit)
        if crowded:
            raise InfeasibleConstraints(
                f"locked players exceed the limit of {limit} players per team for {', '.join(crowded)}"
            )
    open_slots = [idx for idx in search.order if idx not in placement]
    free = [idx for idx, player in enumerate(search.pool) if player.player_id not in search.lock_ids]
    if search.assignment_fill(open_slots, free) is None:
        raise InfeasibleConstraints("no valid lineup can be completed around the locked players")
    fill = search.cheapest_fill(open_slots, free, lock_teams)
    if fill is None:
        raise InfeasibleConstraints(
            f"no valid lineup fits the limit of {limit} players per team "
            f"({len(contest.slots)} slots, {len({p.team for p in pool if p.team})} teams in the pool)"
        )
    cheapest = fill[0] + sum(player.salary for player in search.locks)
    if cheapest > contest.salary_cap:
        raise InfeasibleConstraints(
            f"cheapest valid lineup costs {cheapest}, which exceeds the salary cap {contest.salary_cap}"
        )


def _unique_by_exclusion(
    search: _LineupSearch,
    available: Sequence[int],
    adjusted: Dict[str, float],
    option: Optional[_Candidate],
    accepted: Sequence[_Candidate],
    min_different: int,
    expired: Callable[[], bool],
) -> Optional[_Candidate]:
    """Rebuild with one shared player left out at a time, weakest first."""

    if option is None or not accepted:
        return None
    closest = min(accepted, key=lambda other: len(option.ids - other.ids))
    shared = sorted(
        (pid for pid in option.ids & closest.ids if pid not in search.lock_ids),
        key=lambda pid: (adjusted[pid], pid),
    )
    for pid in shared:
        if expired():
            return None
        narrowed = [idx for idx in available if search.pool[idx].player_id != pid]
        retry = search.best_candidate(narrowed, adjusted, random.Random(0), 0)
        if retry is None:
            continue
        if all(len(retry.ids - other.ids) >= min_different for other in accepted):
            return retry
    return None


def optimize(
    players: Sequence[Player],
    contest: Contest,
    config: OptimizeConfig | None = None,
    *,
    matrix: CorrelationMatrix | None = None,
    cancel_event: threading.Event | None = None,
) -> OptimizationResult:
    """Build up to ``config.num_lineups`` valid, mutually diverse lineups.

    Constraint errors are raised before any lineup is built. Running out of
    time, cancellation and exposure exhaustion stop the batch early and are
    reported on the result instead.
    """

    config = config or OptimizeConfig()
    start = time.monotonic()
    deadline = config.deadline
    if deadline is None and config.timeout_seconds:
        deadline = start + config.timeout_seconds

    warnings: List[str] = []
    pool, locks = _prepare_pool(players, config, warnings)

    stacks: List[Stack] = []
    if pool and config.top_stacks > 0:
        if matrix is None:
            matrix = build_correlation_matrix(pool, contest.sport)
        stacks = get_optimal_stacks(
            pool,
            contest.sport,
            contest_type=contest.contest_type,
            matrix=matrix,
            limit=config.top_stacks,
        )

    search = _LineupSearch(pool, contest, config, stacks, locks)
    _check_feasible(search, pool, contest)

    n_lineups = config.num_lineups
    exposure_cap: Optional[int] = None
    if config.max_exposure is not None:
        exposure_cap = int(math.floor(config.max_exposure * n_lineups + 1e-9))
    if exposure_cap == 0 and len(locks) < len(contest.slots):
        raise InfeasibleConstraints(
            f"max_exposure {config.max_exposure:.3f} allows no unlocked player in any of {n_lineups} lineups"
        )

    result = OptimizationResult(
        lineups=[],
        requested=n_lineups,
        warnings=warnings,
        effective_min_different=config.min_different_players,
        stacks=stacks,
    )
    usage: Counter[str] = Counter()
    accepted: List[_Candidate] = []
    min_different = config.min_different_players

    logger.info(
        "Starting lineup optimization – lineups=%s, pool=%s, min_different=%s, max_exposure=%s, stack_weight=%.2f",
        n_lineups,
        len(pool),
        min_different,
        "none" if config.max_exposure is None else f"{config.max_exposure:.3f}",
        config.stack_weight,
    )

    def expired() -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    stop_reason: Optional[str] = None
    for lineup_idx in range(n_lineups):
        available = [
            idx
            for idx, player in enumerate(pool)
            if exposure_cap is None or player.player_id in search.lock_ids or usage[player.player_id] < exposure_cap
        ]
        penalties: Dict[str, float] = defaultdict(float)
        candidate: Optional[_Candidate] = None
        last_option: Optional[_Candidate] = None
        last_adjusted: Dict[str, float] = {}

        while candidate is None and stop_reason is None:
            built_any = False
            for attempt in range(config.max_attempts):
                if expired():
                    result.deadline_exceeded = True
                    stop_reason = f"Deadline reached after {len(accepted)}/{n_lineups} lineups"
                    break
                adjusted = {}
                for player in pool:
                    value = search.points[player.player_id] - penalties[player.player_id]
                    if exposure_cap:
                        value -= search.points[player.player_id] * EXPOSURE_PENALTY_RATE * usage[player.player_id] / exposure_cap
                    adjusted[player.player_id] = value
                rng = random.Random(config.seed * 1_000_003 + lineup_idx * 7_919 + attempt)
                option = search.best_candidate(available, adjusted, rng, attempt)
                if option is None:
                    continue
                built_any = True
                last_option, last_adjusted = option, adjusted
                if not accepted:
                    candidate = option
                    break
                closest = min(accepted, key=lambda other: len(option.ids - other.ids))
                if len(option.ids - closest.ids) >= min_different:
                    candidate = option
                    break
                for pid in option.ids & closest.ids:
                    if pid not in search.lock_ids:
                        penalties[pid] += search.points[pid] * DIVERSITY_PENALTY_RATE

            if candidate is not None or stop_reason is not None:
                break
            if not built_any:
                if exposure_cap is not None:
                    stop_reason = (
                        f"No feasible lineup remains once players reach the exposure cap of {exposure_cap} "
                        f"after {len(accepted)}/{n_lineups} lineups"
                    )
                else:
                    stop_reason = f"No feasible lineup could be built after {len(accepted)}/{n_lineups} lineups"
            elif min_different > 1:
                min_different -= 1
                result.diversity_relaxed = True
                result.effective_min_different = min_different
                message = (
                    f"Relaxed min_different_players to {min_different} for lineup {lineup_idx + 1} "
                    f"after {config.max_attempts} attempts"
                )
                logger.warning(message)
                warnings.append(message)
            else:
                candidate = _unique_by_exclusion(
                    search, available, last_adjusted, last_option, accepted, min_different, expired
                )
                if candidate is not None:
                    break
                if expired():
                    result.deadline_exceeded = True
                    stop_reason = f"Deadline reached after {len(accepted)}/{n_lineups} lineups"
                else:
                    stop_reason = f"No additional unique lineups after {len(accepted)}/{n_lineups} lineups"

        if candidate is None:
            break

        ordered = sorted(candidate.players, key=lambda p: p.player_id)
        lineup = Lineup(
            lineup_id=f"L{lineup_idx + 1:03}",
            assignments=tuple(assign_players_to_slots(ordered, contest.slots)),
            stack_tags=search.stack_tags(candidate.ids),
        )
        problems = lineup_violations(lineup, contest)
        if problems:
            stop_reason = f"Lineup {lineup.lineup_id} failed validation: {'; '.join(problems)}"
            break
        accepted.append(candidate)
        result.lineups.append(lineup)
        usage.update(candidate.ids)
        elapsed = time.monotonic() - start
        logger.info(
            "Built lineup %s/%s – projection %.2f, salary %s (elapsed %.2fs, avg %.2fs)",
            lineup_idx + 1,
            n_lineups,
            lineup.total_projection,
            lineup.total_salary,
            elapsed,
            elapsed / len(result.lineups),
        )

    if stop_reason is not None:
        logger.warning("Lineup optimization stopped early: %s", stop_reason)
        warnings.append(stop_reason)

    result.elapsed = time.monotonic() - start
    logger.info(
        "Completed %s/%s lineups in %.2fs (diversity relaxed: %s)",
        len(result.lineups),
        n_lineups,
        result.elapsed,
        result.diversity_relaxed,
    )
    return result


def build_lineups(
    players: Sequence[Player],
    *,
    sport: str,
    platform: str,
    n_lineups: int = 20,
    contest_type: str = "gpp",
    salary_cap: Optional[int] = None,
    min_different_players: int = 2,
    max_exposure: Optional[float] = None,
    correlation_weight: float = 1.0,
    use_correlations: bool = True,
    optimize_for: str = "balanced",
    lock_player_ids: Optional[Iterable[str]] = None,
    exclude_player_ids: Optional[Iterable[str]] = None,
    max_from_one_team: Optional[int] = None,
    timeout_seconds: Optional[float] = None,
    seed: int = 0,
    cancel_event: threading.Event | None = None,
) -> OptimizationResult:
    """Generate lineups for a sport/platform layout, raising on a short batch."""

    contest = Contest.for_rules(sport, platform, contest_type=contest_type, salary_cap=salary_cap)
    overrides = {} if timeout_seconds is None else {"timeout_seconds": timeout_seconds}
    config = OptimizeConfig(
        num_lineups=n_lineups,
        min_different_players=min_different_players,
        max_exposure=max_exposure,
        correlation_weight=correlation_weight,
        use_correlations=use_correlations,
        optimize_for=optimize_for,
        lock_player_ids=list(lock_player_ids or []),
        exclude_player_ids=list(exclude_player_ids or []),
        max_from_one_team=max_from_one_team,
        seed=seed,
        **overrides,
    )
    result = optimize(players, contest, config, cancel_event=cancel_event)
    result.raise_for_partial()
    return result
