"""Parallel Monte Carlo simulation of lineup outcomes and contest returns."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import multiprocessing as mp
import threading
import time
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, Field, field_validator

from lineupsim.config.settings import sim_block_size, sim_iterations, sim_workers
from lineupsim.models import Contest, CutLineModel, Lineup, PayoutStructure, Player
from lineupsim.optimizer.correlation import CorrelationMatrix, build_correlation_matrix
from lineupsim.simulator.distributions import Distribution, build_distribution
from lineupsim.simulator.payout import (
    FieldModel,
    field_model_from_pool,
    payout_table,
    payouts_for_scores,
    ranks_for_scores,
    roi_from_mean_payout,
)


logger = logging.getLogger(__name__)

RHO_CAP = 0.95
HISTOGRAM_SPREAD = 5.0
DEFAULT_PERCENTILES = (10.0, 25.0, 50.0, 75.0, 90.0, 99.0)
DEFAULT_TOP_FINISH = (1.0, 10.0)


class SimulateConfig(BaseModel):
    iterations: int = Field(default_factory=sim_iterations, ge=1)
    percentiles: List[float] = Field(default_factory=lambda: list(DEFAULT_PERCENTILES))
    workers: int = Field(default_factory=sim_workers, ge=1)
    seed: int = Field(default=0, ge=0)
    block_size: int = Field(default_factory=sim_block_size, ge=1)
    histogram_bins: int = Field(default=2_000, ge=10)
    timeout_seconds: Optional[float] = Field(default=None, ge=0.0)
    deadline: Optional[float] = None
    field_strength: float = Field(default=1.0, gt=0.0)
    top_finish_percents: List[float] = Field(default_factory=lambda: list(DEFAULT_TOP_FINISH))

    @field_validator("percentiles")
    @classmethod
    def _check_percentiles(cls, values: List[float]) -> List[float]:
        for value in values:
            if not 0.0 <= value <= 100.0:
                raise ValueError(f"percentile {value} outside [0, 100]")
        return sorted(set(values))

    @field_validator("top_finish_percents")
    @classmethod
    def _check_top_finish(cls, values: List[float]) -> List[float]:
        for value in values:
            if not 0.0 < value <= 100.0:
                raise ValueError(f"top finish percent {value} outside (0, 100]")
        return sorted(set(values))


@dataclass(frozen=True)
class SimulationResult:
    lineup_id: str
    iterations: int
    mean_score: float
    std_dev: float
    min_score: float
    max_score: float
    percentiles: Dict[float, float]
    skewness: float
    expected_roi: float
    cash_rate: float
    win_rate: float
    top_finish_rates: Dict[float, float]
    cut_probability: Optional[float] = None
    early_termination: bool = False


@dataclass
class SimulationRun:
    results: List[SimulationResult]
    iterations_requested: int
    iterations_completed: int
    blocks_completed: int
    workers: int
    seed: int
    elapsed: float
    early_termination: bool
    field: FieldModel

    def by_lineup(self) -> Dict[str, SimulationResult]:
        return {result.lineup_id: result for result in self.results}


@dataclass(frozen=True)
class _SimulationModel:
    """Immutable inputs shared by every block; shipped once to each worker."""

    player_ids: Tuple[str, ...]
    distributions: Tuple[Distribution, ...]
    means: np.ndarray
    sds: np.ndarray
    rho: np.ndarray
    scale: np.ndarray
    cluster_idx: np.ndarray
    n_clusters: int
    membership: np.ndarray
    hist_low: np.ndarray
    hist_high: np.ndarray
    bins: int
    structure: PayoutStructure
    table: np.ndarray
    field: FieldModel
    top_finish: Tuple[float, ...]
    cut_line: Optional[CutLineModel]
    cut_required: np.ndarray


@dataclass
class _Accumulator:
    """Streaming per-lineup statistics for a run of iterations."""

    count: int
    mean: np.ndarray
    m2: np.ndarray
    m3: np.ndarray
    minimum: np.ndarray
    maximum: np.ndarray
    hist: np.ndarray
    payout_sum: np.ndarray
    cash_count: np.ndarray
    win_count: np.ndarray
    top_counts: np.ndarray
    cut_count: np.ndarray

    @classmethod
    def empty(cls, n_lineups: int, bins: int, n_top: int) -> "_Accumulator":
        return cls(
            count=0,
            mean=np.zeros(n_lineups),
            m2=np.zeros(n_lineups),
            m3=np.zeros(n_lineups),
            minimum=np.full(n_lineups, np.inf),
            maximum=np.full(n_lineups, -np.inf),
            hist=np.zeros((n_lineups, bins), dtype=np.int64),
            payout_sum=np.zeros(n_lineups),
            cash_count=np.zeros(n_lineups, dtype=np.int64),
            win_count=np.zeros(n_lineups, dtype=np.int64),
            top_counts=np.zeros((n_top, n_lineups), dtype=np.int64),
            cut_count=np.zeros(n_lineups, dtype=np.int64),
        )

    def merge(self, other: "_Accumulator") -> "_Accumulator":
        """Combine two disjoint runs (pairwise update of Chan et al. / Pebay)."""

        if other.count == 0:
            return self
        if self.count == 0:
            return other
        na, nb = float(self.count), float(other.count)
        n = na + nb
        delta = other.mean - self.mean
        mean = self.mean + delta * nb / n
        m2 = self.m2 + other.m2 + delta ** 2 * na * nb / n
        m3 = (
            self.m3
            + other.m3
            + delta ** 3 * na * nb * (na - nb) / (n * n)
            + 3.0 * delta * (na * other.m2 - nb * self.m2) / n
        )
        return _Accumulator(
            count=self.count + other.count,
            mean=mean,
            m2=m2,
            m3=m3,
            minimum=np.minimum(self.minimum, other.minimum),
            maximum=np.maximum(self.maximum, other.maximum),
            hist=self.hist + other.hist,
            payout_sum=self.payout_sum + other.payout_sum,
            cash_count=self.cash_count + other.cash_count,
            win_count=self.win_count + other.win_count,
            top_counts=self.top_counts + other.top_counts,
            cut_count=self.cut_count + other.cut_count,
        )


def _run_block(model: _SimulationModel, seed: np.random.SeedSequence, size: int) -> _Accumulator:
    rng = np.random.default_rng(seed)
    n_players = len(model.player_ids)

    # Players are drawn in player-id order so a block is reproducible from its seed alone.
    base = np.empty((size, n_players))
    for idx, dist in enumerate(model.distributions):
        base[:, idx] = dist.standardized(dist.sample(rng, size))

    z = base
    if model.n_clusters:
        env = rng.standard_normal((size, model.n_clusters))
        shared = np.zeros_like(base)
        clustered = model.cluster_idx >= 0
        shared[:, clustered] = env[:, model.cluster_idx[clustered]]
        z = ((1.0 - model.rho) * base + model.rho * shared) / model.scale
    player_scores = model.means + model.sds * z
    scores = player_scores @ model.membership.T

    cut_line = None
    if model.cut_line is not None:
        if model.cut_line.std > 0.0:
            cut_line = rng.normal(model.cut_line.mean, model.cut_line.std, size)
        else:
            cut_line = np.full(size, model.cut_line.mean)

    mean = scores.mean(axis=0)
    dev = scores - mean
    n_lineups = scores.shape[1]

    width = (model.hist_high - model.hist_low) / model.bins
    bucket = np.clip(np.floor((scores - model.hist_low) / width), 0, model.bins - 1).astype(np.int64)
    hist = np.zeros((n_lineups, model.bins), dtype=np.int64)
    for idx in range(n_lineups):
        hist[idx] = np.bincount(bucket[:, idx], minlength=model.bins)

    payouts = payouts_for_scores(scores, model.field, model.structure, model.table)
    beaten = model.field.percentile(scores)
    top_counts = np.array(
        [(beaten >= 1.0 - pct / 100.0).sum(axis=0) for pct in model.top_finish],
        dtype=np.int64,
    ).reshape(len(model.top_finish), n_lineups)

    cut_count = np.zeros(n_lineups, dtype=np.int64)
    if cut_line is not None:
        made = (player_scores >= cut_line[:, np.newaxis]).astype(float) @ model.membership.T
        cut_count = (made >= model.cut_required).sum(axis=0).astype(np.int64)

    return _Accumulator(
        count=size,
        mean=mean,
        m2=(dev ** 2).sum(axis=0),
        m3=(dev ** 3).sum(axis=0),
        minimum=scores.min(axis=0),
        maximum=scores.max(axis=0),
        hist=hist,
        payout_sum=payouts.sum(axis=0),
        cash_count=(payouts > 0.0).sum(axis=0).astype(np.int64),
        win_count=(ranks_for_scores(scores, model.field, model.structure) == 1).sum(axis=0).astype(np.int64),
        top_counts=top_counts,
        cut_count=cut_count,
    )


_WORKER_MODEL: Optional[_SimulationModel] = None


def _init_worker(model: _SimulationModel) -> None:
    global _WORKER_MODEL
    _WORKER_MODEL = model


def _run_block_in_worker(task: Tuple[int, np.random.SeedSequence, int]) -> _Accumulator:
    _, seed, size = task
    if _WORKER_MODEL is None:  # pragma: no cover - initializer always runs first
        raise RuntimeError("simulation worker was not initialised")
    return _run_block(_WORKER_MODEL, seed, size)


def _histogram_percentile(
    hist: np.ndarray,
    low: float,
    high: float,
    count: int,
    percentile: float,
    minimum: float,
    maximum: float,
) -> float:
    bins = len(hist)
    width = (high - low) / bins
    cumulative = np.cumsum(hist)
    target = percentile / 100.0 * count
    bucket = min(int(np.searchsorted(cumulative, target, side="left")), bins - 1)
    before = cumulative[bucket - 1] if bucket > 0 else 0
    inside = hist[bucket]
    fraction = (target - before) / inside if inside > 0 else 0.5
    value = low + (bucket + fraction) * width
    return float(min(max(value, minimum), maximum))


def _build_model(
    lineups: Sequence[Lineup],
    players: Sequence[Player],
    matrix: CorrelationMatrix,
    distributions: Mapping[str, Distribution],
    contest: Contest,
    config: SimulateConfig,
    field: FieldModel,
) -> _SimulationModel:
    player_ids = tuple(player.player_id for player in players)
    column = {pid: idx for idx, pid in enumerate(player_ids)}
    dists = tuple(distributions[pid] for pid in player_ids)

    cluster_keys: Dict[str, int] = {}
    cluster_idx = np.full(len(player_ids), -1, dtype=np.int64)
    rho = np.zeros(len(player_ids))
    for idx, pid in enumerate(player_ids):
        cluster = matrix.cluster_of(pid)
        if cluster is None:
            continue
        # Negative correlations do not feed the shared factor.
        value = min(RHO_CAP, max(0.0, matrix.average_cluster_correlation(pid)))
        if value <= 0.0:
            continue
        cluster_idx[idx] = cluster_keys.setdefault(cluster, len(cluster_keys))
        rho[idx] = value

    membership = np.zeros((len(lineups), len(player_ids)))
    for row, lineup in enumerate(lineups):
        for pid in lineup.player_ids:
            membership[row, column[pid]] = 1.0

    means = np.array([dist.mean for dist in dists])
    sds = np.array([dist.sd for dist in dists])
    centre = membership @ means
    spread = HISTOGRAM_SPREAD * (membership @ sds)
    spread = np.where(spread > 0.0, spread, 0.5)

    sizes = membership.sum(axis=1)
    if contest.cut_line is not None and contest.cut_line.min_players is not None:
        cut_required = np.minimum(float(contest.cut_line.min_players), sizes)
    else:
        cut_required = sizes

    return _SimulationModel(
        player_ids=player_ids,
        distributions=dists,
        means=means,
        sds=sds,
        rho=rho,
        scale=np.sqrt((1.0 - rho) ** 2 + rho ** 2),
        cluster_idx=cluster_idx,
        n_clusters=len(cluster_keys),
        membership=membership,
        hist_low=centre - spread,
        hist_high=centre + spread,
        bins=config.histogram_bins,
        structure=contest.payout,
        table=payout_table(contest.payout),
        field=field,
        top_finish=tuple(config.top_finish_percents),
        cut_line=contest.cut_line,
        cut_required=cut_required,
    )


def _summarize(
    lineups: Sequence[Lineup],
    model: _SimulationModel,
    acc: _Accumulator,
    config: SimulateConfig,
    early: bool,
) -> List[SimulationResult]:
    results: List[SimulationResult] = []
    n = acc.count
    for row, lineup in enumerate(lineups):
        if n == 0:
            results.append(
                SimulationResult(
                    lineup_id=lineup.lineup_id,
                    iterations=0,
                    mean_score=0.0,
                    std_dev=0.0,
                    min_score=0.0,
                    max_score=0.0,
                    percentiles={pct: 0.0 for pct in config.percentiles},
                    skewness=0.0,
                    expected_roi=0.0,
                    cash_rate=0.0,
                    win_rate=0.0,
                    top_finish_rates={pct: 0.0 for pct in model.top_finish},
                    cut_probability=0.0 if model.cut_line is not None else None,
                    early_termination=early,
                )
            )
            continue

        mean = float(acc.mean[row])
        m2 = float(acc.m2[row])
        m3 = float(acc.m3[row])
        std_dev = math.sqrt(m2 / (n - 1)) if n > 1 else 0.0
        scale = max(1.0, mean * mean)
        skewness = math.sqrt(n) * m3 / m2 ** 1.5 if m2 > 1e-12 * scale else 0.0
        minimum = float(acc.minimum[row])
        maximum = float(acc.maximum[row])
        percentiles = {
            pct: _histogram_percentile(
                acc.hist[row],
                float(model.hist_low[row]),
                float(model.hist_high[row]),
                n,
                pct,
                minimum,
                maximum,
            )
            for pct in config.percentiles
        }
        results.append(
            SimulationResult(
                lineup_id=lineup.lineup_id,
                iterations=n,
                mean_score=mean,
                std_dev=std_dev,
                min_score=minimum,
                max_score=maximum,
                percentiles=percentiles,
                skewness=skewness,
                expected_roi=roi_from_mean_payout(float(acc.payout_sum[row]) / n, model.structure.entry_fee),
                cash_rate=float(acc.cash_count[row]) / n,
                win_rate=float(acc.win_count[row]) / n,
                top_finish_rates={
                    pct: float(acc.top_counts[idx, row]) / n for idx, pct in enumerate(model.top_finish)
                },
                cut_probability=float(acc.cut_count[row]) / n if model.cut_line is not None else None,
                early_termination=early,
            )
        )
    return results


def simulate(
    lineups: Sequence[Lineup],
    correlation_matrix: Optional[CorrelationMatrix],
    distributions: Optional[Mapping[str, Distribution]],
    contest: Contest,
    config: SimulateConfig | None = None,
    *,
    pool: Optional[Sequence[Player]] = None,
    field: Optional[FieldModel] = None,
    cancel_event: threading.Event | None = None,
) -> SimulationRun:
    """Simulate every lineup against the contest payout structure.

    Iterations are split into fixed-size blocks, each seeded from its own
    child of ``SeedSequence(config.seed)``. Blocks are merged in order, so the
    statistics do not depend on how many workers ran them. ``pool`` (the
    full slate) sharpens the field model; without it the field is modelled
    from the players in ``lineups``.
    """

    config = config or SimulateConfig()
    start = time.monotonic()
    deadline = config.deadline
    if deadline is None and config.timeout_seconds:
        deadline = start + config.timeout_seconds

    unique: Dict[str, Player] = {}
    for lineup in lineups:
        for player in lineup.players:
            unique.setdefault(player.player_id, player)
    players = [unique[pid] for pid in sorted(unique)]

    dists: Dict[str, Distribution] = dict(distributions or {})
    for player in players:
        if player.player_id not in dists:
            dists[player.player_id] = build_distribution(player)
    if correlation_matrix is None:
        correlation_matrix = build_correlation_matrix(players, contest.sport)
    if field is None:
        field = field_model_from_pool(list(pool) if pool else players, contest.slots, dists, config.field_strength)

    if not lineups:
        return SimulationRun(
            results=[],
            iterations_requested=config.iterations,
            iterations_completed=0,
            blocks_completed=0,
            workers=0,
            seed=config.seed,
            elapsed=time.monotonic() - start,
            early_termination=False,
            field=field,
        )

    model = _build_model(lineups, players, correlation_matrix, dists, contest, config, field)
    n_blocks = math.ceil(config.iterations / config.block_size)
    seeds = np.random.SeedSequence(config.seed).spawn(n_blocks)
    tasks = [
        (idx, seeds[idx], min(config.block_size, config.iterations - idx * config.block_size))
        for idx in range(n_blocks)
    ]
    workers = min(config.workers, n_blocks)

    logger.info(
        "Starting simulation – lineups=%s, players=%s, iterations=%s, blocks=%s, workers=%s, seed=%s",
        len(lineups),
        len(players),
        config.iterations,
        n_blocks,
        workers,
        config.seed,
    )

    def expired() -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return deadline is not None and time.monotonic() >= deadline

    partials: List[_Accumulator] = []
    early = False
    if workers == 1:
        for _, seed, size in tasks:
            if expired():
                early = True
                break
            partials.append(_run_block(model, seed, size))
    else:
        ctx = mp.get_context("spawn")
        with ctx.Pool(processes=workers, initializer=_init_worker, initargs=(model,)) as worker_pool:
            for partial in worker_pool.imap(_run_block_in_worker, tasks):
                partials.append(partial)
                if len(partials) < n_blocks and expired():
                    early = True
                    break

    acc = _Accumulator.empty(len(lineups), model.bins, len(model.top_finish))
    for partial in partials:
        acc = acc.merge(partial)

    if early:
        logger.warning(
            "Simulation stopped early after %s/%s iterations (%s/%s blocks)",
            acc.count,
            config.iterations,
            len(partials),
            n_blocks,
        )

    elapsed = time.monotonic() - start
    logger.info(
        "Completed simulation – %s iterations across %s blocks in %.2fs",
        acc.count,
        len(partials),
        elapsed,
    )
    return SimulationRun(
        results=_summarize(lineups, model, acc, config, early),
        iterations_requested=config.iterations,
        iterations_completed=acc.count,
        blocks_completed=len(partials),
        workers=workers,
        seed=config.seed,
        elapsed=elapsed,
        early_termination=early,
        field=field,
    )
