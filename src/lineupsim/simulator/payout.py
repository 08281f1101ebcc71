"""Contest payout modelling: prize tables, a simulated field and expected ROI."""

from __future__ import annotations

from dataclasses import dataclass
import math
from typing import Mapping, Optional, Sequence

import numpy as np
from scipy.special import ndtr, ndtri

from lineupsim.config.roster import Slot
from lineupsim.models.contest import PayoutStructure
from lineupsim.models.player import Player
from lineupsim.simulator.distributions import DEFAULT_K, Distribution


CURVE_EXPONENTS = {"top_heavy": 1.1, "flat": 0.5}
MIN_CASH_FEE_MULTIPLE = 2.0


@dataclass(frozen=True)
class FieldModel:
    """Normal approximation of the score of a typical opposing entry."""

    mean: float
    std: float

    def percentile(self, scores) -> np.ndarray:
        """Fraction of the field a score beats."""

        scores = np.asarray(scores, dtype=float)
        if self.std <= 0.0:
            return np.where(scores > self.mean, 1.0, np.where(scores < self.mean, 0.0, 0.5))
        return ndtr((scores - self.mean) / self.std)

    def quantile(self, q: float) -> float:
        if self.std <= 0.0:
            return self.mean
        q = min(max(q, 1e-12), 1.0 - 1e-12)
        return float(self.mean + self.std * ndtri(q))


def field_model_from_pool(
    players: Sequence[Player],
    slots: Sequence[Slot],
    distributions: Optional[Mapping[str, Distribution]] = None,
    strength: float = 1.0,
) -> FieldModel:
    """Score model of an entry whose players are picked in proportion to ownership.

    Each roster spot contributes the ownership-weighted mean projection; the
    spread combines the average per-player variance with the spread of
    projections across the pool. ``strength`` scales the mean to model a
    sharper (> 1) or softer (< 1) field.
    """

    if not players or not slots:
        return FieldModel(mean=0.0, std=0.0)
    weights = np.array([player.ownership for player in players], dtype=float)
    if weights.sum() <= 0.0:
        weights = np.ones(len(players), dtype=float)
    weights = weights / weights.sum()

    means = np.array([player.projection for player in players], dtype=float)
    variances = np.empty(len(players), dtype=float)
    for idx, player in enumerate(players):
        dist = distributions.get(player.player_id) if distributions else None
        if dist is not None:
            variances[idx] = dist.variance
        else:
            variances[idx] = ((player.ceiling - player.floor) / DEFAULT_K) ** 2

    spot_mean = float(weights @ means)
    spot_var = float(weights @ variances) + float(weights @ (means - spot_mean) ** 2)
    count = len(slots)
    return FieldModel(mean=count * spot_mean * strength, std=math.sqrt(count * spot_var))


def paid_places(structure: PayoutStructure) -> int:
    return max(1, min(structure.field_size, math.ceil(structure.effective_paid_fraction * structure.field_size)))


def payout_table(structure: PayoutStructure) -> np.ndarray:
    """Prize for every finishing rank; index 0 is rank 1."""

    size = structure.field_size
    fee = structure.entry_fee
    table = np.zeros(size, dtype=float)

    if structure.tiers:
        for tier in structure.tiers:
            if tier.min_rank > size:
                continue
            table[tier.min_rank - 1:min(tier.max_rank, size)] = tier.payout
        return table

    paid = paid_places(structure)
    if structure.contest_type == "cash":
        table[:paid] = structure.cash_multiplier * fee
        return table

    pool = size * fee * (1.0 - structure.rake)
    if pool <= 0.0:
        return table
    min_cash = min(MIN_CASH_FEE_MULTIPLE * fee, pool / paid)
    alpha = CURVE_EXPONENTS[structure.curve]
    ranks = np.arange(1, paid + 1, dtype=float)
    shape = ranks ** (-alpha)
    table[:paid] = min_cash + (pool - paid * min_cash) * shape / shape.sum()
    return table


def payout_for_rank(rank: int, structure: PayoutStructure, table: Optional[np.ndarray] = None) -> float:
    if table is None:
        table = payout_table(structure)
    if rank < 1 or rank > len(table):
        return 0.0
    return float(table[rank - 1])


def ranks_for_scores(scores, field: FieldModel, structure: PayoutStructure) -> np.ndarray:
    """Finishing rank implied by each score against the modelled field."""

    beaten = field.percentile(scores)
    ranks = 1 + np.floor((1.0 - beaten) * (structure.field_size - 1))
    return ranks.astype(np.int64)


def payouts_for_scores(
    scores,
    field: FieldModel,
    structure: PayoutStructure,
    table: Optional[np.ndarray] = None,
) -> np.ndarray:
    scores = np.asarray(scores, dtype=float)
    if table is None:
        table = payout_table(structure)
    if structure.contest_type == "cash":
        line = field.quantile(1.0 - structure.effective_paid_fraction)
        return np.where(scores >= line, table[0], 0.0)
    ranks = ranks_for_scores(scores, field, structure)
    return table[np.clip(ranks, 1, len(table)) - 1]


def expected_roi(scores, field: FieldModel, structure: PayoutStructure, table: Optional[np.ndarray] = None) -> float:
    """(mean payout - entry fee) / entry fee over a sample of lineup scores."""

    payouts = payouts_for_scores(scores, field, structure, table)
    if payouts.size == 0:
        return 0.0
    return roi_from_mean_payout(float(payouts.mean()), structure.entry_fee)


def roi_from_mean_payout(mean_payout: float, entry_fee: float) -> float:
    if entry_fee <= 0.0:
        return 0.0
    return (mean_payout - entry_fee) / entry_fee


def cash_rate(scores, field: FieldModel, structure: PayoutStructure, table: Optional[np.ndarray] = None) -> float:
    payouts = payouts_for_scores(scores, field, structure, table)
    if payouts.size == 0:
        return 0.0
    return float((payouts > 0.0).mean())
