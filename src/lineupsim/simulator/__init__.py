"""Monte Carlo contest simulation."""

from .distributions import Distribution, build_distribution, sample
from .engine import SimulateConfig, SimulationResult, SimulationRun, simulate
from .payout import (
    FieldModel,
    cash_rate,
    expected_roi,
    field_model_from_pool,
    payout_for_rank,
    payout_table,
    payouts_for_scores,
)

__all__ = [
    "Distribution",
    "FieldModel",
    "SimulateConfig",
    "SimulationResult",
    "SimulationRun",
    "build_distribution",
    "cash_rate",
    "expected_roi",
    "field_model_from_pool",
    "payout_for_rank",
    "payout_table",
    "payouts_for_scores",
    "sample",
    "simulate",
]
