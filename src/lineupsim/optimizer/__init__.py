"""Lineup construction: slot resolution, correlations, stacks and batch search."""

from .correlation import CorrelationMatrix, build_correlation_matrix, pair_correlation
from .service import (
    OptimizationResult,
    OptimizeConfig,
    PlayerUsage,
    build_lineups,
    optimize,
)
from .slots import assign_players_to_slots, can_fill, lineup_violations, place_players
from .stacking import Stack, StackType, get_optimal_stacks

__all__ = [
    "CorrelationMatrix",
    "OptimizationResult",
    "OptimizeConfig",
    "PlayerUsage",
    "Stack",
    "StackType",
    "assign_players_to_slots",
    "build_correlation_matrix",
    "build_lineups",
    "can_fill",
    "get_optimal_stacks",
    "lineup_violations",
    "optimize",
    "pair_correlation",
    "place_players",
]
