"""Lineup optimization and Monte Carlo contest simulation for daily fantasy sports."""

from lineupsim.errors import (
    DeadlineExceeded,
    EngineError,
    InfeasibleConstraints,
    InsufficientPlayers,
    LineupGenerationPartial,
    NoFeasibleAssignment,
)
from lineupsim.models import Contest, Lineup, LineupSlot, PayoutStructure, Player
from lineupsim.optimizer import OptimizationResult, OptimizeConfig, build_lineups, optimize
from lineupsim.simulator import SimulateConfig, SimulationResult, SimulationRun, simulate

__version__ = "0.1.0"

__all__ = [
    "Contest",
    "DeadlineExceeded",
    "EngineError",
    "InfeasibleConstraints",
    "InsufficientPlayers",
    "Lineup",
    "LineupGenerationPartial",
    "LineupSlot",
    "NoFeasibleAssignment",
    "OptimizationResult",
    "OptimizeConfig",
    "PayoutStructure",
    "Player",
    "SimulateConfig",
    "SimulationResult",
    "SimulationRun",
    "build_lineups",
    "optimize",
    "simulate",
]
