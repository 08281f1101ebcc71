"""Pydantic models for API I/O."""

from .lineup import (
    ConstraintsRequest,
    LineupPlayerResponse,
    LineupResponse,
    OptimizeRequest,
    OptimizeResponse,
    PlayerUsageResponse,
)
from .simulation import (
    LineupPlayerIds,
    SimulateRequest,
    SimulateResponse,
    SimulationOptions,
    SimulationResultResponse,
)

__all__ = [
    "ConstraintsRequest",
    "LineupPlayerIds",
    "LineupPlayerResponse",
    "LineupResponse",
    "OptimizeRequest",
    "OptimizeResponse",
    "PlayerUsageResponse",
    "SimulateRequest",
    "SimulateResponse",
    "SimulationOptions",
    "SimulationResultResponse",
]
