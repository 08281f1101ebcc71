from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, Field

from lineupsim.models import Player

from .simulation import SimulationOptions, SimulationResultResponse


class ConstraintsRequest(BaseModel):
    min_different_players: int = Field(default=2, ge=0)
    max_exposure: float | None = Field(default=None, ge=0.0, le=100.0)
    max_from_one_team: int | None = Field(default=None, ge=1)
    lock_player_ids: list[str] | None = None
    exclude_player_ids: list[str] | None = None
    correlation_weight: float = Field(default=1.0, ge=0.0)
    use_correlations: bool = True
    optimize_for: Literal["ceiling", "floor", "balanced"] = "balanced"


class OptimizeRequest(BaseModel):
    players: List[Player]
    sport: str = Field(default="NBA")
    platform: str = Field(default="DK")
    contest_type: Literal["gpp", "cash"] = "gpp"
    num_lineups: int = Field(default=20, ge=1, le=500)
    salary_cap: int | None = Field(default=None, gt=0)
    constraints: ConstraintsRequest = Field(default_factory=ConstraintsRequest)
    seed: int = 0
    timeout_seconds: float | None = Field(default=None, ge=0.0)
    simulate: bool = False
    simulation: SimulationOptions = Field(default_factory=SimulationOptions)


class LineupPlayerResponse(BaseModel):
    player_id: str
    name: str
    team: str
    position: str
    slot: str
    salary: int
    projection: float
    ownership: float


class LineupResponse(BaseModel):
    lineup_id: str
    total_salary: int
    total_projection: float
    stack_tags: List[str]
    players: List[LineupPlayerResponse]


class PlayerUsageResponse(BaseModel):
    player_id: str
    name: str
    team: str
    position: str
    count: int
    exposure: float


class OptimizeResponse(BaseModel):
    lineups: List[LineupResponse]
    player_usage: List[PlayerUsageResponse]
    warnings: List[str] = Field(default_factory=list)
    message: str | None = None
    deadline_exceeded: bool = False
    diversity_relaxed: bool = False
    effective_min_different: int = 0
    simulations: List[SimulationResultResponse] | None = None
