from __future__ import annotations

from typing import Dict, List, Literal

from pydantic import BaseModel, Field

from lineupsim.models import CutLineModel, PayoutTier, Player


class SimulationOptions(BaseModel):
    iterations: int | None = Field(default=None, ge=1, le=1_000_000)
    percentiles: List[float] | None = None
    seed: int = Field(default=0, ge=0)
    workers: int | None = Field(default=None, ge=1, le=64)
    field_size: int = Field(default=1_000, ge=2)
    entry_fee: float = Field(default=20.0, ge=0.0)
    tiers: List[PayoutTier] | None = None
    cut_line: CutLineModel | None = None
    timeout_seconds: float | None = Field(default=None, ge=0.0)


class LineupPlayerIds(BaseModel):
    lineup_id: str | None = None
    player_ids: List[str] = Field(..., min_length=1)


class SimulateRequest(SimulationOptions):
    players: List[Player]
    lineups: List[LineupPlayerIds] = Field(..., min_length=1)
    sport: str = Field(default="NBA")
    platform: str = Field(default="DK")
    contest_type: Literal["gpp", "cash"] = "gpp"
    salary_cap: int | None = Field(default=None, gt=0)


class SimulationResultResponse(BaseModel):
    lineup_id: str
    iterations: int
    mean_score: float
    std_dev: float
    min_score: float
    max_score: float
    percentiles: Dict[str, float]
    skewness: float
    expected_roi: float
    cash_rate: float
    win_rate: float
    top_finish_rates: Dict[str, float]
    cut_probability: float | None = None
    early_termination: bool = False


class SimulateResponse(BaseModel):
    results: List[SimulationResultResponse]
    iterations_requested: int
    iterations_completed: int
    early_termination: bool = False
    message: str | None = None
