"""Contest constraints and prize structure."""

from __future__ import annotations

from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict

from lineupsim.config.roster import Slot, get_rules


class PayoutTier(BaseModel):
    min_rank: int = Field(..., ge=1)
    max_rank: int = Field(..., ge=1)
    payout: float = Field(..., ge=0.0)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_ranks(self) -> "PayoutTier":
        if self.max_rank < self.min_rank:
            raise ValueError("max_rank must be >= min_rank")
        return self


class PayoutStructure(BaseModel):
    """Prize structure of a contest; explicit tiers win over the generated curve."""

    contest_type: Literal["gpp", "cash"] = "gpp"
    field_size: int = Field(default=1_000, ge=2)
    entry_fee: float = Field(default=20.0, ge=0.0)
    rake: float = Field(default=0.15, ge=0.0, lt=1.0)
    tiers: Optional[List[PayoutTier]] = None
    curve: Literal["top_heavy", "flat"] = "top_heavy"
    paid_fraction: Optional[float] = Field(default=None, gt=0.0, le=1.0)
    cash_multiplier: float = Field(default=1.8, gt=0.0)

    model_config = ConfigDict(frozen=True)

    @property
    def effective_paid_fraction(self) -> float:
        if self.paid_fraction is not None:
            return self.paid_fraction
        return 0.45 if self.contest_type == "cash" else 0.2


class CutLineModel(BaseModel):
    """Golf cut line distribution, in per-golfer fantasy points."""

    mean: float
    std: float = Field(default=0.0, ge=0.0)
    min_players: Optional[int] = Field(default=None, ge=1)

    model_config = ConfigDict(frozen=True)


class Contest(BaseModel):
    sport: str
    platform: str
    salary_cap: int = Field(..., gt=0)
    slots: Tuple[Slot, ...]
    payout: PayoutStructure = Field(default_factory=PayoutStructure)
    max_entries: int = Field(default=150, ge=1)
    team_max_players: Optional[int] = Field(default=None, ge=1)
    cut_line: Optional[CutLineModel] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @property
    def entry_fee(self) -> float:
        return self.payout.entry_fee

    @property
    def contest_type(self) -> str:
        return self.payout.contest_type

    @property
    def is_golf(self) -> bool:
        return self.sport.upper() == "GOLF"

    @classmethod
    def for_rules(
        cls,
        sport: str,
        platform: str,
        *,
        contest_type: str = "gpp",
        field_size: int = 1_000,
        entry_fee: float = 20.0,
        salary_cap: int | None = None,
        max_entries: int = 150,
        cut_line: CutLineModel | None = None,
        tiers: List[PayoutTier] | None = None,
    ) -> "Contest":
        """Build a contest from the configured roster rules."""

        rules = get_rules(sport, platform)
        return cls(
            sport=rules.sport,
            platform=rules.platform,
            salary_cap=salary_cap if salary_cap is not None else rules.salary_cap,
            slots=rules.slots,
            payout=PayoutStructure(
                contest_type=contest_type,
                field_size=field_size,
                entry_fee=entry_fee,
                tiers=tiers,
            ),
            max_entries=max_entries,
            team_max_players=rules.team_max_players,
            cut_line=cut_line,
        )
