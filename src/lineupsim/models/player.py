"""Canonical player model shared by the optimizer and simulator."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator
from pydantic.config import ConfigDict


class Player(BaseModel):
    """Normalized player payload, immutable for one optimization/simulation run."""

    player_id: str = Field(..., min_length=1)
    name: str = ""
    position: str = Field(..., min_length=1)
    team: str = ""
    opponent: Optional[str] = None
    game_id: Optional[str] = None
    salary: int = Field(..., ge=0)
    projection: float = Field(..., ge=0.0)
    floor: float = Field(default=None, ge=0.0)  # type: ignore[assignment]
    ceiling: float = Field(default=None, ge=0.0)  # type: ignore[assignment]
    ownership: float = Field(default=0.0, ge=0.0, le=100.0)
    country: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="before")
    @classmethod
    def _default_range(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            projection = data.get("projection")
            if data.get("floor") is None:
                data["floor"] = projection
            if data.get("ceiling") is None:
                data["ceiling"] = projection
        return data

    @model_validator(mode="after")
    def _check_range(self) -> "Player":
        if not self.floor <= self.projection <= self.ceiling:
            raise ValueError(
                f"player {self.player_id}: expected floor <= projection <= ceiling, "
                f"got {self.floor} / {self.projection} / {self.ceiling}"
            )
        return self

    @property
    def game_key(self) -> Optional[str]:
        if self.game_id:
            return self.game_id
        if self.team and self.opponent:
            return "@".join(sorted((self.team, self.opponent)))
        return None

    def points(self, optimize_for: str = "balanced") -> float:
        """Projection used by the optimizer objective."""

        if optimize_for == "ceiling":
            return self.ceiling
        if optimize_for == "floor":
            return self.floor
        return self.projection
