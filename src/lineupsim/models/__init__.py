"""Typed inputs and outputs of the engine."""

from .contest import Contest, CutLineModel, PayoutStructure, PayoutTier
from .lineup import Lineup, LineupSlot
from .player import Player

__all__ = [
    "Contest",
    "CutLineModel",
    "Lineup",
    "LineupSlot",
    "PayoutStructure",
    "PayoutTier",
    "Player",
]
