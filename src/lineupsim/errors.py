"""Typed errors surfaced by the optimizer and simulator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from lineupsim.config.roster import Slot
    from lineupsim.models.lineup import Lineup


class EngineError(Exception):
    """Base class for every error raised by the engine."""


class InsufficientPlayers(EngineError):
    def __init__(self, available: int, required: int):
        super().__init__(f"not enough players ({available}) to fill all slots ({required})")
        self.available = available
        self.required = required


class NoFeasibleAssignment(EngineError):
    def __init__(self, slot: "Slot | str", message: str | None = None):
        slot_name = slot if isinstance(slot, str) else slot.name
        super().__init__(message or f"cannot fill position {slot_name} - no eligible players available")
        self.slot = slot_name


class InfeasibleConstraints(EngineError):
    """No single lineup satisfies salary, position and lock/exclude rules."""


class LineupGenerationPartial(EngineError):
    def __init__(self, lineups: Sequence["Lineup"], message: str, warnings: Sequence[str] = ()):
        super().__init__(message)
        self.lineups = list(lineups)
        self.message = message
        self.warnings = list(warnings)


class DeadlineExceeded(LineupGenerationPartial):
    """The time budget ran out before the batch was complete."""
