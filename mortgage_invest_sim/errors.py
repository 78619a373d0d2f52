"""Failure taxonomy for a simulation run."""

from mortgage_invest_sim.month_year import MonthYear


class SimulationError(Exception):
    """Internal invariant violated. A modeling defect: aborts the whole sweep."""


class SimulationInvalid(ValueError):
    """The scenario cannot be satisfied even at inception."""


class SimulationFailed(Exception):
    """A required payment could not be funded even after liquidating investments."""

    def __init__(self, message: str, when: MonthYear, snapshot: str = ""):
        super().__init__(message)
        self.when = when
        self.snapshot = snapshot
