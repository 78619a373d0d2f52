"""Tax-year accrual, year-end rollover and April settlement."""

from dataclasses import dataclass, fields

from mortgage_invest_sim.errors import SimulationError
from mortgage_invest_sim.params import Scenario, to_cents

ROLLOVER_MONTH = 12  # current year becomes previous year
SETTLEMENT_MONTH = 4  # previous year is paid

# Income categories whose losses carry forward into the next tax year
CARRYFORWARD_CATEGORIES = ("dividends", "capital_gains", "treasury_interest")


@dataclass
class TaxYear:
    """Amounts accrued during one tax year."""

    mortgage_interest: float = 0.0
    dividends: float = 0.0
    capital_gains: float = 0.0
    treasury_interest: float = 0.0

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) == 0 for f in fields(self))

    def __str__(self) -> str:
        return (
            f"mortgage interest ${self.mortgage_interest:,.0f}; dividends ${self.dividends:,.0f}; "
            f"capital gains ${self.capital_gains:,.0f}; treasury interest ${self.treasury_interest:,.0f}"
        )


def calc_tax_owed(taxes: TaxYear, scenario: Scenario) -> float:
    """Tax on the positive part of each income category."""
    owed = (
        max(taxes.dividends, 0) * scenario.dividend_tax_rate
        + max(taxes.capital_gains, 0) * scenario.capital_gains_tax_rate
        + max(taxes.treasury_interest, 0) * scenario.treasury_tax_rate
    )
    return to_cents(owed)


def calc_interest_deduction(taxes: TaxYear, scenario: Scenario) -> float:
    """Cash value of the mortgage interest deduction (interest × marginal rate)."""
    if not scenario.allow_mortgage_interest_deduction or taxes.mortgage_interest <= 0:
        return 0.0
    return to_cents(max(0.0, taxes.mortgage_interest * scenario.marginal_tax_rate))


class TaxLedger:
    """Current and previous tax years of one simulation."""

    def __init__(self):
        self.current = TaxYear()
        self.previous: TaxYear | None = None

    def roll_over(self) -> None:
        """Close the current year. The previous year must already be settled."""
        if self.previous is not None:
            raise SimulationError("previous tax year is still open at year end")
        self.previous = self.current
        self.current = TaxYear()

    def carry_losses(self) -> None:
        """Move negative categories of the previous year into the current year."""
        if self.previous is None:
            return
        for name in CARRYFORWARD_CATEGORIES:
            amount = getattr(self.previous, name)
            if amount < 0:
                setattr(self.current, name, getattr(self.current, name) + amount)
                setattr(self.previous, name, 0.0)

    def discard_previous(self) -> None:
        self.previous = None
