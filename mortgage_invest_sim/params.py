"""Scenario parameters and financial calculation helpers."""

import dataclasses
from dataclasses import dataclass
from enum import Enum

from mortgage_invest_sim.month_year import MAX_MONTH_YEAR, MIN_MONTH_YEAR, MonthYear


class MortgageTerm(Enum):
    FIFTEEN_YEAR = 15
    THIRTY_YEAR = 30

    @property
    def years(self) -> int:
        return self.value


class IncomePolicy(Enum):
    """How the monthly income figure of a scenario is interpreted."""

    FIXED = "fixed"
    # Scenario amount is in baseline dollars, restated once at the start month
    FIXED_INFLATION_ADJUSTED = "fixed-inflation-adjusted"
    # Same, but restated every month from the nominal scenario figure
    FIXED_INFLATION_ADJUSTED_MONTHLY = "fixed-inflation-adjusted-monthly"
    MORTGAGE = "mortgage"
    MORTGAGE_PLUS_25_PERCENT = "mortgage-plus-25"
    MORTGAGE_PLUS_50_PERCENT = "mortgage-plus-50"


# Income multiplier applied to the reference mortgage payment
MORTGAGE_INCOME_MULTIPLIERS = {
    IncomePolicy.MORTGAGE: 1.0,
    IncomePolicy.MORTGAGE_PLUS_25_PERCENT: 1.25,
    IncomePolicy.MORTGAGE_PLUS_50_PERCENT: 1.5,
}
MORTGAGE_INCOME_BUFFER = 1.0  # dollars on top of the payment


def to_cents(value: float) -> float:
    """Round a monetary amount to the cent."""
    return round(value, 2)


def calc_payment(principal: float, annual_rate: float, years: int) -> float:
    """Level monthly payment of an amortizing loan, rounded to the cent.

    A zero rate falls back to principal / years * 12.
    """
    if years <= 0:
        return 0.0
    if annual_rate > 0:
        r = annual_rate / 12
        factor = r + r / ((1 + r) ** (years * 12) - 1)
        return to_cents(principal * factor)
    return to_cents(principal / years * 12)


@dataclass(frozen=True)
class Scenario:
    """What-if description shared by every simulation in a sweep."""

    # Sweep range
    start: MonthYear = MIN_MONTH_YEAR
    end: MonthYear = MAX_MONTH_YEAR
    date: MonthYear | None = None  # single start month instead of [start, end]
    simulation_years: int = 10

    # Household
    home_value: float = 200000
    starting_cash: float = 200000
    monthly_income: float = 1500
    income_policy: IncomePolicy = IncomePolicy.FIXED
    extra_payment: float = 0.0  # fixed extra principal per month (Invest strategy)

    # Mortgage
    mortgage_term: MortgageTerm = MortgageTerm.THIRTY_YEAR
    mortgage_rate: float | None = None  # None → historical average at start month
    origination_fee: float = 0.0125
    pay_off_at_completion: bool = True

    # Refinance
    allow_refinance: bool = True
    refinance_payback_months: int = 60
    cash_out_refinance: bool = False

    # Investing
    stock_percentage: float = 0.80
    rebalance_months: int | None = 12
    minimum_cash: float = 1000
    minimum_bond: float = 100
    minimum_stock: float = 500

    # Taxes
    marginal_tax_rate: float = 0.38
    allow_mortgage_interest_deduction: bool = True
    dividend_tax_rate: float = 0.15
    capital_gains_tax_rate: float = 0.15
    treasury_tax_rate: float = 0.32

    inflation_adjust: bool = False

    @property
    def bond_percentage(self) -> float:
        return 1 - self.stock_percentage


def validate_scenario(scenario: Scenario) -> list[str]:
    """Return reasons the scenario cannot be simulated at all."""
    errors = []
    if scenario.home_value <= 0:
        errors.append(f"home value {scenario.home_value:,.0f} must be positive")
    if scenario.start > scenario.end:
        errors.append(f"start {scenario.start} is after end {scenario.end}")
    if scenario.simulation_years <= 0:
        errors.append(f"simulation years {scenario.simulation_years} must be positive")
    return errors


def _clamp_unit(value: float) -> float:
    return max(0.0, min(value, 1.0))


def clean_scenario(
    scenario: Scenario,
    lower: MonthYear = MIN_MONTH_YEAR,
    upper: MonthYear = MAX_MONTH_YEAR,
) -> Scenario:
    """Clamp every field into its supported range."""
    rate = scenario.mortgage_rate
    if rate is not None and rate <= 0:
        rate = None
    rebalance = scenario.rebalance_months
    if rebalance is not None and rebalance <= 0:
        rebalance = None
    date = scenario.date.clamp(lower, upper) if scenario.date is not None else None
    return dataclasses.replace(
        scenario,
        start=scenario.start.clamp(lower, upper),
        end=scenario.end.clamp(lower, upper),
        date=date,
        home_value=max(0.0, scenario.home_value),
        starting_cash=max(0.0, scenario.starting_cash),
        monthly_income=max(0.0, scenario.monthly_income),
        extra_payment=max(0.0, scenario.extra_payment),
        mortgage_rate=rate,
        origination_fee=_clamp_unit(scenario.origination_fee),
        refinance_payback_months=max(1, scenario.refinance_payback_months),
        stock_percentage=_clamp_unit(scenario.stock_percentage),
        rebalance_months=rebalance,
        minimum_cash=max(0.0, scenario.minimum_cash),
        minimum_bond=max(0.0, scenario.minimum_bond),
        minimum_stock=max(0.0, scenario.minimum_stock),
        marginal_tax_rate=_clamp_unit(scenario.marginal_tax_rate),
        dividend_tax_rate=_clamp_unit(scenario.dividend_tax_rate),
        capital_gains_tax_rate=_clamp_unit(scenario.capital_gains_tax_rate),
        treasury_tax_rate=_clamp_unit(scenario.treasury_tax_rate),
    )
