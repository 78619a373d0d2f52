"""Synthetic market history shared by the test modules."""

import pytest

from mortgage_invest_sim.history import HistoricalData, MarketMonth
from mortgage_invest_sim.month_year import MonthYear

FIRST_MONTH = MonthYear(1, 2000)


def make_history(
    first: MonthYear = FIRST_MONTH,
    months: int = 240,
    mortgage_15: float | None = 0.055,
    mortgage_30: float | None = 0.06,
    treasury: float = 0.02,
    price: float = 100.0,
    growth: float = 0.005,
    dividend: float = 0.02,
    inflation: float = 0.0,
    overrides: dict[MonthYear, dict] | None = None,
) -> HistoricalData:
    """Flat rates with a steadily compounding S&P price.

    overrides patches individual months, e.g. {MonthYear(3, 2001): {"treasury_1y": 0.0}}.
    """
    overrides = overrides or {}
    data = {}
    for i in range(months):
        when = first.add_months(i)
        record = MarketMonth(
            mortgage_15=mortgage_15,
            mortgage_30=mortgage_30,
            treasury_1y=treasury,
            sp500_price=price * (1 + growth) ** i,
            sp500_dividend=dividend,
            inflation=inflation,
        )
        if when in overrides:
            record = record._replace(**overrides[when])
        data[when] = record
    return HistoricalData(data)


@pytest.fixture
def history() -> HistoricalData:
    return make_history()


@pytest.fixture
def flat_history() -> HistoricalData:
    """Constant $100 S&P price."""
    return make_history(growth=0.0)
