"""Historical market data provider (rates, S&P 500, inflation)."""

import csv
from pathlib import Path
from typing import NamedTuple

from mortgage_invest_sim.month_year import MonthYear
from mortgage_invest_sim.params import MortgageTerm

# The window opens one full quarter after the first row; the quarterly
# dividend average reads the current month and the two before it.
WINDOW_LEAD_MONTHS = 3
INFLATION_FACTOR_DIGITS = 5

CSV_COLUMNS = (
    "year", "month", "mortgage_15", "mortgage_30", "treasury_1y",
    "sp500_price", "sp500_dividend", "inflation",
)


class MarketMonth(NamedTuple):
    """One month of market observations. Rates are annual fractions except inflation (monthly)."""

    mortgage_15: float | None
    mortgage_30: float | None
    treasury_1y: float
    sp500_price: float
    sp500_dividend: float
    inflation: float


class HistoricalData:
    """In-memory lookups keyed by MonthYear.

    start/end bound the window a simulation may step through; lookups outside
    the loaded months raise KeyError.
    """

    def __init__(
        self,
        months: dict[MonthYear, MarketMonth],
        start: MonthYear | None = None,
        end: MonthYear | None = None,
    ):
        if not months:
            raise ValueError("historical data is empty")
        self._months = dict(months)
        first = min(self._months)
        last = max(self._months)
        self.start = start if start is not None else first.add_months(WINDOW_LEAD_MONTHS)
        self.end = end if end is not None else last
        if self.start > self.end:
            raise ValueError(f"historical window {self.start} - {self.end} is empty")
        self._inflation_factors: dict[tuple[MonthYear, MonthYear], float] = {}

    def __len__(self) -> int:
        return len(self._months)

    def __contains__(self, when: MonthYear) -> bool:
        return when in self._months

    def _get(self, when: MonthYear) -> MarketMonth:
        try:
            return self._months[when]
        except KeyError:
            raise KeyError(f"no market data for {when}") from None

    def clamp(self, when: MonthYear) -> MonthYear:
        return when.clamp(self.start, self.end)

    def mortgage_rate(self, when: MonthYear, term: MortgageTerm) -> float | None:
        """Average mortgage rate for the term; None where the series has no value."""
        record = self._get(when)
        if term is MortgageTerm.FIFTEEN_YEAR:
            return record.mortgage_15
        return record.mortgage_30

    def treasury_rate(self, when: MonthYear) -> float:
        return self._get(when).treasury_1y

    def sp500_price(self, when: MonthYear) -> float:
        return self._get(when).sp500_price

    def sp500_dividend(self, when: MonthYear) -> float:
        """Annual dividend yield."""
        return self._get(when).sp500_dividend

    def inflation_rate(self, when: MonthYear) -> float:
        """Monthly inflation rate."""
        return self._get(when).inflation

    def inflation_factor(self, start: MonthYear, end: MonthYear) -> float:
        """Compounded price-level change from start to end (inverted when end < start)."""
        key = (start, end)
        if key in self._inflation_factors:
            return self._inflation_factors[key]

        lo, hi = (end, start) if start > end else (start, end)
        value = 1.0
        now = lo
        while now < hi:
            value *= 1 + self.inflation_rate(now)
            now = now.add_months(1)
        if start > end:
            value = 1 / value
        factor = round(value, INFLATION_FACTOR_DIGITS)
        self._inflation_factors[key] = factor
        return factor

    def inflation_adjust(self, amount: float, start: MonthYear, end: MonthYear) -> float:
        """Restate an amount expressed in start-month dollars in end-month dollars."""
        return amount * self.inflation_factor(start, end)


def _parse_rate(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    return float(value)


def load_history(path: Path) -> HistoricalData:
    """Load a monthly CSV dataset (see CSV_COLUMNS)."""
    months: dict[MonthYear, MarketMonth] = {}
    with open(path, newline="") as f:
        reader = csv.DictReader(f)
        missing = [c for c in CSV_COLUMNS if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{path}: missing columns {', '.join(missing)}")
        for line_no, row in enumerate(reader, start=2):
            try:
                when = MonthYear(int(row["month"]), int(row["year"]))
                months[when] = MarketMonth(
                    mortgage_15=_parse_rate(row["mortgage_15"]),
                    mortgage_30=_parse_rate(row["mortgage_30"]),
                    treasury_1y=float(row["treasury_1y"]),
                    sp500_price=float(row["sp500_price"]),
                    sp500_dividend=float(row["sp500_dividend"]),
                    inflation=float(row["inflation"]),
                )
            except (TypeError, ValueError) as e:
                raise ValueError(f"{path}:{line_no}: {e}") from e
    return HistoricalData(months)
