"""Month/year calendar value used to key every historical lookup."""

import calendar
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterator

MIN_YEAR = 1900
MAX_YEAR = 2100


@total_ordering
@dataclass(frozen=True)
class MonthYear:
    """A calendar month, totally ordered by (year, month).

    Any month in MIN_YEAR-MAX_YEAR can be constructed. The simulated window
    is enforced where months meet market data: clean_scenario clamps the
    sweep range and HistoricalData.clamp every start and end month.
    """

    month: int
    year: int

    def __post_init__(self):
        if self.month < 1 or self.month > 12:
            raise ValueError(f"month {self.month} out of range (1-12)")
        if self.year < MIN_YEAR or self.year > MAX_YEAR:
            raise ValueError(f"year {self.year} out of range ({MIN_YEAR}-{MAX_YEAR})")

    @property
    def index(self) -> int:
        """Months since January of year 0."""
        return self.year * 12 + self.month - 1

    @classmethod
    def from_index(cls, index: int) -> "MonthYear":
        year, month0 = divmod(index, 12)
        return cls(month0 + 1, year)

    def add_months(self, months: int) -> "MonthYear":
        return MonthYear.from_index(self.index + months)

    def add_years(self, years: int) -> "MonthYear":
        return self.add_months(years * 12)

    def clamp(self, lower: "MonthYear | None" = None, upper: "MonthYear | None" = None) -> "MonthYear":
        """Constrain to [lower, upper] (defaults to the supported historical window)."""
        lower = MIN_MONTH_YEAR if lower is None else lower
        upper = MAX_MONTH_YEAR if upper is None else upper
        if self < lower:
            return lower
        if self > upper:
            return upper
        return self

    def __lt__(self, other: "MonthYear") -> bool:
        if not isinstance(other, MonthYear):
            return NotImplemented
        return self.index < other.index

    def __str__(self) -> str:
        return f"{calendar.month_name[self.month]} {self.year}"

    def iso(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


# Starts in April, one quarter after the first month of market data.
MIN_MONTH_YEAR = MonthYear(4, 1972)
MAX_MONTH_YEAR = MonthYear(9, 2018)
# Reference point for inflation normalization of reported figures.
BASELINE = MonthYear(9, 2018)


def month_difference(left: MonthYear, right: MonthYear) -> int:
    """Absolute number of months between two calendar values."""
    return abs(left.index - right.index)


def month_range(start: MonthYear, end: MonthYear) -> Iterator[MonthYear]:
    """Yield every month from start to end inclusive."""
    now = start
    while now <= end:
        yield now
        now = now.add_months(1)


def parse_month_year(s: str) -> MonthYear:
    """Parse "YYYY-MM" (or "YYYY/MM") → MonthYear."""
    text = str(s).strip().replace("/", "-")
    parts = text.split("-")
    if len(parts) != 2:
        raise ValueError(f"expected YYYY-MM, got {s!r}")
    return MonthYear(int(parts[1]), int(parts[0]))
