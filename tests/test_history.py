"""Tests for the historical data provider and CSV loader."""

import pytest
from conftest import make_history
from mortgage_invest_sim import MonthYear, MortgageTerm, Portfolio, load_history
from mortgage_invest_sim.history import WINDOW_LEAD_MONTHS

CSV_HEADER = "year,month,mortgage_15,mortgage_30,treasury_1y,sp500_price,sp500_dividend,inflation\n"


class TestLookups:
    def setup_method(self):
        self.history = make_history(first=MonthYear(1, 2000), months=24, mortgage_15=None)

    def test_window(self):
        # The window opens one quarter after the first row
        assert self.history.start == MonthYear(4, 2000)
        assert self.history.end == MonthYear(12, 2001)

    def test_window_covers_dividend_average(self):
        first = MonthYear(1, 2000)
        history = make_history(first=first, months=24, overrides={first: {"sp500_dividend": 0.05}})
        assert history.start == first.add_months(WINDOW_LEAD_MONTHS)
        # March averages January through March, the first three rows
        assert Portfolio(history).quarterly_dividend_yield(MonthYear(3, 2000)) == pytest.approx(0.03)
        assert Portfolio(history).quarterly_dividend_yield(history.start) is None

    def test_clamp(self):
        assert self.history.clamp(MonthYear(1, 1990)) == MonthYear(4, 2000)
        assert self.history.clamp(MonthYear(1, 2010)) == MonthYear(12, 2001)

    def test_rates(self):
        when = MonthYear(6, 2000)
        assert self.history.mortgage_rate(when, MortgageTerm.THIRTY_YEAR) == 0.06
        assert self.history.treasury_rate(when) == 0.02
        assert self.history.sp500_dividend(when) == 0.02

    def test_absent_mortgage_rate(self):
        assert self.history.mortgage_rate(MonthYear(6, 2000), MortgageTerm.FIFTEEN_YEAR) is None

    def test_price_series(self):
        assert self.history.sp500_price(MonthYear(1, 2000)) == pytest.approx(100.0)
        assert self.history.sp500_price(MonthYear(2, 2000)) == pytest.approx(100.5)

    def test_missing_month(self):
        with pytest.raises(KeyError, match="no market data"):
            self.history.treasury_rate(MonthYear(1, 1999))


class TestInflation:
    def setup_method(self):
        self.history = make_history(months=24, inflation=0.01)

    def test_same_month(self):
        assert self.history.inflation_factor(MonthYear(3, 2000), MonthYear(3, 2000)) == 1.0

    def test_compounds(self):
        factor = self.history.inflation_factor(MonthYear(1, 2000), MonthYear(3, 2000))
        assert factor == pytest.approx(1.0201)

    def test_reversed_inverts(self):
        factor = self.history.inflation_factor(MonthYear(3, 2000), MonthYear(1, 2000))
        assert factor == pytest.approx(round(1 / 1.0201, 5))

    def test_adjust(self):
        amount = self.history.inflation_adjust(1000, MonthYear(1, 2000), MonthYear(3, 2000))
        assert amount == pytest.approx(1020.1)

    def test_memoized(self):
        key = (MonthYear(1, 2000), MonthYear(7, 2000))
        self.history.inflation_factor(*key)
        assert key in self.history._inflation_factors


class TestEmpty:
    def test_rejects_empty(self):
        from mortgage_invest_sim import HistoricalData

        with pytest.raises(ValueError, match="empty"):
            HistoricalData({})


class TestLoadHistory:
    def test_loads_rows(self, tmp_path):
        path = tmp_path / "history.csv"
        rows = [
            "2000,1,,0.08,0.05,1400.5,0.012,0.002",
            "2000,2,0.075,0.081,0.051,1410.0,0.012,0.001",
            "2000,3,0.074,0.079,0.052,1420.0,0.011,0.003",
            "2000,4,0.073,0.078,0.053,1430.0,0.011,0.002",
        ]
        path.write_text(CSV_HEADER + "\n".join(rows) + "\n")
        history = load_history(path)
        assert len(history) == 4
        assert history.start == MonthYear(4, 2000)
        assert history.end == MonthYear(4, 2000)
        assert history.mortgage_rate(MonthYear(1, 2000), MortgageTerm.FIFTEEN_YEAR) is None
        assert history.mortgage_rate(MonthYear(2, 2000), MortgageTerm.FIFTEEN_YEAR) == 0.075
        assert history.sp500_price(MonthYear(1, 2000)) == 1400.5

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "history.csv"
        path.write_text("year,month,treasury_1y\n2000,1,0.05\n")
        with pytest.raises(ValueError, match="missing columns"):
            load_history(path)

    def test_bad_row_reports_line(self, tmp_path):
        path = tmp_path / "history.csv"
        path.write_text(CSV_HEADER + "2000,1,0.07,0.08,abc,1400,0.01,0.002\n")
        with pytest.raises(ValueError, match=r":2:"):
            load_history(path)
