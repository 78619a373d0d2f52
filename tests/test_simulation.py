"""Tests for the month-by-month Simulation state machine."""

import pytest
from conftest import make_history
from mortgage_invest_sim import (
    BufferedOutput,
    IncomePolicy,
    MonthYear,
    MortgageTerm,
    Outcome,
    Scenario,
    Simulation,
    SimulationError,
    SimulationInvalid,
    SimulationState,
    StockLot,
    Strategy,
    TaxYear,
    calc_payment,
    to_cents,
)

START = MonthYear(1, 2001)


def _standard_payment(principal: float, annual_rate: float, years: int) -> float:
    r = annual_rate / 12
    return principal * r / (1 - (1 + r) ** -(years * 12))


def _sim(strategy: Strategy = Strategy.INVEST, history=None, **kwargs) -> Simulation:
    return Simulation(Scenario(**kwargs), strategy, history or make_history())


class TestInitialize:
    def test_payment_matches_amortization(self):
        sim = _sim(home_value=200000, starting_cash=0, monthly_income=3000,
                   mortgage_term=MortgageTerm.THIRTY_YEAR, mortgage_rate=0.0768, origination_fee=0)
        sim.initialize(START)
        assert sim.mortgage.payment == pytest.approx(_standard_payment(200000, 0.0768, 30), abs=0.01)
        assert sim.cash == 0
        assert sim.state is SimulationState.INITIALIZED

    def test_income_below_first_payment_is_invalid(self):
        sim = _sim(starting_cash=0, monthly_income=1000, mortgage_rate=0.0768, origination_fee=0)
        with pytest.raises(SimulationInvalid, match="not enough to cover"):
            sim.initialize(START)

    def test_invalid_run_simulates_nothing(self):
        output = BufferedOutput()
        sim = Simulation(Scenario(starting_cash=0, monthly_income=1000, mortgage_rate=0.0768),
                         Strategy.INVEST, make_history(), output)
        result = sim.run(START)
        assert result.outcome is Outcome.INVALID
        assert result.months == 0
        assert "invalid" in output.text()

    def test_starting_cash_avoids_invalid(self):
        sim = _sim(starting_cash=5000, monthly_income=0)
        sim.initialize(START)
        assert sim.cash == 5000

    def test_invest_mortgages_full_value(self):
        sim = _sim(starting_cash=300000)
        sim.initialize(START)
        assert sim.mortgage.proceeds == 200000
        assert sim.mortgage.amount == pytest.approx(202500)
        assert sim.cash == 300000

    def test_avoid_buys_outright(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=300000)
        sim.initialize(START)
        assert sim.mortgage is None
        assert sim.cash == 100000
        assert sim.is_financially_secure(START)

    def test_avoid_mortgages_shortfall(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=150000)
        sim.initialize(START)
        assert sim.mortgage.proceeds == 50000
        assert sim.cash == 0

    def test_missing_rate_is_invalid(self):
        history = make_history(mortgage_15=None)
        sim = _sim(history=history, mortgage_term=MortgageTerm.FIFTEEN_YEAR)
        assert sim.run(START).outcome is Outcome.INVALID

    def test_inflation_adjusted_home_value(self):
        sim = _sim(history=make_history(inflation=0.002), inflation_adjust=True)
        sim.initialize(START)
        assert sim.home_value < 200000


class TestIncomePolicy:
    def test_fixed(self):
        sim = _sim(monthly_income=2500)
        sim.initialize(START)
        assert sim.monthly_income == 2500

    def test_mortgage_payment_plus_buffer(self):
        expected = to_cents(calc_payment(200000, 0.06, 30) + 1)
        for strategy, cash in ((Strategy.INVEST, 0), (Strategy.AVOID_MORTGAGE, 300000)):
            sim = _sim(strategy, starting_cash=cash, income_policy=IncomePolicy.MORTGAGE,
                       mortgage_rate=0.06, origination_fee=0)
            sim.initialize(START)
            assert sim.monthly_income == pytest.approx(expected)

    def test_mortgage_plus_50(self):
        sim = _sim(income_policy=IncomePolicy.MORTGAGE_PLUS_50_PERCENT, mortgage_rate=0.06, origination_fee=0)
        sim.initialize(START)
        assert sim.monthly_income == pytest.approx(to_cents(calc_payment(200000, 0.06, 30) * 1.5 + 1))

    def test_inflation_adjusted_once(self):
        sim = _sim(history=make_history(inflation=0.001), monthly_income=1500,
                   income_policy=IncomePolicy.FIXED_INFLATION_ADJUSTED)
        sim.initialize(START)
        income = sim.monthly_income
        assert income < 1500
        sim.simulate(START)
        sim.simulate(START.add_months(1))
        assert sim.monthly_income == income

    def test_inflation_adjusted_monthly(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, history=make_history(inflation=0.001), starting_cash=300000,
                   income_policy=IncomePolicy.FIXED_INFLATION_ADJUSTED_MONTHLY)
        sim.initialize(START)
        sim.simulate(START)
        january = sim.monthly_income
        sim.simulate(START.add_months(1))
        assert sim.monthly_income > january


class TestMonthlySteps:
    def test_balance_never_negative(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=150000)
        sim.initialize(START)
        now = START
        for _ in range(60):
            sim.simulate(now)
            assert sim.mortgage is None or sim.mortgage.balance >= 0
            now = now.add_months(1)
        assert sim.mortgage is None

    def test_avoid_pays_down_with_all_cash(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=150000)
        sim.initialize(START)
        sim.simulate(START)
        assert sim.cash == 0
        assert sim.mortgage.balance < 50625 - 1000

    def test_invests_surplus(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=300000)
        sim.initialize(START)
        sim.simulate(START)
        assert sim.cash == pytest.approx(0, abs=0.02)
        assert sim.portfolio.stock_value(START) == pytest.approx(81200, abs=0.02)
        assert sim.portfolio.bond_value(START) == pytest.approx(20300, abs=0.02)

    def test_minimum_cash_not_invested(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=200000, monthly_income=500)
        sim.initialize(START)
        sim.simulate(START)
        assert sim.cash == 500
        assert sim.portfolio.stocks == []

    def test_quarterly_dividends_taxed(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=300000)
        sim.initialize(START)
        for month in range(2):
            sim.simulate(START.add_months(month))
        assert sim.taxes.current.dividends == 0
        sim.simulate(MonthYear(3, 2001))
        assert sim.taxes.current.dividends > 0

    def test_mortgage_interest_accrues(self):
        sim = _sim()
        sim.initialize(START)
        sim.simulate(START)
        assert sim.taxes.current.mortgage_interest == pytest.approx(202500 * 0.06 / 12, abs=0.01)

    def test_payment_below_interest_grows_balance(self):
        sim = _sim()
        sim.initialize(START)
        sim.mortgage.payment = 100.0
        balance = sim.mortgage.balance
        interest = sim.mortgage.monthly_interest()
        sim.simulate(START)
        assert interest == pytest.approx(1012.5)
        assert sim.mortgage.balance == pytest.approx(balance + interest - 100)
        assert sim.mortgage.balance == pytest.approx(203412.5)
        assert sim.taxes.current.mortgage_interest == pytest.approx(interest)

    def test_rebalance_countdown(self):
        sim = _sim(rebalance_months=3)
        sim.initialize(START)
        assert sim.months_until_rebalance == 3
        sim.simulate(START)
        assert sim.months_until_rebalance == 2

    def test_rebalance_restores_split(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, history=make_history(growth=0.0), starting_cash=200000,
                   monthly_income=0, rebalance_months=1, stock_percentage=0.8)
        sim.initialize(START)
        sim.portfolio.stocks = [StockLot(shares=1000, basis_price=100)]
        sim.simulate(START)
        assert sim.portfolio.stock_value(START) == pytest.approx(80000)
        assert sim.portfolio.bond_value(START) == pytest.approx(20000)
        assert sim.cash == pytest.approx(0)
        assert sim.taxes.current.capital_gains == pytest.approx(0)
        assert sim.months_until_rebalance == 1

    def test_rollover_with_open_previous_year_is_fatal(self):
        sim = _sim()
        sim.initialize(START)
        sim.taxes.previous = TaxYear()
        with pytest.raises(SimulationError, match="previous tax year"):
            sim.simulate(MonthYear(12, 2001))

    def test_december_rolls_over(self):
        sim = _sim()
        sim.initialize(START)
        sim.simulate(MonthYear(12, 2001))
        assert sim.taxes.previous is not None

    def test_april_settles_previous(self):
        sim = _sim()
        sim.initialize(START)
        sim.taxes.roll_over()
        sim.taxes.previous.capital_gains = -300
        sim.simulate(MonthYear(4, 2002))
        assert sim.taxes.previous is None
        assert sim.taxes.current.capital_gains == pytest.approx(-300)


class TestRefinance:
    def test_refinance_to_market_rate(self):
        sim = _sim(history=make_history(mortgage_30=0.05), mortgage_rate=0.09)
        sim.initialize(START)
        assert sim.mortgage.rate == 0.09
        sim.simulate(START)
        assert sim.mortgage.rate == 0.05

    def test_refinance_disabled(self):
        sim = _sim(history=make_history(mortgage_30=0.05), mortgage_rate=0.09, allow_refinance=False)
        sim.initialize(START)
        sim.simulate(START)
        assert sim.mortgage.rate == 0.09

    def test_cash_out(self):
        # Extra principal first brings the balance under the home value
        sim = _sim(history=make_history(mortgage_30=0.05), mortgage_rate=0.09, cash_out_refinance=True,
                   extra_payment=10000)
        sim.initialize(START)
        sim.simulate(START)
        assert sim.mortgage.proceeds == 200000
        assert sim.mortgage.amount == pytest.approx(202500)


class TestCash:
    def setup_method(self):
        self.sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=300000)
        self.sim.initialize(START)

    def test_overdraw_is_fatal(self):
        with pytest.raises(SimulationError, match="overdraw"):
            self.sim._adjust_cash(-(self.sim.cash + 1))

    def test_scrounge_exact_shortfall(self):
        self.sim.cash = 200.0
        self.sim.portfolio.stocks = [StockLot(shares=10, basis_price=120), StockLot(shares=10, basis_price=80)]
        assert self.sim._scrounge(1500.50, START)
        assert self.sim.cash >= 1500.50
        assert self.sim.cash - 1500.50 < 1
        # Sold the 120 basis lot at a loss first
        assert self.sim.taxes.current.capital_gains < 0

    def test_scrounge_bonds_first(self):
        self.sim.cash = 0.0
        self.sim.portfolio.buy_bonds(1000, START)
        self.sim.portfolio.stocks = [StockLot(shares=10, basis_price=100)]
        assert self.sim._scrounge(500, START)
        assert len(self.sim.portfolio.stocks) == 1
        assert self.sim.portfolio.stocks[0].shares == 10

    def test_scrounge_not_enough(self):
        self.sim.cash = 0.0
        assert not self.sim._scrounge(500, START)


class TestStateMachine:
    def test_simulate_before_initialize(self):
        with pytest.raises(SimulationError, match="uninitialized"):
            _sim().simulate(START)

    def test_initialize_twice(self):
        sim = _sim()
        sim.initialize(START)
        with pytest.raises(SimulationError):
            sim.initialize(START)

    def test_no_reentry_after_close(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=300000)
        sim.initialize(START)
        sim.simulate(START)
        sim.close_books(START.add_months(1))
        assert sim.state is SimulationState.CLOSED
        with pytest.raises(SimulationError, match="closed"):
            sim.simulate(START.add_months(1))


class TestCloseBooks:
    def test_settles_both_years_and_sells_bonds(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=300000)
        sim.initialize(START)
        cash = sim.cash
        bond = sim.portfolio.buy_bonds(20000, START)
        now = START.add_months(1)
        face = sim.portfolio.bond_face_value(bond, now)
        assert face < bond.par
        sim.taxes.previous = TaxYear(dividends=1000)
        sim.taxes.current.capital_gains = 2000

        sim.close_books(now)

        previous_tax = 1000 * 0.15
        current_tax = to_cents(2000 * 0.15 + (face - 20000) * 0.32)
        assert sim.portfolio.bonds == []
        assert sim.cash == pytest.approx(cash + to_cents(face) - previous_tax - current_tax, abs=0.01)
        assert sim.taxes.previous is None
        assert sim.taxes.current.is_empty()
        assert sim.state is SimulationState.CLOSED


class TestRun:
    def test_invest_success(self):
        sim = _sim(simulation_years=2)
        result = sim.run(START)
        assert result.outcome is Outcome.SUCCESS
        assert result.months == 24
        assert result.external_capital == pytest.approx(200000 + 24 * 1500)
        assert result.net_gain == pytest.approx(result.net_worth - result.external_capital)
        assert result.average_mortgage_rate == pytest.approx(0.06)
        assert result.effective_mortgage_rate == pytest.approx(0.06 * (1 - 0.38))
        assert sim.mortgage is None
        assert sim.portfolio.bonds == []
        assert sim.state is SimulationState.CLOSED

    def test_avoid_success_always_secure(self):
        result = _sim(Strategy.AVOID_MORTGAGE, simulation_years=2).run(START)
        assert result.outcome is Outcome.SUCCESS
        assert result.secure_months == 24
        assert result.first_secure == START
        assert result.average_mortgage_rate == 0

    def test_net_worth_counts_home(self):
        sim = _sim(Strategy.AVOID_MORTGAGE, starting_cash=200000, monthly_income=0, simulation_years=1)
        result = sim.run(START)
        assert result.net_worth == pytest.approx(200000)
        assert result.net_gain == pytest.approx(0)

    def test_failed_run(self):
        output = BufferedOutput()
        sim = Simulation(Scenario(starting_cash=5000, monthly_income=0), Strategy.INVEST, make_history(), output)
        result = sim.run(START)
        assert result.outcome is Outcome.FAILED
        assert result.failed_month is not None
        assert START < result.failed_month < START.add_years(1)
        assert "Could not" in result.error
        assert "Net worth is" in result.status
        assert result.months >= 1
        assert any("failed" in line for line in output.lines)

    def test_run_clamps_to_history(self):
        history = make_history(months=36)
        result = _sim(Strategy.AVOID_MORTGAGE, history=history, simulation_years=10).run(START)
        assert result.outcome is Outcome.SUCCESS
        assert result.months == 23

    def test_no_deduction_effective_rate(self):
        result = _sim(simulation_years=1, allow_mortgage_interest_deduction=False).run(START)
        assert result.effective_mortgage_rate == pytest.approx(result.average_mortgage_rate)

    def test_inflation_adjust_is_neutral_without_inflation(self):
        plain = _sim(simulation_years=1).run(START)
        adjusted = _sim(simulation_years=1, inflation_adjust=True).run(START)
        assert adjusted.net_worth == pytest.approx(plain.net_worth)

    def test_verbose_trace(self):
        output = BufferedOutput()
        Simulation(Scenario(simulation_years=1), Strategy.INVEST, make_history(), output).run(START)
        assert any("Closing books" in line for line in output.verbose_lines)
        assert any("succeeded" in line for line in output.lines)
