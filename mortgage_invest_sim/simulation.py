"""Month-by-month simulation of one strategy from one start month."""

import math
from dataclasses import dataclass
from enum import Enum

from mortgage_invest_sim.errors import SimulationError, SimulationFailed, SimulationInvalid
from mortgage_invest_sim.history import HistoricalData
from mortgage_invest_sim.month_year import BASELINE, MonthYear
from mortgage_invest_sim.mortgage import Mortgage, refinance_quote, take_out_mortgage
from mortgage_invest_sim.output import NullOutput, Output
from mortgage_invest_sim.params import (
    MORTGAGE_INCOME_BUFFER,
    MORTGAGE_INCOME_MULTIPLIERS,
    IncomePolicy,
    Scenario,
    to_cents,
)
from mortgage_invest_sim.portfolio import Portfolio, Sale
from mortgage_invest_sim.strategies import Strategy
from mortgage_invest_sim.tax import (
    ROLLOVER_MONTH,
    SETTLEMENT_MONTH,
    TaxLedger,
    TaxYear,
    calc_interest_deduction,
    calc_tax_owed,
)


class Outcome(Enum):
    UNDEFINED = "undefined"  # not run yet
    SUCCESS = "success"  # ran to completion without going broke
    FAILED = "failed"  # ran out of money
    INVALID = "invalid"  # could not afford the house at inception
    ERROR = "error"  # modeling defect


class SimulationState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RUNNING = "running"
    CLOSED = "closed"


@dataclass
class Result:
    """Outcome and statistics of one simulation run."""

    start: MonthYear
    strategy: Strategy
    outcome: Outcome = Outcome.UNDEFINED
    net_worth: float = 0.0
    external_capital: float = 0.0
    months: int = 0
    secure_months: int = 0
    first_secure: MonthYear | None = None
    average_mortgage_rate: float = 0.0
    effective_mortgage_rate: float = 0.0
    status: str = ""
    error: str = ""
    failed_month: MonthYear | None = None

    @property
    def net_gain(self) -> float:
        """Net worth above the capital put in (starting cash plus income)."""
        return to_cents(self.net_worth - self.external_capital)

    @property
    def is_success(self) -> bool:
        return self.outcome is Outcome.SUCCESS


class Simulation:
    """Owns the cash, mortgage, portfolio and taxes of a single run."""

    def __init__(
        self,
        scenario: Scenario,
        strategy: Strategy,
        history: HistoricalData,
        output: Output | None = None,
    ):
        self.scenario = scenario
        self.strategy = strategy
        self.history = history
        self.output = output or NullOutput()
        self.baseline = history.clamp(BASELINE)

        self.state = SimulationState.UNINITIALIZED
        self.start: MonthYear | None = None
        self.home_value = 0.0
        self.cash = 0.0
        self.external_capital = 0.0
        self.monthly_income = 0.0
        self.mortgage: Mortgage | None = None
        self.portfolio = Portfolio(history)
        self.taxes = TaxLedger()
        self.months_until_rebalance = 0

        self.months = 0
        self.secure_months = 0
        self.first_secure: MonthYear | None = None
        self._rate_total = 0.0
        self._rate_months = 0

    # -- cash -----------------------------------------------------------

    def _adjust_cash(self, amount: float) -> None:
        amount = to_cents(amount)
        if amount < 0 and -amount > self.cash:
            raise SimulationError(
                f"withdrawal of ${-amount:,.2f} would overdraw cash balance of ${self.cash:,.2f}"
            )
        self.cash = to_cents(self.cash + amount)

    def _scrounge(self, amount: float, now: MonthYear) -> bool:
        """Sell bonds, then stocks, until cash covers amount."""
        if self.cash < amount:
            self._sell_bonds(to_cents(math.ceil(amount - self.cash)), now)
        if self.cash < amount:
            self._sell_stocks(to_cents(math.ceil(amount - self.cash)), now)
        return self.cash >= amount

    def _pay(self, amount: float, now: MonthYear, message: str) -> None:
        """Pay a required amount, liquidating investments if needed."""
        amount = to_cents(amount)
        if amount <= 0:
            return
        if not self._scrounge(amount, now):
            raise SimulationFailed(message, now, self.status(now))
        self._adjust_cash(-amount)

    # -- portfolio ------------------------------------------------------

    def _record_bond_sale(self, sale: Sale) -> None:
        self._adjust_cash(sale.proceeds)
        self.taxes.current.treasury_interest += sale.gain

    def _buy_stocks(self, amount: float, now: MonthYear) -> None:
        amount = to_cents(amount)
        if amount <= max(0.0, self.scenario.minimum_stock):
            return
        self._adjust_cash(-amount)
        lot = self.portfolio.buy_stocks(amount, now)
        self.output.verbose(f"Purchased {lot}")

    def _buy_bonds(self, amount: float, now: MonthYear) -> None:
        amount = to_cents(amount)
        if amount <= max(0.0, self.scenario.minimum_bond):
            return
        if self.history.treasury_rate(now) <= 0:
            self.output.verbose(f"Skipped ${amount:,.0f} bond purchase; no treasury yield")
            return
        self._adjust_cash(-amount)
        lot = self.portfolio.buy_bonds(amount, now)
        self.output.verbose(f"Purchased {lot}")

    def _sell_bonds(self, amount: float, now: MonthYear) -> None:
        sale = self.portfolio.sell_bonds(amount, now)
        if sale.proceeds > 0:
            self._record_bond_sale(sale)
            self.output.verbose(f"Sold ${sale.proceeds:,.0f} of bonds; ${sale.gain:,.0f} gain/loss")

    def _sell_stocks(self, amount: float, now: MonthYear) -> None:
        sale = self.portfolio.sell_stocks(amount, now)
        if sale.proceeds > 0:
            self._adjust_cash(sale.proceeds)
            self.taxes.current.capital_gains += sale.gain
            self.output.verbose(f"Sold ${sale.proceeds:,.0f} of stocks; ${sale.gain:,.0f} capital gain")

    # -- mortgage -------------------------------------------------------

    def _mortgage_rate(self, when: MonthYear) -> float:
        if self.scenario.mortgage_rate is not None and self.scenario.mortgage_rate > 0:
            return self.scenario.mortgage_rate
        rate = self.history.mortgage_rate(when, self.scenario.mortgage_term)
        if rate is None:
            raise SimulationInvalid(f"no {self.scenario.mortgage_term.years} year mortgage rate for {when}")
        return rate

    def _take_out_mortgage(self, amount: float, when: MonthYear, rate: float) -> None:
        if self.mortgage is not None:
            raise SimulationError("a mortgage is already open")
        mortgage = take_out_mortgage(
            amount, rate, self.scenario.mortgage_term.years, self.scenario.origination_fee
        )
        if mortgage is None:
            return
        self.mortgage = mortgage
        self._adjust_cash(mortgage.proceeds)
        self.output.verbose(
            f"Take out ${amount:,.0f} mortgage with ${mortgage.amount - mortgage.proceeds:,.0f} origination"
        )
        self.output.verbose(str(mortgage))

    def _check_mortgage_paid(self) -> None:
        if self.mortgage is None or self.mortgage.balance > 0:
            return
        self.output.verbose("Mortgage is paid off!")
        self.mortgage = None

    def _pay_mortgage(self, now: MonthYear) -> None:
        self._check_mortgage_paid()
        if self.mortgage is None:
            return

        mortgage = self.mortgage
        interest = mortgage.monthly_interest()
        payment = min(mortgage.payment, to_cents(mortgage.balance + interest))
        self._pay(payment, now, f"Could not make mortgage payment of ${payment:,.0f} in {now}")
        self.taxes.current.mortgage_interest += interest
        self._rate_total += mortgage.rate
        self._rate_months += 1

        if interest > payment:
            growth = interest - payment
            mortgage.balance = to_cents(mortgage.balance + growth)
            self.output.verbose(
                f"Mortgage payment ${payment:,.0f} with interest of ${interest:,.0f}; "
                f"balance grew by ${growth:,.0f} to ${mortgage.balance:,.0f}"
            )
        else:
            principal = payment - interest
            mortgage.balance = max(0.0, to_cents(mortgage.balance - principal))
            self.output.verbose(
                f"Mortgage payment ${payment:,.0f} with interest of ${interest:,.0f}; "
                f"principal payment of ${principal:,.0f} with balance of ${mortgage.balance:,.0f}"
            )

    def _pay_down_house(self, now: MonthYear) -> None:
        self._check_mortgage_paid()
        if self.mortgage is None:
            return
        principal = to_cents(self.strategy.extra_principal(self.scenario, self.cash, self.mortgage.balance))
        if principal <= 0:
            return
        self._adjust_cash(-principal)
        self.mortgage.balance = to_cents(self.mortgage.balance - principal)
        self.output.verbose(
            f"Additional mortgage principal of ${principal:,.0f}; remaining balance of ${self.mortgage.balance:,.0f}"
        )

    def _pay_off_house(self, now: MonthYear) -> None:
        self._check_mortgage_paid()
        if self.mortgage is None:
            return
        balance = self.mortgage.balance
        self._pay(balance, now, f"Could not find ${balance:,.0f} to pay off loan in {now}")
        self.mortgage = None
        self.output.verbose(f"Paid off mortgage of ${balance:,.0f}")

    def _refinance(self, now: MonthYear) -> None:
        if not self.scenario.allow_refinance or self.mortgage is None:
            return
        quote = refinance_quote(
            self.mortgage,
            self.history.mortgage_rate(now, self.scenario.mortgage_term),
            self.scenario.origination_fee,
            self.scenario.refinance_payback_months,
        )
        if quote is None:
            return

        old = self.mortgage
        amount = old.balance
        if self.strategy.allows_cash_out(self.scenario):
            amount = max(amount, self.home_value)
        self.output.verbose(
            f"Refinancing {old}; saves ${quote.monthly_savings:,.2f} a month for ${quote.cost:,.0f}"
        )
        self.mortgage = None
        self._take_out_mortgage(amount, now, quote.market_rate)
        self._adjust_cash(-old.balance)

    # -- taxes ----------------------------------------------------------

    def _settle_taxes(self, taxes: TaxYear, now: MonthYear) -> None:
        deduction = calc_interest_deduction(taxes, self.scenario)
        if deduction > 0:
            self._adjust_cash(deduction)
            self.output.verbose(f"Claimed a mortgage interest deduction worth ${deduction:,.0f}")
        owed = calc_tax_owed(taxes, self.scenario)
        self.output.verbose(
            f"Taxes on dividends of ${taxes.dividends:,.0f}, capital gains of ${taxes.capital_gains:,.0f}, "
            f"and treasury interest of ${taxes.treasury_interest:,.0f}"
        )
        self._pay(owed, now, f"Could not pay taxes of ${owed:,.0f} in {now}")
        if owed > 0:
            self.output.verbose(f"Paid taxes of ${owed:,.0f}")

    def _pay_taxes(self, now: MonthYear) -> None:
        if now.month == SETTLEMENT_MONTH:
            if self.taxes.previous is not None:
                self._settle_taxes(self.taxes.previous, now)
                self.taxes.carry_losses()
            self.taxes.discard_previous()
        elif now.month == ROLLOVER_MONTH:
            self.taxes.roll_over()

    # -- monthly steps --------------------------------------------------

    def _income_for(self, now: MonthYear) -> float:
        policy = self.scenario.income_policy
        amount = self.scenario.monthly_income
        if policy is IncomePolicy.FIXED:
            return to_cents(amount)
        if policy in (IncomePolicy.FIXED_INFLATION_ADJUSTED, IncomePolicy.FIXED_INFLATION_ADJUSTED_MONTHLY):
            return to_cents(self.history.inflation_adjust(amount, self.baseline, now))

        # Same income for both strategies: the payment on a full-price mortgage
        reference = take_out_mortgage(
            self.home_value,
            self._mortgage_rate(now),
            self.scenario.mortgage_term.years,
            self.scenario.origination_fee,
        )
        payment = reference.payment if reference is not None else 0.0
        return to_cents(payment * MORTGAGE_INCOME_MULTIPLIERS[policy] + MORTGAGE_INCOME_BUFFER)

    def _earn_income(self, now: MonthYear) -> None:
        if self.scenario.income_policy is IncomePolicy.FIXED_INFLATION_ADJUSTED_MONTHLY:
            self.monthly_income = self._income_for(now)
        if self.monthly_income <= 0:
            return
        self._adjust_cash(self.monthly_income)
        self.external_capital = to_cents(self.external_capital + self.monthly_income)
        self.output.verbose(f"Monthly income of ${self.monthly_income:,.0f}")

    def _redeem_bonds(self, now: MonthYear) -> None:
        for sale in self.portfolio.redeem_matured(now):
            self._record_bond_sale(sale)
            self.output.verbose(f"Redeemed ${sale.proceeds:,.0f} bond; ${sale.gain:,.0f} gain/loss")

    def _collect_dividends(self, now: MonthYear) -> None:
        amounts = self.portfolio.dividends(now)
        total = to_cents(sum(amounts))
        if total <= 0:
            return
        self._adjust_cash(total)
        self.taxes.current.dividends += total
        self.output.verbose(
            f"${total:,.0f} dividends on stocks valued at ${self.portfolio.stock_value(now):,.0f}"
        )

    def _invest(self, now: MonthYear) -> None:
        if self.cash <= max(0.0, self.scenario.minimum_cash):
            return
        cash = self.cash
        stock_percentage = max(0.0, min(self.scenario.stock_percentage, 1.0))
        self._buy_stocks(min(to_cents(stock_percentage * cash), self.cash), now)
        self._buy_bonds(min(to_cents((1 - stock_percentage) * cash), self.cash), now)

    def _rebalance(self, now: MonthYear) -> None:
        cadence = self.scenario.rebalance_months
        if cadence is None:
            return
        self.months_until_rebalance -= 1
        if self.months_until_rebalance > 0:
            return
        self.months_until_rebalance = cadence

        plan = self.portfolio.rebalance_plan(now, self.scenario.stock_percentage)
        if plan is None:
            return
        self.output.verbose("Rebalancing")
        if plan.target_bond < plan.bond_value:
            self._sell_bonds(plan.bond_value - plan.target_bond, now)
        if plan.target_stock < plan.stock_value:
            self._sell_stocks(plan.stock_value - plan.target_stock, now)
        if plan.target_bond > plan.bond_value:
            self._buy_bonds(min(plan.target_bond - plan.bond_value, self.cash), now)
        if plan.target_stock > plan.stock_value:
            self._buy_stocks(min(plan.target_stock - plan.stock_value, self.cash), now)

    # -- lifecycle ------------------------------------------------------

    def initialize(self, start: MonthYear) -> None:
        """Buy the house at start and open the mortgage the strategy calls for."""
        if self.state is not SimulationState.UNINITIALIZED:
            raise SimulationError(f"cannot initialize a {self.state.value} simulation")
        self.output.verbose("Starting simulation")

        self.start = start
        home_value = self.scenario.home_value
        cash = self.scenario.starting_cash
        if self.scenario.inflation_adjust:
            home_value = self.history.inflation_adjust(home_value, self.baseline, start)
            cash = self.history.inflation_adjust(cash, self.baseline, start)
        self.home_value = to_cents(home_value)
        self.cash = to_cents(cash)
        self.external_capital = self.cash
        self.months_until_rebalance = self.scenario.rebalance_months or 0
        self.monthly_income = self._income_for(start)

        amount = self.strategy.initial_mortgage_amount(self.scenario, self.cash, self.home_value)
        if amount > 0:
            self._take_out_mortgage(amount, start, self._mortgage_rate(start))
        self._adjust_cash(-self.home_value)

        if self.external_capital <= 0 and self.mortgage is not None:
            if self.monthly_income < self.mortgage.payment:
                raise SimulationInvalid(
                    f"Monthly income of ${self.monthly_income:,.0f} is not enough to cover "
                    f"mortgage payment of ${self.mortgage.payment:,.0f}"
                )
        self.state = SimulationState.INITIALIZED

    def simulate(self, now: MonthYear) -> None:
        """Advance one month. The step order is fixed."""
        if self.state not in (SimulationState.INITIALIZED, SimulationState.RUNNING):
            raise SimulationError(f"cannot simulate a {self.state.value} simulation")
        self.state = SimulationState.RUNNING

        self.output.verbose()
        self.output.verbose(f"***** {now}")
        self._earn_income(now)
        self._redeem_bonds(now)
        self._collect_dividends(now)
        self._pay_mortgage(now)
        self._pay_down_house(now)
        self._check_mortgage_paid()
        self._refinance(now)
        self._pay_taxes(now)
        self._invest(now)
        self._rebalance(now)

        self.months += 1
        if self.is_financially_secure(now):
            self.secure_months += 1
            if self.first_secure is None:
                self.first_secure = now

    def is_financially_secure(self, now: MonthYear) -> bool:
        """No mortgage, or cash plus after-tax investments would pay it off."""
        if self.mortgage is None:
            return True
        available = self.cash + self.portfolio.after_tax_value(
            now, self.scenario.treasury_tax_rate, self.scenario.capital_gains_tax_rate
        )
        return available >= self.mortgage.balance

    def close_books(self, now: MonthYear) -> None:
        """Pay off the house if required, cash in bonds and settle all taxes."""
        if self.state is SimulationState.CLOSED or self.state is SimulationState.UNINITIALIZED:
            raise SimulationError(f"cannot close a {self.state.value} simulation")
        self.output.verbose("Closing books")

        self._check_mortgage_paid()
        if self.scenario.pay_off_at_completion:
            self._pay_off_house(now)

        sale = self.portfolio.liquidate_bonds(now)
        if sale.proceeds > 0:
            self._record_bond_sale(sale)
            self.output.verbose(f"Redeemed ${sale.proceeds:,.0f} of bonds; ${sale.gain:,.0f} gain/loss")

        if self.taxes.previous is not None:
            self.output.verbose("Paying previous year taxes")
            self._settle_taxes(self.taxes.previous, now)
            self.taxes.discard_previous()
        self.output.verbose("Paying current year taxes")
        self._settle_taxes(self.taxes.current, now)
        self.taxes.current = TaxYear()
        self.state = SimulationState.CLOSED

    def net_worth(self, now: MonthYear) -> float:
        balance = self.mortgage.balance if self.mortgage is not None else 0.0
        return to_cents(self.home_value + self.cash - balance + self.portfolio.value(now))

    def _normalize(self, amount: float, now: MonthYear) -> float:
        """Restate end-of-run dollars in baseline dollars when inflation adjusting."""
        if not self.scenario.inflation_adjust:
            return amount
        return to_cents(self.history.inflation_adjust(amount, now, self.baseline))

    def _fill_result(self, result: Result, now: MonthYear) -> None:
        result.net_worth = self._normalize(self.net_worth(now), now)
        result.external_capital = self._normalize(self.external_capital, now)
        result.months = self.months
        result.secure_months = self.secure_months
        result.first_secure = self.first_secure
        if self._rate_months:
            average = self._rate_total / self._rate_months
            result.average_mortgage_rate = average
            if self.scenario.allow_mortgage_interest_deduction:
                result.effective_mortgage_rate = average * (1 - self.scenario.marginal_tax_rate)
            else:
                result.effective_mortgage_rate = average

    def run(self, start: MonthYear) -> Result:
        """Simulate from start for the scenario's years and close the books.

        Invalid and failed runs come back as tagged results; SimulationError
        (and anything unexpected) propagates.
        """
        result = Result(start=start, strategy=self.strategy)
        label = self.strategy.display_name
        self.output.verbose()
        self.output.verbose(f"***** {start} {label} simulation *****")

        now = self.history.clamp(start)
        try:
            self.initialize(now)
            end = self.history.clamp(now.add_years(self.scenario.simulation_years))
            while now < end:
                self.simulate(now)
                self.output.verbose(self.overview(now))
                now = now.add_months(1)
            self.output.verbose(f"***** {now}: simulation ended")
            self.close_books(now)
        except SimulationInvalid as e:
            self.state = SimulationState.CLOSED
            result.outcome = Outcome.INVALID
            result.error = str(e)
            self.output.write(f"=== {label} simulation {start} invalid: {e} ===")
            return result
        except SimulationFailed as e:
            self.state = SimulationState.CLOSED
            self._fill_result(result, e.when)
            result.outcome = Outcome.FAILED
            result.error = str(e)
            result.failed_month = e.when
            result.status = e.snapshot
            self.output.write(f"=== {label} simulation {start} failed {e.when}: {e} ===")
            self.output.write(e.snapshot)
            return result

        self._fill_result(result, now)
        result.outcome = Outcome.SUCCESS
        result.status = self.status(now)
        self.output.verbose(result.status)
        self.output.write(
            f"{start} {label} simulation succeeded with net worth of ${result.net_worth:,.0f} "
            f"including a gain of ${result.net_gain:,.0f} on ${result.external_capital:,.0f} committed"
        )
        return result

    # -- diagnostics ----------------------------------------------------

    def overview(self, now: MonthYear) -> str:
        net_worth = self.net_worth(now)
        lines = [
            f"${net_worth:,.0f} net worth and ${net_worth - self.external_capital:,.0f} gain/loss over contributions",
            f"${self.cash:,.0f} cash",
        ]
        if self.mortgage is not None:
            lines.append(str(self.mortgage))
        if self.portfolio.bonds:
            lines.append(f"{len(self.portfolio.bonds):,} bonds with value ${self.portfolio.bond_value(now):,.0f}")
        if self.portfolio.stocks:
            lines.append(f"{len(self.portfolio.stocks):,} stocks with value ${self.portfolio.stock_value(now):,.0f}")
        return "\n".join(lines)

    def status(self, now: MonthYear) -> str:
        """Full snapshot of the financial state, lot by lot."""
        lines = [
            f"Net worth is ${self.net_worth(now):,.0f}",
            f"External capital of ${self.external_capital:,.0f} added",
            f"Home value is ${self.home_value:,.0f}",
        ]
        if self.cash > 0:
            lines.append(f"Cash on hand is ${self.cash:,.0f}")
        if self.mortgage is not None:
            lines.append(str(self.mortgage))
        if not self.taxes.current.is_empty():
            lines += ["Current Year Taxes", str(self.taxes.current)]
        if self.taxes.previous is not None and not self.taxes.previous.is_empty():
            lines += ["Previous Year Taxes", str(self.taxes.previous)]

        if self.portfolio.bonds:
            lines.append(f"{len(self.portfolio.bonds):,} bonds with value ${self.portfolio.bond_value(now):,.0f}")
            for bond in self.portfolio.bonds:
                face = self.portfolio.bond_face_value(bond, now)
                lines.append(f"\t{bond}; ${face:,.0f} face value; ${face - bond.purchase:,.0f} gain/loss")
        if self.portfolio.stocks:
            price = self.history.sp500_price(now)
            lines.append(f"{len(self.portfolio.stocks):,} stocks with value ${self.portfolio.stock_value(now):,.0f}")
            for lot in self.portfolio.stocks:
                value = lot.value(price)
                lines.append(f"\t{lot}; ${value:,.0f} value; ${value - lot.cost_basis:,.0f} gain/loss")
        return "\n".join(lines)
