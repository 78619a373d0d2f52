"""Amortizing mortgage and refinance decisioning."""

from dataclasses import dataclass
from typing import NamedTuple

from mortgage_invest_sim.params import calc_payment, to_cents


@dataclass
class Mortgage:
    """A level-payment loan. The origination fee is financed into amount."""

    amount: float
    balance: float
    years: int
    rate: float
    payment: float
    proceeds: float  # cash disbursed to the owner

    def monthly_interest(self) -> float:
        return to_cents(self.balance * self.rate / 12)

    def __str__(self) -> str:
        return (
            f"{self.years} year mortgage of ${self.amount:,.0f} @ {self.rate:.2%}; "
            f"${self.payment:,.2f} payment; ${self.balance:,.0f} balance"
        )


def take_out_mortgage(amount: float, rate: float, years: int, origination_fee: float) -> Mortgage | None:
    """Originate a loan for amount; None when there is nothing to borrow."""
    if amount <= 0:
        return None
    origination = amount * max(0.0, origination_fee)
    principal = to_cents(amount + origination)
    return Mortgage(
        amount=principal,
        balance=principal,
        years=years,
        rate=rate,
        payment=calc_payment(principal, rate, years),
        proceeds=to_cents(amount),
    )


class RefinanceQuote(NamedTuple):
    market_rate: float
    cost: float
    current_payment: float
    new_payment: float

    @property
    def monthly_savings(self) -> float:
        return self.current_payment - self.new_payment


def refinance_quote(
    mortgage: Mortgage,
    market_rate: float | None,
    origination_fee: float,
    payback_months: int,
) -> RefinanceQuote | None:
    """Quote a refinance at market_rate; None unless the fee is recouped within payback_months."""
    if market_rate is None or market_rate >= mortgage.rate:
        return None
    months = max(1, payback_months)
    cost = to_cents(mortgage.balance * max(0.0, origination_fee))
    new_payment = calc_payment(mortgage.balance + cost, market_rate, mortgage.years)
    if new_payment >= mortgage.payment:
        return None
    quote = RefinanceQuote(market_rate, cost, mortgage.payment, new_payment)
    if quote.monthly_savings * months <= cost:
        return None
    return quote
