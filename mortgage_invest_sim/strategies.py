"""The two competing ways to handle a house purchase."""

from enum import Enum

from mortgage_invest_sim.params import Scenario


class Strategy(Enum):
    """Invest: mortgage the whole house and invest the cash.
    AvoidMortgage: buy with cash where possible and pay the loan down with every spare dollar.
    """

    INVEST = "invest"
    AVOID_MORTGAGE = "avoid-mortgage"

    @property
    def display_name(self) -> str:
        return STRATEGY_NAMES[self]

    def initial_mortgage_amount(self, scenario: Scenario, cash: float, home_value: float) -> float:
        """Amount to borrow when the house is bought."""
        if self is Strategy.INVEST:
            return home_value
        if cash < home_value:
            return home_value - cash
        return 0.0

    def extra_principal(self, scenario: Scenario, cash: float, balance: float) -> float:
        """Extra principal to pay this month, capped by the balance and by cash on hand."""
        if balance <= 0 or cash <= 0:
            return 0.0
        if self is Strategy.AVOID_MORTGAGE:
            return min(cash, balance)
        return min(scenario.extra_payment, balance, cash)

    def allows_cash_out(self, scenario: Scenario) -> bool:
        return self is Strategy.INVEST and scenario.cash_out_refinance


STRATEGY_NAMES = {
    Strategy.INVEST: "Investing",
    Strategy.AVOID_MORTGAGE: "Avoiding-Mortgage",
}


def parse_strategy(name: str) -> Strategy:
    """Accept the enum value or display name, case-insensitively."""
    key = name.strip().lower()
    for strategy in Strategy:
        if key in (strategy.value, strategy.display_name.lower()):
            return strategy
    choices = ", ".join(s.value for s in Strategy)
    raise ValueError(f"unknown strategy {name!r} (choose from {choices})")
