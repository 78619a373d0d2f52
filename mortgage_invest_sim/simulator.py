"""Sweep of simulations across start months for both strategies."""

import sys
from dataclasses import dataclass, field

from mortgage_invest_sim.history import HistoricalData
from mortgage_invest_sim.month_year import MonthYear, month_range
from mortgage_invest_sim.output import NullOutput, Output
from mortgage_invest_sim.params import Scenario, clean_scenario, to_cents, validate_scenario
from mortgage_invest_sim.simulation import Outcome, Result, Simulation
from mortgage_invest_sim.strategies import Strategy

STRATEGIES = (Strategy.INVEST, Strategy.AVOID_MORTGAGE)


def _average(values: list[float]) -> float:
    return to_cents(sum(values) / len(values)) if values else 0.0


def _median(values: list[float]) -> float:
    """Middle value; mean of the two middle values for an even count."""
    if not values:
        return 0.0
    ordered = sorted(values)
    n = len(ordered)
    mid = n // 2
    if n % 2 == 1:
        return to_cents(ordered[mid])
    return to_cents((ordered[mid - 1] + ordered[mid]) / 2)


@dataclass
class Results:
    """Every run of one strategy, keyed by start month."""

    strategy: Strategy
    start: MonthYear | None = None
    end: MonthYear | None = None
    items: dict[MonthYear, Result] = field(default_factory=dict)

    def add(self, result: Result) -> None:
        self.items[result.start] = result
        if self.start is None or result.start < self.start:
            self.start = result.start
        if self.end is None or result.start > self.end:
            self.end = result.start

    def __getitem__(self, when: MonthYear) -> Result | None:
        return self.items.get(when)

    def __len__(self) -> int:
        return len(self.items)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.items.values() if r.outcome is outcome)

    @property
    def successes(self) -> list[Result]:
        return [r for r in self.items.values() if r.is_success]

    @property
    def success_count(self) -> int:
        return self._count(Outcome.SUCCESS)

    @property
    def failed_count(self) -> int:
        return self._count(Outcome.FAILED)

    @property
    def invalid_count(self) -> int:
        return self._count(Outcome.INVALID)

    @property
    def error_count(self) -> int:
        return self._count(Outcome.ERROR)

    @property
    def total(self) -> int:
        """Runs that got past inception (success + failed)."""
        return self.success_count + self.failed_count

    @property
    def failure_percentage(self) -> float:
        return self.failed_count / self.total if self.total else 0.0

    @property
    def net_worths(self) -> list[float]:
        return [r.net_worth for r in self.successes]

    @property
    def net_gains(self) -> list[float]:
        return [r.net_gain for r in self.successes]

    @property
    def average_net_worth(self) -> float:
        return _average(self.net_worths)

    @property
    def median_net_worth(self) -> float:
        return _median(self.net_worths)

    @property
    def average_net_gain(self) -> float:
        return _average(self.net_gains)

    @property
    def median_net_gain(self) -> float:
        return _median(self.net_gains)

    @property
    def net_loss_count(self) -> int:
        return sum(1 for gain in self.net_gains if gain < 0)

    @property
    def net_loss_total(self) -> float:
        return to_cents(sum(-gain for gain in self.net_gains if gain < 0))

    def best(self) -> Result | None:
        """Successful run with the largest net gain (earliest start on ties)."""
        best = None
        for result in self.successes:
            if best is None or result.net_gain > best.net_gain:
                best = result
        return best

    def worst(self) -> Result | None:
        worst = None
        for result in self.successes:
            if worst is None or result.net_gain < worst.net_gain:
                worst = result
        return worst

    @property
    def security_percentage(self) -> float:
        """Share of simulated months, over successful runs, that were financially secure."""
        months = sum(r.months for r in self.successes)
        if months == 0:
            return 0.0
        return sum(r.secure_months for r in self.successes) / months

    @property
    def errors(self) -> list[str]:
        return [f"{r.start}: {r.error}" for r in self.items.values() if r.error]


def compare_results(invest: Result | None, avoid: Result | None) -> Strategy | None:
    """Strategy that did better for one start month, or None for a tie.

    A successful run beats one that failed or was invalid; between two
    successful runs the higher net worth wins.
    """
    invest_ok = invest is not None and invest.is_success
    avoid_ok = avoid is not None and avoid.is_success
    if invest_ok and not avoid_ok:
        return Strategy.INVEST
    if avoid_ok and not invest_ok:
        return Strategy.AVOID_MORTGAGE
    if not invest_ok:
        return None
    if to_cents(invest.net_worth) > to_cents(avoid.net_worth):
        return Strategy.INVEST
    if to_cents(invest.net_worth) < to_cents(avoid.net_worth):
        return Strategy.AVOID_MORTGAGE
    return None


@dataclass
class MonthSummary:
    """Both strategies for one start month."""

    start: MonthYear
    invest: Result | None
    avoid_mortgage: Result | None

    @property
    def winner(self) -> Strategy | None:
        return compare_results(self.invest, self.avoid_mortgage)

    @property
    def difference(self) -> float:
        """Investing net worth minus avoiding-mortgage net worth (successful pairs only)."""
        if self.invest is None or self.avoid_mortgage is None:
            return 0.0
        if not (self.invest.is_success and self.avoid_mortgage.is_success):
            return 0.0
        return to_cents(self.invest.net_worth - self.avoid_mortgage.net_worth)


@dataclass
class Summary:
    """Cross-strategy comparison of a sweep."""

    investing: Results
    avoiding: Results
    months: dict[MonthYear, MonthSummary] = field(default_factory=dict)

    def __post_init__(self):
        starts = sorted(set(self.investing.items) | set(self.avoiding.items))
        for start in starts:
            self.months[start] = MonthSummary(start, self.investing[start], self.avoiding[start])

    def __getitem__(self, when: MonthYear) -> MonthSummary | None:
        return self.months.get(when)

    def _wins(self, strategy: Strategy | None) -> int:
        return sum(1 for m in self.months.values() if m.winner is strategy)

    @property
    def investing_wins(self) -> int:
        return self._wins(Strategy.INVEST)

    @property
    def avoiding_wins(self) -> int:
        return self._wins(Strategy.AVOID_MORTGAGE)

    @property
    def ties(self) -> int:
        return self._wins(None)

    @property
    def average_improvement(self) -> float:
        """Average net gain of investing over avoiding the mortgage."""
        return to_cents(self.investing.average_net_gain - self.avoiding.average_net_gain)

    @property
    def relative_improvement(self) -> float | None:
        if self.avoiding.average_net_gain <= 0:
            return None
        return self.average_improvement / self.avoiding.average_net_gain

    @property
    def better_strategy(self) -> Strategy | None:
        """Higher average net worth wins; equal averages favor neither."""
        diff = self.investing.average_net_worth - self.avoiding.average_net_worth
        if diff > 0:
            return Strategy.INVEST
        if diff < 0:
            return Strategy.AVOID_MORTGAGE
        return None


class Simulator:
    """Runs a Simulation per (start month, strategy) and collects the results."""

    def __init__(self, history: HistoricalData, output: Output | None = None, quiet: bool = False):
        self.history = history
        self.output = output or NullOutput()
        self.quiet = quiet
        self.results: dict[Strategy, Results] = {}

    def prepare(self, scenario: Scenario) -> Scenario:
        """Validate, then clamp the scenario to the loaded history. Raises ValueError."""
        errors = validate_scenario(scenario)
        if errors:
            raise ValueError("invalid scenario: " + "; ".join(errors))
        return clean_scenario(scenario, self.history.start, self.history.end)

    def start_months(self, scenario: Scenario) -> list[MonthYear]:
        if scenario.date is not None:
            return [scenario.date]
        return list(month_range(scenario.start, scenario.end))

    def run(self, scenario: Scenario, strategies: tuple[Strategy, ...] = STRATEGIES) -> dict[Strategy, Results]:
        """Sweep every start month. A modeling error aborts the sweep after it is recorded."""
        scenario = self.prepare(scenario)
        months = self.start_months(scenario)
        self.results = {strategy: Results(strategy) for strategy in strategies}

        n = len(months)
        for i, now in enumerate(months):
            for strategy in strategies:
                self.results[strategy].add(self._run_one(scenario, strategy, now))
            if not self.quiet:
                print(f"\r  Simulations: {i + 1}/{n}", end="", file=sys.stderr)
        if not self.quiet and n:
            print(file=sys.stderr)
        return self.results

    def _run_one(self, scenario: Scenario, strategy: Strategy, start: MonthYear) -> Result:
        simulation = Simulation(scenario, strategy, self.history, self.output)
        try:
            return simulation.run(start)
        except Exception as e:
            error = f"{type(e).__name__}: {e}"
            self.results[strategy].add(Result(start, strategy, Outcome.ERROR, error=error))
            self.output.write(f"=== {strategy.display_name} simulation {start} error: {error} ===")
            raise

    def summarize(self) -> Summary:
        return Summary(
            self.results.get(Strategy.INVEST, Results(Strategy.INVEST)),
            self.results.get(Strategy.AVOID_MORTGAGE, Results(Strategy.AVOID_MORTGAGE)),
        )
