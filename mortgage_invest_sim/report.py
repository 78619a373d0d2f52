"""Plain-text / Markdown rendering of a scenario and its sweep results."""

from mortgage_invest_sim.params import Scenario
from mortgage_invest_sim.simulator import Results, Summary
from mortgage_invest_sim.strategies import Strategy

# ---------------------------------------------------------------------------
# Format helpers
# ---------------------------------------------------------------------------

def fmt_dollars(v: float) -> str:
    """-1234.5 → "-$1,235" """
    sign = "-" if v < 0 else ""
    return f"{sign}${abs(v):,.0f}"


def fmt_pct(v: float, digits: int = 2) -> str:
    return f"{v * 100:.{digits}f}%"


def render_scenario(scenario: Scenario) -> str:
    lines = [
        f"Starts {scenario.start} and ends {scenario.end}",
        f"Each simulation is {scenario.simulation_years} years",
        f"Home value is {fmt_dollars(scenario.home_value)}",
    ]
    if scenario.date is not None:
        lines.append(f"Only the simulation starting {scenario.date}")
    if scenario.monthly_income > 0:
        lines.append(f"Monthly income is {fmt_dollars(scenario.monthly_income)} ({scenario.income_policy.value})")
    if scenario.starting_cash > 0:
        lines.append(f"Starting cash is {fmt_dollars(scenario.starting_cash)}")
    if scenario.extra_payment > 0:
        lines.append(f"Extra principal of {fmt_dollars(scenario.extra_payment)} a month when investing")
    lines.append(f"{scenario.mortgage_term.years} year mortgage")
    if scenario.mortgage_rate is not None:
        lines.append(f"Mortgage interest rate is {fmt_pct(scenario.mortgage_rate)}")
    else:
        lines.append("Mortgage interest rate is monthly average.")
    lines.append(f"{fmt_pct(scenario.origination_fee)} origination fee on loan")
    if scenario.stock_percentage > 0:
        lines.append(f"Invest {fmt_pct(scenario.stock_percentage, 0)} in stocks")
    if scenario.pay_off_at_completion:
        lines.append("Must pay off house at end of simulation")
    if scenario.allow_refinance:
        lines.append(f"Allow refinance if costs recouped in {scenario.refinance_payback_months} months")
        if scenario.cash_out_refinance:
            lines.append("Cash out home equity when refinancing while investing")
    lines.append(f"{fmt_dollars(scenario.minimum_cash)} minimum cash to invest")
    lines.append(f"{fmt_dollars(scenario.minimum_stock)} minimum stock to invest")
    lines.append(f"{fmt_dollars(scenario.minimum_bond)} minimum bond to invest")
    if scenario.rebalance_months is not None:
        lines.append(f"Should rebalance every {scenario.rebalance_months} months")
    if scenario.allow_mortgage_interest_deduction:
        lines.append(
            f"Allow mortgage interest deduction with a {fmt_pct(scenario.marginal_tax_rate)} marginal tax rate"
        )
    lines.append(f"{fmt_pct(scenario.dividend_tax_rate)} dividend tax rate")
    lines.append(f"{fmt_pct(scenario.capital_gains_tax_rate)} capital gains tax rate")
    lines.append(f"{fmt_pct(scenario.treasury_tax_rate)} treasury tax rate")
    if scenario.inflation_adjust:
        lines.append("Figures are inflation adjusted")
    return "\n".join(lines)


def render_results(results: Results) -> str:
    lines = []
    if results.start is not None:
        lines.append(f"Simulation from {results.start} to {results.end}")
    lines.append(results.strategy.display_name)
    total = results.total
    if total:
        lines.append(
            f"{results.success_count:,} successful and {results.failed_count:,} failures of {total:,} "
            f"({fmt_pct(results.success_count / total)})"
        )
    else:
        lines.append("No simulation got past the purchase")

    if results.successes:
        lines.append(
            f"Final net worth {fmt_dollars(results.average_net_worth)} average; "
            f"{fmt_dollars(results.median_net_worth)} median"
        )
        gains = results.net_gains
        lines.append(
            f"Net worth *gain* {fmt_dollars(results.average_net_gain)} average; "
            f"{fmt_dollars(results.median_net_gain)} median; {fmt_dollars(min(gains))} minimum; "
            f"{fmt_dollars(max(gains))} maximum"
        )
        if results.net_loss_count:
            lines.append(
                f"{results.net_loss_count:,} net worth losses in {total:,} simulations "
                f"({fmt_pct(results.net_loss_count / total)}); "
                f"{fmt_dollars(results.net_loss_total / results.net_loss_count)} average loss"
            )
        worst = results.worst()
        best = results.best()
        lines.append(f"Worst gain/loss of {fmt_dollars(worst.net_gain)} net worth in simulation starting {worst.start}")
        lines.append(f"Best gain/loss of {fmt_dollars(best.net_gain)} net worth in simulation starting {best.start}")
        lines.append(f"Financially secure {fmt_pct(results.security_percentage)} of simulated months")

    if results.invalid_count:
        lines.append(
            f"{results.invalid_count} scenarios were invalid - typically this means the monthly income "
            "could not cover the required loan"
        )
    for error in results.errors:
        lines.append(error)
    return "\n".join(lines)


def _strategy_bullets(label: str, results: Results) -> list[str]:
    lines = []
    if results.total and results.net_loss_count:
        lines.append(
            f"* {label} had {results.net_loss_count:,} of {results.total:,} simulations "
            f"({fmt_pct(results.net_loss_count / results.total)}) resulting in a loss in net worth."
        )
    worst = results.worst()
    if worst is not None:
        lines.append(
            f"* {label} had a worst gain/loss of {fmt_dollars(worst.net_gain)} net worth "
            f"in simulation starting {worst.start}."
        )
    best = results.best()
    if best is not None:
        lines.append(
            f"* {label} had a best gain/loss of {fmt_dollars(best.net_gain)} net worth "
            f"in simulation starting {best.start}."
        )
    return lines


def render_summary(summary: Summary) -> str:
    investing = summary.investing
    lines = [
        f"* Investing had a {fmt_dollars(summary.average_improvement)} average improvement "
        "in net worth over avoiding a mortgage."
    ]
    relative = summary.relative_improvement
    if relative is not None:
        lines.append(f"* That is a {fmt_pct(relative)} average improvement over avoiding a mortgage.")
    lines.append(f"* Investing failed {fmt_pct(investing.failure_percentage)} of the time.")
    lines.append(
        f"* Investing did better in {summary.investing_wins:,} start months, avoiding a mortgage in "
        f"{summary.avoiding_wins:,}, with {summary.ties:,} ties."
    )
    better = summary.better_strategy
    if better is Strategy.INVEST:
        lines.append("* *Should invest money*")
    elif better is Strategy.AVOID_MORTGAGE:
        lines.append("* *Should avoid having a mortgage*")
    lines += _strategy_bullets("Investing", investing)
    lines += _strategy_bullets("Avoiding mortgage", summary.avoiding)
    return "\n".join(lines)


def render_report(scenario: Scenario, summary: Summary) -> str:
    """Markdown report: scenario, summary, then each strategy."""
    sections = [
        "# Simulation",
        render_scenario(scenario),
        "# Summary",
        render_summary(summary),
        "# Investing",
        render_results(summary.investing),
        "# Avoiding Mortgage",
        render_results(summary.avoiding),
    ]
    return "\n\n".join(sections) + "\n"
