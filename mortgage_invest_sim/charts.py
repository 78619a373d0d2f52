"""Chart generation for sweep results."""

from datetime import date
from pathlib import Path

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
import matplotlib.ticker as ticker

from mortgage_invest_sim.month_year import MonthYear
from mortgage_invest_sim.simulation import Outcome
from mortgage_invest_sim.simulator import Results
from mortgage_invest_sim.strategies import Strategy

# Strategy color mapping
STRATEGY_COLORS = {
    Strategy.INVEST: "#1f77b4",          # blue
    Strategy.AVOID_MORTGAGE: "#ff7f0e",  # orange
}

DEFAULT_COLOR = "#7f7f7f"
FAILED_COLOR = "#d62728"


def _to_date(when: MonthYear) -> date:
    return date(when.year, when.month, 1)


def _format_dollar_axis(ax: plt.Axes):
    """$ labels in thousands on the Y axis."""
    ax.yaxis.set_major_formatter(
        ticker.FuncFormatter(lambda x, _: f"${x / 1000:,.0f}k" if x != 0 else "$0")
    )


def _save(fig, output_path: Path, stem: str, name: str) -> Path:
    output_path.mkdir(parents=True, exist_ok=True)
    suffix = f"-{name}" if name else ""
    filepath = output_path / f"{stem}{suffix}.png"
    fig.tight_layout()
    fig.savefig(filepath, dpi=150)
    plt.close(fig)
    return filepath


def plot_net_worth(results: list[Results], output_path: Path, name: str = "") -> Path:
    """Final net worth by start month, one line per strategy; failed runs marked at zero.

    Returns:
        Path to the generated PNG file.
    """
    fig, ax = plt.subplots(figsize=(14, 8))

    for r in results:
        color = STRATEGY_COLORS.get(r.strategy, DEFAULT_COLOR)
        runs = sorted(r.items.values(), key=lambda x: x.start)
        ok = [x for x in runs if x.outcome is Outcome.SUCCESS]
        failed = [x for x in runs if x.outcome is Outcome.FAILED]
        ax.plot(
            [_to_date(x.start) for x in ok], [x.net_worth for x in ok],
            label=r.strategy.display_name, color=color, linewidth=1.5,
        )
        if failed:
            ax.scatter(
                [_to_date(x.start) for x in failed], [0] * len(failed),
                color=FAILED_COLOR, marker="x", s=20, zorder=5,
                label=f"{r.strategy.display_name} failed",
            )

    ax.set_xlabel("Start month")
    ax.set_ylabel("Final net worth")
    ax.set_title("Final net worth by start month")
    ax.legend(loc="upper left")
    ax.grid(True, alpha=0.3)
    _format_dollar_axis(ax)
    return _save(fig, output_path, "net-worth", name)


def plot_security(results: list[Results], output_path: Path, name: str = "") -> Path:
    """Share of months financially secure, by start month (successful runs only)."""
    fig, ax = plt.subplots(figsize=(14, 6))

    for r in results:
        color = STRATEGY_COLORS.get(r.strategy, DEFAULT_COLOR)
        runs = sorted((x for x in r.items.values() if x.is_success and x.months), key=lambda x: x.start)
        ax.plot(
            [_to_date(x.start) for x in runs],
            [x.secure_months / x.months * 100 for x in runs],
            label=r.strategy.display_name, color=color, linewidth=1.5,
        )

    ax.set_xlabel("Start month")
    ax.set_ylabel("Months financially secure (%)")
    ax.set_ylim(0, 105)
    ax.yaxis.set_major_formatter(ticker.FuncFormatter(lambda x, _: f"{x:.0f}%"))
    ax.set_title("Financial security by start month")
    ax.legend(loc="lower left")
    ax.grid(True, alpha=0.3)
    return _save(fig, output_path, "security", name)
