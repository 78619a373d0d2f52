"""CLI entry point for chart generation."""

import sys
from pathlib import Path

from mortgage_invest_sim.charts import plot_net_worth, plot_security
from mortgage_invest_sim.cli import load_inputs, run_sweep
from mortgage_invest_sim.config import parse_args
from mortgage_invest_sim.output import NullOutput


def _add_args(parser):
    parser.add_argument(
        "--output", type=Path, default=Path("reports/charts"),
        help="output directory (default: reports/charts)",
    )
    parser.add_argument(
        "--name", type=str, default="",
        help="output file suffix (e.g. 30y → net-worth-30y.png)",
    )


def main():
    r, args = parse_args("Mortgage vs investment simulator charts", _add_args)
    scenario, history = load_inputs(r)

    print(f"Simulating {scenario.simulation_years} year runs...", file=sys.stderr)
    _, summary = run_sweep(scenario, history, NullOutput())
    results = [summary.investing, summary.avoiding]
    if not any(res.successes for res in results):
        print("  No successful simulations to chart", file=sys.stderr)
        return

    path = plot_net_worth(results, args.output, name=args.name)
    print(f"  → {path}", file=sys.stderr)
    path = plot_security(results, args.output, name=args.name)
    print(f"  → {path}", file=sys.stderr)
    print("Done", file=sys.stderr)


if __name__ == "__main__":
    main()
