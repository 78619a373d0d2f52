"""CLI entry point: sweep both strategies and print the report."""

import sys
from pathlib import Path

from mortgage_invest_sim.config import build_scenario, parse_args
from mortgage_invest_sim.history import HistoricalData, load_history
from mortgage_invest_sim.output import ConsoleOutput, FileOutput, Output
from mortgage_invest_sim.params import Scenario
from mortgage_invest_sim.report import render_report, render_scenario
from mortgage_invest_sim.simulator import STRATEGIES, Simulator, Summary
from mortgage_invest_sim.strategies import Strategy, parse_strategy


def _add_args(parser):
    parser.add_argument("--verbose", action="store_true", help="print the month-by-month trace")
    parser.add_argument("--trace", type=Path, default=None, help="write the month-by-month trace to this file")
    parser.add_argument("--report", type=Path, default=None, help="also write the Markdown report to this file")
    parser.add_argument("--quiet", action="store_true", help="no progress counter")
    parser.add_argument(
        "--strategy", type=parse_strategy, default=None,
        help="simulate only this strategy: invest or avoid-mortgage (default: both)",
    )


def load_inputs(r: dict) -> tuple[Scenario, HistoricalData]:
    """Scenario and history from a resolved config; exits with a message on bad input."""
    try:
        scenario = build_scenario(r)
    except ValueError as e:
        print(f"Invalid scenario: {e}", file=sys.stderr)
        raise SystemExit(1)
    path = Path(r["data"])
    if not path.exists():
        print(f"Historical data not found: {path}", file=sys.stderr)
        raise SystemExit(1)
    try:
        history = load_history(path)
    except ValueError as e:
        print(f"Failed to read historical data: {e}", file=sys.stderr)
        raise SystemExit(1)
    return scenario, history


def run_sweep(
    scenario: Scenario,
    history: HistoricalData,
    output: Output,
    quiet: bool = False,
    strategies: tuple[Strategy, ...] = STRATEGIES,
) -> tuple[Simulator, Summary]:
    simulator = Simulator(history, output, quiet=quiet)
    try:
        simulator.run(scenario, strategies)
    except ValueError as e:
        print(f"{e}", file=sys.stderr)
        raise SystemExit(1)
    finally:
        output.flush()
    return simulator, simulator.summarize()


def main():
    """Run every start month for both strategies."""
    r, args = parse_args("Mortgage vs investment simulator", _add_args)
    scenario, history = load_inputs(r)

    output = FileOutput(args.trace) if args.trace else ConsoleOutput(verbose=args.verbose)
    output.write("Mortgage vs Investment Simulator")
    output.write()
    output.write("Current Scenario:")
    output.write(render_scenario(scenario))

    strategies = (args.strategy,) if args.strategy else STRATEGIES
    _, summary = run_sweep(scenario, history, output, quiet=args.quiet, strategies=strategies)

    md = render_report(scenario, summary)
    print()
    print(md)
    if args.report:
        args.report.parent.mkdir(parents=True, exist_ok=True)
        args.report.write_text(md, encoding="utf-8")
        print(f"Report written to {args.report}", file=sys.stderr)


if __name__ == "__main__":
    main()
