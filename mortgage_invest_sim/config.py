"""TOML config loader with CLI > config > default resolution."""

import argparse
import datetime
import sys
import tomllib
from pathlib import Path

from mortgage_invest_sim.month_year import MAX_MONTH_YEAR, MIN_MONTH_YEAR, parse_month_year
from mortgage_invest_sim.params import IncomePolicy, MortgageTerm, Scenario

DEFAULT_CONFIG_PATH = Path("config.toml")

DEFAULTS = {
    "data": "data/history.csv",
    "start": MIN_MONTH_YEAR.iso(),
    "end": MAX_MONTH_YEAR.iso(),
    "date": "",
    "years": 10,
    "home_value": 200000.0,
    "starting_cash": 200000.0,
    "monthly_income": 1500.0,
    "income_policy": IncomePolicy.FIXED.value,
    "extra_payment": 0.0,
    "mortgage_term": 30,
    "mortgage_rate": 0.0,  # 0 = historical average at the start month
    "origination_fee": 0.0125,
    "pay_off": True,
    "refinance": True,
    "refinance_payback_months": 60,
    "cash_out_refinance": False,
    "stock_percentage": 0.80,
    "rebalance_months": 12,  # 0 = never rebalance
    "minimum_cash": 1000.0,
    "minimum_bond": 100.0,
    "minimum_stock": 500.0,
    "marginal_tax_rate": 0.38,
    "interest_deduction": True,
    "dividend_tax_rate": 0.15,
    "capital_gains_tax_rate": 0.15,
    "treasury_tax_rate": 0.32,
    "inflation_adjust": False,
}

MONTH_KEYS = ("start", "end", "date")


def _normalize_month(value) -> str:
    """TOML date / "YYYY-MM" / False → "YYYY-MM" or ""."""
    if value is False or value is None:
        return ""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return f"{value.year:04d}-{value.month:02d}"
    return str(value)


def load_config(path: Path | None = None) -> dict:
    """Load TOML config file. Returns empty dict if file doesn't exist."""
    if path is None:
        path = DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        with open(path, "rb") as f:
            raw = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        print(f"Failed to read config file: {path}: {e}", file=sys.stderr)
        raise SystemExit(1)
    for key in MONTH_KEYS:
        if key in raw:
            raw[key] = _normalize_month(raw[key])
    # mortgage_rate = false / rebalance_months = false → disabled
    if raw.get("mortgage_rate") is False:
        raw["mortgage_rate"] = 0.0
    if raw.get("rebalance_months") is False:
        raw["rebalance_months"] = 0
    return raw


def create_parser(description: str) -> argparse.ArgumentParser:
    """Create argparse parser with shared simulation flags."""
    d = DEFAULTS
    toggle = argparse.BooleanOptionalAction
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", type=Path, default=None, help="config file path (default: config.toml)")
    parser.add_argument("--data", type=str, default=None, help=f"historical market data CSV (default: {d['data']})")
    parser.add_argument("--start", type=str, default=None, help=f"first start month YYYY-MM (default: {d['start']})")
    parser.add_argument("--end", type=str, default=None, help=f"last start month YYYY-MM (default: {d['end']})")
    parser.add_argument("--date", type=str, default=None, help="simulate a single start month YYYY-MM")
    parser.add_argument("--years", type=int, default=None, help=f"years per simulation (default: {d['years']})")
    parser.add_argument("--home-value", type=float, default=None, help=f"home price (default: {d['home_value']:,.0f})")
    parser.add_argument("--starting-cash", type=float, default=None, help=f"cash on hand at purchase (default: {d['starting_cash']:,.0f})")
    parser.add_argument("--monthly-income", type=float, default=None, help=f"income available each month (default: {d['monthly_income']:,.0f})")
    parser.add_argument(
        "--income-policy", type=str, default=None, choices=[p.value for p in IncomePolicy],
        help=f"how monthly income is derived (default: {d['income_policy']})",
    )
    parser.add_argument("--extra-payment", type=float, default=None, help="extra principal per month when investing (default: 0)")
    parser.add_argument("--mortgage-term", type=int, default=None, choices=[t.years for t in MortgageTerm], help=f"mortgage term in years (default: {d['mortgage_term']})")
    parser.add_argument("--mortgage-rate", type=float, default=None, help="fixed mortgage rate, e.g. 0.0768 (default: historical average)")
    parser.add_argument("--origination-fee", type=float, default=None, help=f"origination fee rate (default: {d['origination_fee']})")
    parser.add_argument("--pay-off", action=toggle, default=None, help="pay off the mortgage when the simulation ends (default: on)")
    parser.add_argument("--refinance", action=toggle, default=None, help="refinance when rates drop (default: on)")
    parser.add_argument("--refinance-payback-months", type=int, default=None, help=f"months of savings that must cover refinance costs (default: {d['refinance_payback_months']})")
    parser.add_argument("--cash-out-refinance", action=toggle, default=None, help="borrow up to the home value when refinancing while investing (default: off)")
    parser.add_argument("--stock-percentage", type=float, default=None, help=f"share of investments in stocks (default: {d['stock_percentage']})")
    parser.add_argument("--rebalance-months", type=int, default=None, help=f"months between rebalances, 0 = never (default: {d['rebalance_months']})")
    parser.add_argument("--minimum-cash", type=float, default=None, help=f"cash kept before investing (default: {d['minimum_cash']:,.0f})")
    parser.add_argument("--minimum-bond", type=float, default=None, help=f"smallest bond purchase (default: {d['minimum_bond']:,.0f})")
    parser.add_argument("--minimum-stock", type=float, default=None, help=f"smallest stock purchase (default: {d['minimum_stock']:,.0f})")
    parser.add_argument("--marginal-tax-rate", type=float, default=None, help=f"marginal income tax rate (default: {d['marginal_tax_rate']})")
    parser.add_argument("--interest-deduction", action=toggle, default=None, help="deduct mortgage interest (default: on)")
    parser.add_argument("--dividend-tax-rate", type=float, default=None, help=f"dividend tax rate (default: {d['dividend_tax_rate']})")
    parser.add_argument("--capital-gains-tax-rate", type=float, default=None, help=f"capital gains tax rate (default: {d['capital_gains_tax_rate']})")
    parser.add_argument("--treasury-tax-rate", type=float, default=None, help=f"treasury interest tax rate (default: {d['treasury_tax_rate']})")
    parser.add_argument("--inflation-adjust", action=toggle, default=None, help=f"express money in {MAX_MONTH_YEAR} dollars (default: off)")
    return parser


def resolve(args: argparse.Namespace, config: dict) -> dict:
    """Resolve values with priority: CLI flag > config.toml > hardcoded default."""
    resolved = {}
    for key, default in DEFAULTS.items():
        cli_val = getattr(args, key, None)
        resolved[key] = cli_val if cli_val is not None else config.get(key, default)
    return resolved


def build_scenario(r: dict) -> Scenario:
    """Build a Scenario from a resolved config dict. Raises ValueError on bad values."""
    date = r["date"]
    rate = float(r["mortgage_rate"])
    rebalance = int(r["rebalance_months"])
    return Scenario(
        start=parse_month_year(r["start"]),
        end=parse_month_year(r["end"]),
        date=parse_month_year(date) if date else None,
        simulation_years=int(r["years"]),
        home_value=float(r["home_value"]),
        starting_cash=float(r["starting_cash"]),
        monthly_income=float(r["monthly_income"]),
        income_policy=IncomePolicy(r["income_policy"]),
        extra_payment=float(r["extra_payment"]),
        mortgage_term=MortgageTerm(int(r["mortgage_term"])),
        mortgage_rate=rate if rate > 0 else None,
        origination_fee=float(r["origination_fee"]),
        pay_off_at_completion=bool(r["pay_off"]),
        allow_refinance=bool(r["refinance"]),
        refinance_payback_months=int(r["refinance_payback_months"]),
        cash_out_refinance=bool(r["cash_out_refinance"]),
        stock_percentage=float(r["stock_percentage"]),
        rebalance_months=rebalance if rebalance > 0 else None,
        minimum_cash=float(r["minimum_cash"]),
        minimum_bond=float(r["minimum_bond"]),
        minimum_stock=float(r["minimum_stock"]),
        marginal_tax_rate=float(r["marginal_tax_rate"]),
        allow_mortgage_interest_deduction=bool(r["interest_deduction"]),
        dividend_tax_rate=float(r["dividend_tax_rate"]),
        capital_gains_tax_rate=float(r["capital_gains_tax_rate"]),
        treasury_tax_rate=float(r["treasury_tax_rate"]),
        inflation_adjust=bool(r["inflation_adjust"]),
    )


def parse_args(description: str, add_args_fn=None) -> tuple[dict, argparse.Namespace]:
    """Parse CLI args, load config, resolve values.

    Returns (resolved_dict, namespace).
    """
    parser = create_parser(description)
    if add_args_fn:
        add_args_fn(parser)
    args = parser.parse_args()
    config = load_config(args.config)
    return resolve(args, config), args
