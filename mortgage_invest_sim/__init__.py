"""Mortgage Payoff vs Investing Simulation Package."""

from mortgage_invest_sim.month_year import (
    MonthYear,
    month_difference,
    month_range,
    parse_month_year,
    MIN_MONTH_YEAR,
    MAX_MONTH_YEAR,
    BASELINE,
)
from mortgage_invest_sim.params import (
    Scenario,
    MortgageTerm,
    IncomePolicy,
    calc_payment,
    to_cents,
    validate_scenario,
    clean_scenario,
)
from mortgage_invest_sim.history import HistoricalData, MarketMonth, load_history
from mortgage_invest_sim.errors import SimulationError, SimulationFailed, SimulationInvalid
from mortgage_invest_sim.output import Output, NullOutput, ConsoleOutput, BufferedOutput, FileOutput
from mortgage_invest_sim.mortgage import Mortgage, take_out_mortgage, refinance_quote
from mortgage_invest_sim.tax import TaxYear, TaxLedger, calc_tax_owed, calc_interest_deduction
from mortgage_invest_sim.portfolio import Portfolio, StockLot, BondLot, Sale
from mortgage_invest_sim.strategies import Strategy
from mortgage_invest_sim.simulation import Simulation, Result, Outcome, SimulationState
from mortgage_invest_sim.simulator import Simulator, Results, Summary, MonthSummary, compare_results

__all__ = [
    "MonthYear",
    "month_difference",
    "month_range",
    "parse_month_year",
    "MIN_MONTH_YEAR",
    "MAX_MONTH_YEAR",
    "BASELINE",
    "Scenario",
    "MortgageTerm",
    "IncomePolicy",
    "calc_payment",
    "to_cents",
    "validate_scenario",
    "clean_scenario",
    "HistoricalData",
    "MarketMonth",
    "load_history",
    "SimulationError",
    "SimulationFailed",
    "SimulationInvalid",
    "Output",
    "NullOutput",
    "ConsoleOutput",
    "BufferedOutput",
    "FileOutput",
    "Mortgage",
    "take_out_mortgage",
    "refinance_quote",
    "TaxYear",
    "TaxLedger",
    "calc_tax_owed",
    "calc_interest_deduction",
    "Portfolio",
    "StockLot",
    "BondLot",
    "Sale",
    "Strategy",
    "Simulation",
    "Result",
    "Outcome",
    "SimulationState",
    "Simulator",
    "Results",
    "Summary",
    "MonthSummary",
    "compare_results",
]
