"""Tests for strategy-specific mortgage rules."""

import pytest
from mortgage_invest_sim import Scenario, Strategy
from mortgage_invest_sim.strategies import parse_strategy


class TestInitialMortgage:
    def setup_method(self):
        self.scenario = Scenario()

    def test_invest_borrows_everything(self):
        assert Strategy.INVEST.initial_mortgage_amount(self.scenario, 500000, 200000) == 200000

    def test_avoid_pays_cash(self):
        assert Strategy.AVOID_MORTGAGE.initial_mortgage_amount(self.scenario, 200000, 200000) == 0

    def test_avoid_borrows_shortfall(self):
        assert Strategy.AVOID_MORTGAGE.initial_mortgage_amount(self.scenario, 50000, 200000) == 150000


class TestExtraPrincipal:
    def test_avoid_uses_all_cash(self):
        assert Strategy.AVOID_MORTGAGE.extra_principal(Scenario(), 5000, 100000) == 5000

    def test_avoid_capped_by_balance(self):
        assert Strategy.AVOID_MORTGAGE.extra_principal(Scenario(), 5000, 1200) == 1200

    def test_invest_fixed_extra(self):
        assert Strategy.INVEST.extra_principal(Scenario(), 5000, 100000) == 0
        assert Strategy.INVEST.extra_principal(Scenario(extra_payment=250), 5000, 100000) == 250
        assert Strategy.INVEST.extra_principal(Scenario(extra_payment=250), 100, 100000) == 100

    def test_no_cash(self):
        assert Strategy.AVOID_MORTGAGE.extra_principal(Scenario(), 0, 100000) == 0


class TestNames:
    def test_display_names(self):
        assert Strategy.INVEST.display_name == "Investing"
        assert Strategy.AVOID_MORTGAGE.display_name == "Avoiding-Mortgage"

    def test_cash_out_only_when_investing(self):
        scenario = Scenario(cash_out_refinance=True)
        assert Strategy.INVEST.allows_cash_out(scenario)
        assert not Strategy.AVOID_MORTGAGE.allows_cash_out(scenario)
        assert not Strategy.INVEST.allows_cash_out(Scenario())

    def test_parse(self):
        assert parse_strategy("invest") is Strategy.INVEST
        assert parse_strategy("Avoiding-Mortgage") is Strategy.AVOID_MORTGAGE
        with pytest.raises(ValueError, match="unknown strategy"):
            parse_strategy("yolo")
