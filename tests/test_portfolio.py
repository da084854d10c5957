"""Tests for holdings records and portfolio aggregates."""

import pytest

from core.assumptions import DEFAULT_ASSUMPTIONS
from core.holdings import (
    AccountType,
    AdviceModel,
    AssetClass,
    ClientParameters,
    Holding,
    PlanningChecklist,
)
from core.portfolio import (
    asset_class_weights,
    calculate_portfolio_profile,
    effective_expense_ratio,
    position_weights,
    sector_for,
    sector_weights,
    total_value,
    unique_tickers,
)


class TestHolding:
    """Tests for the Holding record."""

    def test_value_and_gain(self):
        h = Holding("AAPL", "Apple", 10, 150.0, 100.0)
        assert h.value == 1500.0
        assert h.cost_value == 1000.0
        assert h.unrealized_gain == 500.0

    def test_negative_value_floors_at_zero(self):
        h = Holding("X", "Short", -10, 100.0, 100.0)
        assert h.value == 0.0

    def test_frozen(self):
        h = Holding("AAPL", "Apple", 10, 150.0, 100.0)
        with pytest.raises(AttributeError):
            h.shares = 20


class TestClientAndChecklist:
    """Tests for client parameters and the planning checklist."""

    def test_has_goal_requires_amount_and_years(self):
        assert ClientParameters(target_amount=100_000, years_to_goal=10).has_goal
        assert not ClientParameters(target_amount=100_000).has_goal
        assert not ClientParameters(years_to_goal=10).has_goal

    def test_checklist_from_dict_ignores_unknown(self):
        checklist = PlanningChecklist.from_dict({"will_trust": True, "unknown": True})
        assert checklist.will_trust
        assert sum(checklist.items().values()) == 1

    def test_checklist_has_eleven_items(self):
        assert len(PlanningChecklist().items()) == 11

    def test_advice_model_label(self):
        assert AdviceModel.ADVISOR_PASSIVE.label == "passive advisor"


class TestWeights:
    """Tests for position, class and sector weights."""

    def test_total_value(self, balanced_holdings):
        assert total_value(balanced_holdings) == pytest.approx(121_600.0)

    def test_position_weights_sorted(self, balanced_holdings):
        weights = position_weights(balanced_holdings)
        assert weights[0].ticker == "VTI"
        assert weights[0].weight == pytest.approx(50_000 / 121_600)
        assert [w.weight for w in weights] == sorted((w.weight for w in weights), reverse=True)

    def test_position_weights_zero_value(self):
        weights = position_weights([Holding("X", "X", 0, 10.0, 10.0)])
        assert weights[0].weight == 0.0

    def test_asset_class_weights_sum_to_one(self, balanced_holdings):
        weights = asset_class_weights(balanced_holdings)
        assert sum(weights.values()) == pytest.approx(1.0)
        assert weights[AssetClass.CASH] == 0.0

    def test_sector_lookup_and_override(self):
        assert sector_for(Holding("aapl", "Apple", 1, 1.0, 1.0)) == "Technology"
        assert sector_for(Holding("ZZZZ", "Unknown", 1, 1.0, 1.0)) == "Other"
        assert sector_for(Holding("ZZZZ", "Unknown", 1, 1.0, 1.0, sector="Utilities")) == "Utilities"

    def test_sector_weights(self, concentrated_holdings):
        weights = sector_weights(concentrated_holdings)
        assert weights["Technology"] == pytest.approx(120_000 / 130_000)
        assert weights["Diversified"] == pytest.approx(10_000 / 130_000)

    def test_unique_tickers_keeps_first_seen_order(self):
        holdings = [
            Holding("B", "B", 1, 1.0, 1.0),
            Holding("A", "A", 1, 1.0, 1.0),
            Holding("B", "B Roth", 1, 1.0, 1.0, AccountType.TAX_ADVANTAGED),
        ]
        assert unique_tickers(holdings) == ["B", "A"]


class TestPortfolioProfile:
    """Tests for the assumption-based portfolio profile."""

    def test_single_class_matches_assumptions(self, single_holding):
        profile = calculate_portfolio_profile(single_holding)
        us = DEFAULT_ASSUMPTIONS.for_class(AssetClass.US_STOCKS)
        assert profile.expected_return == pytest.approx(us.expected_return)
        assert profile.volatility == pytest.approx(us.volatility)
        assert profile.sharpe_ratio == pytest.approx(
            (us.expected_return - DEFAULT_ASSUMPTIONS.risk_free_rate) / us.volatility
        )

    def test_fees_fall_back_to_class_default(self, single_holding):
        profile = calculate_portfolio_profile(single_holding)
        default_er = DEFAULT_ASSUMPTIONS.for_class(AssetClass.US_STOCKS).default_expense_ratio
        assert effective_expense_ratio(single_holding[0]) == default_er
        assert profile.total_fees == pytest.approx(25_000 * default_er)
        assert profile.fee_rate == pytest.approx(default_er)

    def test_empty_portfolio(self):
        profile = calculate_portfolio_profile([])
        assert profile.total_value == 0
        assert profile.sharpe_ratio == 0.0
        assert profile.fee_rate == 0.0
