"""Tests for configuration, simulation-parameter and return-series validation."""

from dataclasses import replace

import pytest

from core.data_validation import validate_return_series
from core.holdings import AdviceModel, Holding
from core.scoring_config import (
    DEFAULT_SCORING_CONFIG,
    FeeThresholds,
    PlanningGapThresholds,
    ScenarioBands,
)
from core.simulator import GoalSimulationParams
from core.validation import (
    ValidationResult,
    validate_goal_params,
    validate_holdings,
    validate_scoring_config,
)


def _goal_params(**overrides) -> GoalSimulationParams:
    base = dict(
        start_value=100_000.0,
        years=10,
        annual_contribution=5_000.0,
        expected_return=0.07,
        volatility=0.12,
        goal_amount=200_000.0,
    )
    base.update(overrides)
    return GoalSimulationParams(**base)


class TestValidationResult:
    """Tests for ValidationResult class."""

    def test_empty_is_valid(self):
        assert ValidationResult().is_valid()

    def test_error_messages(self):
        result = ValidationResult()
        result.add_error("field", "is bad")
        assert not result.is_valid()
        assert result.error_messages() == ["field: is bad"]


class TestValidateScoringConfig:
    """Tests for threshold consistency checks."""

    def test_defaults_valid(self):
        assert validate_scoring_config(DEFAULT_SCORING_CONFIG).is_valid()

    def test_missing_fee_model(self):
        fees = dict(DEFAULT_SCORING_CONFIG.fees)
        del fees[AdviceModel.ADVISOR_TACTICAL]
        result = validate_scoring_config(replace(DEFAULT_SCORING_CONFIG, fees=fees))
        assert any(e[0] == "fees.advisor-tactical" for e in result.errors)

    def test_fee_bands_out_of_order(self):
        fees = dict(DEFAULT_SCORING_CONFIG.fees)
        fees[AdviceModel.SELF_DIRECTED] = FeeThresholds(0.02, 0.01)
        result = validate_scoring_config(replace(DEFAULT_SCORING_CONFIG, fees=fees))
        assert not result.is_valid()

    def test_unknown_critical_item(self):
        planning = PlanningGapThresholds(critical_items=("will_trust", "yacht"))
        result = validate_scoring_config(replace(DEFAULT_SCORING_CONFIG, planning_gaps=planning))
        assert any("yacht" in m for m in result.error_messages())

    def test_scenario_bands_must_decrease(self):
        bands = ScenarioBands(excellent=1.0, good=1.5)
        result = validate_scoring_config(replace(DEFAULT_SCORING_CONFIG, scenario_bands=bands))
        assert any(e[0] == "scenario_bands" for e in result.errors)

    def test_collects_every_problem(self):
        config = replace(DEFAULT_SCORING_CONFIG, correlation_threshold=1.5, goal_simulations=0)
        fields = {e[0] for e in validate_scoring_config(config).errors}
        assert {"correlation_threshold", "goal_simulations"} <= fields

    def test_holding_sharpe_threshold_positive(self):
        sharpe = replace(DEFAULT_SCORING_CONFIG.sharpe, holding_good_threshold=0.0)
        result = validate_scoring_config(replace(DEFAULT_SCORING_CONFIG, sharpe=sharpe))
        assert [e[0] for e in result.errors] == ["sharpe.holding_good_threshold"]


class TestValidateGoalParams:
    """Tests for Monte Carlo parameter validation."""

    def test_valid(self):
        assert validate_goal_params(_goal_params()).is_valid()

    def test_negative_start(self):
        result = validate_goal_params(_goal_params(start_value=-1))
        assert any(e[0] == "start_value" for e in result.errors)

    def test_non_positive_goal(self):
        result = validate_goal_params(_goal_params(goal_amount=0))
        assert any(e[0] == "goal_amount" for e in result.errors)

    def test_too_many_years(self):
        result = validate_goal_params(_goal_params(years=150))
        assert any(e[0] == "years" for e in result.errors)

    def test_short_horizon_left_to_simulator(self):
        """Horizons under a year are clamped by the simulator, not rejected."""
        assert validate_goal_params(_goal_params(years=0)).is_valid()


class TestValidateHoldings:
    """Tests for holding sanity checks."""

    def test_valid(self, balanced_holdings):
        assert validate_holdings(balanced_holdings).is_valid()

    def test_bad_values(self):
        holdings = [Holding("", "Blank", -1, -2.0, 1.0, expense_ratio=0.5)]
        fields = {e[0] for e in validate_holdings(holdings).errors}
        assert "ticker" in fields
        assert "shares_" in fields
        assert "expense_ratio_" in fields


class TestValidateReturnSeries:
    """Tests for return-series quality checks."""

    def test_empty_is_error(self):
        assert not validate_return_series({}).is_valid()

    def test_clean_series(self):
        result = validate_return_series({"A": [0.01, -0.01] * 20, "B": [0.02, -0.02] * 20})
        assert result.is_valid()
        assert not result.has_warnings()

    def test_too_short(self):
        result = validate_return_series({"A": [0.01]})
        assert not result.is_valid()

    def test_length_mismatch_warns(self):
        result = validate_return_series({"A": [0.01, -0.01] * 20, "B": [0.01, -0.01] * 15})
        assert result.is_valid()
        assert any("aligning" in w for w in result.warnings)

    def test_nan_and_extreme_values_warn(self):
        series = [0.01, -0.01] * 20 + [float("nan"), 0.9]
        result = validate_return_series({"A": series})
        assert any("non-finite" in w for w in result.warnings)
        assert any("extreme" in w for w in result.warnings)

    def test_flat_series_warns(self):
        result = validate_return_series({"A": [0.0] * 30})
        assert any("Zero volatility" in w for w in result.warnings)

    @pytest.mark.parametrize("length", [3, 8])
    def test_limited_history_warns(self, length):
        result = validate_return_series({"A": [0.01, -0.01] * length})
        assert result.is_valid()
        assert any("Limited history" in w for w in result.all_messages())
