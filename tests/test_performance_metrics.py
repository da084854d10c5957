"""Tests for performance metric calculations and classification."""

import math

import numpy as np
import pytest

from core.holdings import Holding, RiskTolerance
from core.performance_metrics import (
    MetricStatus,
    calculate_beta,
    calculate_cagr,
    calculate_calmar_ratio,
    calculate_expense_ratio,
    calculate_max_drawdown,
    calculate_performance_metrics,
    calculate_sharpe_ratio,
    calculate_sortino_ratio,
    calculate_total_return,
    calculate_volatility,
    classify_metric,
    metric_status_rank,
    portfolio_return_series,
)


class TestReturnMeasures:
    """Tests for total return and CAGR."""

    def test_total_return(self, single_holding):
        assert calculate_total_return(single_holding) == pytest.approx(0.25)

    def test_total_return_without_cost(self):
        assert calculate_total_return([Holding("X", "X", 10, 5.0, 0.0)]) is None

    def test_cagr(self):
        assert calculate_cagr(100, 121, 2) == pytest.approx(0.10)

    @pytest.mark.parametrize("start,end,years", [(0, 100, 1), (100, -1, 1), (100, 120, 0)])
    def test_cagr_invalid_inputs(self, start, end, years):
        assert calculate_cagr(start, end, years) is None


class TestRiskMeasures:
    """Tests for volatility, Sharpe, Sortino, drawdown and beta."""

    def test_volatility_annualized(self):
        returns = [0.01, -0.01] * 10
        assert calculate_volatility(returns, 252) == pytest.approx(0.01 * math.sqrt(252))

    def test_volatility_empty(self):
        assert calculate_volatility([]) is None

    def test_sharpe_zero_volatility_is_none(self):
        assert calculate_sharpe_ratio([0.001] * 20, 0.03) is None

    def test_sharpe_value(self):
        returns = [0.02, -0.01] * 6
        sharpe = calculate_sharpe_ratio(returns, 0.0, periods_per_year=12)
        expected = (0.005 * 12) / (0.015 * math.sqrt(12))
        assert sharpe == pytest.approx(expected)

    def test_sortino_without_downside_is_none(self):
        assert calculate_sortino_ratio([0.01, 0.02, 0.03], 0.0) is None

    def test_sortino_value(self):
        returns = [0.02, -0.02, 0.04, -0.02]
        sortino = calculate_sortino_ratio(returns, 0.0, periods_per_year=1)
        downside = math.sqrt((0.02**2 + 0.02**2) / 2)
        assert sortino == pytest.approx(0.005 / downside)

    def test_max_drawdown(self):
        assert calculate_max_drawdown([100, 120, 90, 130]) == pytest.approx(-0.25)

    def test_max_drawdown_never_positive(self):
        assert calculate_max_drawdown([1, 2, 3, 4]) == 0.0
        assert calculate_max_drawdown([]) is None

    def test_calmar(self):
        assert calculate_calmar_ratio(0.10, -0.25) == pytest.approx(0.4)
        assert calculate_calmar_ratio(0.10, 0.0) is None
        assert calculate_calmar_ratio(None, -0.25) is None

    def test_beta_of_levered_series(self):
        bench = np.array([0.01, -0.02, 0.015, 0.005, -0.01])
        assert calculate_beta(2 * bench, bench) == pytest.approx(2.0)

    def test_beta_flat_benchmark(self):
        assert calculate_beta([0.01, 0.02, 0.03], [0.0, 0.0, 0.0]) is None

    def test_expense_ratio_weighted(self):
        holdings = [
            Holding("A", "A", 10, 100.0, 100.0, expense_ratio=0.01),
            Holding("B", "B", 30, 100.0, 100.0, expense_ratio=None),
        ]
        assert calculate_expense_ratio(holdings) == pytest.approx(0.0025)

    def test_portfolio_series_ignores_missing_tickers(self):
        holdings = [Holding("A", "A", 1, 100.0, 100.0), Holding("B", "B", 1, 100.0, 100.0)]
        series = portfolio_return_series(holdings, {"A": [0.01, 0.02], "C": [0.5, 0.5]})
        assert series.tolist() == pytest.approx([0.01, 0.02])


class TestClassifyMetric:
    """Tests for good/warning/poor mapping."""

    @pytest.mark.parametrize(
        "value,expected",
        [(-0.10, MetricStatus.GOOD), (-0.20, MetricStatus.WARNING), (-0.40, MetricStatus.POOR)],
    )
    def test_max_drawdown(self, value, expected):
        assert classify_metric("max_drawdown", value) == expected

    @pytest.mark.parametrize(
        "value,expected",
        [(0.10, MetricStatus.GOOD), (0.15, MetricStatus.WARNING), (0.20, MetricStatus.POOR)],
    )
    def test_volatility_moderate(self, value, expected):
        assert classify_metric("volatility", value, RiskTolerance.MODERATE) == expected

    def test_volatility_depends_on_tolerance(self):
        assert classify_metric("volatility", 0.15, RiskTolerance.AGGRESSIVE) == MetricStatus.GOOD
        assert classify_metric("volatility", 0.15, RiskTolerance.CONSERVATIVE) == MetricStatus.POOR

    def test_sharpe_against_target(self):
        assert classify_metric("sharpe_ratio", 0.6, sharpe_target=0.5) == MetricStatus.GOOD
        assert classify_metric("sharpe_ratio", 0.4, sharpe_target=0.5) == MetricStatus.WARNING
        assert classify_metric("sharpe_ratio", 0.2, sharpe_target=0.5) == MetricStatus.POOR

    def test_none_and_nan_unavailable(self):
        assert classify_metric("cagr", None) == MetricStatus.UNAVAILABLE
        assert classify_metric("cagr", float("nan")) == MetricStatus.UNAVAILABLE

    def test_status_ordering(self):
        ordered = sorted(MetricStatus, key=metric_status_rank)
        assert ordered == [
            MetricStatus.UNAVAILABLE,
            MetricStatus.POOR,
            MetricStatus.WARNING,
            MetricStatus.GOOD,
        ]


class TestCalculatePerformanceMetrics:
    """Tests for the combined metrics entry point."""

    def test_with_supplied_returns(self, single_holding):
        returns = {"VTI": [0.01, -0.005] * 50}
        metrics = calculate_performance_metrics(
            single_holding, returns=returns, benchmark_returns=returns["VTI"]
        )
        assert not metrics.simulated
        assert metrics.periods == 100
        assert metrics.total_return == pytest.approx(0.25)
        assert metrics.beta == pytest.approx(1.0)
        assert metrics.max_drawdown <= 0
        assert set(metrics.statuses) == set(metrics.values())

    def test_simulated_when_returns_omitted(self, balanced_holdings, rng):
        metrics = calculate_performance_metrics(balanced_holdings, rng=rng)
        assert metrics.simulated
        assert metrics.periods == 252
        assert metrics.beta is not None
        assert metrics.volatility > 0

    def test_seeded_simulation_reproducible(self, balanced_holdings):
        first = calculate_performance_metrics(balanced_holdings, rng=np.random.default_rng(1))
        second = calculate_performance_metrics(balanced_holdings, rng=np.random.default_rng(1))
        assert first == second

    def test_missing_series_gives_unavailable(self, single_holding):
        metrics = calculate_performance_metrics(single_holding, returns={"OTHER": [0.01, 0.02]})
        assert metrics.volatility is None
        assert metrics.sharpe_ratio is None
        assert metrics.max_drawdown is None
        assert metrics.status("sharpe_ratio") == MetricStatus.UNAVAILABLE
        assert metrics.status("total_return") == MetricStatus.GOOD

    def test_short_benchmark_disables_beta(self, single_holding):
        metrics = calculate_performance_metrics(
            single_holding, returns={"VTI": [0.01, -0.01] * 10}, benchmark_returns=[0.01]
        )
        assert metrics.beta is None

    def test_supplied_synthetic_series_labeled_simulated(self, single_holding):
        returns = {"VTI": [0.01, -0.005] * 50}
        metrics = calculate_performance_metrics(single_holding, returns=returns, simulated=True)
        assert metrics.simulated
        assert metrics.periods == 100
