"""Classic portfolio statistics and their good/warning/poor classification."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Sequence

import numpy as np

from core.assumptions import DEFAULT_ASSUMPTIONS, PortfolioAssumptions
from core.holdings import Holding, RiskTolerance
from core.returns import TRADING_DAYS_PER_YEAR, simulate_returns_with_benchmark
from core.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig, adjust_for_risk_tolerance
from utils.helpers import safe_divide

logger = logging.getLogger(__name__)

_EPSILON = 1e-12


class MetricStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    POOR = "poor"
    UNAVAILABLE = "unavailable"


_METRIC_STATUS_RANK = {
    MetricStatus.UNAVAILABLE: 0,
    MetricStatus.POOR: 1,
    MetricStatus.WARNING: 2,
    MetricStatus.GOOD: 3,
}


def metric_status_rank(status: MetricStatus) -> int:
    """Total order UNAVAILABLE < POOR < WARNING < GOOD."""
    return _METRIC_STATUS_RANK[status]


@dataclass(frozen=True)
class HigherIsBetter:
    """Cutoffs for metrics where larger values are better."""

    good: float
    warning: float


@dataclass(frozen=True)
class LowerIsBetter:
    """Cutoffs for metrics where smaller values are better."""

    good: float
    bad: float


@dataclass(frozen=True)
class MetricsConfig:
    """Thresholds used to classify each performance metric."""

    total_return: HigherIsBetter = HigherIsBetter(0.08, 0.05)
    cagr: HigherIsBetter = HigherIsBetter(0.08, 0.05)
    calmar_ratio: HigherIsBetter = HigherIsBetter(0.5, 0.25)
    sortino_ratio: HigherIsBetter = HigherIsBetter(0.8, 0.4)
    max_drawdown: HigherIsBetter = HigherIsBetter(-0.15, -0.30)
    expense_ratio: LowerIsBetter = LowerIsBetter(0.005, 0.015)
    volatility: dict[RiskTolerance, LowerIsBetter] = field(
        default_factory=lambda: {
            RiskTolerance.CONSERVATIVE: LowerIsBetter(0.08, 0.12),
            RiskTolerance.MODERATE: LowerIsBetter(0.12, 0.18),
            RiskTolerance.AGGRESSIVE: LowerIsBetter(0.18, 0.25),
        }
    )
    beta: dict[RiskTolerance, LowerIsBetter] = field(
        default_factory=lambda: {
            RiskTolerance.CONSERVATIVE: LowerIsBetter(0.8, 1.1),
            RiskTolerance.MODERATE: LowerIsBetter(1.0, 1.3),
            RiskTolerance.AGGRESSIVE: LowerIsBetter(1.2, 1.5),
        }
    )
    # Sharpe within this fraction of target is a warning rather than poor
    sharpe_warning_fraction: float = 0.7


DEFAULT_METRICS_CONFIG = MetricsConfig()

METRIC_NAMES = (
    "total_return",
    "cagr",
    "volatility",
    "sharpe_ratio",
    "sortino_ratio",
    "calmar_ratio",
    "max_drawdown",
    "beta",
    "expense_ratio",
)


@dataclass(frozen=True)
class PerformanceMetrics:
    """
    Portfolio statistics with a status per metric.

    A value of None means the metric is not applicable for the inputs
    (for example zero volatility); its status is then UNAVAILABLE.

    Attributes:
        total_return: Gain over cost basis as a fraction
        cagr: Compound annual growth rate from cost to current value
        volatility: Annualized population standard deviation
        sharpe_ratio: Annualized excess return over volatility
        sortino_ratio: Annualized excess return over downside deviation
        calmar_ratio: CAGR over the magnitude of max drawdown
        max_drawdown: Worst peak-to-trough decline (negative fraction)
        beta: Sensitivity to the benchmark series
        expense_ratio: Value-weighted fund expense ratio
        statuses: MetricStatus keyed by metric name
        simulated: True when computed from synthetic return series
        periods: Number of return periods used
    """

    total_return: float | None
    cagr: float | None
    volatility: float | None
    sharpe_ratio: float | None
    sortino_ratio: float | None
    calmar_ratio: float | None
    max_drawdown: float | None
    beta: float | None
    expense_ratio: float | None
    statuses: dict[str, MetricStatus]
    simulated: bool = True
    periods: int = 0

    def status(self, name: str) -> MetricStatus:
        return self.statuses.get(name, MetricStatus.UNAVAILABLE)

    def values(self) -> dict[str, float | None]:
        return {name: getattr(self, name) for name in METRIC_NAMES}


def _finite_or_none(value: float) -> float | None:
    return value if math.isfinite(value) else None


def calculate_total_return(holdings: Sequence[Holding]) -> float | None:
    cost = sum(h.cost_value for h in holdings)
    value = sum(h.value for h in holdings)
    if cost <= 0:
        return None
    return safe_divide(value - cost, cost)


def calculate_cagr(start_value: float, end_value: float, years: float) -> float | None:
    """(end / start) ** (1 / years) - 1, or None when undefined."""
    if start_value <= 0 or end_value < 0 or years <= 0:
        return None
    return _finite_or_none((end_value / start_value) ** (1 / years) - 1)


def calculate_volatility(
    returns: Sequence[float],
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> float | None:
    """Annualized population standard deviation of periodic returns."""
    values = np.asarray(returns, dtype=float)
    if values.size == 0:
        return None
    return float(values.std() * math.sqrt(periods_per_year))


def calculate_sharpe_ratio(
    returns: Sequence[float],
    risk_free_rate: float,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> float | None:
    values = np.asarray(returns, dtype=float)
    volatility = calculate_volatility(values, periods_per_year)
    if volatility is None or volatility < _EPSILON:
        return None
    annual_mean = float(values.mean()) * periods_per_year
    return _finite_or_none((annual_mean - risk_free_rate) / volatility)


def calculate_sortino_ratio(
    returns: Sequence[float],
    risk_free_rate: float,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
) -> float | None:
    """
    Sharpe-style ratio using only periods below the risk-free target.

    Returns None when no period falls below the target, since downside
    deviation is then zero.
    """
    values = np.asarray(returns, dtype=float)
    if values.size == 0:
        return None
    target = risk_free_rate / periods_per_year
    shortfalls = values[values < target] - target
    if shortfalls.size == 0:
        return None
    downside = math.sqrt(float(np.mean(shortfalls**2))) * math.sqrt(periods_per_year)
    if downside < _EPSILON:
        return None
    annual_mean = float(values.mean()) * periods_per_year
    return _finite_or_none((annual_mean - risk_free_rate) / downside)


def calculate_max_drawdown(path: Sequence[float]) -> float | None:
    """
    Largest peak-to-trough decline of a value path.

    Args:
        path: Portfolio values over time

    Returns:
        Max drawdown as a negative fraction (-0.20 = 20% decline), 0.0 when
        the path never declines, None for an empty path
    """
    values = np.asarray(path, dtype=float)
    if values.size == 0:
        return None

    running_max = np.maximum.accumulate(values)
    running_max = np.where(running_max == 0, 1, running_max)
    drawdowns = (values - running_max) / running_max

    return float(np.min(drawdowns))


def calculate_calmar_ratio(cagr: float | None, max_drawdown: float | None) -> float | None:
    if cagr is None or max_drawdown is None or max_drawdown >= 0:
        return None
    return safe_divide(cagr, abs(max_drawdown))


def calculate_beta(
    portfolio_returns: Sequence[float],
    benchmark_returns: Sequence[float],
) -> float | None:
    """Population covariance with the benchmark over benchmark variance."""
    p = np.asarray(portfolio_returns, dtype=float)
    b = np.asarray(benchmark_returns, dtype=float)
    if p.size != b.size or p.size < 2:
        return None
    variance = float(b.var())
    if variance < _EPSILON:
        return None
    covariance = float(np.mean((p - p.mean()) * (b - b.mean())))
    return _finite_or_none(covariance / variance)


def calculate_expense_ratio(holdings: Sequence[Holding]) -> float | None:
    """Value-weighted expense ratio; holdings without a fee count as zero."""
    value = sum(h.value for h in holdings)
    if value <= 0:
        return None
    return sum(h.value / value * (h.expense_ratio or 0.0) for h in holdings)


def portfolio_return_series(
    holdings: Sequence[Holding],
    returns_by_ticker: Mapping[str, Sequence[float]],
) -> np.ndarray:
    """
    Value-weighted portfolio returns over the common length of the series.

    Holdings without a series are ignored and the remaining weights are
    renormalized.
    """
    ticker_values: dict[str, float] = {}
    for h in holdings:
        if h.ticker in returns_by_ticker:
            ticker_values[h.ticker] = ticker_values.get(h.ticker, 0.0) + h.value

    total = sum(ticker_values.values())
    if total <= 0:
        return np.array([])

    length = min(len(returns_by_ticker[t]) for t in ticker_values)
    combined = np.zeros(length)
    for ticker, value in ticker_values.items():
        series = np.nan_to_num(np.asarray(returns_by_ticker[ticker][:length], dtype=float))
        combined += value / total * series
    return combined


def classify_metric(
    name: str,
    value: float | None,
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE,
    sharpe_target: float = 0.5,
    config: MetricsConfig = DEFAULT_METRICS_CONFIG,
) -> MetricStatus:
    """Map a metric value to good/warning/poor against its cutoffs."""
    if value is None or not math.isfinite(value):
        return MetricStatus.UNAVAILABLE

    if name == "sharpe_ratio":
        if value >= sharpe_target:
            return MetricStatus.GOOD
        if value >= sharpe_target * config.sharpe_warning_fraction:
            return MetricStatus.WARNING
        return MetricStatus.POOR

    lower_is_better: LowerIsBetter | None = None
    if name == "volatility":
        lower_is_better = config.volatility[risk_tolerance]
    elif name == "beta":
        lower_is_better = config.beta[risk_tolerance]
    elif name == "expense_ratio":
        lower_is_better = config.expense_ratio

    if lower_is_better is not None:
        if value <= lower_is_better.good:
            return MetricStatus.GOOD
        if value <= lower_is_better.bad:
            return MetricStatus.WARNING
        return MetricStatus.POOR

    higher_is_better: HigherIsBetter = getattr(config, name)
    if value >= higher_is_better.good:
        return MetricStatus.GOOD
    if value >= higher_is_better.warning:
        return MetricStatus.WARNING
    return MetricStatus.POOR


def calculate_performance_metrics(
    holdings: Sequence[Holding],
    returns: Mapping[str, Sequence[float]] | None = None,
    benchmark_returns: Sequence[float] | None = None,
    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE,
    years_held: float = 3.0,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
    scoring_config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    metrics_config: MetricsConfig = DEFAULT_METRICS_CONFIG,
    rng: np.random.Generator | None = None,
    simulated: bool | None = None,
) -> PerformanceMetrics:
    """
    Compute and classify all performance metrics for a portfolio.

    When ``returns`` is omitted, series are synthesized from asset-class
    assumptions and the result is flagged as simulated.

    Args:
        holdings: Portfolio holdings
        returns: Real periodic returns keyed by ticker
        benchmark_returns: Benchmark series aligned with ``returns`` for beta
        risk_tolerance: Selects volatility/beta bands and the Sharpe target
        years_held: Holding period used for CAGR from cost basis
        periods_per_year: Frequency of the return series
        assumptions: Risk-free rate and asset-class assumptions
        scoring_config: Base config whose Sharpe target is tolerance-adjusted
        metrics_config: Classification cutoffs
        rng: Random generator used only when simulating
        simulated: Label for the result; defaults to whether series were
            synthesized here

    Returns:
        PerformanceMetrics
    """
    if simulated is None:
        simulated = returns is None
    if returns is None:
        synthetic = simulate_returns_with_benchmark(
            holdings,
            rng=rng,
            periods_per_year=periods_per_year,
            assumptions=assumptions,
        )
        returns = synthetic.returns
        if benchmark_returns is None:
            benchmark_returns = synthetic.benchmark

    series = portfolio_return_series(holdings, returns)
    rf = assumptions.risk_free_rate

    value = sum(h.value for h in holdings)
    cost = sum(h.cost_value for h in holdings)

    total_return = calculate_total_return(holdings)
    cagr = calculate_cagr(cost, value, years_held)

    path = np.concatenate(([1.0], np.cumprod(1 + series))) if series.size else np.array([])
    max_drawdown = calculate_max_drawdown(path)

    beta = None
    if benchmark_returns is not None and series.size:
        bench = np.asarray(benchmark_returns, dtype=float)
        if bench.size >= series.size:
            beta = calculate_beta(series, bench[: series.size])
        else:
            logger.warning(
                f"Benchmark has {bench.size} periods, portfolio has {series.size}; beta unavailable"
            )

    volatility = calculate_volatility(series, periods_per_year) if series.size else None

    values = {
        "total_return": total_return,
        "cagr": cagr,
        "volatility": volatility,
        "sharpe_ratio": calculate_sharpe_ratio(series, rf, periods_per_year) if series.size else None,
        "sortino_ratio": calculate_sortino_ratio(series, rf, periods_per_year),
        "calmar_ratio": calculate_calmar_ratio(cagr, max_drawdown),
        "max_drawdown": max_drawdown,
        "beta": beta,
        "expense_ratio": calculate_expense_ratio(holdings),
    }

    sharpe_target = adjust_for_risk_tolerance(scoring_config, risk_tolerance).sharpe.portfolio_target
    statuses = {
        name: classify_metric(name, v, risk_tolerance, sharpe_target, metrics_config)
        for name, v in values.items()
    }

    return PerformanceMetrics(
        **values,
        statuses=statuses,
        simulated=simulated,
        periods=int(series.size),
    )
