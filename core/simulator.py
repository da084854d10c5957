"""Monte Carlo simulation of reaching a savings goal."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from core.exceptions import SimulationError
from core.scoring_config import ScenarioBands
from core.validation import validate_goal_params
from utils.helpers import PERCENTILE_LEVELS, Percentiles

logger = logging.getLogger(__name__)

MAX_SIMULATIONS = 10_000


@dataclass(frozen=True)
class GoalSimulationParams:
    """
    Inputs for a goal-probability simulation.

    Attributes:
        start_value: Portfolio value today
        years: Number of annual steps (at least 1)
        annual_contribution: Amount added at the end of each year
        expected_return: Mean annual return
        volatility: Annual standard deviation of returns
        goal_amount: Target ending balance
        n_simulations: Number of paths, clamped to [1, MAX_SIMULATIONS]
        histogram_buckets: Number of equal-width histogram buckets
        bands: Outcome-to-goal ratios for the scenario breakdown
    """

    start_value: float
    years: int
    annual_contribution: float
    expected_return: float
    volatility: float
    goal_amount: float
    n_simulations: int = 5_000
    histogram_buckets: int = 12
    bands: ScenarioBands = field(default_factory=ScenarioBands)


@dataclass(frozen=True)
class HistogramBucket:
    lower: float
    upper: float
    count: int


@dataclass(frozen=True)
class ScenarioBreakdown:
    """Fraction of outcomes in each band relative to the goal."""

    excellent: float
    good: float
    adequate: float
    poor: float
    failure: float


@dataclass(frozen=True)
class SimulationResult:
    """Results of a goal simulation; outcomes are sorted ascending."""

    outcomes: list[float]
    success_rate: float
    percentiles: Percentiles
    histogram: list[HistogramBucket]
    scenarios: ScenarioBreakdown
    goal_amount: float
    n_simulations: int
    years: int

    @property
    def median(self) -> float:
        return self.percentiles.p50

    @property
    def success_pct(self) -> float:
        return self.success_rate * 100


def _order_statistic(sorted_outcomes: np.ndarray, pct: float) -> float:
    n = sorted_outcomes.size
    index = min(n - 1, int(math.floor(n * pct / 100)))
    return float(sorted_outcomes[index])


def _compute_percentiles(sorted_outcomes: np.ndarray) -> Percentiles:
    """Percentile ladder by order statistic: outcomes[floor(n * p / 100)]."""
    values = [_order_statistic(sorted_outcomes, p) for p in PERCENTILE_LEVELS]
    return Percentiles(*values)


def _compute_histogram(sorted_outcomes: np.ndarray, buckets: int) -> list[HistogramBucket]:
    low = float(sorted_outcomes[0])
    high = float(sorted_outcomes[-1])
    counts, edges = np.histogram(sorted_outcomes, bins=buckets, range=(low, high))
    return [
        HistogramBucket(lower=float(edges[i]), upper=float(edges[i + 1]), count=int(counts[i]))
        for i in range(buckets)
    ]


def _compute_scenarios(
    sorted_outcomes: np.ndarray, goal: float, bands: ScenarioBands
) -> ScenarioBreakdown:
    ratio = sorted_outcomes / goal
    n = ratio.size

    def share(mask: np.ndarray) -> float:
        return float(np.count_nonzero(mask)) / n

    return ScenarioBreakdown(
        excellent=share(ratio >= bands.excellent),
        good=share((ratio >= bands.good) & (ratio < bands.excellent)),
        adequate=share((ratio >= bands.adequate) & (ratio < bands.good)),
        poor=share((ratio >= bands.poor) & (ratio < bands.adequate)),
        failure=share(ratio < bands.poor),
    )


def run_goal_simulation(
    params: GoalSimulationParams,
    rng: np.random.Generator | None = None,
) -> SimulationResult:
    """
    Simulate many annual paths and measure the chance of reaching the goal.

    Each year applies ``value * (1 + mu + sigma * z) + contribution`` with a
    standard-normal draw z per path.

    Args:
        params: Simulation inputs
        rng: Random generator; pass a seeded one for reproducible results

    Returns:
        SimulationResult with sorted outcomes, success rate, percentiles,
        histogram and scenario breakdown

    Raises:
        SimulationError: If the inputs are invalid or not finite
    """
    if not all(
        math.isfinite(v)
        for v in (
            params.start_value,
            params.annual_contribution,
            params.expected_return,
            params.volatility,
            params.goal_amount,
        )
    ):
        raise SimulationError("Simulation inputs must be finite numbers")

    n_simulations = params.n_simulations
    if n_simulations > MAX_SIMULATIONS:
        logger.warning(f"Capping {n_simulations} simulations at {MAX_SIMULATIONS}")
        n_simulations = MAX_SIMULATIONS
    elif n_simulations < 1:
        logger.warning(f"Raising {n_simulations} simulations to 1")
        n_simulations = 1

    years = params.years
    if years < 1:
        logger.warning(f"Raising horizon of {years} years to 1")
        years = 1

    validation = validate_goal_params(params)
    if not validation.is_valid():
        raise SimulationError("; ".join(validation.error_messages()))

    if rng is None:
        rng = np.random.default_rng()

    logger.debug(f"Running {n_simulations} goal simulations over {years} years")

    values = np.full(n_simulations, float(params.start_value))
    for _ in range(years):
        z = rng.standard_normal(n_simulations)
        values = values * (1 + params.expected_return + params.volatility * z)
        values = values + params.annual_contribution

    outcomes = np.sort(values)
    success_rate = float(np.count_nonzero(outcomes >= params.goal_amount)) / n_simulations

    return SimulationResult(
        outcomes=outcomes.tolist(),
        success_rate=success_rate,
        percentiles=_compute_percentiles(outcomes),
        histogram=_compute_histogram(outcomes, params.histogram_buckets),
        scenarios=_compute_scenarios(outcomes, params.goal_amount, params.bands),
        goal_amount=params.goal_amount,
        n_simulations=n_simulations,
        years=years,
    )
