"""Validation of scoring configuration and simulation parameters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Sequence

from core.holdings import CHECKLIST_LABELS, AdviceModel, Holding

if TYPE_CHECKING:
    from core.scoring_config import ScoringConfig
    from core.simulator import GoalSimulationParams


@dataclass
class ValidationResult:
    """Result of validation containing any errors found."""

    errors: list[tuple[str, str]] = field(default_factory=list)

    def add_error(self, field_name: str, message: str) -> None:
        """Add a validation error."""
        self.errors.append((field_name, message))

    def is_valid(self) -> bool:
        """Return True if no validation errors."""
        return len(self.errors) == 0

    def error_messages(self) -> list[str]:
        """Return formatted error messages."""
        return [f"{field_name}: {message}" for field_name, message in self.errors]


def _check_fraction(result: ValidationResult, field_name: str, value: float) -> None:
    if not 0 < value <= 1:
        result.add_error(field_name, "Must be between 0 and 1")


def validate_scoring_config(config: ScoringConfig) -> ValidationResult:
    """Check that every threshold is present and internally consistent."""
    result = ValidationResult()

    status = config.status
    if not 0 <= status.yellow_min < status.green_min <= 100:
        result.add_error("status", "Need 0 <= yellow_min < green_min <= 100")

    rm = config.risk_management
    _check_fraction(result, "risk_management.max_single_position_pct", rm.max_single_position_pct)
    _check_fraction(result, "risk_management.max_sector_pct", rm.max_sector_pct)
    if rm.risk_gap_warning > rm.risk_gap_severe:
        result.add_error("risk_management", "risk_gap_warning must not exceed risk_gap_severe")

    if config.sharpe.portfolio_target <= 0:
        result.add_error("sharpe.portfolio_target", "Must be positive")
    if config.sharpe.holding_good_threshold <= 0:
        result.add_error("sharpe.holding_good_threshold", "Must be positive")

    for model in AdviceModel:
        thresholds = config.fees.get(model)
        if thresholds is None:
            result.add_error(f"fees.{model.value}", "Missing fee thresholds")
            continue
        if not 0 < thresholds.green_max < thresholds.yellow_max:
            result.add_error(f"fees.{model.value}", "Need 0 < green_max < yellow_max")

    div = config.diversification
    if div.small_portfolio_min_holdings > div.small_portfolio_max_holdings:
        result.add_error("diversification", "Small portfolio min holdings exceeds max")
    if div.large_portfolio_min_holdings > div.large_portfolio_max_holdings:
        result.add_error("diversification", "Large portfolio min holdings exceeds max")
    _check_fraction(result, "diversification.top10_concentration_max", div.top10_concentration_max)
    _check_fraction(result, "diversification.top3_concentration_max", div.top3_concentration_max)

    goal = config.goal_probability
    if not 0 < goal.yellow_min < goal.green_min <= 100:
        result.add_error("goal_probability", "Need 0 < yellow_min < green_min <= 100")

    planning = config.planning_gaps
    total_items = len(CHECKLIST_LABELS)
    if not 0 < planning.yellow_min_complete < planning.green_min_complete < total_items:
        result.add_error(
            "planning_gaps",
            f"Need 0 < yellow_min_complete < green_min_complete < {total_items}",
        )
    unknown_items = [item for item in planning.critical_items if item not in CHECKLIST_LABELS]
    if unknown_items:
        result.add_error("planning_gaps.critical_items", f"Unknown items: {unknown_items}")

    if not 0 < config.protection.high_risk_threshold <= 10:
        result.add_error("protection.high_risk_threshold", "Must be between 0 and 10")

    income = config.lifetime_income
    if not 0 < income.core_coverage_yellow < income.core_coverage_green:
        result.add_error("lifetime_income", "Need 0 < core_coverage_yellow < core_coverage_green")

    bands = config.scenario_bands
    if not bands.excellent > bands.good > bands.adequate > bands.poor > 0:
        result.add_error("scenario_bands", "Band edges must be positive and strictly decreasing")

    if not 0 < config.correlation_threshold < 1:
        result.add_error("correlation_threshold", "Must be between 0 and 1")
    if config.goal_simulations < 1:
        result.add_error("goal_simulations", "Must run at least 1 simulation")
    if config.action_plan_size < 1:
        result.add_error("action_plan_size", "Must keep at least 1 action")

    return result


def validate_goal_params(params: GoalSimulationParams) -> ValidationResult:
    """Validate Monte Carlo goal simulation inputs."""
    result = ValidationResult()

    if params.start_value < 0:
        result.add_error("start_value", "Cannot be negative")
    if params.years > 100:
        result.add_error("years", "Cannot simulate more than 100 years")
    if params.goal_amount <= 0:
        result.add_error("goal_amount", "Must be positive")
    if params.volatility < 0:
        result.add_error("volatility", "Cannot be negative")
    if params.histogram_buckets < 1:
        result.add_error("histogram_buckets", "Need at least 1 bucket")

    return result


def validate_holdings(holdings: Sequence[Holding]) -> ValidationResult:
    """Sanity-check holdings before analysis."""
    result = ValidationResult()

    for h in holdings:
        if not h.ticker:
            result.add_error("ticker", "Cannot be empty")
        if h.shares < 0:
            result.add_error(f"shares_{h.ticker}", "Cannot be negative")
        if h.current_price < 0:
            result.add_error(f"current_price_{h.ticker}", "Cannot be negative")
        if h.cost_basis < 0:
            result.add_error(f"cost_basis_{h.ticker}", "Cannot be negative")
        if h.expense_ratio is not None and not 0 <= h.expense_ratio < 0.1:
            result.add_error(f"expense_ratio_{h.ticker}", "Must be between 0 and 10%")

    return result
