"""Scoring thresholds, risk-tolerance adjustment and JSON persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from core.exceptions import ConfigurationError
from core.holdings import AdviceModel, RiskTolerance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatusThresholds:
    green_min: float = 70.0
    yellow_min: float = 40.0


@dataclass(frozen=True)
class RiskManagementThresholds:
    max_single_position_pct: float = 0.10
    max_sector_pct: float = 0.30
    risk_gap_severe: float = 0.15
    risk_gap_warning: float = 0.05


@dataclass(frozen=True)
class SharpeThresholds:
    portfolio_target: float = 0.50
    holding_good_threshold: float = 0.50


@dataclass(frozen=True)
class FeeThresholds:
    """All-in fee ceilings: at or below green_max is GREEN, above yellow_max is RED."""

    green_max: float
    yellow_max: float


DEFAULT_FEE_THRESHOLDS: dict[AdviceModel, FeeThresholds] = {
    AdviceModel.SELF_DIRECTED: FeeThresholds(0.005, 0.010),
    AdviceModel.ADVISOR_PASSIVE: FeeThresholds(0.010, 0.015),
    AdviceModel.ADVISOR_TACTICAL: FeeThresholds(0.015, 0.020),
}


@dataclass(frozen=True)
class DiversificationThresholds:
    small_portfolio_threshold: float = 250_000.0
    small_portfolio_min_holdings: int = 15
    small_portfolio_max_holdings: int = 40
    large_portfolio_min_holdings: int = 25
    large_portfolio_max_holdings: int = 60
    top10_concentration_max: float = 0.50
    top3_concentration_max: float = 0.40


@dataclass(frozen=True)
class GoalProbabilityThresholds:
    """Success probability bands in percent."""

    green_min: float = 75.0
    yellow_min: float = 50.0


@dataclass(frozen=True)
class CrisisResilienceThresholds:
    better_than_sp: float = 0.05


@dataclass(frozen=True)
class PlanningGapThresholds:
    green_min_complete: int = 6
    yellow_min_complete: int = 4
    critical_items: tuple[str, ...] = ("will_trust", "poa_directives", "emergency_fund")


@dataclass(frozen=True)
class ProtectionThresholds:
    high_risk_threshold: float = 7.0
    max_high_risk_areas: int = 2


@dataclass(frozen=True)
class LifetimeIncomeThresholds:
    core_coverage_green: float = 1.0
    core_coverage_yellow: float = 0.8


@dataclass(frozen=True)
class ScenarioBands:
    """Outcome-to-goal ratios separating the Monte Carlo scenario bands."""

    excellent: float = 1.5
    good: float = 1.0
    adequate: float = 0.8
    poor: float = 0.5


@dataclass(frozen=True)
class SeverityPolicy:
    """
    Cutoffs that escalate a card from NORMAL to EXTREME severity.

    Percent-valued fields are in percentage points (25 means 25%).
    """

    top_holding_pct: float = 25.0
    fee_pct: float = 0.8
    max_drawdown_pct: float = -25.0
    alpha_pct: float = -3.0
    tax_drag_pct: float = 1.0
    funded_ratio_pct: float = 80.0
    red_score_max: float = 35.0


@dataclass(frozen=True)
class ScoringConfig:
    """Complete threshold set used by the diagnostic analyzers."""

    status: StatusThresholds = field(default_factory=StatusThresholds)
    risk_management: RiskManagementThresholds = field(default_factory=RiskManagementThresholds)
    sharpe: SharpeThresholds = field(default_factory=SharpeThresholds)
    fees: dict[AdviceModel, FeeThresholds] = field(
        default_factory=lambda: dict(DEFAULT_FEE_THRESHOLDS)
    )
    diversification: DiversificationThresholds = field(default_factory=DiversificationThresholds)
    goal_probability: GoalProbabilityThresholds = field(default_factory=GoalProbabilityThresholds)
    crisis_resilience: CrisisResilienceThresholds = field(default_factory=CrisisResilienceThresholds)
    planning_gaps: PlanningGapThresholds = field(default_factory=PlanningGapThresholds)
    protection: ProtectionThresholds = field(default_factory=ProtectionThresholds)
    lifetime_income: LifetimeIncomeThresholds = field(default_factory=LifetimeIncomeThresholds)
    scenario_bands: ScenarioBands = field(default_factory=ScenarioBands)
    severity: SeverityPolicy = field(default_factory=SeverityPolicy)
    correlation_threshold: float = 0.8
    goal_simulations: int = 2_000
    action_plan_size: int = 6

    def fee_thresholds(self, advice_model: AdviceModel) -> FeeThresholds:
        try:
            return self.fees[advice_model]
        except KeyError as e:
            raise ConfigurationError(
                f"fees.{advice_model.value}", "No fee thresholds for advice model"
            ) from e


DEFAULT_SCORING_CONFIG = ScoringConfig()


@dataclass(frozen=True)
class RiskToleranceAdjustment:
    max_single_position_pct: float
    max_sector_pct: float
    top10_concentration_max: float
    top3_concentration_max: float
    goal_probability_green_min: float
    goal_probability_yellow_min: float
    sharpe_target: float
    protection_high_risk_threshold: float


RISK_TOLERANCE_ADJUSTMENTS: dict[RiskTolerance, RiskToleranceAdjustment] = {
    RiskTolerance.CONSERVATIVE: RiskToleranceAdjustment(
        max_single_position_pct=0.08,
        max_sector_pct=0.25,
        top10_concentration_max=0.45,
        top3_concentration_max=0.35,
        goal_probability_green_min=80,
        goal_probability_yellow_min=60,
        sharpe_target=0.40,
        protection_high_risk_threshold=6,
    ),
    RiskTolerance.MODERATE: RiskToleranceAdjustment(
        max_single_position_pct=0.10,
        max_sector_pct=0.30,
        top10_concentration_max=0.50,
        top3_concentration_max=0.40,
        goal_probability_green_min=75,
        goal_probability_yellow_min=50,
        sharpe_target=0.50,
        protection_high_risk_threshold=7,
    ),
    RiskTolerance.AGGRESSIVE: RiskToleranceAdjustment(
        max_single_position_pct=0.15,
        max_sector_pct=0.40,
        top10_concentration_max=0.60,
        top3_concentration_max=0.50,
        goal_probability_green_min=65,
        goal_probability_yellow_min=40,
        sharpe_target=0.55,
        protection_high_risk_threshold=8,
    ),
}


def adjust_for_risk_tolerance(
    base: ScoringConfig,
    risk_tolerance: RiskTolerance,
) -> ScoringConfig:
    """
    Return a copy of ``base`` with tolerance-specific limits applied.

    Conservative clients get stricter concentration limits and a higher
    success bar; aggressive clients the reverse. ``base`` is never mutated.
    """
    adj = RISK_TOLERANCE_ADJUSTMENTS[risk_tolerance]
    return replace(
        base,
        risk_management=replace(
            base.risk_management,
            max_single_position_pct=adj.max_single_position_pct,
            max_sector_pct=adj.max_sector_pct,
        ),
        diversification=replace(
            base.diversification,
            top10_concentration_max=adj.top10_concentration_max,
            top3_concentration_max=adj.top3_concentration_max,
        ),
        goal_probability=GoalProbabilityThresholds(
            green_min=adj.goal_probability_green_min,
            yellow_min=adj.goal_probability_yellow_min,
        ),
        sharpe=replace(
            base.sharpe,
            portfolio_target=adj.sharpe_target,
            holding_good_threshold=adj.sharpe_target,
        ),
        protection=replace(
            base.protection,
            high_risk_threshold=adj.protection_high_risk_threshold,
        ),
    )


# Serialization

_SECTION_TYPES = {
    "status": StatusThresholds,
    "risk_management": RiskManagementThresholds,
    "sharpe": SharpeThresholds,
    "diversification": DiversificationThresholds,
    "goal_probability": GoalProbabilityThresholds,
    "crisis_resilience": CrisisResilienceThresholds,
    "planning_gaps": PlanningGapThresholds,
    "protection": ProtectionThresholds,
    "lifetime_income": LifetimeIncomeThresholds,
    "scenario_bands": ScenarioBands,
    "severity": SeverityPolicy,
}

_SCALAR_FIELDS = ("correlation_threshold", "goal_simulations", "action_plan_size")


def _coerce(path: str, value: Any, default: Any) -> Any:
    """Coerce a JSON value to the type of its default, failing loudly."""
    if isinstance(default, tuple):
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise ConfigurationError(path, "Expected a list of strings")
        return tuple(value)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigurationError(path, f"Expected a number, got {value!r}")
    if isinstance(default, int):
        if float(value) != int(value):
            raise ConfigurationError(path, f"Expected a whole number, got {value!r}")
        return int(value)
    return float(value)


def _merge_section(name: str, default: Any, data: Any) -> Any:
    if not isinstance(data, dict):
        raise ConfigurationError(name, "Section must be an object")
    known = {f.name for f in fields(default)}
    unknown = set(data) - known
    if unknown:
        raise ConfigurationError(name, f"Unknown keys: {sorted(unknown)}")
    updates = {
        key: _coerce(f"{name}.{key}", value, getattr(default, key))
        for key, value in data.items()
    }
    return replace(default, **updates)


def _merge_fees(
    default: dict[AdviceModel, FeeThresholds], data: Any
) -> dict[AdviceModel, FeeThresholds]:
    if not isinstance(data, dict):
        raise ConfigurationError("fees", "Section must be an object")
    merged = dict(default)
    for key, value in data.items():
        try:
            model = AdviceModel(key)
        except ValueError as e:
            raise ConfigurationError(f"fees.{key}", "Unknown advice model") from e
        base = merged.get(model, FeeThresholds(0.0, 0.0))
        merged[model] = _merge_section(f"fees.{key}", base, value)
    return merged


def scoring_config_from_dict(
    data: dict[str, Any],
    base: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> ScoringConfig:
    """
    Build a ScoringConfig from a (possibly partial) nested dictionary.

    Missing sections and keys fall back to ``base``. Unknown keys, wrong
    types and inconsistent thresholds raise ConfigurationError.

    Args:
        data: Nested mapping as produced by scoring_config_to_dict
        base: Config supplying values the mapping omits

    Returns:
        Validated ScoringConfig
    """
    from core.validation import validate_scoring_config

    if not isinstance(data, dict):
        raise ConfigurationError("<root>", "Configuration must be an object")

    allowed = set(_SECTION_TYPES) | {"fees"} | set(_SCALAR_FIELDS)
    unknown = set(data) - allowed
    if unknown:
        raise ConfigurationError("<root>", f"Unknown sections: {sorted(unknown)}")

    updates: dict[str, Any] = {}
    for name in _SECTION_TYPES:
        if name in data:
            updates[name] = _merge_section(name, getattr(base, name), data[name])
    if "fees" in data:
        updates["fees"] = _merge_fees(base.fees, data["fees"])
    for name in _SCALAR_FIELDS:
        if name in data:
            updates[name] = _coerce(name, data[name], getattr(base, name))

    config = replace(base, **updates)

    result = validate_scoring_config(config)
    if not result.is_valid():
        field_name, _ = result.errors[0]
        raise ConfigurationError(field_name, "; ".join(result.error_messages()))
    return config


def scoring_config_to_dict(config: ScoringConfig) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for name in _SECTION_TYPES:
        section = asdict(getattr(config, name))
        data[name] = {k: list(v) if isinstance(v, tuple) else v for k, v in section.items()}
    data["fees"] = {model.value: asdict(t) for model, t in config.fees.items()}
    for name in _SCALAR_FIELDS:
        data[name] = getattr(config, name)
    return data


def load_scoring_config(path: Path) -> ScoringConfig:
    """Load and validate a scoring configuration from a JSON file."""
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as e:
        raise ConfigurationError(str(path), "Configuration file not found") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(str(path), f"Malformed JSON: {e}") from e

    config = scoring_config_from_dict(payload)
    logger.info(f"Loaded scoring configuration from {path}")
    return config


def save_scoring_config(config: ScoringConfig, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(scoring_config_to_dict(config), handle, indent=2)
    logger.info(f"Saved scoring configuration to {path}")
