"""Diagnostic result records shared by the analyzers and the card layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union

from core.holdings import AccountType, AdviceModel, AssetClass
from core.performance_metrics import PerformanceMetrics
from core.portfolio import PositionWeight
from core.scoring_config import DEFAULT_SCORING_CONFIG, FeeThresholds, ScoringConfig
from core.simulator import SimulationResult


class DiagnosticStatus(str, Enum):
    GREEN = "GREEN"
    YELLOW = "YELLOW"
    RED = "RED"


_STATUS_RANK = {
    DiagnosticStatus.RED: 0,
    DiagnosticStatus.YELLOW: 1,
    DiagnosticStatus.GREEN: 2,
}


def status_rank(status: DiagnosticStatus) -> int:
    """Ordering key where RED < YELLOW < GREEN."""
    return _STATUS_RANK[status]


def status_for_score(
    score: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> DiagnosticStatus:
    if score >= config.status.green_min:
        return DiagnosticStatus.GREEN
    if score >= config.status.yellow_min:
        return DiagnosticStatus.YELLOW
    return DiagnosticStatus.RED


class Severity(str, Enum):
    NORMAL = "NORMAL"
    EXTREME = "EXTREME"


class DiagnosticCategory(str, Enum):
    RISK_DIVERSIFICATION = "riskDiversification"
    DOWNSIDE_RESILIENCE = "downsideResilience"
    PERFORMANCE_OPTIMIZATION = "performanceOptimization"
    COST_ANALYSIS = "costAnalysis"
    TAX_EFFICIENCY = "taxEfficiency"
    RISK_ADJUSTED = "riskAdjusted"
    PLANNING_GAPS = "planningGaps"
    LIFETIME_INCOME_SECURITY = "lifetimeIncomeSecurity"
    PERFORMANCE_METRICS = "performanceMetrics"
    CROSS_ACCOUNT_CONCENTRATION = "crossAccountConcentration"


# Categories produced by the analysis pipeline, in display order
ANALYZED_CATEGORIES: tuple[DiagnosticCategory, ...] = tuple(
    c for c in DiagnosticCategory if c is not DiagnosticCategory.CROSS_ACCOUNT_CONCENTRATION
)


class RiskLevel(str, Enum):
    LOW = "LOW"
    MODERATE = "MODERATE"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# Detail records


@dataclass(frozen=True)
class UnavailableDetails:
    reason: str


@dataclass(frozen=True)
class RiskDiversificationDetails:
    """
    Concentration, risk alignment and holding-count facts.

    Weights are fractions except ``top_holding_pct``, which is in percent.
    """

    current_volatility: float
    target_volatility: float
    risk_gap: float
    top_positions: list[PositionWeight]
    top_holding_pct: float
    sector_weights: dict[str, float]
    asset_class_weights: dict[AssetClass, float]
    has_concentration: bool
    has_sector_concentration: bool
    max_single_position_pct: float
    max_sector_pct: float
    num_holdings: int
    top3_weight: float
    top10_weight: float
    holding_count_label: str
    min_holdings: int
    max_holdings: int
    is_large_portfolio: bool
    risk_management_score: float
    diversification_score: float
    high_correlation_pairs: list[tuple[str, str, float]] = field(default_factory=list)
    avg_correlation: float | None = None


@dataclass(frozen=True)
class ProtectionRisk:
    """One of the six vulnerability areas, scored 0-10 (higher is riskier)."""

    name: str
    label: str
    score: int
    severity: RiskLevel
    description: str
    mitigation: str
    max_score: int = 10


@dataclass(frozen=True)
class CrisisImpact:
    scenario_id: str
    name: str
    portfolio_impact: float
    sp_impact: float


@dataclass(frozen=True)
class DownsideResilienceDetails:
    """Vulnerability areas, crisis replays and the simulated drawdown."""

    risk_areas: list[ProtectionRisk]
    stock_weight: float
    bond_weight: float
    commodity_weight: float
    cash_weight: float
    intl_weight: float
    critical_count: int
    elevated_count: int
    scenarios: list[CrisisImpact]
    avg_impact: float
    avg_sp_impact: float
    portfolio_loses_less: bool
    portfolio_loses_more: bool
    max_drawdown_pct: float | None
    protection_score: float
    crisis_score: float


@dataclass(frozen=True)
class HoldingEfficiency:
    ticker: str
    sharpe: float
    contribution: str
    weight: float
    pct_of_target: int
    expected_return: float
    volatility: float


@dataclass(frozen=True)
class BenchmarkComparison:
    """Portfolio versus one reference portfolio, net of fund costs."""

    benchmark_id: str
    name: str
    expected_return: float
    volatility: float
    sharpe_ratio: float
    return_gap: float


@dataclass(frozen=True)
class PerformanceOptimizationDetails:
    sharpe_ratio: float
    target_sharpe: float
    pct_of_target: int
    expected_return: float
    volatility: float
    holding_efficiency: list[HoldingEfficiency]
    optimized_sharpe: float
    relative_improvement: float
    optimization_steps: list[str]
    benchmarks: list[BenchmarkComparison]
    closest_benchmark_id: str | None
    alpha_pct: float | None


@dataclass(frozen=True)
class HoldingFee:
    ticker: str
    name: str
    value: float
    expense_ratio: float
    annual_fee: float


@dataclass(frozen=True)
class CostAnalysisDetails:
    """Fee rates are fractions except ``all_in_fee_pct`` (percent)."""

    product_fees: float
    advisor_fee: float
    all_in_fees: float
    all_in_fee_pct: float
    ten_year_impact: float
    holding_fees: list[HoldingFee]
    advice_model: AdviceModel
    thresholds: FeeThresholds
    model_label: str


@dataclass(frozen=True)
class LossCandidate:
    ticker: str
    account_type: AccountType
    unrealized_loss: float
    harvestable: bool


@dataclass(frozen=True)
class TaxEfficiencyDetails:
    loss_candidates: list[LossCandidate]
    total_harvestable: float
    estimated_tax_savings: float
    inefficient_in_taxable: list[str]
    taxable_holdings_count: int
    total_holdings_count: int
    tax_drag_pct: float


@dataclass(frozen=True)
class RiskAdjustedDetails:
    """
    Goal probability and its context.

    ``probability`` is in percent. ``simulation`` is None when the client
    has no goal set and the neutral 50% placeholder is used, or when the goal
    could not be simulated, in which case ``skipped_reason`` says why.
    """

    probability: float
    band_label: str
    green_min: float
    yellow_min: float
    estimated_sortino: float | None
    estimated_max_drawdown: float
    income_secured: bool
    goal_type: str
    income_security_note: str | None
    core_coverage_ratio: float | None
    simulation: SimulationResult | None = None
    skipped_reason: str | None = None


@dataclass(frozen=True)
class PlanningGapDetails:
    checklist: dict[str, bool]
    completed: int
    total: int
    completion_rate: float
    missing_items: list[str]
    critical_missing: list[str]


@dataclass(frozen=True)
class LifetimeIncomeDetails:
    """Monthly figures; ``funded_ratio_pct`` is None until data is entered."""

    core_expenses_monthly: float
    discretionary_monthly: float
    healthcare_monthly: float
    total_expenses_monthly: float
    guaranteed_income_monthly: float
    core_coverage_ratio: float
    total_coverage_ratio: float
    shortfall_monthly: float
    surplus_monthly: float
    funded_ratio_pct: float | None
    source_count: int
    needs_data_entry: bool


@dataclass(frozen=True)
class PerformanceMetricsDetails:
    metrics: PerformanceMetrics
    available_count: int
    good_count: int
    poor_count: int

    @property
    def sharpe_ratio(self) -> float | None:
        return self.metrics.sharpe_ratio

    @property
    def max_drawdown(self) -> float | None:
        return self.metrics.max_drawdown


@dataclass(frozen=True)
class CrossAccountHolding:
    ticker: str
    weight: float
    account_count: int
    accounts: tuple[str, ...]


@dataclass(frozen=True)
class CrossAccountDetails:
    top_holdings: list[CrossAccountHolding]
    multi_account_tickers: list[CrossAccountHolding]
    total_value: float
    holding_count: int


DiagnosticDetails = Union[
    UnavailableDetails,
    RiskDiversificationDetails,
    DownsideResilienceDetails,
    PerformanceOptimizationDetails,
    CostAnalysisDetails,
    TaxEfficiencyDetails,
    RiskAdjustedDetails,
    PlanningGapDetails,
    LifetimeIncomeDetails,
    PerformanceMetricsDetails,
    CrossAccountDetails,
]


@dataclass(frozen=True)
class DiagnosticResult:
    """
    Scored outcome of one diagnostic analyzer.

    Attributes:
        category: Diagnostic category
        status: GREEN / YELLOW / RED, derived from the score
        score: Health score in [0, 100]
        key_finding: One-paragraph explanation of the result
        headline_metric: Short figure shown next to the status
        details: Category-specific detail record
    """

    category: DiagnosticCategory
    status: DiagnosticStatus
    score: float
    key_finding: str
    headline_metric: str
    details: DiagnosticDetails


@dataclass(frozen=True)
class Recommendation:
    id: str
    category: DiagnosticCategory
    title: str
    description: str
    priority: int
    impact: str
