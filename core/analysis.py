"""End-to-end portfolio analysis pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from core.assumptions import DEFAULT_ASSUMPTIONS, PortfolioAssumptions
from core.correlation import (
    CorrelationIssues,
    CorrelationMatrixResult,
    analyze_correlation_issues,
    compute_correlation_matrix,
)
from core.diagnostics import (
    ANALYZED_CATEGORIES,
    DiagnosticCategory,
    DiagnosticResult,
    Recommendation,
    RiskAdjustedDetails,
)
from core.exceptions import ValidationError
from core.holdings import AdviceModel, ClientParameters, Holding, PlanningChecklist
from core.lifetime_income import (
    IncomeCoverageSummary,
    LifetimeIncomeInputs,
    LifetimeIncomeProjection,
    project_lifetime_income,
    summarize_income_coverage,
)
from core.performance_metrics import PerformanceMetrics, calculate_performance_metrics
from core.portfolio import PortfolioProfile, calculate_portfolio_profile, unique_tickers
from core.returns import simulate_returns_with_benchmark
from core.scoring import (
    analyze_costs,
    analyze_downside_resilience,
    analyze_lifetime_income,
    analyze_performance_metrics,
    analyze_performance_optimization,
    analyze_planning_gaps,
    analyze_risk_adjusted,
    analyze_risk_diversification,
    analyze_tax_efficiency,
    generate_recommendations,
    unavailable_result,
)
from core.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig, adjust_for_risk_tolerance
from core.simulator import SimulationResult
from core.validation import validate_holdings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortfolioAnalysis:
    """
    Complete analysis of one portfolio.

    Attributes:
        diagnostics: One result per analyzed category, in display order
        recommendations: Prioritized recommendations from weak diagnostics
        profile: Assumption-based value, return, volatility and fees
        health_score: Rounded mean of the diagnostic scores (0 without holdings)
        performance: Performance metrics, None without holdings
        correlation: Correlation matrix of the simulated holding returns
        correlation_issues: Highly correlated pairs, None without holdings
        simulation: Goal simulation, None when the client has no goal
        income_summary: Static guaranteed-income snapshot
        income_projection: Year-by-year income coverage, None without income data
    """

    diagnostics: dict[DiagnosticCategory, DiagnosticResult]
    recommendations: list[Recommendation]
    profile: PortfolioProfile
    health_score: int
    performance: PerformanceMetrics | None = None
    correlation: CorrelationMatrixResult = field(default_factory=CorrelationMatrixResult)
    correlation_issues: CorrelationIssues | None = None
    simulation: SimulationResult | None = None
    income_summary: IncomeCoverageSummary | None = None
    income_projection: LifetimeIncomeProjection | None = None

    @property
    def total_value(self) -> float:
        return self.profile.total_value

    @property
    def total_fees(self) -> float:
        return self.profile.total_fees

    @property
    def expected_return(self) -> float:
        return self.profile.expected_return

    @property
    def volatility(self) -> float:
        return self.profile.volatility

    @property
    def sharpe_ratio(self) -> float:
        return self.profile.sharpe_ratio

    def diagnostic(self, category: DiagnosticCategory) -> DiagnosticResult:
        return self.diagnostics[category]


def analyze_portfolio(
    holdings: Sequence[Holding],
    client: ClientParameters,
    checklist: PlanningChecklist,
    scoring_config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    advice_model: AdviceModel = AdviceModel.SELF_DIRECTED,
    advisor_fee: float = 0.0,
    income_inputs: LifetimeIncomeInputs | None = None,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
    rng: np.random.Generator | None = None,
) -> PortfolioAnalysis:
    """
    Run every analyzer and collect the results.

    The scoring config is adjusted for the client's risk tolerance first.
    Return series are simulated once and shared by the correlation and
    performance-metric steps, so a seeded ``rng`` makes the whole analysis
    reproducible.

    Args:
        holdings: Portfolio holdings (never mutated)
        client: Risk tolerance, goal and age
        checklist: Planning checklist state
        scoring_config: Base thresholds
        advice_model: Selects the fee threshold set
        advisor_fee: Annual advisory fee as a fraction of assets
        income_inputs: Expenses and guaranteed income sources
        assumptions: Capital-market assumptions
        rng: Random generator for simulated returns and the goal simulation

    Returns:
        PortfolioAnalysis

    Raises:
        ValidationError: If a holding has an empty ticker, a negative
            amount or an expense ratio outside [0, 10%)
    """
    check = validate_holdings(holdings)
    if not check.is_valid():
        field_name, message = check.errors[0]
        raise ValidationError(field_name, message)

    if rng is None:
        rng = np.random.default_rng()
    if income_inputs is None:
        income_inputs = LifetimeIncomeInputs()

    config = adjust_for_risk_tolerance(scoring_config, client.risk_tolerance)
    profile = calculate_portfolio_profile(holdings, assumptions)

    income_summary = summarize_income_coverage(income_inputs)
    income_projection = None
    if income_inputs.has_data:
        income_projection = project_lifetime_income(
            income_inputs, client.current_age, assumptions.inflation_rate
        )

    planning = analyze_planning_gaps(checklist, config)
    lifetime = analyze_lifetime_income(income_inputs, config)

    if not holdings:
        logger.info("No holdings supplied; returning placeholder diagnostics")
        diagnostics = {
            category: unavailable_result(category)
            for category in ANALYZED_CATEGORIES
        }
        diagnostics[DiagnosticCategory.PLANNING_GAPS] = planning
        diagnostics[DiagnosticCategory.LIFETIME_INCOME_SECURITY] = lifetime
        return PortfolioAnalysis(
            diagnostics=diagnostics,
            recommendations=[],
            profile=profile,
            health_score=0,
            income_summary=income_summary,
            income_projection=income_projection,
        )

    logger.info(
        f"Analyzing {len(holdings)} holdings ({len(unique_tickers(holdings))} tickers) "
        f"worth ${profile.total_value:,.0f}"
    )

    synthetic = simulate_returns_with_benchmark(holdings, rng=rng, assumptions=assumptions)
    correlation = compute_correlation_matrix(synthetic.returns)
    issues = analyze_correlation_issues(
        correlation.matrix, correlation.labels, config.correlation_threshold
    )
    if issues.has_issues:
        logger.info(f"Found {len(issues.high_correlation_pairs)} highly correlated pairs")

    performance = calculate_performance_metrics(
        holdings,
        returns=synthetic.returns,
        benchmark_returns=synthetic.benchmark,
        risk_tolerance=client.risk_tolerance,
        periods_per_year=synthetic.periods_per_year,
        assumptions=assumptions,
        scoring_config=scoring_config,
        simulated=synthetic.simulated,
    )

    risk_adjusted = analyze_risk_adjusted(
        client,
        profile,
        config,
        assumptions,
        income=income_summary if income_inputs.has_data else None,
        rng=rng,
    )

    results = [
        analyze_risk_diversification(holdings, client, profile, config, assumptions, issues),
        analyze_downside_resilience(holdings, profile, config, performance),
        analyze_performance_optimization(holdings, profile, config, assumptions),
        analyze_costs(holdings, profile, advice_model, advisor_fee, config, assumptions),
        analyze_tax_efficiency(holdings, profile, config, assumptions),
        risk_adjusted,
        planning,
        lifetime,
        analyze_performance_metrics(performance, config),
    ]
    diagnostics = {result.category: result for result in results}

    health_score = round(sum(r.score for r in results) / len(results))
    recommendations = generate_recommendations(diagnostics, profile.total_fees, config)

    simulation = None
    if isinstance(risk_adjusted.details, RiskAdjustedDetails):
        simulation = risk_adjusted.details.simulation

    logger.info(
        f"Analysis complete: health score {health_score}, "
        f"{len(recommendations)} recommendations"
    )

    return PortfolioAnalysis(
        diagnostics=diagnostics,
        recommendations=recommendations,
        profile=profile,
        health_score=health_score,
        performance=performance,
        correlation=correlation,
        correlation_issues=issues,
        simulation=simulation,
        income_summary=income_summary,
        income_projection=income_projection,
    )
