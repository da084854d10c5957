"""
Rule-based diagnostic analyzers.

Each analyzer scores one dimension of portfolio health from 0 to 100 and maps
the score to a GREEN / YELLOW / RED status through the scoring config. The
config passed in is expected to be already adjusted for the client's risk
tolerance.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from core.assumptions import (
    BENCHMARKS,
    CRISIS_SCENARIOS,
    DEFAULT_ASSUMPTIONS,
    Benchmark,
    CrisisScenario,
    PortfolioAssumptions,
)
from core.correlation import CorrelationIssues
from core.diagnostics import (
    BenchmarkComparison,
    CostAnalysisDetails,
    CrisisImpact,
    DiagnosticCategory,
    DiagnosticResult,
    DiagnosticStatus,
    DownsideResilienceDetails,
    HoldingEfficiency,
    HoldingFee,
    LifetimeIncomeDetails,
    LossCandidate,
    PerformanceMetricsDetails,
    PerformanceOptimizationDetails,
    PlanningGapDetails,
    ProtectionRisk,
    Recommendation,
    RiskAdjustedDetails,
    RiskDiversificationDetails,
    RiskLevel,
    TaxEfficiencyDetails,
    UnavailableDetails,
    status_for_score,
)
from core.exceptions import SimulationError
from core.holdings import (
    CHECKLIST_LABELS,
    AccountType,
    AdviceModel,
    AssetClass,
    ClientParameters,
    Holding,
    PlanningChecklist,
)
from core.lifetime_income import IncomeCoverageSummary, LifetimeIncomeInputs, summarize_income_coverage
from core.performance_metrics import MetricStatus, PerformanceMetrics, metric_status_rank
from core.portfolio import (
    PortfolioProfile,
    asset_class_weights,
    effective_expense_ratio,
    position_weights,
    sector_weights,
)
from core.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig
from core.simulator import GoalSimulationParams, run_goal_simulation
from utils.helpers import clamp, format_currency, format_pct

logger = logging.getLogger(__name__)

# Marginal rate used to value harvested losses and taxable income drag
ESTIMATED_TAX_RATE = 0.25

CORRELATION_PENALTY = 10.0

METRIC_POINTS = {
    MetricStatus.GOOD: 100.0,
    MetricStatus.WARNING: 60.0,
    MetricStatus.POOR: 20.0,
}

TAX_INEFFICIENT_CLASSES = (AssetClass.BONDS, AssetClass.COMMODITIES)


def _result(
    category: DiagnosticCategory,
    score: float,
    key_finding: str,
    headline_metric: str,
    details,
    config: ScoringConfig,
) -> DiagnosticResult:
    score = clamp(score)
    return DiagnosticResult(
        category=category,
        status=status_for_score(score, config),
        score=score,
        key_finding=key_finding,
        headline_metric=headline_metric,
        details=details,
    )


def unavailable_result(
    category: DiagnosticCategory,
    key_finding: str = "Add holdings to begin analysis",
    headline_metric: str = "No data",
) -> DiagnosticResult:
    """Neutral placeholder used when an analyzer has nothing to measure."""
    return DiagnosticResult(
        category=category,
        status=DiagnosticStatus.YELLOW,
        score=50.0,
        key_finding=key_finding,
        headline_metric=headline_metric,
        details=UnavailableDetails(reason=key_finding),
    )


def _class_weight(holdings: Sequence[Holding], classes: tuple[AssetClass, ...], value: float) -> float:
    if value <= 0:
        return 0.0
    return sum(h.value for h in holdings if h.asset_class in classes) / value


# Risk & diversification


def _risk_management_score(risk_gap: float, has_concentration: bool, has_sector: bool, config: ScoringConfig) -> float:
    rm = config.risk_management
    score = 100.0
    if risk_gap > rm.risk_gap_severe:
        score -= 40
    elif risk_gap > rm.risk_gap_warning:
        score -= 20
    if has_concentration:
        score -= 25
    if has_sector:
        score -= 15
    return score


def analyze_risk_diversification(
    holdings: Sequence[Holding],
    client: ClientParameters,
    profile: PortfolioProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
    correlation_issues: CorrelationIssues | None = None,
) -> DiagnosticResult:
    """
    Score concentration, risk alignment and breadth of the portfolio.

    The score is the mean of a risk-management score (volatility versus the
    tolerance target, single-position and sector limits) and a
    diversification score (holding count, top-3/top-10 weight, asset mix),
    less a fixed penalty when highly correlated pairs were found.
    """
    rm = config.risk_management
    div = config.diversification

    target_vol = assumptions.target_volatility[client.risk_tolerance]
    risk_gap = abs(profile.volatility - target_vol) / target_vol if target_vol > 0 else 0.0

    positions = position_weights(holdings)
    top = positions[0] if positions else None
    top_weight = top.weight if top else 0.0
    has_concentration = top_weight > rm.max_single_position_pct

    sectors = sector_weights(holdings)
    top_sector = max(sectors.values(), default=0.0)
    has_sector_concentration = top_sector > rm.max_sector_pct

    rm_score = _risk_management_score(risk_gap, has_concentration, has_sector_concentration, config)

    num_holdings = len(holdings)
    is_large = profile.total_value >= div.small_portfolio_threshold
    min_holdings = div.large_portfolio_min_holdings if is_large else div.small_portfolio_min_holdings
    max_holdings = div.large_portfolio_max_holdings if is_large else div.small_portfolio_max_holdings

    classes = asset_class_weights(holdings)
    top3_weight = sum(p.weight for p in positions[:3])
    top10_weight = sum(p.weight for p in positions[:10])

    too_few = num_holdings < min_holdings
    too_many = num_holdings > max_holdings
    top10_concentrated = top10_weight > div.top10_concentration_max
    top3_concentrated = top3_weight > div.top3_concentration_max

    div_score = 70.0
    if too_few:
        div_score -= 30
    elif too_many:
        div_score -= 10
    if top10_concentrated:
        div_score -= 20
    if top3_concentrated:
        div_score -= 15
    if classes[AssetClass.BONDS] < 0.1 and classes[AssetClass.US_STOCKS] > 0.7:
        div_score -= 15

    if too_few:
        label = "TOO FEW"
    elif too_many:
        label = "TOO MANY"
    else:
        label = "ADEQUATE"

    score = (rm_score + div_score) / 2
    pairs: list[tuple[str, str, float]] = []
    avg_correlation = None
    if correlation_issues is not None:
        avg_correlation = correlation_issues.avg_correlation
        pairs = [(p.first, p.second, p.correlation) for p in correlation_issues.high_correlation_pairs]
        if correlation_issues.has_issues:
            score -= CORRELATION_PENALTY
    score = clamp(score)
    status = status_for_score(score, config)

    if has_concentration and top:
        key_finding = (
            f"Top position ({top.ticker}) is {format_pct(top_weight)} of the portfolio, "
            f"above the {format_pct(rm.max_single_position_pct, 0)} concentration guideline"
        )
    elif has_sector_concentration:
        key_finding = (
            f"Top sector concentration is {format_pct(top_sector)}, "
            f"exceeding the {format_pct(rm.max_sector_pct, 0)} guideline"
        )
    elif top3_concentrated:
        key_finding = (
            f"Top 3 positions are {format_pct(top3_weight, 0)} of the portfolio; "
            f"a bad quarter for three holdings could materially hurt results"
        )
    elif pairs:
        first, second, corr = pairs[0]
        key_finding = (
            f"{len(pairs)} holding pair(s) move almost together "
            f"(strongest: {first}/{second} at {corr:.2f}), so diversification is weaker than it looks"
        )
    elif too_few:
        key_finding = (
            f"Only {num_holdings} holdings provides limited diversification; "
            f"consider {min_holdings}-{max_holdings} positions"
        )
    elif risk_gap > rm.risk_gap_severe:
        direction = "higher" if profile.volatility > target_vol else "lower"
        key_finding = (
            f"Portfolio volatility is significantly {direction} than the "
            f"{client.risk_tolerance.value} target"
        )
    elif status == DiagnosticStatus.GREEN:
        key_finding = "Portfolio risk is well aligned and spread across holdings"
    else:
        key_finding = "Some concentration or allocation adjustments may improve stability"

    details = RiskDiversificationDetails(
        current_volatility=profile.volatility,
        target_volatility=target_vol,
        risk_gap=risk_gap,
        top_positions=positions[:5],
        top_holding_pct=top_weight * 100,
        sector_weights=sectors,
        asset_class_weights=classes,
        has_concentration=has_concentration,
        has_sector_concentration=has_sector_concentration,
        max_single_position_pct=rm.max_single_position_pct,
        max_sector_pct=rm.max_sector_pct,
        num_holdings=num_holdings,
        top3_weight=top3_weight,
        top10_weight=top10_weight,
        holding_count_label=label,
        min_holdings=min_holdings,
        max_holdings=max_holdings,
        is_large_portfolio=is_large,
        risk_management_score=clamp(rm_score),
        diversification_score=clamp(div_score),
        high_correlation_pairs=pairs,
        avg_correlation=avg_correlation,
    )

    return _result(
        DiagnosticCategory.RISK_DIVERSIFICATION,
        score,
        key_finding,
        f"Largest position: {format_pct(top_weight)} (max {format_pct(rm.max_single_position_pct, 0)})",
        details,
        config,
    )


# Downside resilience


def _risk_level(score: int, threshold: float) -> RiskLevel:
    if score <= 3:
        return RiskLevel.LOW
    if score <= 5:
        return RiskLevel.MODERATE
    if score <= threshold:
        return RiskLevel.HIGH
    return RiskLevel.CRITICAL


def assess_protection_risks(
    stock_weight: float,
    bond_weight: float,
    commodity_weight: float,
    cash_weight: float,
    intl_weight: float,
    threshold: float,
) -> list[ProtectionRisk]:
    """Score the six vulnerability areas from 0 (none) to 10 (severe)."""
    raw = [
        (
            "inflation_risk",
            "Inflation Risk",
            round(max(2, 10 - commodity_weight * 20 - stock_weight * 5 - bond_weight * 2)),
            "Inflation erodes purchasing power; at 3% a year, $100,000 buys about $74,000 of goods in 10 years.",
            "Consider TIPS, commodities, real estate or I-Bonds to maintain purchasing power",
        ),
        (
            "interest_rate_risk",
            "Interest Rate Risk",
            round(bond_weight * 8 + (2 if bond_weight > 0.4 else 0)),
            "When rates rise, existing bond prices fall; longer durations are more sensitive.",
            "Shorten bond duration or ladder maturities to reduce rate sensitivity",
        ),
        (
            "market_crash_risk",
            "Market Crash Risk",
            round(stock_weight * 10),
            "Equity markets can drop 30-50% in severe downturns and take years to recover.",
            "Add defensive assets (bonds, cash) or consider downside protection strategies",
        ),
        (
            "liquidity_risk",
            "Liquidity Risk",
            round(max(1, 5 - cash_weight * 20)),
            "Without cash reserves you may be forced to sell at a loss to meet cash needs.",
            "Maintain a 6-12 month emergency fund in cash or a money market",
        ),
        (
            "concentration_risk",
            "Geographic Concentration",
            round((1 - intl_weight) * 6),
            "Relying on one country's market increases exposure to regional economic problems.",
            "Add 20-40% international diversification to reduce country-specific risk",
        ),
        (
            "sequence_risk",
            "Sequence of Returns Risk",
            7 if stock_weight > 0.7 else 5 if stock_weight > 0.5 else 3,
            "Poor returns early in retirement, combined with withdrawals, can permanently deplete a portfolio.",
            "Cover core living expenses with guaranteed lifetime income to remove sequence risk for essentials",
        ),
    ]
    return [
        ProtectionRisk(
            name=name,
            label=label,
            score=int(score),
            severity=_risk_level(int(score), threshold),
            description=description,
            mitigation=mitigation,
        )
        for name, label, score, description, mitigation in raw
    ]


def _crisis_score(avg_loss: float, loses_less: bool) -> float:
    if avg_loss < 0.25:
        score = 85 + min(15, (0.25 - avg_loss) * 60)
    elif avg_loss < 0.35:
        score = 60 + (0.35 - avg_loss) * 250
    elif avg_loss < 0.45:
        score = 40 + (0.45 - avg_loss) * 200
    else:
        score = max(0.0, 40 - (avg_loss - 0.45) * 100)
    if loses_less:
        score += 10
    return min(100.0, score)


def analyze_downside_resilience(
    holdings: Sequence[Holding],
    profile: PortfolioProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    metrics: PerformanceMetrics | None = None,
    scenarios: Sequence[CrisisScenario] = CRISIS_SCENARIOS,
) -> DiagnosticResult:
    """
    Score vulnerability areas and historical crisis losses.

    The score is the mean of a protection score (deductions for critical,
    high and moderate risk areas) and a crisis score (average loss across
    historical scenarios, with a bonus for losing less than the S&P 500).
    """
    value = profile.total_value
    stock_weight = _class_weight(holdings, (AssetClass.US_STOCKS, AssetClass.INTL_STOCKS), value)
    bond_weight = _class_weight(holdings, (AssetClass.BONDS,), value)
    commodity_weight = _class_weight(holdings, (AssetClass.COMMODITIES,), value)
    cash_weight = _class_weight(holdings, (AssetClass.CASH,), value)
    intl_weight = _class_weight(holdings, (AssetClass.INTL_STOCKS,), value)

    threshold = config.protection.high_risk_threshold
    risks = assess_protection_risks(
        stock_weight, bond_weight, commodity_weight, cash_weight, intl_weight, threshold
    )
    critical = [r for r in risks if r.severity == RiskLevel.CRITICAL]
    high = [r for r in risks if r.severity == RiskLevel.HIGH]
    moderate = [r for r in risks if r.severity == RiskLevel.MODERATE]

    protection_score = clamp(100 - len(critical) * 25 - len(high) * 15 - len(moderate) * 5)

    impacts = [
        CrisisImpact(
            scenario_id=s.id,
            name=s.name,
            portfolio_impact=stock_weight * s.equity_shock + bond_weight * s.bond_shock,
            sp_impact=s.equity_shock,
        )
        for s in scenarios
    ]
    avg_impact = float(np.mean([i.portfolio_impact for i in impacts])) if impacts else 0.0
    avg_sp = float(np.mean([i.sp_impact for i in impacts])) if impacts else 0.0
    margin = config.crisis_resilience.better_than_sp
    loses_less = avg_impact > avg_sp + margin
    loses_more = avg_impact < avg_sp - margin
    crisis_score = _crisis_score(abs(avg_impact), loses_less)

    max_dd_pct = None
    if metrics is not None and metrics.max_drawdown is not None:
        max_dd_pct = metrics.max_drawdown * 100

    score = (protection_score + crisis_score) / 2

    if loses_less:
        comparison = f"loses less than the S&P 500 (avg {format_pct(avg_impact, 0)} vs {format_pct(avg_sp, 0)})"
    elif loses_more:
        comparison = f"loses more than the S&P 500 (avg {format_pct(avg_impact, 0)} vs {format_pct(avg_sp, 0)})"
    else:
        comparison = f"performs similarly to the S&P 500 in crashes (avg {format_pct(avg_impact, 0)})"

    elevated = critical + high
    if len(critical) >= 2:
        key_finding = (
            f"Critical vulnerabilities in {' and '.join(r.label for r in critical)}; "
            f"in past crises the portfolio {comparison}"
        )
    elif len(critical) == 1:
        key_finding = f"Critical: {critical[0].label} ({critical[0].score}/10). {critical[0].mitigation}"
    elif len(elevated) >= config.protection.max_high_risk_areas:
        key_finding = f"Elevated risk in {' and '.join(r.label for r in elevated)}"
    elif abs(avg_impact) > 0.40:
        key_finding = f"In major crises the portfolio {comparison}; projected losses are still significant"
    else:
        key_finding = f"In major crises the portfolio {comparison}"

    worst = min(impacts, key=lambda i: i.portfolio_impact) if impacts else None
    headline = (
        f"{worst.name}: {format_pct(worst.portfolio_impact, 0)} vs S&P {format_pct(worst.sp_impact, 0)}"
        if worst
        else "No crisis scenarios"
    )

    details = DownsideResilienceDetails(
        risk_areas=risks,
        stock_weight=stock_weight,
        bond_weight=bond_weight,
        commodity_weight=commodity_weight,
        cash_weight=cash_weight,
        intl_weight=intl_weight,
        critical_count=len(critical),
        elevated_count=len(elevated),
        scenarios=impacts,
        avg_impact=avg_impact,
        avg_sp_impact=avg_sp,
        portfolio_loses_less=loses_less,
        portfolio_loses_more=loses_more,
        max_drawdown_pct=max_dd_pct,
        protection_score=protection_score,
        crisis_score=crisis_score,
    )

    return _result(DiagnosticCategory.DOWNSIDE_RESILIENCE, score, key_finding, headline, details, config)


# Performance optimization


def _holding_efficiency(
    holdings: Sequence[Holding],
    value: float,
    target: float,
    assumptions: PortfolioAssumptions,
) -> list[HoldingEfficiency]:
    rows = []
    for h in holdings:
        asset = assumptions.for_class(h.asset_class)
        sharpe = (
            (asset.expected_return - assumptions.risk_free_rate) / asset.volatility
            if asset.volatility > 0
            else 0.0
        )
        pct = sharpe / target if target > 0 else 0.0
        if pct >= 0.9:
            contribution = "GOOD"
        elif pct >= 0.7:
            contribution = "BELOW TARGET"
        else:
            contribution = "POOR"
        rows.append(
            HoldingEfficiency(
                ticker=h.ticker,
                sharpe=sharpe,
                contribution=contribution,
                weight=h.value / value if value > 0 else 0.0,
                pct_of_target=round(pct * 100),
                expected_return=asset.expected_return,
                volatility=asset.volatility,
            )
        )
    return rows


def compare_to_benchmarks(
    profile: PortfolioProfile,
    risk_free_rate: float,
    benchmarks: Sequence[Benchmark] = BENCHMARKS,
) -> list[BenchmarkComparison]:
    """Expected return gap to each benchmark, both net of fund expenses."""
    net_return = profile.expected_return - profile.fee_rate
    return [
        BenchmarkComparison(
            benchmark_id=b.id,
            name=b.name,
            expected_return=b.expected_return,
            volatility=b.volatility,
            sharpe_ratio=b.sharpe_ratio(risk_free_rate),
            return_gap=net_return - (b.expected_return - b.expense_ratio),
        )
        for b in benchmarks
    ]


def analyze_performance_optimization(
    holdings: Sequence[Holding],
    profile: PortfolioProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> DiagnosticResult:
    """
    Score return efficiency against the Sharpe target.

    Details also carry the optimization potential (fee cut plus modest
    volatility reduction) and the gap to the benchmark with the closest
    volatility, reported as ``alpha_pct``.
    """
    rf = assumptions.risk_free_rate
    target = config.sharpe.portfolio_target
    sharpe = profile.sharpe_ratio
    pct_of_target = sharpe / target * 100 if target > 0 else 0.0

    if sharpe >= target:
        score = 85 + min(15, (sharpe - target) * 30)
    else:
        score = max(0.0, pct_of_target * 0.85)

    fee_rate = profile.fee_rate
    optimized_return = profile.expected_return + min(fee_rate * 0.5, 0.005)
    optimized_vol = profile.volatility * 0.95
    optimized_sharpe = (optimized_return - rf) / optimized_vol if optimized_vol > 0 else sharpe
    relative_improvement = (optimized_sharpe - sharpe) / sharpe if sharpe > 0 else 0.0

    steps = []
    if fee_rate > 0.005:
        steps.append("Reduce expense ratios by switching to index funds or ETFs")
    if profile.volatility > 0.15:
        steps.append("Add bond allocation to reduce overall portfolio volatility")
    if sharpe < target:
        steps.append("Rebalance to improve risk-adjusted returns toward target")

    comparisons = compare_to_benchmarks(profile, rf)
    closest = min(comparisons, key=lambda c: abs(c.volatility - profile.volatility), default=None)
    alpha_pct = closest.return_gap * 100 if closest else None

    if sharpe >= target:
        key_finding = f"Portfolio Sharpe {sharpe:.2f} meets the {target:.2f} target"
    elif pct_of_target < 70:
        key_finding = (
            f"Portfolio Sharpe {sharpe:.2f} is only {pct_of_target:.0f}% of target; "
            f"risk-adjusted returns are poor"
        )
    else:
        key_finding = f"Portfolio Sharpe {sharpe:.2f} is {pct_of_target:.0f}% of the {target:.2f} target"
    if closest is not None:
        direction = "ahead of" if closest.return_gap >= 0 else "behind"
        key_finding += f"; expected return is {format_pct(abs(closest.return_gap))} {direction} the {closest.name}"

    details = PerformanceOptimizationDetails(
        sharpe_ratio=sharpe,
        target_sharpe=target,
        pct_of_target=round(pct_of_target),
        expected_return=profile.expected_return,
        volatility=profile.volatility,
        holding_efficiency=_holding_efficiency(
            holdings, profile.total_value, config.sharpe.holding_good_threshold, assumptions
        )[:15],
        optimized_sharpe=optimized_sharpe,
        relative_improvement=relative_improvement,
        optimization_steps=steps,
        benchmarks=comparisons,
        closest_benchmark_id=closest.benchmark_id if closest else None,
        alpha_pct=alpha_pct,
    )

    return _result(
        DiagnosticCategory.PERFORMANCE_OPTIMIZATION,
        score,
        key_finding,
        f"Sharpe: {sharpe:.2f} ({pct_of_target:.0f}% of {target:.2f} target)",
        details,
        config,
    )


# Costs


def analyze_costs(
    holdings: Sequence[Holding],
    profile: PortfolioProfile,
    advice_model: AdviceModel = AdviceModel.SELF_DIRECTED,
    advisor_fee: float = 0.0,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> DiagnosticResult:
    """Score all-in fees (product plus advisor) against the advice model's bands."""
    thresholds = config.fee_thresholds(advice_model)
    product_fees = profile.fee_rate
    all_in = product_fees + advisor_fee
    ten_year_impact = profile.total_value * (1 - (1 - all_in) ** 10)

    fees = sorted(
        (
            HoldingFee(
                ticker=h.ticker,
                name=h.name,
                value=h.value,
                expense_ratio=effective_expense_ratio(h, assumptions),
                annual_fee=h.value * effective_expense_ratio(h, assumptions),
            )
            for h in holdings
        ),
        key=lambda f: f.annual_fee,
        reverse=True,
    )

    if all_in <= thresholds.green_max:
        score = 85 + (1 - all_in / thresholds.green_max) * 15
    elif all_in <= thresholds.yellow_max:
        position = (all_in - thresholds.green_max) / (thresholds.yellow_max - thresholds.green_max)
        score = 40 + (1 - position) * 30
    else:
        score = max(0.0, 40 - (all_in - thresholds.yellow_max) * 200)

    status = status_for_score(clamp(score), config)
    breakdown = (
        f"Advisor {format_pct(advisor_fee, 2)} + Products {format_pct(product_fees, 2)} "
        f"= {format_pct(all_in, 2)} total"
    )
    label = advice_model.label
    if status == DiagnosticStatus.GREEN:
        key_finding = f"{breakdown}. Fees are reasonable for a {label} model"
    elif status == DiagnosticStatus.YELLOW:
        key_finding = (
            f"{breakdown}. Fees are elevated for a {label} model "
            f"(typical max {format_pct(thresholds.green_max)})"
        )
    else:
        key_finding = (
            f"{breakdown}. Fees are high for a {label} model "
            f"(above {format_pct(thresholds.yellow_max)}); over 10 years they cost about "
            f"{format_currency(ten_year_impact)}"
        )

    details = CostAnalysisDetails(
        product_fees=product_fees,
        advisor_fee=advisor_fee,
        all_in_fees=all_in,
        all_in_fee_pct=all_in * 100,
        ten_year_impact=ten_year_impact,
        holding_fees=fees,
        advice_model=advice_model,
        thresholds=thresholds,
        model_label=label,
    )

    return _result(
        DiagnosticCategory.COST_ANALYSIS,
        score,
        key_finding,
        f"Total: {format_pct(all_in, 2)} (Advisor {format_pct(advisor_fee, 2)} + Products {format_pct(product_fees, 2)})",
        details,
        config,
    )


# Taxes


def analyze_tax_efficiency(
    holdings: Sequence[Holding],
    profile: PortfolioProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> DiagnosticResult:
    """
    Score loss-harvesting opportunity and asset location.

    Only taxable accounts can harvest losses. Bonds and commodities held in
    taxable accounts are tax-inefficient; their estimated annual tax cost as
    a share of the portfolio is reported as ``tax_drag_pct``.
    """
    value = profile.total_value
    taxable = [h for h in holdings if h.account_type == AccountType.TAXABLE]

    candidates = [
        LossCandidate(
            ticker=h.ticker,
            account_type=h.account_type,
            unrealized_loss=h.shares * (h.cost_basis - h.current_price),
            harvestable=h.account_type == AccountType.TAXABLE,
        )
        for h in holdings
        if h.current_price < h.cost_basis
    ]
    harvestable = sum(c.unrealized_loss for c in candidates if c.harvestable)
    savings = harvestable * ESTIMATED_TAX_RATE

    inefficient = [h for h in taxable if h.asset_class in TAX_INEFFICIENT_CLASSES]
    drag = sum(
        h.value * assumptions.for_class(h.asset_class).expected_return * ESTIMATED_TAX_RATE
        for h in inefficient
    )
    tax_drag_pct = drag / value * 100 if value > 0 else 0.0

    score = 80.0
    if harvestable > value * 0.03:
        score += 10
    if inefficient:
        score -= 30
    status = status_for_score(score, config)

    if harvestable > 0:
        key_finding = (
            f"{format_currency(harvestable)} in unrealized losses in taxable accounts could be "
            f"harvested for about {format_currency(savings)} in tax savings"
        )
    elif inefficient:
        key_finding = (
            f"{len(inefficient)} tax-inefficient holdings (bonds/commodities) are in taxable "
            f"accounts; consider moving them to tax-advantaged accounts"
        )
    elif status == DiagnosticStatus.GREEN:
        key_finding = "Tax positioning is efficient; tax-inefficient assets are properly placed"
    else:
        key_finding = "Review asset location for potential tax optimization"

    details = TaxEfficiencyDetails(
        loss_candidates=candidates,
        total_harvestable=harvestable,
        estimated_tax_savings=savings,
        inefficient_in_taxable=[h.ticker for h in inefficient],
        taxable_holdings_count=len(taxable),
        total_holdings_count=len(holdings),
        tax_drag_pct=tax_drag_pct,
    )

    return _result(
        DiagnosticCategory.TAX_EFFICIENCY,
        score,
        key_finding,
        f"Harvestable losses (taxable only): {format_currency(harvestable)}",
        details,
        config,
    )


# Goal probability


def analyze_risk_adjusted(
    client: ClientParameters,
    profile: PortfolioProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
    income: IncomeCoverageSummary | None = None,
    rng: np.random.Generator | None = None,
) -> DiagnosticResult:
    """
    Score the probability of reaching the client's goal.

    The probability comes from a Monte Carlo run of the current portfolio
    with the client's contributions. Without a goal a neutral 50% is used.
    Secured core expenses raise the score; a large estimated drawdown
    lowers it.
    """
    bands = config.goal_probability
    vol = profile.volatility
    estimated_sortino = (profile.expected_return - assumptions.risk_free_rate) / (vol * 0.7) if vol > 0 else None
    estimated_max_drawdown = vol * 2.5

    simulation = None
    skipped_reason = None
    probability = 50.0
    if client.has_goal and profile.total_value > 0:
        params = GoalSimulationParams(
            start_value=profile.total_value,
            years=int(client.years_to_goal),
            annual_contribution=client.annual_contribution,
            expected_return=profile.expected_return,
            volatility=vol,
            goal_amount=float(client.target_amount),
            n_simulations=config.goal_simulations,
            bands=config.scenario_bands,
        )
        try:
            simulation = run_goal_simulation(params, rng=rng)
            probability = simulation.success_pct
        except SimulationError as e:
            logger.warning(f"Goal simulation skipped: {e}")
            skipped_reason = e.message

    if probability >= bands.green_min:
        score = 70 + (probability - bands.green_min) / 25 * 30
    elif probability >= bands.yellow_min:
        score = 40 + (probability - bands.yellow_min) / (bands.green_min - bands.yellow_min) * 30
    else:
        score = probability / bands.yellow_min * 40
    score = clamp(score)

    coverage = None
    if income is not None and not income.needs_data_entry:
        coverage = income.core_coverage_ratio
    core_secured = coverage is not None and coverage >= 1.0
    partially_covered = coverage is not None and 0.5 <= coverage < 1.0

    if core_secured:
        score = min(100.0, score + 15)
    elif partially_covered:
        score = min(100.0, score + 5)
    if estimated_max_drawdown > 0.4:
        score -= 20

    if probability >= bands.green_min:
        band_label = "Comfortable"
    elif probability >= bands.yellow_min:
        band_label = "Borderline"
    else:
        band_label = "At Risk"

    note = None
    if core_secured:
        note = "Your basic lifestyle is guaranteed regardless of market performance"
        key_finding = (
            f"Essential expenses are secured by lifetime income; {probability:.0f}% probability "
            f"for discretionary and legacy goals"
        )
    else:
        if partially_covered and income is not None:
            note = (
                f"Portfolio must cover about {format_currency(income.shortfall_monthly)}/mo "
                f"of remaining core expenses"
            )
        elif coverage is not None and coverage > 0:
            note = "Full lifestyle risk depends on portfolio performance"

        if skipped_reason is not None:
            key_finding = (
                f"Goal probability could not be estimated ({skipped_reason}); "
                f"check the target amount and horizon"
            )
        elif simulation is None:
            key_finding = "Set a target amount and horizon to estimate the probability of reaching your goal"
        elif band_label == "Comfortable":
            key_finding = f"{probability:.0f}% probability of reaching the goal, a comfortable margin"
        elif band_label == "Borderline":
            key_finding = (
                f"{probability:.0f}% probability is borderline; consider saving more, "
                f"reducing the goal or extending the timeline"
            )
        else:
            key_finding = f"{probability:.0f}% probability is low; plan changes are likely needed"

    details = RiskAdjustedDetails(
        probability=probability,
        band_label=band_label,
        green_min=bands.green_min,
        yellow_min=bands.yellow_min,
        estimated_sortino=estimated_sortino,
        estimated_max_drawdown=estimated_max_drawdown,
        income_secured=core_secured,
        goal_type="discretionary-only" if core_secured else "full",
        income_security_note=note,
        core_coverage_ratio=coverage,
        simulation=simulation,
        skipped_reason=skipped_reason,
    )

    headline = (
        f"Discretionary goal: {probability:.0f}% (Core Secured)"
        if core_secured
        else f"Goal probability: {probability:.0f}% ({band_label})"
    )
    return _result(DiagnosticCategory.RISK_ADJUSTED, score, key_finding, headline, details, config)


# Planning


def analyze_planning_gaps(
    checklist: PlanningChecklist,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> DiagnosticResult:
    """Score checklist completion with an extra penalty per missing critical item."""
    thresholds = config.planning_gaps
    items = checklist.items()
    total = len(items)
    completed = sum(1 for done in items.values() if done)

    missing = [CHECKLIST_LABELS[k] for k, done in items.items() if not done]
    critical_missing = [
        CHECKLIST_LABELS[k]
        for k, done in items.items()
        if not done and k in thresholds.critical_items
    ]

    green, yellow = thresholds.green_min_complete, thresholds.yellow_min_complete
    if completed >= green:
        span = total - green
        score = 70 + ((completed - green) / span * 30 if span > 0 else 30)
    elif completed >= yellow:
        score = 40 + (completed - yellow) / (green - yellow) * 30
    else:
        score = completed / yellow * 40
    score -= len(critical_missing) * 15
    status = status_for_score(clamp(score), config)

    if completed == total:
        key_finding = "Financial plan is comprehensive; all planning items are complete"
    elif critical_missing:
        extra = f" (+{len(critical_missing) - 2} more)" if len(critical_missing) > 2 else ""
        key_finding = f"Critical gaps: {', '.join(critical_missing[:2])}{extra}"
    elif status == DiagnosticStatus.GREEN:
        plural = "s" if len(missing) > 1 else ""
        key_finding = f"Most planning items complete; {len(missing)} minor item{plural} remaining"
    else:
        key_finding = f"Planning gaps remain: {', '.join(missing[:2])}"

    details = PlanningGapDetails(
        checklist=items,
        completed=completed,
        total=total,
        completion_rate=completed / total if total else 0.0,
        missing_items=missing,
        critical_missing=critical_missing,
    )

    return _result(
        DiagnosticCategory.PLANNING_GAPS,
        score,
        key_finding,
        f"Planning items: {completed}/{total} complete",
        details,
        config,
    )


# Lifetime income


def analyze_lifetime_income(
    inputs: LifetimeIncomeInputs,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> DiagnosticResult:
    """Score how much of core spending guaranteed lifetime income covers."""
    summary = summarize_income_coverage(inputs)

    if summary.needs_data_entry:
        key_finding = (
            "Enter monthly living expenses and guaranteed income sources (Social Security, "
            "pensions, annuities) to see how much of your lifestyle is protected from market risk"
        )
        details = _income_details(inputs, summary, funded_ratio_pct=None)
        return DiagnosticResult(
            category=DiagnosticCategory.LIFETIME_INCOME_SECURITY,
            status=DiagnosticStatus.YELLOW,
            score=50.0,
            key_finding=key_finding,
            headline_metric="Enter expenses to analyze",
            details=details,
        )

    bands = config.lifetime_income
    coverage = summary.core_coverage_ratio
    if coverage >= bands.core_coverage_green:
        score = 85 + min(15, (coverage - 1.0) * 30)
    elif coverage >= bands.core_coverage_yellow:
        span = bands.core_coverage_green - bands.core_coverage_yellow
        score = 40 + (coverage - bands.core_coverage_yellow) / span * 45
    else:
        score = coverage / bands.core_coverage_yellow * 40

    guaranteed = format_currency(summary.guaranteed_income_monthly)
    core = format_currency(summary.core_expenses_monthly)
    gap = format_currency(summary.shortfall_monthly)
    if coverage >= 1.0:
        key_finding = (
            f"Guaranteed income ({guaranteed}/mo) fully covers core expenses ({core}/mo) "
            f"with {format_pct(coverage - 1, 0)} surplus; market crashes cannot threaten basic needs"
        )
    elif coverage >= 0.8:
        key_finding = (
            f"Guaranteed income covers {format_pct(coverage, 0)} of core expenses; the remaining "
            f"{gap}/mo depends on portfolio performance"
        )
    elif coverage > 0:
        key_finding = (
            f"Guaranteed income covers only {format_pct(coverage, 0)} of core expenses; a {gap}/mo "
            f"shortfall must come from portfolio withdrawals"
        )
    else:
        key_finding = (
            "No guaranteed lifetime income identified; your entire lifestyle depends on "
            "portfolio performance"
        )

    details = _income_details(inputs, summary, funded_ratio_pct=coverage * 100)
    return _result(
        DiagnosticCategory.LIFETIME_INCOME_SECURITY,
        score,
        key_finding,
        f"Core covered: {format_pct(coverage, 0)} ({guaranteed}/mo vs {core}/mo)",
        details,
        config,
    )


def _income_details(
    inputs: LifetimeIncomeInputs,
    summary: IncomeCoverageSummary,
    funded_ratio_pct: float | None,
) -> LifetimeIncomeDetails:
    return LifetimeIncomeDetails(
        core_expenses_monthly=summary.core_expenses_monthly,
        discretionary_monthly=inputs.discretionary_expenses_monthly,
        healthcare_monthly=inputs.healthcare_monthly,
        total_expenses_monthly=summary.total_expenses_monthly,
        guaranteed_income_monthly=summary.guaranteed_income_monthly,
        core_coverage_ratio=summary.core_coverage_ratio,
        total_coverage_ratio=summary.total_coverage_ratio,
        shortfall_monthly=summary.shortfall_monthly,
        surplus_monthly=summary.surplus_monthly,
        funded_ratio_pct=funded_ratio_pct,
        source_count=len(inputs.sources),
        needs_data_entry=summary.needs_data_entry,
    )


# Performance metrics


def analyze_performance_metrics(
    metrics: PerformanceMetrics,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> DiagnosticResult:
    """Average 100/60/20 points for good/warning/poor over the available metrics."""
    statuses = [s for s in metrics.statuses.values() if s != MetricStatus.UNAVAILABLE]
    good = sum(1 for s in statuses if s == MetricStatus.GOOD)
    poor = sum(1 for s in statuses if s == MetricStatus.POOR)
    details = PerformanceMetricsDetails(
        metrics=metrics, available_count=len(statuses), good_count=good, poor_count=poor
    )

    sharpe = "n/a" if metrics.sharpe_ratio is None else f"{metrics.sharpe_ratio:.2f}"
    headline = f"Sharpe {sharpe} | Max drawdown {format_pct(metrics.max_drawdown)}"

    if not statuses:
        return DiagnosticResult(
            category=DiagnosticCategory.PERFORMANCE_METRICS,
            status=DiagnosticStatus.YELLOW,
            score=50.0,
            key_finding="Not enough return history to compute performance metrics",
            headline_metric=headline,
            details=details,
        )

    score = sum(METRIC_POINTS[s] for s in statuses) / len(statuses)
    source = "simulated" if metrics.simulated else "historical"
    key_finding = f"{good} of {len(statuses)} metrics look healthy and {poor} need attention ({source} returns)"
    if poor:
        weakest = min(
            (name for name, s in metrics.statuses.items() if s != MetricStatus.UNAVAILABLE),
            key=lambda name: metric_status_rank(metrics.statuses[name]),
        )
        key_finding += f"; weakest is {weakest.replace('_', ' ')}"

    return _result(DiagnosticCategory.PERFORMANCE_METRICS, score, key_finding, headline, details, config)


# Recommendations


def generate_recommendations(
    diagnostics: dict[DiagnosticCategory, DiagnosticResult],
    total_fees: float,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> list[Recommendation]:
    """Turn weak diagnostics into prioritized recommendations, most urgent first."""
    recommendations: list[Recommendation] = []

    def add(rec_id: str, category: DiagnosticCategory, title: str, description: str, impact: str) -> None:
        recommendations.append(
            Recommendation(
                id=rec_id,
                category=category,
                title=title,
                description=description,
                priority=len(recommendations) + 1,
                impact=impact,
            )
        )

    risk = diagnostics.get(DiagnosticCategory.RISK_DIVERSIFICATION)
    if risk is not None and isinstance(risk.details, RiskDiversificationDetails):
        d = risk.details
        if status_for_score(d.risk_management_score, config) == DiagnosticStatus.RED:
            add(
                "reduce-position-concentration",
                DiagnosticCategory.RISK_DIVERSIFICATION,
                "Reduce position concentration",
                f"Largest position exceeds the {format_pct(d.max_single_position_pct, 0)} threshold",
                "Reduces single-stock risk by 30%",
            )

    costs = diagnostics.get(DiagnosticCategory.COST_ANALYSIS)
    if costs is not None and isinstance(costs.details, CostAnalysisDetails) and costs.status != DiagnosticStatus.GREEN:
        add(
            "review-fee-structure",
            DiagnosticCategory.COST_ANALYSIS,
            "Review fee structure",
            "Total fees may be elevated for your advice model",
            f"Potential savings of {format_currency(total_fees * 0.3)}/year",
        )

    tax = diagnostics.get(DiagnosticCategory.TAX_EFFICIENCY)
    if tax is not None and isinstance(tax.details, TaxEfficiencyDetails) and tax.details.total_harvestable > 0:
        add(
            "harvest-tax-losses",
            DiagnosticCategory.TAX_EFFICIENCY,
            "Harvest tax losses",
            "Realize losses in taxable accounts to offset gains",
            f"Potential {format_currency(tax.details.estimated_tax_savings)} tax savings",
        )

    perf = diagnostics.get(DiagnosticCategory.PERFORMANCE_OPTIMIZATION)
    if (
        perf is not None
        and isinstance(perf.details, PerformanceOptimizationDetails)
        and perf.status != DiagnosticStatus.GREEN
    ):
        add(
            "improve-return-efficiency",
            DiagnosticCategory.PERFORMANCE_OPTIMIZATION,
            "Improve return efficiency",
            f"Work toward a Sharpe ratio target of {perf.details.target_sharpe:.2f}",
            "Better risk-adjusted returns",
        )

    if risk is not None and isinstance(risk.details, RiskDiversificationDetails):
        if status_for_score(risk.details.diversification_score, config) != DiagnosticStatus.GREEN:
            add(
                "improve-diversification",
                DiagnosticCategory.RISK_DIVERSIFICATION,
                "Improve diversification",
                "Reduce concentration or add underweighted asset classes",
                "Lower portfolio correlation risk",
            )

    downside = diagnostics.get(DiagnosticCategory.DOWNSIDE_RESILIENCE)
    if downside is not None and isinstance(downside.details, DownsideResilienceDetails):
        if status_for_score(downside.details.protection_score, config) == DiagnosticStatus.RED:
            add(
                "address-vulnerability-gaps",
                DiagnosticCategory.DOWNSIDE_RESILIENCE,
                "Address vulnerability gaps",
                "Portfolio has multiple high-risk exposure areas",
                "Better protection against market stress",
            )

    planning = diagnostics.get(DiagnosticCategory.PLANNING_GAPS)
    if (
        planning is not None
        and isinstance(planning.details, PlanningGapDetails)
        and planning.status != DiagnosticStatus.GREEN
        and planning.details.critical_missing
    ):
        add(
            "complete-critical-planning",
            DiagnosticCategory.PLANNING_GAPS,
            "Complete critical planning items",
            f"Missing: {', '.join(planning.details.critical_missing[:2])}",
            "Comprehensive financial protection",
        )

    income = diagnostics.get(DiagnosticCategory.LIFETIME_INCOME_SECURITY)
    if (
        income is not None
        and isinstance(income.details, LifetimeIncomeDetails)
        and income.status == DiagnosticStatus.RED
    ):
        add(
            "secure-lifetime-income",
            DiagnosticCategory.LIFETIME_INCOME_SECURITY,
            "Secure guaranteed lifetime income",
            f"Only {format_pct(income.details.core_coverage_ratio, 0)} of core expenses covered by guarantees",
            "Eliminate dependence on market returns for basic needs",
        )

    return recommendations
