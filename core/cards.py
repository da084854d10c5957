"""
Presentation-ready diagnostic cards and the combined action plan.

Cards wrap diagnostic results with display copy, a plain-language key
finding, an EXTREME/NORMAL severity, an optional account context label and
suggested actions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from core.accounts import AccountBucket, compute_account_metrics
from core.analysis import PortfolioAnalysis
from core.diagnostics import (
    CostAnalysisDetails,
    CrossAccountDetails,
    CrossAccountHolding,
    DiagnosticCategory,
    DiagnosticDetails,
    DiagnosticResult,
    DiagnosticStatus,
    DownsideResilienceDetails,
    LifetimeIncomeDetails,
    PerformanceOptimizationDetails,
    PlanningGapDetails,
    Recommendation,
    RiskAdjustedDetails,
    RiskDiversificationDetails,
    Severity,
    TaxEfficiencyDetails,
)
from core.holdings import Holding
from core.scoring_config import DEFAULT_SCORING_CONFIG, ScoringConfig, SeverityPolicy
from utils.helpers import clamp, format_currency, format_pct


class ActionKind(str, Enum):
    LEARN = "LEARN"
    REBALANCE = "REBALANCE"
    REDUCE_FEES = "REDUCE_FEES"
    DIVERSIFY = "DIVERSIFY"
    RISK_REDUCE = "RISK_REDUCE"
    TAX_OPTIMIZE = "TAX_OPTIMIZE"
    BENCHMARK = "BENCHMARK"


@dataclass(frozen=True)
class CardAction:
    label: str
    kind: ActionKind


@dataclass(frozen=True)
class CardCopy:
    title: str
    subtitle: str


@dataclass(frozen=True)
class CardContract:
    """
    A diagnostic result dressed for display.

    Attributes:
        category: Diagnostic category the card represents
        title: Display title
        subtitle: One-line question the card answers
        why_it_matters: Plain-language explanation of the dimension
        status: GREEN / YELLOW / RED
        score: Score in [0, 100]
        key_finding: Plain-language finding
        headline_metric: Short figure for the card header
        details: Category detail record
        severity: EXTREME for cards that need attention first
        context_label: Account bucket driving the issue, when several exist
        recommendations: Recommendations belonging to this category
        actions: Suggested next steps
    """

    category: DiagnosticCategory
    title: str
    subtitle: str
    why_it_matters: str
    status: DiagnosticStatus
    score: float
    key_finding: str
    headline_metric: str
    details: DiagnosticDetails
    severity: Severity
    context_label: str | None = None
    recommendations: list[Recommendation] = field(default_factory=list)
    actions: list[CardAction] = field(default_factory=list)


CARD_COPY: dict[DiagnosticCategory, CardCopy] = {
    DiagnosticCategory.RISK_DIVERSIFICATION: CardCopy(
        "Diversification Check", "Are you too concentrated in one stock, fund, or sector?"
    ),
    DiagnosticCategory.DOWNSIDE_RESILIENCE: CardCopy(
        "Market Drop Risk", "How much could your portfolio fall in a bad market?"
    ),
    DiagnosticCategory.PERFORMANCE_OPTIMIZATION: CardCopy(
        "Performance vs Benchmark", "Are you keeping up with the market for your risk level?"
    ),
    DiagnosticCategory.COST_ANALYSIS: CardCopy(
        "Fees & Fund Costs", "How much fees may be quietly costing you"
    ),
    DiagnosticCategory.TAX_EFFICIENCY: CardCopy(
        "Tax Efficiency", "Are you paying more taxes than you need to?"
    ),
    DiagnosticCategory.RISK_ADJUSTED: CardCopy(
        "Risk vs Return", "Are you being rewarded for the risk you're taking?"
    ),
    DiagnosticCategory.PLANNING_GAPS: CardCopy(
        "Planning Checklist", "Common money basics that protect your plan"
    ),
    DiagnosticCategory.LIFETIME_INCOME_SECURITY: CardCopy(
        "Retirement Readiness", "Will your assets support your spending for life?"
    ),
    DiagnosticCategory.PERFORMANCE_METRICS: CardCopy(
        "Performance Details", "Returns, volatility, and drawdowns in one place"
    ),
    DiagnosticCategory.CROSS_ACCOUNT_CONCENTRATION: CardCopy(
        "Cross-Account Risk", "Does one investment quietly dominate across your accounts?"
    ),
}

WHY_IT_MATTERS: dict[DiagnosticCategory, str] = {
    DiagnosticCategory.RISK_DIVERSIFICATION: (
        "Spreading your money across different investments helps protect you if one drops sharply."
    ),
    DiagnosticCategory.DOWNSIDE_RESILIENCE: (
        "Understanding how much you could lose in a bad market helps you avoid panic-selling "
        "at the worst time."
    ),
    DiagnosticCategory.PERFORMANCE_OPTIMIZATION: (
        "Comparing your returns to the market shows whether your investments are working as "
        "hard as they could."
    ),
    DiagnosticCategory.COST_ANALYSIS: (
        "Investment fees add up over time. Even small reductions can mean thousands more in your pocket."
    ),
    DiagnosticCategory.TAX_EFFICIENCY: (
        "Keeping more of what you earn by reducing unnecessary taxes is one of the easiest wins "
        "in investing."
    ),
    DiagnosticCategory.RISK_ADJUSTED: (
        "This checks if the ups and downs you're experiencing are worth the returns you're getting."
    ),
    DiagnosticCategory.PLANNING_GAPS: (
        "Having basics like an emergency fund and insurance in place protects your investments "
        "from life surprises."
    ),
    DiagnosticCategory.LIFETIME_INCOME_SECURITY: (
        "Knowing your retirement income is secure lets you enjoy your savings without worry."
    ),
    DiagnosticCategory.PERFORMANCE_METRICS: (
        "These numbers help you understand your portfolio's behavior in a consistent, comparable way."
    ),
    DiagnosticCategory.CROSS_ACCOUNT_CONCENTRATION: (
        "Hidden overlap increases risk because one company or investment can quietly drive your "
        "entire outcome across all accounts."
    ),
}

DEFAULT_ACTIONS: dict[DiagnosticCategory, tuple[CardAction, ...]] = {
    DiagnosticCategory.RISK_DIVERSIFICATION: (
        CardAction("Review concentration & allocation", ActionKind.DIVERSIFY),
    ),
    DiagnosticCategory.DOWNSIDE_RESILIENCE: (
        CardAction("Stress test and reduce tail risk", ActionKind.RISK_REDUCE),
    ),
    DiagnosticCategory.PERFORMANCE_OPTIMIZATION: (
        CardAction("Compare performance vs benchmark", ActionKind.BENCHMARK),
    ),
    DiagnosticCategory.COST_ANALYSIS: (CardAction("Find high-fee holdings", ActionKind.REDUCE_FEES),),
    DiagnosticCategory.TAX_EFFICIENCY: (
        CardAction("Improve tax location and harvesting", ActionKind.TAX_OPTIMIZE),
    ),
    DiagnosticCategory.RISK_ADJUSTED: (
        CardAction("Improve risk-adjusted returns", ActionKind.RISK_REDUCE),
    ),
    DiagnosticCategory.PLANNING_GAPS: (CardAction("Close planning checklist gaps", ActionKind.LEARN),),
    DiagnosticCategory.LIFETIME_INCOME_SECURITY: (
        CardAction("Review income coverage", ActionKind.LEARN),
    ),
    DiagnosticCategory.PERFORMANCE_METRICS: (
        CardAction("Review performance metrics detail", ActionKind.BENCHMARK),
    ),
    DiagnosticCategory.CROSS_ACCOUNT_CONCENTRATION: (
        CardAction("Reduce overlap", ActionKind.DIVERSIFY),
        CardAction("Balance exposures", ActionKind.REBALANCE),
    ),
}


# Severity


def compute_severity(
    category: DiagnosticCategory,
    status: DiagnosticStatus,
    score: float,
    details: DiagnosticDetails,
    policy: SeverityPolicy = SeverityPolicy(),
) -> Severity:
    """
    EXTREME when a category's headline metric crosses its cutoff.

    Categories without a metric rule, or whose metric is unavailable, fall
    back to RED with a very low score.
    """
    if isinstance(details, RiskDiversificationDetails):
        if details.top_holding_pct >= policy.top_holding_pct:
            return Severity.EXTREME
    elif isinstance(details, CostAnalysisDetails):
        if details.all_in_fee_pct >= policy.fee_pct:
            return Severity.EXTREME
    elif isinstance(details, DownsideResilienceDetails):
        if details.max_drawdown_pct is not None and details.max_drawdown_pct <= policy.max_drawdown_pct:
            return Severity.EXTREME
    elif isinstance(details, PerformanceOptimizationDetails):
        if details.alpha_pct is not None and details.alpha_pct <= policy.alpha_pct:
            return Severity.EXTREME
    elif isinstance(details, TaxEfficiencyDetails):
        if details.tax_drag_pct >= policy.tax_drag_pct:
            return Severity.EXTREME
    elif isinstance(details, LifetimeIncomeDetails):
        if details.funded_ratio_pct is not None and details.funded_ratio_pct < policy.funded_ratio_pct:
            return Severity.EXTREME

    if status == DiagnosticStatus.RED and score <= policy.red_score_max:
        return Severity.EXTREME
    return Severity.NORMAL


# Plain-language findings


def _sentence_case(text: str) -> str:
    """Capitalize the first word, lowercase the rest, keep short acronyms."""
    words = []
    for i, word in enumerate(text.split(" ")):
        if 2 <= len(word) <= 4 and word.isalpha() and word.isupper():
            words.append(word)
        elif i == 0:
            words.append(word[:1].upper() + word[1:].lower())
        else:
            words.append(word.lower())
    return " ".join(words)


def consumer_key_finding(result: DiagnosticResult) -> str:
    """Rewrite a diagnostic finding in short, jargon-free language."""
    d = result.details
    status = result.status

    if isinstance(d, RiskDiversificationDetails):
        top = d.top_positions[0] if d.top_positions else None
        if top is not None and top.weight > 0.15:
            return (
                f"Your largest holding ({top.ticker}) is {format_pct(top.weight)} of your portfolio. "
                f"If it drops sharply, it could significantly impact your wealth."
            )
        if d.top3_weight > 0.5:
            return (
                f"Your top 3 holdings make up {format_pct(d.top3_weight)} of your portfolio. "
                f"Spreading things out more could reduce your risk."
            )
        if status == DiagnosticStatus.GREEN:
            return "Your investments are well spread out, with no single holding dominating your portfolio."
        return "Your portfolio has some concentration that could increase risk if certain investments drop."

    if isinstance(d, DownsideResilienceDetails):
        impact = abs(d.avg_impact)
        if d.critical_count >= 2:
            return (
                f"In a market downturn, your portfolio could fall about {format_pct(impact, 0)}. "
                f"You have some significant vulnerabilities to address."
            )
        if impact > 0.35:
            return (
                f"In a bad market, your portfolio could drop around {format_pct(impact, 0)}. "
                f"That's a bigger swing than average, so make sure you're comfortable with that."
            )
        if status == DiagnosticStatus.GREEN:
            return (
                f"Your portfolio is built to handle market drops reasonably well, with expected "
                f"losses around {format_pct(impact, 0)} in downturns."
            )
        return (
            f"In a market drop, your portfolio could fall about {format_pct(impact, 0)}. "
            f"Consider whether that level of volatility fits your comfort level."
        )

    if isinstance(d, CostAnalysisDetails):
        if status == DiagnosticStatus.GREEN:
            return (
                f"Your total fees are about {format_pct(d.all_in_fees)}, which is reasonable for a "
                f"{d.model_label} approach. Fees are one of the few things you can control."
            )
        if status == DiagnosticStatus.RED:
            return (
                f"Your fees total {format_pct(d.all_in_fees)}, which could cost you "
                f"{format_currency(d.ten_year_impact)} over 10 years. Lower-cost options may be worth exploring."
            )
        return (
            f"Your fees are {format_pct(d.all_in_fees)} per year. Over 10 years, that adds up to "
            f"roughly {format_currency(d.ten_year_impact)} in costs."
        )

    if isinstance(d, TaxEfficiencyDetails):
        if d.total_harvestable > 0:
            return (
                f"You have about {format_currency(d.total_harvestable)} in losses that could be "
                f"harvested for roughly {format_currency(d.estimated_tax_savings)} in tax savings."
            )
        if d.inefficient_in_taxable:
            return (
                "Some tax-inefficient investments like bonds are in your taxable account. "
                "Moving them to a retirement account could save on taxes."
            )
        if status == DiagnosticStatus.GREEN:
            return "Your investments are positioned efficiently for taxes, so you keep more of what you earn."
        return "There may be opportunities to reduce your tax bill by repositioning some investments."

    if isinstance(d, RiskAdjustedDetails):
        p = d.probability
        if d.skipped_reason is not None and not d.income_secured:
            return (
                "We couldn't estimate your chance of reaching your goal. "
                "Check that your target amount and timeline are realistic."
            )
        if d.income_secured:
            return (
                f"Your essential expenses are covered by guaranteed income. Your {p:.0f}% success "
                f"rate applies to extras and legacy goals."
            )
        if p >= d.green_min:
            return f"Based on your goals and timeline, you have a {p:.0f}% chance of success, a comfortable margin."
        if p >= d.yellow_min:
            return f"Your plan has about a {p:.0f}% chance of success. Some adjustments could improve your odds."
        return (
            f"At {p:.0f}% success probability, your plan may need changes. Consider saving more, "
            f"adjusting your goal, or extending your timeline."
        )

    if isinstance(d, PlanningGapDetails):
        if d.completed == d.total:
            return "You've completed all the financial planning basics, so your plan is well protected."
        if d.critical_missing:
            gaps = " and ".join(_sentence_case(s) for s in d.critical_missing[:2])
            return f"A few important items are missing: {gaps}. These protect your plan from unexpected life events."
        remaining = d.total - d.completed
        plural = "s" if remaining > 1 else ""
        return f"Most planning basics are in place. {remaining} item{plural} remain to fully protect your plan."

    if isinstance(d, LifetimeIncomeDetails):
        coverage = d.core_coverage_ratio
        if d.needs_data_entry:
            return "Enter your monthly expenses and income sources to see if your retirement income is on track."
        if coverage >= 1.0:
            return (
                f"You're on track: your guaranteed income ({format_currency(d.guaranteed_income_monthly)}/mo) "
                f"covers your essential expenses. Market swings won't threaten your basic lifestyle."
            )
        if coverage >= 0.8:
            return (
                f"You're close: guaranteed income covers {format_pct(coverage, 0)} of essentials. "
                f"Closing the gap would fully protect your basic needs."
            )
        if coverage > 0:
            return (
                f"At risk: only {format_pct(coverage, 0)} of your essential expenses are covered by "
                f"guaranteed income. The rest depends on your portfolio."
            )
        return "No guaranteed lifetime income identified. Your entire retirement depends on portfolio performance."

    if isinstance(d, PerformanceOptimizationDetails):
        if d.pct_of_target >= 100:
            return "Your portfolio is performing efficiently for the risk you're taking."
        # no improvement sentence when the gap rounds to 0%
        has_gap = round(d.relative_improvement * 100) > 0
        if d.pct_of_target >= 80:
            if not has_gap:
                return "Your returns are close to target for your risk level."
            return (
                f"Your returns are close to target for your risk level. Small tweaks could improve "
                f"efficiency by about {format_pct(d.relative_improvement, 0)}."
            )
        if not has_gap:
            return "Your portfolio isn't earning as much as expected for the risk involved."
        return (
            f"Your portfolio isn't earning as much as expected for the risk involved. There's room "
            f"to improve by roughly {format_pct(d.relative_improvement, 0)}."
        )

    if result.category == DiagnosticCategory.PERFORMANCE_METRICS and status == DiagnosticStatus.GREEN:
        return "Your risk-adjusted returns look healthy. The portfolio balances growth and stability well."

    return result.key_finding


# Account context


def account_context_label(
    category: DiagnosticCategory,
    holdings: Sequence[Holding],
    status: DiagnosticStatus,
) -> str | None:
    """Name the account bucket driving a weak card when there are several accounts."""
    if status == DiagnosticStatus.GREEN or not holdings:
        return None

    accounts = compute_account_metrics(holdings)
    if len(accounts) <= 1:
        return None

    if category == DiagnosticCategory.RISK_DIVERSIFICATION:
        worst = max(accounts, key=lambda a: a.top_holding_pct)
        if worst.top_holding_pct > 10:
            return worst.bucket.value
    elif category == DiagnosticCategory.COST_ANALYSIS:
        worst = max(accounts, key=lambda a: a.weighted_expense_ratio)
        if worst.weighted_expense_ratio > 0.002:
            return worst.bucket.value
    elif category == DiagnosticCategory.TAX_EFFICIENCY:
        if any(a.bucket == AccountBucket.BROKERAGE and a.holdings for a in accounts):
            return AccountBucket.BROKERAGE.value
    return None


# Cross-account concentration


def analyze_cross_account_concentration(
    holdings: Sequence[Holding],
) -> tuple[DiagnosticResult, list[Recommendation]]:
    """Combine each ticker across accounts and flag outsized or duplicated positions."""
    category = DiagnosticCategory.CROSS_ACCOUNT_CONCENTRATION
    if not holdings:
        result = DiagnosticResult(
            category=category,
            status=DiagnosticStatus.GREEN,
            score=100.0,
            key_finding="No holdings to analyze for cross-account overlap.",
            headline_metric="No data",
            details=CrossAccountDetails([], [], 0.0, 0),
        )
        return result, []

    total = sum(h.value for h in holdings)
    values: dict[str, float] = {}
    accounts: dict[str, list[str]] = {}
    for h in holdings:
        values[h.ticker] = values.get(h.ticker, 0.0) + h.value
        seen = accounts.setdefault(h.ticker, [])
        if h.account_type.value not in seen:
            seen.append(h.account_type.value)

    combined = sorted(
        (
            CrossAccountHolding(
                ticker=ticker,
                weight=value / total if total > 0 else 0.0,
                account_count=len(accounts[ticker]),
                accounts=tuple(accounts[ticker]),
            )
            for ticker, value in values.items()
        ),
        key=lambda c: c.weight,
        reverse=True,
    )
    top = combined[0]
    overlaps = [c for c in combined if c.account_count > 1]

    if top.weight > 0.15:
        status = DiagnosticStatus.RED
        score = max(0.0, 40 - (top.weight - 0.15) * 200)
    elif top.weight > 0.10:
        status = DiagnosticStatus.YELLOW
        score = 40 + (0.15 - top.weight) * 600
    else:
        status = DiagnosticStatus.GREEN
        score = 70 + (0.10 - top.weight) * 300

    if overlaps and overlaps[0].weight > 0.10:
        lead = overlaps[0]
        key_finding = (
            f"Across all accounts, {lead.ticker} totals {format_pct(lead.weight)} of your portfolio "
            f"(appears in {lead.account_count} accounts)."
        )
    elif top.weight > 0.15:
        key_finding = (
            f"Your largest holding ({top.ticker}) is {format_pct(top.weight)} of your total "
            f"portfolio, a lot riding on one investment."
        )
    elif overlaps:
        verb = "s appear" if len(overlaps) > 1 else " appears"
        key_finding = (
            f"{len(overlaps)} investment{verb} in multiple accounts. The largest overlap is "
            f"{overlaps[0].ticker} at {format_pct(overlaps[0].weight)}."
        )
    else:
        key_finding = "No significant cross-account overlap detected. Your accounts are reasonably independent."

    recommendations = []
    if top.weight > 0.10:
        recommendations.append(
            Recommendation(
                id="reduce-top-concentration",
                category=DiagnosticCategory.RISK_DIVERSIFICATION,
                title=f"Consider reducing {top.ticker} position",
                description=f"At {format_pct(top.weight)}, this single holding has outsized influence on your portfolio.",
                priority=1,
                impact="Reduces single-stock risk",
            )
        )
    if overlaps:
        plural = "s appear" if len(overlaps) > 1 else " appears"
        recommendations.append(
            Recommendation(
                id="consolidate-overlapping",
                category=DiagnosticCategory.RISK_DIVERSIFICATION,
                title="Review overlapping positions",
                description=(
                    f"{len(overlaps)} ticker{plural} in multiple accounts. "
                    f"Consider whether this duplication is intentional."
                ),
                priority=2,
                impact="Simplifies portfolio management",
            )
        )
    if len(combined) > 1 and combined[0].weight + combined[1].weight > 0.25:
        recommendations.append(
            Recommendation(
                id="diversify-top-2",
                category=DiagnosticCategory.RISK_DIVERSIFICATION,
                title="Diversify top holdings",
                description=(
                    f"Your top 2 holdings make up "
                    f"{format_pct(combined[0].weight + combined[1].weight)} of your portfolio."
                ),
                priority=2,
                impact="Reduces concentration risk",
            )
        )

    plural = "" if len(overlaps) == 1 else "s"
    result = DiagnosticResult(
        category=category,
        status=status,
        score=clamp(score),
        key_finding=key_finding,
        headline_metric=f"Top: {top.ticker} at {format_pct(top.weight)} | {len(overlaps)} overlap{plural}",
        details=CrossAccountDetails(
            top_holdings=combined[:5],
            multi_account_tickers=overlaps,
            total_value=total,
            holding_count=len(holdings),
        ),
    )
    return result, recommendations


# Assembly


def _card(
    result: DiagnosticResult,
    recommendations: list[Recommendation],
    context_label: str | None,
    key_finding: str,
    policy: SeverityPolicy,
) -> CardContract:
    copy = CARD_COPY[result.category]
    return CardContract(
        category=result.category,
        title=copy.title,
        subtitle=copy.subtitle,
        why_it_matters=WHY_IT_MATTERS[result.category],
        status=result.status,
        score=result.score,
        key_finding=key_finding,
        headline_metric=result.headline_metric,
        details=result.details,
        severity=compute_severity(result.category, result.status, result.score, result.details, policy),
        context_label=context_label,
        recommendations=recommendations,
        actions=list(DEFAULT_ACTIONS[result.category]),
    )


def build_card_contracts(
    analysis: PortfolioAnalysis,
    holdings: Sequence[Holding] = (),
    scoring_config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> list[CardContract]:
    """
    Build one card per diagnostic plus a cross-account card when holdings exist.

    Args:
        analysis: Output of analyze_portfolio
        holdings: The analyzed holdings, used for account context
        scoring_config: Supplies the severity policy

    Returns:
        Cards in diagnostic display order
    """
    policy = scoring_config.severity
    cards = []
    for category, result in analysis.diagnostics.items():
        recs = [r for r in analysis.recommendations if r.category == category]
        cards.append(
            _card(
                result,
                recs,
                account_context_label(category, holdings, result.status),
                consumer_key_finding(result),
                policy,
            )
        )

    if holdings:
        result, recs = analyze_cross_account_concentration(holdings)
        cards.append(_card(result, recs, None, result.key_finding, policy))

    return cards


def build_action_plan(
    cards: Sequence[CardContract],
    scoring_config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> list[Recommendation]:
    """
    Pool card recommendations into one prioritized plan.

    Recommendations sharing an id are merged (the last one wins, keeping the
    first one's position). The plan is ordered by priority, then by the
    longer impact description, and truncated to the config's
    ``action_plan_size``.
    """
    merged: dict[str, Recommendation] = {}
    for card in cards:
        for rec in card.recommendations:
            merged[rec.id] = rec

    ordered = sorted(merged.values(), key=lambda r: (r.priority, -len(r.impact or "")))
    return ordered[: scoring_config.action_plan_size]
