"""Portfolio-level aggregates derived from a list of holdings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from core.assumptions import DEFAULT_ASSUMPTIONS, SECTOR_MAPPING, PortfolioAssumptions
from core.holdings import AssetClass, Holding
from utils.helpers import weighted_sum


@dataclass(frozen=True)
class PositionWeight:
    ticker: str
    weight: float


@dataclass(frozen=True)
class PortfolioProfile:
    """
    Assumption-based summary of the whole portfolio.

    Expected return and volatility are value-weighted averages of the
    asset-class assumptions; total fees are annual dollars.
    """

    total_value: float
    total_cost: float
    expected_return: float
    volatility: float
    sharpe_ratio: float
    total_fees: float

    @property
    def fee_rate(self) -> float:
        return self.total_fees / self.total_value if self.total_value > 0 else 0.0


def total_value(holdings: Sequence[Holding]) -> float:
    return sum(h.value for h in holdings)


def total_cost(holdings: Sequence[Holding]) -> float:
    return sum(h.cost_value for h in holdings)


def unique_tickers(holdings: Sequence[Holding]) -> list[str]:
    """Tickers in first-seen order with duplicates removed."""
    seen: dict[str, None] = {}
    for h in holdings:
        seen.setdefault(h.ticker, None)
    return list(seen)


def position_weights(holdings: Sequence[Holding]) -> list[PositionWeight]:
    """Per-holding weights sorted from largest to smallest."""
    value = total_value(holdings)
    if value <= 0:
        return [PositionWeight(h.ticker, 0.0) for h in holdings]
    weights = [PositionWeight(h.ticker, h.value / value) for h in holdings]
    return sorted(weights, key=lambda p: p.weight, reverse=True)


def asset_class_weights(holdings: Sequence[Holding]) -> dict[AssetClass, float]:
    value = total_value(holdings)
    weights = {asset_class: 0.0 for asset_class in AssetClass}
    if value <= 0:
        return weights
    for h in holdings:
        weights[h.asset_class] += h.value / value
    return weights


def sector_for(holding: Holding) -> str:
    if holding.sector:
        return holding.sector
    return SECTOR_MAPPING.get(holding.ticker.upper(), "Other")


def sector_weights(holdings: Sequence[Holding]) -> dict[str, float]:
    value = total_value(holdings)
    weights: dict[str, float] = {}
    if value <= 0:
        return weights
    for h in holdings:
        sector = sector_for(h)
        weights[sector] = weights.get(sector, 0.0) + h.value / value
    return weights


def effective_expense_ratio(
    holding: Holding,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> float:
    """Holding's expense ratio, falling back to its asset-class default."""
    if holding.expense_ratio is not None:
        return holding.expense_ratio
    return assumptions.for_class(holding.asset_class).default_expense_ratio


def calculate_portfolio_profile(
    holdings: Sequence[Holding],
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> PortfolioProfile:
    value = total_value(holdings)
    cost = total_cost(holdings)
    if value <= 0:
        return PortfolioProfile(value, cost, 0.0, 0.0, 0.0, 0.0)

    weights = [h.value / value for h in holdings]
    classes = [assumptions.for_class(h.asset_class) for h in holdings]
    expected_return = weighted_sum((a.expected_return for a in classes), weights)
    volatility = weighted_sum((a.volatility for a in classes), weights)
    fees = weighted_sum(
        (effective_expense_ratio(h, assumptions) for h in holdings),
        (h.value for h in holdings),
    )

    sharpe = (
        (expected_return - assumptions.risk_free_rate) / volatility
        if volatility > 0
        else 0.0
    )
    return PortfolioProfile(
        total_value=value,
        total_cost=cost,
        expected_return=expected_return,
        volatility=volatility,
        sharpe_ratio=sharpe,
        total_fees=fees,
    )
