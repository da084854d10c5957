"""Capital-market assumptions and reference tables used across the engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from core.holdings import AssetClass, RiskTolerance


@dataclass(frozen=True)
class AssetAssumptions:
    """
    Long-run behavior assumed for one asset class.

    Attributes:
        expected_return: Annual expected return
        volatility: Annual standard deviation of returns
        default_expense_ratio: Fee assumed when a holding has none on file
        market_loading: Correlation of the class with the broad market factor
    """

    expected_return: float
    volatility: float
    default_expense_ratio: float
    market_loading: float


DEFAULT_ASSET_ASSUMPTIONS: dict[AssetClass, AssetAssumptions] = {
    AssetClass.US_STOCKS: AssetAssumptions(0.09, 0.165, 0.0005, 0.85),
    AssetClass.INTL_STOCKS: AssetAssumptions(0.08, 0.19, 0.001, 0.75),
    AssetClass.BONDS: AssetAssumptions(0.035, 0.04, 0.0003, -0.1),
    AssetClass.COMMODITIES: AssetAssumptions(0.05, 0.15, 0.004, 0.3),
    AssetClass.CASH: AssetAssumptions(0.02, 0.005, 0.0, 0.0),
    AssetClass.OTHER: AssetAssumptions(0.06, 0.12, 0.001, 0.5),
}

DEFAULT_TARGET_VOLATILITY: dict[RiskTolerance, float] = {
    RiskTolerance.CONSERVATIVE: 0.08,
    RiskTolerance.MODERATE: 0.12,
    RiskTolerance.AGGRESSIVE: 0.18,
}


@dataclass(frozen=True)
class PortfolioAssumptions:
    """Assumption set threaded through every analysis entry point."""

    asset_classes: dict[AssetClass, AssetAssumptions] = field(
        default_factory=lambda: dict(DEFAULT_ASSET_ASSUMPTIONS)
    )
    risk_free_rate: float = 0.03
    inflation_rate: float = 0.025
    target_volatility: dict[RiskTolerance, float] = field(
        default_factory=lambda: dict(DEFAULT_TARGET_VOLATILITY)
    )

    def for_class(self, asset_class: AssetClass) -> AssetAssumptions:
        return self.asset_classes.get(asset_class, self.asset_classes[AssetClass.OTHER])

    def with_rates(
        self,
        risk_free_rate: float | None = None,
        inflation_rate: float | None = None,
    ) -> "PortfolioAssumptions":
        """Return a copy with the given rates replaced."""
        return replace(
            self,
            risk_free_rate=self.risk_free_rate if risk_free_rate is None else risk_free_rate,
            inflation_rate=self.inflation_rate if inflation_rate is None else inflation_rate,
        )


DEFAULT_ASSUMPTIONS = PortfolioAssumptions()


@dataclass(frozen=True)
class CrisisScenario:
    """
    A historical market shock applied to current weights.

    Attributes:
        id: Unique identifier
        name: Human-readable name
        equity_shock: Decline applied to stock holdings
        bond_shock: Move applied to bond holdings
    """

    id: str
    name: str
    equity_shock: float
    bond_shock: float


CRISIS_TECH_BUBBLE_2000 = CrisisScenario("tech_bubble_2000", "2000 Tech Crash", -0.45, 0.10)
CRISIS_FINANCIAL_2008 = CrisisScenario("financial_crisis_2008", "2008 Financial Crisis", -0.55, 0.05)
CRISIS_COVID_2020 = CrisisScenario("covid_crash_2020", "2020 Covid Shock", -0.34, 0.02)

CRISIS_SCENARIOS: list[CrisisScenario] = [
    CRISIS_TECH_BUBBLE_2000,
    CRISIS_FINANCIAL_2008,
    CRISIS_COVID_2020,
]


@dataclass(frozen=True)
class Benchmark:
    """Reference portfolio used for performance comparison."""

    id: str
    name: str
    description: str
    expected_return: float
    volatility: float
    expense_ratio: float

    def sharpe_ratio(self, risk_free_rate: float) -> float:
        return (self.expected_return - risk_free_rate) / self.volatility


BENCHMARKS: list[Benchmark] = [
    Benchmark("sp500", "S&P 500", "100% US Large Cap", 0.09, 0.165, 0.0003),
    Benchmark("balanced_60_40", "60/40 Portfolio", "60% Stocks, 40% Bonds", 0.068, 0.10, 0.0005),
    Benchmark("total_world", "Total World", "60% US, 40% Intl Stocks", 0.085, 0.175, 0.0007),
]

# Simplified sector lookup for common tickers; unknown tickers fall into "Other"
SECTOR_MAPPING: dict[str, str] = {
    "AAPL": "Technology",
    "MSFT": "Technology",
    "GOOGL": "Technology",
    "AMZN": "Consumer Discretionary",
    "META": "Technology",
    "NVDA": "Technology",
    "JPM": "Financials",
    "V": "Financials",
    "JNJ": "Healthcare",
    "UNH": "Healthcare",
    "PG": "Consumer Staples",
    "XOM": "Energy",
    "CVX": "Energy",
    "SPY": "Diversified",
    "QQQ": "Technology",
    "VTI": "Diversified",
    "BND": "Fixed Income",
    "AGG": "Fixed Income",
    "GLD": "Commodities",
    "VNQ": "Real Estate",
}
