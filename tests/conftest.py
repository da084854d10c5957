"""Shared pytest fixtures for portfolio diagnostics tests."""

import numpy as np
import pytest

from core.holdings import (
    AccountType,
    AssetClass,
    ClientParameters,
    Holding,
    PlanningChecklist,
    RiskTolerance,
)
from core.lifetime_income import GuaranteedIncomeSource, IncomeSourceType, LifetimeIncomeInputs


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded generator for reproducible simulations."""
    return np.random.default_rng(42)


@pytest.fixture
def balanced_holdings() -> list[Holding]:
    """Mixed stock/bond portfolio spread across taxable and IRA accounts."""
    return [
        Holding("VTI", "Vanguard Total Market", 200, 250.0, 200.0,
                AccountType.TAXABLE, AssetClass.US_STOCKS, 0.0003),
        Holding("VXUS", "Vanguard Intl [IRA]", 500, 60.0, 55.0,
                AccountType.TAX_ADVANTAGED, AssetClass.INTL_STOCKS, 0.0007),
        Holding("BND", "Vanguard Bond [IRA]", 400, 72.0, 80.0,
                AccountType.TAX_ADVANTAGED, AssetClass.BONDS, 0.0003),
        Holding("AAPL", "Apple", 50, 180.0, 150.0,
                AccountType.TAXABLE, AssetClass.US_STOCKS, None),
        Holding("GLD", "Gold Roth", 20, 190.0, 170.0,
                AccountType.TAX_ADVANTAGED, AssetClass.COMMODITIES, 0.004),
    ]


@pytest.fixture
def concentrated_holdings() -> list[Holding]:
    """Single-stock heavy taxable portfolio."""
    return [
        Holding("NVDA", "Nvidia", 1000, 120.0, 40.0, AccountType.TAXABLE, AssetClass.US_STOCKS),
        Holding("SPY", "S&P 500 ETF", 20, 500.0, 450.0, AccountType.TAXABLE,
                AssetClass.US_STOCKS, 0.0009),
    ]


@pytest.fixture
def single_holding() -> list[Holding]:
    return [Holding("VTI", "Vanguard Total Market", 100, 250.0, 200.0)]


@pytest.fixture
def moderate_client() -> ClientParameters:
    """Moderate client with a reachable ten-year goal."""
    return ClientParameters(
        risk_tolerance=RiskTolerance.MODERATE,
        target_amount=150_000.0,
        years_to_goal=10,
        current_age=55,
        annual_contribution=5_000.0,
    )


@pytest.fixture
def no_goal_client() -> ClientParameters:
    return ClientParameters(risk_tolerance=RiskTolerance.MODERATE)


@pytest.fixture
def complete_checklist() -> PlanningChecklist:
    return PlanningChecklist.from_dict({name: True for name in PlanningChecklist().items()})


@pytest.fixture
def empty_checklist() -> PlanningChecklist:
    return PlanningChecklist()


@pytest.fixture
def covered_income() -> LifetimeIncomeInputs:
    """Guaranteed income above core expenses."""
    return LifetimeIncomeInputs(
        core_expenses_monthly=4_000.0,
        discretionary_expenses_monthly=1_500.0,
        healthcare_monthly=500.0,
        sources=(
            GuaranteedIncomeSource(
                "Social Security", 3_000.0, 67,
                inflation_adjusted=True,
                source_type=IncomeSourceType.SOCIAL_SECURITY_CLIENT,
            ),
            GuaranteedIncomeSource(
                "Pension", 1_500.0, 65,
                source_type=IncomeSourceType.PENSION_CLIENT,
            ),
        ),
    )


@pytest.fixture
def short_income() -> LifetimeIncomeInputs:
    """Guaranteed income covering half of core expenses."""
    return LifetimeIncomeInputs(
        core_expenses_monthly=6_000.0,
        sources=(GuaranteedIncomeSource("Pension", 3_000.0, 65),),
    )
