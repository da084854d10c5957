#!/usr/bin/env python3
"""Basic smoke tests for the portfolio diagnostics engine."""

import sys
from pathlib import Path

import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from core.analysis import analyze_portfolio
from core.cards import build_action_plan, build_card_contracts
from core.holdings import AccountType, AssetClass, ClientParameters, Holding, PlanningChecklist
from core.scoring_config import DEFAULT_SCORING_CONFIG
from core.shock import detect_shock_alert
from core.simulator import GoalSimulationParams, run_goal_simulation
from utils.helpers import format_currency, format_pct

HOLDINGS = [
    Holding("VTI", "Vanguard Total Market", 200, 250.0, 200.0,
            AccountType.TAXABLE, AssetClass.US_STOCKS, 0.0003),
    Holding("BND", "Vanguard Bond [IRA]", 400, 72.0, 80.0,
            AccountType.TAX_ADVANTAGED, AssetClass.BONDS, 0.0003),
    Holding("NVDA", "Nvidia", 300, 120.0, 40.0, AccountType.TAXABLE, AssetClass.US_STOCKS),
]

CLIENT = ClientParameters(target_amount=200_000.0, years_to_goal=10, annual_contribution=5_000.0)


def test_helpers():
    """Test formatting helpers."""
    print("Testing helpers...")
    assert format_currency(1234.56) == "$1,235"
    assert format_currency(1000000) == "$1,000,000"
    assert format_pct(0.1234) == "12.3%"
    assert format_pct(None) == "n/a"
    print("  ✓ Helper tests passed")


def test_simulation():
    """Test the goal simulation with a deterministic path."""
    print("Testing simulation...")
    params = GoalSimulationParams(
        start_value=100.0,
        years=2,
        annual_contribution=10.0,
        expected_return=0.10,
        volatility=0.0,
        goal_amount=130.0,
        n_simulations=10,
    )
    result = run_goal_simulation(params, rng=np.random.default_rng(1))
    assert result.success_rate == 1.0
    assert abs(result.median - 142.0) < 1e-6
    print("  ✓ Simulation tests passed")


def test_analysis():
    """Test the full pipeline from holdings to action plan."""
    print("Testing analysis...")
    analysis = analyze_portfolio(HOLDINGS, CLIENT, PlanningChecklist(), rng=np.random.default_rng(7))
    assert 0 <= analysis.health_score <= 100
    assert len(analysis.diagnostics) == 9

    cards = build_card_contracts(analysis, HOLDINGS)
    assert len(cards) == 10
    plan = build_action_plan(cards, DEFAULT_SCORING_CONFIG)
    assert len(plan) <= DEFAULT_SCORING_CONFIG.action_plan_size

    # empty checklist and a large single stock leave at least one red card
    alert = detect_shock_alert(cards)
    assert alert is not None

    print(f"  Health score: {analysis.health_score}")
    for card in cards:
        print(f"  {card.title:<26} {card.status.value:<6} {card.score:5.1f}  {card.headline_metric}")
    print(f"  Shock watch: {alert.title}")
    print("  ✓ Analysis tests passed")


def main():
    """Run all tests."""
    print("Running basic tests for portfolio diagnostics...\n")
    try:
        test_helpers()
        test_simulation()
        test_analysis()
        print("\n✅ All tests passed!")
        return 0
    except Exception as e:
        print(f"\n❌ Test failed: {e}")
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
