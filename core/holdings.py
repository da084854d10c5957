"""Portfolio input records: holdings, client parameters and the planning checklist."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum


class AccountType(str, Enum):
    TAXABLE = "Taxable"
    TAX_ADVANTAGED = "Tax-Advantaged"


class AssetClass(str, Enum):
    US_STOCKS = "US Stocks"
    INTL_STOCKS = "Intl Stocks"
    BONDS = "Bonds"
    COMMODITIES = "Commodities"
    CASH = "Cash"
    OTHER = "Other"


class RiskTolerance(str, Enum):
    CONSERVATIVE = "Conservative"
    MODERATE = "Moderate"
    AGGRESSIVE = "Aggressive"


class AdviceModel(str, Enum):
    """How the client is advised; selects the fee threshold set."""

    SELF_DIRECTED = "self-directed"
    ADVISOR_PASSIVE = "advisor-passive"
    ADVISOR_TACTICAL = "advisor-tactical"

    @property
    def label(self) -> str:
        return {
            AdviceModel.SELF_DIRECTED: "self-directed",
            AdviceModel.ADVISOR_PASSIVE: "passive advisor",
            AdviceModel.ADVISOR_TACTICAL: "tactical advisor",
        }[self]


@dataclass(frozen=True)
class Holding:
    """
    A single position in the client's portfolio.

    Attributes:
        ticker: Symbol of the security
        name: Display name (account hints such as "Roth" are read from it)
        shares: Number of shares held
        current_price: Latest price per share
        cost_basis: Purchase price per share
        account_type: Taxable or tax-advantaged
        asset_class: Broad asset class used for return assumptions
        expense_ratio: Annual fund expense ratio, if known
        sector: Optional sector override
    """

    ticker: str
    name: str
    shares: float
    current_price: float
    cost_basis: float
    account_type: AccountType = AccountType.TAXABLE
    asset_class: AssetClass = AssetClass.US_STOCKS
    expense_ratio: float | None = None
    sector: str | None = None

    @property
    def value(self) -> float:
        """Market value, never negative."""
        return max(0.0, self.shares * self.current_price)

    @property
    def cost_value(self) -> float:
        return max(0.0, self.shares * self.cost_basis)

    @property
    def unrealized_gain(self) -> float:
        return self.value - self.cost_value


@dataclass(frozen=True)
class ClientParameters:
    """Client profile driving threshold selection and the goal projection."""

    risk_tolerance: RiskTolerance = RiskTolerance.MODERATE
    target_amount: float | None = None
    years_to_goal: int | None = None
    current_age: int = 45
    annual_contribution: float = 0.0

    @property
    def has_goal(self) -> bool:
        return bool(self.target_amount) and bool(self.years_to_goal)


CHECKLIST_LABELS: dict[str, str] = {
    "will_trust": "Will/Trust",
    "healthcare_directives": "Healthcare Directives",
    "poa_directives": "Power of Attorney",
    "emergency_fund": "Emergency Fund",
    "beneficiary_review": "Beneficiary Review",
    "executor_designation": "Executor Designation",
    "guardian_designation": "Guardian Designation",
    "insurance_coverage": "Insurance Review",
    "digital_asset_plan": "Digital Asset Plan",
    "withdrawal_strategy": "Withdrawal Strategy",
    "investment_policy_statement": "Investment Policy Statement",
}


@dataclass(frozen=True)
class PlanningChecklist:
    """Completion state of the financial-planning basics."""

    will_trust: bool = False
    healthcare_directives: bool = False
    poa_directives: bool = False
    emergency_fund: bool = False
    beneficiary_review: bool = False
    executor_designation: bool = False
    guardian_designation: bool = False
    insurance_coverage: bool = False
    digital_asset_plan: bool = False
    withdrawal_strategy: bool = False
    investment_policy_statement: bool = False

    def items(self) -> dict[str, bool]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, bool]) -> "PlanningChecklist":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: bool(v) for k, v in data.items() if k in known})
