from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from core.holdings import AccountType, Holding


class AccountBucket(str, Enum):
    BROKERAGE = "Brokerage"
    TRADITIONAL_IRA = "Traditional IRA"
    ROTH_IRA = "Roth IRA"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class AccountMetrics:
    """Concentration and cost facts for one account bucket."""

    bucket: AccountBucket
    total_value: float
    top_holding_pct: float
    weighted_expense_ratio: float
    holdings: tuple[Holding, ...]


def infer_account_bucket(holding: Holding) -> AccountBucket:
    """Name hints win over the account type tag."""
    name = (holding.name or "").lower()
    if "roth" in name:
        return AccountBucket.ROTH_IRA
    if "trad ira" in name or "traditional" in name or "[ira]" in name:
        return AccountBucket.TRADITIONAL_IRA
    if holding.account_type == AccountType.TAXABLE:
        return AccountBucket.BROKERAGE
    if holding.account_type == AccountType.TAX_ADVANTAGED:
        return AccountBucket.TRADITIONAL_IRA
    return AccountBucket.UNKNOWN


def compute_account_metrics(holdings: Sequence[Holding]) -> list[AccountMetrics]:
    grouped: dict[AccountBucket, list[Holding]] = {bucket: [] for bucket in AccountBucket}
    for h in holdings:
        grouped[infer_account_bucket(h)].append(h)

    metrics = []
    for bucket, members in grouped.items():
        if not members:
            continue
        value = sum(h.value for h in members)
        top = max((h.value for h in members), default=0.0)
        top_pct = top / value * 100 if value > 0 else 0.0
        weighted_er = 0.0
        if value > 0:
            weighted_er = sum(h.value / value * (h.expense_ratio or 0.0) for h in members)
        metrics.append(
            AccountMetrics(
                bucket=bucket,
                total_value=value,
                top_holding_pct=top_pct,
                weighted_expense_ratio=weighted_er,
                holdings=tuple(members),
            )
        )
    return metrics
