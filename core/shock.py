"""Portfolio-wide fragility alert derived from the diagnostic cards."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from core.cards import CardAction, CardContract
from core.diagnostics import DiagnosticStatus, Severity

logger = logging.getLogger(__name__)

MAX_DRIVERS = 3
MAX_ACTIONS = 4

# Lowest YELLOW score that still counts toward an elevated alert
YELLOW_ALERT_SCORE = 60


class ShockSeverity(str, Enum):
    NORMAL = "NORMAL"
    ELEVATED = "ELEVATED"
    EXTREME = "EXTREME"


@dataclass(frozen=True)
class ShockAlert:
    """
    Banner-level warning that several cards point at the same fragility.

    Attributes:
        severity: ELEVATED or EXTREME (NORMAL never produces an alert)
        title: Alert headline
        message: One-paragraph explanation
        drivers: Short "Card title: finding" lines for the worst cards
        actions: Suggested actions merged from the driver cards
    """

    severity: ShockSeverity
    title: str
    message: str
    drivers: list[str] = field(default_factory=list)
    actions: list[CardAction] = field(default_factory=list)


ALERT_COPY: dict[ShockSeverity, tuple[str, str]] = {
    ShockSeverity.EXTREME: (
        "Shock Watch: High Fragility Detected",
        "Your portfolio shows extreme fragility signals. In a sudden market move, these can "
        "force painful decisions. Address the top drivers below first.",
    ),
    ShockSeverity.ELEVATED: (
        "Shock Watch: Elevated Risk Signals",
        "Your portfolio shows elevated risk signals. Consider small, high-impact adjustments "
        "to reduce downside exposure.",
    ),
}


def shock_severity(cards: Sequence[CardContract]) -> ShockSeverity:
    """Grade the card set: two extreme or red cards is EXTREME, one is ELEVATED."""
    extreme = sum(1 for c in cards if c.severity == Severity.EXTREME)
    red = sum(1 for c in cards if c.status == DiagnosticStatus.RED)

    if extreme >= 2 or red >= 2:
        return ShockSeverity.EXTREME
    if extreme >= 1 or red >= 1:
        return ShockSeverity.ELEVATED

    yellow_scores = [c.score for c in cards if c.status == DiagnosticStatus.YELLOW]
    if len(yellow_scores) >= 2 and min(yellow_scores) <= YELLOW_ALERT_SCORE:
        return ShockSeverity.ELEVATED
    return ShockSeverity.NORMAL


def _driver_line(card: CardContract) -> str:
    if card.key_finding:
        return f"{card.title}: {card.key_finding}"
    if card.headline_metric:
        return f"{card.title}: {card.headline_metric}"
    return card.title


def _merge_actions(cards: Sequence[CardContract]) -> list[CardAction]:
    seen: set[tuple[str, str]] = set()
    merged = []
    for card in cards:
        for action in card.actions:
            key = (action.kind.value, action.label)
            if key in seen:
                continue
            seen.add(key)
            merged.append(action)
    return merged[:MAX_ACTIONS]


def detect_shock_alert(cards: Sequence[CardContract]) -> ShockAlert | None:
    """
    Build a shock-watch alert when the cards show fragility.

    Drivers come from the EXTREME cards when any exist, otherwise from the
    RED cards, worst score first.

    Args:
        cards: Card contracts for one portfolio

    Returns:
        ShockAlert, or None when there are no cards or the severity is NORMAL
    """
    if not cards:
        return None

    severity = shock_severity(cards)
    if severity == ShockSeverity.NORMAL:
        return None

    extreme = [c for c in cards if c.severity == Severity.EXTREME]
    red = [c for c in cards if c.status == DiagnosticStatus.RED]
    sources = sorted(extreme or red, key=lambda c: c.score)

    title, message = ALERT_COPY[severity]
    logger.info(f"{title} ({len(sources)} driver cards)")

    return ShockAlert(
        severity=severity,
        title=title,
        message=message,
        drivers=[_driver_line(c) for c in sources[:MAX_DRIVERS]],
        actions=_merge_actions(sources),
    )
