from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable


@dataclass(frozen=True)
class Percentiles:
    p5: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    p95: float


PERCENTILE_LEVELS = (5, 10, 25, 50, 75, 90, 95)


def format_currency(value: float) -> str:
    return f"${value:,.0f}"


def format_pct(value: float, decimals: int = 1) -> str:
    if value is None or math.isnan(value):
        return "n/a"
    return f"{value * 100:.{decimals}f}%"


def weighted_sum(values: Iterable[float], weights: Iterable[float]) -> float:
    return sum(v * w for v, w in zip(values, weights))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def safe_divide(numerator: float, denominator: float) -> float | None:
    """Return numerator / denominator, or None when the result is not finite."""
    if denominator == 0:
        return None
    result = numerator / denominator
    if not math.isfinite(result):
        return None
    return result


def to_serializable(value: Any) -> Any:
    """Convert dataclasses, enums and numpy scalars into JSON-compatible data."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            f.name: to_serializable(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {
            (k.value if isinstance(k, Enum) else k): to_serializable(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [to_serializable(v) for v in value]
    if hasattr(value, "tolist"):
        return value.tolist()
    return value
