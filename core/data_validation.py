"""Data quality checks for return series."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np


@dataclass
class DataValidationResult:
    """Result of data validation containing any issues found."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add a critical error."""
        self.errors.append(message)

    def add_warning(self, message: str) -> None:
        """Add a non-critical warning."""
        self.warnings.append(message)

    def is_valid(self) -> bool:
        """Return True if no critical errors."""
        return len(self.errors) == 0

    def has_warnings(self) -> bool:
        """Return True if there are warnings."""
        return len(self.warnings) > 0

    def all_messages(self) -> list[str]:
        """Return all errors and warnings."""
        return self.errors + self.warnings


def validate_return_series(
    returns_by_ticker: Mapping[str, Sequence[float]],
    min_periods: int = 20,
    max_period_return: float = 0.5,
) -> DataValidationResult:
    """
    Validate return series before computing statistics from them.

    Args:
        returns_by_ticker: Periodic returns keyed by ticker
        min_periods: Observations below which a warning is raised
        max_period_return: Largest plausible single-period move

    Returns:
        DataValidationResult with errors and warnings
    """
    result = DataValidationResult()

    if not returns_by_ticker:
        result.add_error("No return series supplied")
        return result

    lengths = {ticker: len(series) for ticker, series in returns_by_ticker.items()}
    shortest = min(lengths.values())
    longest = max(lengths.values())

    if shortest != longest:
        result.add_warning(
            f"Series lengths differ ({shortest} to {longest}); aligning to shortest"
        )
    if shortest < 2:
        result.add_error(f"Insufficient history: {shortest} periods (need at least 2)")
    elif shortest < min_periods:
        result.add_warning(
            f"Limited history: {shortest} periods (recommended: {min_periods}+)"
        )

    for ticker, series in returns_by_ticker.items():
        values = np.asarray(series, dtype=float)
        if values.size == 0:
            continue

        n_missing = int(np.count_nonzero(~np.isfinite(values)))
        if n_missing > 0:
            result.add_warning(f"{ticker}: {n_missing} missing or non-finite values")

        finite = values[np.isfinite(values)]
        if finite.size == 0:
            continue

        n_extreme = int(np.count_nonzero(np.abs(finite) > max_period_return))
        if n_extreme > 0:
            result.add_warning(
                f"{ticker}: {n_extreme} extreme returns (max abs: {np.abs(finite).max():.1%})"
            )

        if finite.size > 1 and finite.std() < 1e-9:
            result.add_warning(f"{ticker}: Zero volatility, correlations will be reported as 0")

    return result
