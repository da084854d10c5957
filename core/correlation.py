"""Pairwise correlation of holding returns and concentration flags."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from core.data_validation import validate_return_series

logger = logging.getLogger(__name__)

# Keeps the O(n^2) pair loop interactive
MAX_CORRELATION_TICKERS = 50

DEFAULT_CORRELATION_THRESHOLD = 0.8


@dataclass(frozen=True)
class CorrelationMatrixResult:
    """
    Ordered labels and a square correlation matrix.

    The matrix is symmetric, its diagonal is exactly 1.0 and every value
    lies in [-1, 1].
    """

    labels: list[str] = field(default_factory=list)
    matrix: list[list[float]] = field(default_factory=list)

    def is_empty(self) -> bool:
        return len(self.labels) == 0

    def as_array(self) -> np.ndarray:
        return np.array(self.matrix, dtype=float).reshape(len(self.labels), len(self.labels))


@dataclass(frozen=True)
class CorrelationPair:
    first: str
    second: str
    correlation: float


@dataclass(frozen=True)
class CorrelationIssues:
    """
    Outcome of scanning a correlation matrix for redundant holdings.

    Attributes:
        has_issues: True when at least one pair exceeds the threshold
        high_correlation_pairs: Offending pairs, strongest first
        avg_correlation: Mean absolute off-diagonal correlation
        threshold: Absolute correlation above which a pair is flagged
    """

    has_issues: bool
    high_correlation_pairs: list[CorrelationPair]
    avg_correlation: float
    threshold: float


def _fill_missing(series: np.ndarray) -> np.ndarray:
    """Replace non-finite observations with the mean of the finite ones."""
    finite = np.isfinite(series)
    if finite.all():
        return series
    fill = series[finite].mean() if finite.any() else 0.0
    return np.where(finite, series, fill)


def compute_correlation_matrix(
    returns_by_ticker: Mapping[str, Sequence[float]],
    max_tickers: int = MAX_CORRELATION_TICKERS,
) -> CorrelationMatrixResult:
    """
    Compute the sample Pearson correlation matrix across return series.

    Series of unequal length are aligned on their common leading periods.
    Only the upper triangle is computed and then mirrored. A series with
    zero variance has no defined correlation and is reported as 0.0
    against every other series.

    Args:
        returns_by_ticker: Periodic returns keyed by ticker
        max_tickers: Largest number of tickers to correlate

    Returns:
        CorrelationMatrixResult (empty when no series are given)
    """
    labels = list(returns_by_ticker)
    if not labels:
        return CorrelationMatrixResult()

    if len(labels) > max_tickers:
        logger.warning(
            f"Correlating first {max_tickers} of {len(labels)} tickers; the rest are dropped"
        )
        labels = labels[:max_tickers]

    if len(labels) == 1:
        return CorrelationMatrixResult(labels=labels, matrix=[[1.0]])

    series = {label: returns_by_ticker[label] for label in labels}
    quality = validate_return_series(series)
    if not quality.is_valid() or quality.has_warnings():
        logger.warning(f"Correlation input: {'; '.join(quality.all_messages())}")

    n = len(labels)
    length = min(len(s) for s in series.values())
    matrix = np.eye(n)

    if length < 2:
        return CorrelationMatrixResult(labels=labels, matrix=matrix.tolist())

    data = np.array([_fill_missing(np.asarray(series[label][:length], dtype=float)) for label in labels])
    centered = data - data.mean(axis=1, keepdims=True)
    std = np.sqrt((centered**2).sum(axis=1) / (length - 1))

    for i in range(n):
        for j in range(i + 1, n):
            if std[i] < 1e-12 or std[j] < 1e-12:
                corr = 0.0
            else:
                cov = float(centered[i] @ centered[j]) / (length - 1)
                corr = float(np.clip(cov / (std[i] * std[j]), -1.0, 1.0))
            matrix[i, j] = corr
            matrix[j, i] = corr

    return CorrelationMatrixResult(labels=labels, matrix=matrix.tolist())


def analyze_correlation_issues(
    matrix: Sequence[Sequence[float]] | np.ndarray,
    labels: Sequence[str],
    threshold: float = DEFAULT_CORRELATION_THRESHOLD,
) -> CorrelationIssues:
    """
    Flag off-diagonal pairs whose absolute correlation exceeds ``threshold``.

    Args:
        matrix: Square correlation matrix ordered like ``labels``
        labels: Ticker labels
        threshold: Absolute correlation above which a pair is flagged

    Returns:
        CorrelationIssues with pairs ranked by magnitude
    """
    values = np.asarray(matrix, dtype=float)
    n = len(labels)
    pairs: list[CorrelationPair] = []
    magnitudes: list[float] = []

    for i in range(n):
        for j in range(i + 1, n):
            corr = float(values[i, j])
            magnitudes.append(abs(corr))
            if abs(corr) > threshold:
                pairs.append(CorrelationPair(labels[i], labels[j], corr))

    pairs.sort(key=lambda p: abs(p.correlation), reverse=True)
    avg = float(np.mean(magnitudes)) if magnitudes else 0.0

    return CorrelationIssues(
        has_issues=len(pairs) > 0,
        high_correlation_pairs=pairs,
        avg_correlation=avg,
        threshold=threshold,
    )
