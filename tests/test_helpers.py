"""Tests for helper utility functions."""

import math
from dataclasses import dataclass

import numpy as np
import pytest

from core.holdings import AssetClass
from utils.helpers import (
    Percentiles,
    clamp,
    format_currency,
    format_pct,
    safe_divide,
    to_serializable,
    weighted_sum,
)


class TestFormatCurrency:
    """Tests for currency formatting."""

    def test_whole_dollars(self):
        assert format_currency(1000) == "$1,000"

    def test_with_cents(self):
        """Cents are rounded."""
        assert format_currency(1234.56) == "$1,235"

    def test_millions(self):
        assert format_currency(1_000_000) == "$1,000,000"

    def test_zero(self):
        assert format_currency(0) == "$0"


class TestFormatPct:
    """Tests for percentage formatting."""

    def test_default_one_decimal(self):
        assert format_pct(0.1234) == "12.3%"

    def test_zero_decimals(self):
        assert format_pct(0.5, 0) == "50%"

    def test_negative(self):
        assert format_pct(-0.25, 0) == "-25%"

    def test_none_is_na(self):
        assert format_pct(None) == "n/a"

    def test_nan_is_na(self):
        assert format_pct(float("nan")) == "n/a"


class TestWeightedSum:
    """Tests for weighted sum calculation."""

    def test_equal_weights(self):
        """Equal unit weights give the plain sum."""
        assert weighted_sum([10, 20, 30], [1, 1, 1]) == 60

    def test_weighted_calculation(self):
        result = weighted_sum([100, 200], [0.3, 0.7])
        assert result == pytest.approx(170.0)

    def test_zero_weights(self):
        assert weighted_sum([100, 200, 300], [0, 0, 0]) == 0


class TestClampAndDivide:
    """Tests for numeric guards."""

    def test_clamp_bounds(self):
        assert clamp(-5) == 0.0
        assert clamp(150) == 100.0
        assert clamp(42.5) == 42.5

    def test_safe_divide_zero_denominator(self):
        assert safe_divide(1.0, 0.0) is None

    def test_safe_divide_infinite_result(self):
        assert safe_divide(math.inf, 1.0) is None

    def test_safe_divide_normal(self):
        assert safe_divide(3.0, 2.0) == 1.5


class TestPercentiles:
    """Tests for Percentiles dataclass."""

    def test_frozen(self):
        """Percentiles is immutable (frozen)."""
        p = Percentiles(1, 2, 3, 4, 5, 6, 7)
        with pytest.raises(AttributeError):
            p.p5 = 10.0


class TestToSerializable:
    """Tests for result-tree conversion."""

    def test_nested_dataclass_with_enums(self):
        @dataclass(frozen=True)
        class Row:
            asset_class: AssetClass
            weights: dict
            values: tuple

        row = Row(AssetClass.BONDS, {AssetClass.CASH: 0.1}, (1, 2))
        assert to_serializable(row) == {
            "asset_class": "Bonds",
            "weights": {"Cash": 0.1},
            "values": [1, 2],
        }

    def test_numpy_values(self):
        assert to_serializable(np.array([1.0, 2.0])) == [1.0, 2.0]
        assert to_serializable(np.float64(0.5)) == 0.5
