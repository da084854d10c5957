"""Tests for simulated returns and the yfinance-backed loader."""

import json

import numpy as np
import pandas as pd
import pytest

from core import returns as returns_module
from core.exceptions import DataFetchError
from core.holdings import AccountType, AssetClass, Holding
from core.returns import (
    INTRA_CLASS_CORRELATION,
    fetch_daily_returns,
    returns_by_ticker,
    returns_from_payload,
    simulate_returns,
    simulate_returns_with_benchmark,
)


def _corr(a, b) -> float:
    return float(np.corrcoef(a, b)[0, 1])


class TestSimulateReturns:
    """Tests for the correlated return synthesizer."""

    def test_one_series_per_unique_ticker(self, balanced_holdings, rng):
        holdings = balanced_holdings + [
            Holding("VTI", "VTI Roth", 10, 250.0, 250.0, AccountType.TAX_ADVANTAGED)
        ]
        result = simulate_returns(holdings, rng=rng)
        assert list(result) == ["VTI", "VXUS", "BND", "AAPL", "GLD"]
        assert all(len(series) == 252 for series in result.values())

    def test_custom_period_count(self, single_holding, rng):
        result = simulate_returns(single_holding, rng=rng, periods=60)
        assert len(result["VTI"]) == 60

    def test_seeded_runs_are_reproducible(self, balanced_holdings):
        first = simulate_returns(balanced_holdings, rng=np.random.default_rng(7))
        second = simulate_returns(balanced_holdings, rng=np.random.default_rng(7))
        assert first == second

    def test_same_class_moves_together(self, balanced_holdings, rng):
        result = simulate_returns(balanced_holdings, rng=rng, periods=1000)
        same_class = _corr(result["VTI"], result["AAPL"])
        cross_class = _corr(result["VTI"], result["BND"])
        assert same_class == pytest.approx(INTRA_CLASS_CORRELATION, abs=0.1)
        assert same_class > cross_class + 0.5

    def test_volatility_matches_assumption(self, single_holding, rng):
        result = simulate_returns(single_holding, rng=rng, periods=2520)
        annual_vol = np.std(result["VTI"]) * np.sqrt(252)
        assert annual_vol == pytest.approx(0.165, rel=0.1)

    def test_benchmark_tracks_market(self, single_holding, rng):
        result = simulate_returns_with_benchmark(single_holding, rng=rng, periods=1000)
        assert result.simulated
        assert len(result.benchmark) == 1000
        # US stocks load 0.85 on the market factor, scaled by the class share
        assert _corr(result.returns["VTI"], result.benchmark) > 0.6

    def test_empty_holdings(self, rng):
        result = simulate_returns_with_benchmark([], rng=rng)
        assert result.returns == {}
        assert len(result.benchmark) == 252


@pytest.fixture
def fake_prices() -> pd.DataFrame:
    dates = pd.date_range("2024-01-01", periods=5, freq="D")
    return pd.DataFrame(
        {"AAA": [100.0, 101.0, 99.99, 102.0, 102.0], "BBB": [50.0, 50.5, 51.0, 50.0, 49.0]},
        index=dates,
    )


class TestFetchDailyReturns:
    """Tests for the yfinance download and JSON cache."""

    def test_download_and_cache(self, monkeypatch, tmp_path, fake_prices):
        calls = []

        def fake_download(**kwargs):
            calls.append(kwargs["tickers"])
            return pd.concat({"Close": fake_prices}, axis=1)

        monkeypatch.setattr(returns_module.yf, "download", fake_download)

        frame = fetch_daily_returns(["AAA", "BBB"], tmp_path)
        assert list(frame.columns) == ["AAA", "BBB"]
        assert len(frame) == 4
        assert frame["AAA"].iloc[0] == pytest.approx(0.01)

        cache = json.loads((tmp_path / "daily_returns.json").read_text())
        assert cache["AAA"]["dates"][0] == "2024-01-02"
        assert calls == [["AAA", "BBB"]]

    def test_fresh_cache_skips_download(self, monkeypatch, tmp_path, fake_prices):
        monkeypatch.setattr(
            returns_module.yf, "download", lambda **kwargs: pd.concat({"Close": fake_prices}, axis=1)
        )
        first = fetch_daily_returns(["AAA", "BBB"], tmp_path)

        def fail(**kwargs):
            raise AssertionError("download should not be called")

        monkeypatch.setattr(returns_module.yf, "download", fail)
        second = fetch_daily_returns(["AAA"], tmp_path)
        assert second["AAA"].tolist() == pytest.approx(first["AAA"].tolist())

    def test_download_failure_raises(self, monkeypatch, tmp_path):
        def boom(**kwargs):
            raise RuntimeError("network down")

        monkeypatch.setattr(returns_module.yf, "download", boom)
        with pytest.raises(DataFetchError) as excinfo:
            fetch_daily_returns(["AAA"], tmp_path)
        assert excinfo.value.source == "yfinance"

    def test_single_ticker_series(self, monkeypatch, tmp_path, fake_prices):
        monkeypatch.setattr(
            returns_module.yf, "download", lambda **kwargs: {"Close": fake_prices["AAA"]}
        )
        frame = fetch_daily_returns(["AAA"], tmp_path)
        assert list(frame.columns) == ["AAA"]


class TestPayloadConversion:
    """Tests for cache payload and mapping helpers."""

    def test_returns_from_payload(self):
        payload = {
            "AAA": {"dates": ["2024-01-02", "2024-01-03"], "returns": [0.01, -0.02]},
            "BBB": {"dates": ["2024-01-03"], "returns": [0.03]},
        }
        frame = returns_from_payload(payload)
        assert len(frame) == 2
        assert np.isnan(frame["BBB"].iloc[0])

    def test_empty_payload(self):
        assert returns_from_payload({}).empty

    def test_returns_by_ticker_drops_gaps(self):
        frame = pd.DataFrame({"AAA": [0.01, np.nan, 0.02]})
        assert returns_by_ticker(frame) == {"AAA": [0.01, 0.02]}
