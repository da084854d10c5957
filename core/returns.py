"""Simulated and historical return series per holding."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterable, Sequence

import numpy as np
import pandas as pd
import yfinance as yf

from core.assumptions import DEFAULT_ASSUMPTIONS, PortfolioAssumptions
from core.exceptions import DataFetchError
from core.holdings import AssetClass, Holding

# Configure module logger
logger = logging.getLogger(__name__)

# Share of a ticker's shock that comes from its asset class
INTRA_CLASS_CORRELATION = 0.9

TRADING_DAYS_PER_YEAR = 252


@dataclass(frozen=True)
class SimulatedReturns:
    """
    Synthetic return series for a set of holdings.

    These are a labeled stand-in for market history, not a forecast.

    Attributes:
        returns: Periodic returns keyed by ticker
        benchmark: Broad-market series driven by the same market factor
        periods_per_year: Frequency of the series
        simulated: Always True for synthetic data
    """

    returns: dict[str, list[float]]
    benchmark: list[float]
    periods_per_year: int = TRADING_DAYS_PER_YEAR
    simulated: bool = True


def _tickers_by_class(holdings: Sequence[Holding]) -> dict[str, AssetClass]:
    """First asset class seen for each ticker; duplicates are dropped."""
    classes: dict[str, AssetClass] = {}
    for h in holdings:
        classes.setdefault(h.ticker, h.asset_class)
    return classes


def simulate_returns_with_benchmark(
    holdings: Sequence[Holding],
    rng: np.random.Generator | None = None,
    periods: int = TRADING_DAYS_PER_YEAR,
    periods_per_year: int = TRADING_DAYS_PER_YEAR,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> SimulatedReturns:
    """
    Generate correlated periodic returns from asset-class assumptions.

    One market shock drives every asset class through its market loading.
    Each ticker then blends its class shock with an idiosyncratic shock, so
    tickers in the same class co-move more than tickers in different classes.

    Args:
        holdings: Holdings to simulate (tickers are de-duplicated)
        rng: Random generator; a fresh unseeded one is used when omitted
        periods: Number of periods to generate
        periods_per_year: Periods in one year, used to scale mean and volatility
        assumptions: Asset-class return and volatility assumptions

    Returns:
        SimulatedReturns with one series per unique ticker
    """
    if rng is None:
        rng = np.random.default_rng()

    classes = _tickers_by_class(holdings)
    logger.debug(f"Simulating {periods} periods for {len(classes)} tickers")

    market = rng.standard_normal(periods)

    class_shocks: dict[AssetClass, np.ndarray] = {}
    for asset_class in dict.fromkeys(classes.values()):
        loading = assumptions.for_class(asset_class).market_loading
        noise = rng.standard_normal(periods)
        class_shocks[asset_class] = loading * market + math.sqrt(1 - loading**2) * noise

    class_weight = math.sqrt(INTRA_CLASS_CORRELATION)
    idio_weight = math.sqrt(1 - INTRA_CLASS_CORRELATION)

    returns: dict[str, list[float]] = {}
    for ticker, asset_class in classes.items():
        asset = assumptions.for_class(asset_class)
        shock = class_weight * class_shocks[asset_class] + idio_weight * rng.standard_normal(periods)
        mean = asset.expected_return / periods_per_year
        vol = asset.volatility / math.sqrt(periods_per_year)
        returns[ticker] = (mean + vol * shock).tolist()

    market_asset = assumptions.for_class(AssetClass.US_STOCKS)
    benchmark = (
        market_asset.expected_return / periods_per_year
        + market_asset.volatility / math.sqrt(periods_per_year) * market
    )

    return SimulatedReturns(
        returns=returns,
        benchmark=benchmark.tolist(),
        periods_per_year=periods_per_year,
    )


def simulate_returns(
    holdings: Sequence[Holding],
    rng: np.random.Generator | None = None,
    periods: int = TRADING_DAYS_PER_YEAR,
    assumptions: PortfolioAssumptions = DEFAULT_ASSUMPTIONS,
) -> dict[str, list[float]]:
    """Return ticker -> simulated periodic returns."""
    return simulate_returns_with_benchmark(
        holdings, rng=rng, periods=periods, assumptions=assumptions
    ).returns


# Historical data


def _cache_is_fresh(cache_path: Path, max_age_days: int) -> bool:
    if not cache_path.exists():
        return False
    max_age = datetime.now() - timedelta(days=max_age_days)
    return datetime.fromtimestamp(cache_path.stat().st_mtime) >= max_age


def _save_cache(data: dict[str, dict[str, list]], cache_path: Path) -> None:
    cache_path.parent.mkdir(parents=True, exist_ok=True)
    with cache_path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle)


def returns_from_payload(payload: dict[str, dict[str, list]]) -> pd.DataFrame:
    """Rebuild a date-indexed returns frame from cached JSON."""
    frames = []
    for ticker, data in payload.items():
        frame = pd.DataFrame({"date": data["dates"], ticker: data["returns"]})
        frame["date"] = pd.to_datetime(frame["date"])
        frames.append(frame.set_index("date"))

    if not frames:
        return pd.DataFrame()
    return pd.concat(frames, axis=1).sort_index()


def _fetch_yfinance_returns(tickers: list[str], period: str) -> pd.DataFrame:
    """Fetch daily simple returns from yfinance."""
    logger.info(f"Fetching daily returns from yfinance for: {tickers}")

    try:
        price_data = yf.download(
            tickers=tickers,
            auto_adjust=True,
            progress=False,
            interval="1d",
            period=period,
        )["Close"]
    except Exception as e:
        logger.error(f"yfinance download failed: {e}")
        raise DataFetchError("yfinance", str(e)) from e

    if isinstance(price_data, pd.Series):
        price_data = price_data.to_frame(name=tickers[0])

    price_data = price_data.dropna(how="all")
    returns = price_data.pct_change().iloc[1:]

    logger.info(f"Fetched {len(returns)} days of data from yfinance")
    return returns


def fetch_daily_returns(
    tickers: Iterable[str],
    cache_dir: Path,
    max_age_days: int = 1,
    period: str = "1y",
) -> pd.DataFrame:
    """
    Get daily returns for real tickers, using a JSON cache when fresh.

    Args:
        tickers: Ticker symbols to fetch
        cache_dir: Directory for the cache file
        max_age_days: Maximum cache age in days
        period: yfinance lookback period

    Returns:
        DataFrame of daily simple returns, one column per ticker

    Raises:
        DataFetchError: If the download fails or returns nothing
    """
    ticker_list = list(dict.fromkeys(tickers))
    cache_path = cache_dir / "daily_returns.json"

    if _cache_is_fresh(cache_path, max_age_days):
        try:
            with cache_path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
            if all(t in payload for t in ticker_list):
                logger.info(f"Using cached returns from {cache_path}")
                return returns_from_payload({t: payload[t] for t in ticker_list})
        except (OSError, ValueError, KeyError) as e:
            logger.warning(f"Failed to load cache: {e}")

    returns = _fetch_yfinance_returns(ticker_list, period)
    if returns.empty:
        raise DataFetchError("yfinance", f"No price history for {ticker_list}")

    payload = {}
    for ticker in returns.columns:
        series = returns[ticker].dropna()
        payload[str(ticker)] = {
            "dates": [d.strftime("%Y-%m-%d") for d in series.index],
            "returns": series.tolist(),
        }

    try:
        _save_cache(payload, cache_path)
        logger.info(f"Saved {len(returns)} days to cache at {cache_path}")
    except OSError as e:
        logger.warning(f"Failed to save cache: {e}")

    return returns


def returns_by_ticker(frame: pd.DataFrame) -> dict[str, list[float]]:
    """Convert a returns frame to the ticker -> series mapping used downstream."""
    return {str(col): frame[col].dropna().tolist() for col in frame.columns}
