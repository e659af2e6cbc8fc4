"""Candle storage and market data feeds."""

from goldsignal.data.series import CandleSeries, SeriesView, DEFAULT_CAPACITY
from goldsignal.data.feed import (
    BinanceFeed,
    MarketFeed,
    SimulatedFeed,
    TwelveDataFeed,
    create_feed,
    normalize_kline,
    normalize_time_series_row,
)

__all__ = [
    "CandleSeries",
    "SeriesView",
    "DEFAULT_CAPACITY",
    "BinanceFeed",
    "MarketFeed",
    "SimulatedFeed",
    "TwelveDataFeed",
    "create_feed",
    "normalize_kline",
    "normalize_time_series_row",
]
