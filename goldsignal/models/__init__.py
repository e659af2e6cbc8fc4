"""Data models for GoldSignal."""

from goldsignal.models.candle import Candle, DEFAULT_INTERVAL_MS
from goldsignal.models.indicators import (
    MACD,
    BollingerBands,
    ChartPoint,
    CloudStatus,
    Ichimoku,
    IchimokuSeries,
    PivotPoints,
    Stochastic,
)
from goldsignal.models.market import MarketState, calibration_offset
from goldsignal.models.signal import (
    FASTEST_TIMEFRAME,
    AIModel,
    Signal,
    SignalType,
    Timeframe,
)

__all__ = [
    "Candle",
    "DEFAULT_INTERVAL_MS",
    "MACD",
    "BollingerBands",
    "ChartPoint",
    "CloudStatus",
    "Ichimoku",
    "IchimokuSeries",
    "PivotPoints",
    "Stochastic",
    "MarketState",
    "calibration_offset",
    "FASTEST_TIMEFRAME",
    "AIModel",
    "Signal",
    "SignalType",
    "Timeframe",
]
