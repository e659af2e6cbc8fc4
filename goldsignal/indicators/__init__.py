"""Technical indicators module."""

from goldsignal.indicators.technical import (
    calculate_adx,
    calculate_atr,
    calculate_bollinger_bands,
    calculate_ema,
    calculate_ichimoku,
    calculate_macd,
    calculate_pivot_points,
    calculate_rsi,
    calculate_sma,
    calculate_stochastic,
    generate_ichimoku_series,
    ichimoku_series,
)

__all__ = [
    "calculate_adx",
    "calculate_atr",
    "calculate_bollinger_bands",
    "calculate_ema",
    "calculate_ichimoku",
    "calculate_macd",
    "calculate_pivot_points",
    "calculate_rsi",
    "calculate_sma",
    "calculate_stochastic",
    "generate_ichimoku_series",
    "ichimoku_series",
]
