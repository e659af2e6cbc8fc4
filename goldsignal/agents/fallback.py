"""Deterministic fallback signals.

Used whenever the AI collaborator is unconfigured or fails. The rules are
fixed; only the confidence carries a small random jitter so repeated
cards do not look frozen.
"""

import math
import random
import time
from typing import Optional

from goldsignal.models import FASTEST_TIMEFRAME, MarketState, Signal, SignalType, Timeframe


# Base confidences
CONFLUENCE_CONFIDENCE = 80
RANGE_CONFIDENCE = 65
DEFAULT_CONFIDENCE = 50

# Confidence jitter is drawn from [0, JITTER)
JITTER = 5

# ADX below this is treated as a ranging market
RANGING_ADX = 20
TRENDING_ADX = 25

FAST_SL_MULTIPLIER = 1.5
SL_MULTIPLIER = 2.0
RISK_REWARD = 2.0


def _classify(state: MarketState) -> tuple[SignalType, int, str]:
    """Apply the rule set in priority order.

    Returns:
        Tuple of (signal type, base confidence, trend bias label).
    """
    price = state.price
    kijun = state.ichimoku.kijun
    histogram = state.macd.histogram

    trend_bullish = price > state.ema200 and price > kijun
    trend_bearish = price < state.ema200 and price < kijun
    bias = "Bullish" if trend_bullish else "Bearish" if trend_bearish else "Neutral"

    if trend_bullish and state.rsi < 45 and histogram > 0:
        return SignalType.BUY, CONFLUENCE_CONFIDENCE, bias
    if trend_bearish and state.rsi > 55 and histogram < 0:
        return SignalType.SELL, CONFLUENCE_CONFIDENCE, bias

    if state.adx < RANGING_ADX:
        if price <= state.bollinger.lower:
            return SignalType.BUY, RANGE_CONFIDENCE, bias
        if price >= state.bollinger.upper:
            return SignalType.SELL, RANGE_CONFIDENCE, bias

    return SignalType.WAIT, DEFAULT_CONFIDENCE, bias


def stop_distance(atr: float, timeframe: Timeframe) -> float:
    """Stop-loss distance from ATR, tighter on the fastest timeframe."""
    multiplier = FAST_SL_MULTIPLIER if timeframe == FASTEST_TIMEFRAME else SL_MULTIPLIER
    return atr * multiplier


def fallback_signal(
    state: MarketState,
    timeframe: Timeframe,
    rng: Optional[random.Random] = None,
    timestamp: Optional[int] = None,
) -> Signal:
    """Produce a rule-based signal for one timeframe.

    Args:
        state: Market snapshot (calibrated or raw, levels follow its prices).
        timeframe: Timeframe the signal is for.
        rng: Random source for the confidence jitter.
        timestamp: Signal time in epoch ms, defaults to now.

    Returns:
        Signal with ``source="fallback"``.
    """
    rng = rng or random
    signal_type, confidence, bias = _classify(state)

    sl_distance = stop_distance(state.atr, timeframe)
    tp_distance = sl_distance * RISK_REWARD

    # Only BUY uses long-side levels
    direction = 1 if signal_type == SignalType.BUY else -1
    stop_loss = round(state.price - direction * sl_distance, 2)
    take_profit = round(state.price + direction * tp_distance, 2)

    regime = "Trend" if state.adx > TRENDING_ADX else "Range"
    reasoning = (
        f"Rule-based fallback: ADX {state.adx:.1f} suggests {regime}. "
        f"Ichimoku {bias}. RSI {state.rsi:.1f}, MACD histogram {state.macd.histogram:.3f}."
    )

    return Signal(
        type=signal_type,
        confidence=min(100, math.floor(confidence + rng.random() * JITTER)),
        entry_price=state.price,
        stop_loss=stop_loss,
        take_profit=take_profit,
        reasoning=reasoning,
        timestamp=timestamp if timestamp is not None else int(time.time() * 1000),
        source="fallback",
    )


def fallback_signals(
    state: MarketState,
    rng: Optional[random.Random] = None,
) -> dict[Timeframe, Signal]:
    """Fallback signals for every timeframe, sharing one timestamp."""
    timestamp = int(time.time() * 1000)
    return {
        tf: fallback_signal(state, tf, rng=rng, timestamp=timestamp)
        for tf in Timeframe
    }
