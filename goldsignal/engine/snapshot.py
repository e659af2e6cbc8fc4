"""Snapshot aggregation.

Recomputes every indicator over the full series and assembles one
``MarketState`` per update. Indicators always run on raw feed prices;
calibration is applied downstream.
"""

import logging
from collections.abc import Iterable
from typing import Any, Optional

from goldsignal.data.series import CandleSeries, SeriesView
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
)
from goldsignal.models import Candle, MarketState


logger = logging.getLogger(__name__)


def compute_indicators(view: SeriesView) -> dict[str, Any]:
    """Calculate all indicators for one series snapshot.

    Args:
        view: Series snapshot. Must contain at least one candle.

    Returns:
        Dictionary keyed by MarketState field name.
    """
    closes = view.closes
    highs = view.highs
    lows = view.lows
    last = view.last

    ma50 = calculate_sma(closes, 50)
    ema200_series = calculate_ema(closes, 200)
    ema200 = ema200_series[-1] if ema200_series else ma50

    return {
        "rsi": calculate_rsi(closes, 14),
        "ma50": ma50,
        "ema200": ema200,
        "macd": calculate_macd(closes),
        "bollinger": calculate_bollinger_bands(closes, 20),
        "atr": calculate_atr(highs, lows, closes, 14),
        "stochastic": calculate_stochastic(highs, lows, closes, 14),
        "adx": calculate_adx(highs, lows, closes, 14),
        "ichimoku": calculate_ichimoku(highs, lows),
        "pivots": calculate_pivot_points(last.high, last.low, last.close),
    }


def build_market_state(
    view: SeriesView,
    high: Optional[float] = None,
    low: Optional[float] = None,
) -> MarketState:
    """Build a MarketState from a series snapshot.

    ``change`` is measured against the previous candle's close, or the
    latest bar's own open when it is the only candle.

    Args:
        view: Series snapshot, at least one candle.
        high: Session high. Defaults to the latest bar's high.
        low: Session low. Defaults to the latest bar's low.

    Raises:
        ValueError: If the series is empty.
    """
    last = view.last
    if last is None:
        raise ValueError("Cannot build a market state from an empty series")

    previous = view.previous
    reference = previous.close if previous is not None else last.open
    change = last.close - reference
    change_percent = (change / reference) * 100 if reference != 0 else 0.0

    return MarketState(
        price=last.close,
        change=change,
        change_percent=change_percent,
        high=last.high if high is None else high,
        low=last.low if low is None else low,
        volume=last.volume,
        time=last.time,
        candle_count=len(view),
        **compute_indicators(view),
    )


class SnapshotAggregator:
    """Keeps a candle series and the latest MarketState in step.

    Full history loads reset the session extremes to the latest bar;
    streaming ticks extend them. Each update reads the series through a
    single ``SeriesView`` so a snapshot never mixes two versions.
    """

    def __init__(self, series: Optional[CandleSeries] = None):
        self.series = series if series is not None else CandleSeries()
        self._state: Optional[MarketState] = None

    @property
    def state(self) -> Optional[MarketState]:
        """Latest snapshot, None until history or a tick has arrived."""
        return self._state

    def on_history(self, history: Iterable[Candle]) -> Optional[MarketState]:
        """Replace the series with ``history`` and rebuild the snapshot.

        Returns:
            The new MarketState, or None if the history was empty.
        """
        self.series.load(history)
        view = self.series.view()

        if not len(view):
            logger.warning("History load returned no candles")
            self._state = None
            return None

        self._state = build_market_state(view)
        logger.debug("Loaded %d candles, price %.2f", len(view), self._state.price)
        return self._state

    def on_tick(self, candle: Candle) -> MarketState:
        """Amend or append ``candle`` and rebuild the snapshot."""
        self.series.append_or_amend(candle)
        view = self.series.view()

        previous = self._state
        high = candle.high if previous is None else max(previous.high, candle.high)
        low = candle.low if previous is None else min(previous.low, candle.low)

        self._state = build_market_state(view, high=high, low=low)
        return self._state
