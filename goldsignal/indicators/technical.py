"""Technical indicator calculations for the signal engine.

Every function here is pure: it takes price sequences (oldest first) and a
period, and returns the reading at the latest bar. When the history is
shorter than an indicator needs, a defined neutral value is returned
instead of raising, so a complete snapshot can be built during warm-up.
"""

from collections.abc import Iterator, Sequence
from typing import Optional

from goldsignal.models import (
    MACD,
    BollingerBands,
    Candle,
    ChartPoint,
    CloudStatus,
    DEFAULT_INTERVAL_MS,
    Ichimoku,
    IchimokuSeries,
    PivotPoints,
    Stochastic,
)


# Ichimoku periods and forward displacement (in bars)
TENKAN_PERIOD = 9
KIJUN_PERIOD = 26
SENKOU_B_PERIOD = 52
DISPLACEMENT = 26

# Warm-up fallbacks
ATR_FALLBACK = 1.0
RSI_FALLBACK = 50.0
ADX_FALLBACK = 20.0


def _true_range(high: float, low: float, prev_close: float) -> float:
    return max(high - low, abs(high - prev_close), abs(low - prev_close))


def calculate_sma(prices: Sequence[float], period: int) -> float:
    """Calculate Simple Moving Average of the last ``period`` values.

    Args:
        prices: Price values (typically closes)
        period: Number of values to average

    Returns:
        Arithmetic mean of the trailing window, or the last price when
        there are fewer than ``period`` values.
    """
    if not prices:
        return 0.0
    if len(prices) < period or period < 1:
        return prices[-1]

    window = prices[-period:]
    return sum(window) / period


def calculate_ema(prices: Sequence[float], period: int) -> list[float]:
    """Calculate Exponential Moving Average series.

    The series is seeded with the first price (no SMA seed) and has the
    same length as the input.

    Args:
        prices: Price values
        period: EMA period, smoothing constant is 2 / (period + 1)

    Returns:
        List of EMA values, ``ema[0] == prices[0]``.
    """
    if not prices:
        return []

    k = 2 / (period + 1)
    result = [prices[0]]

    for price in prices[1:]:
        result.append(price * k + result[-1] * (1 - k))

    return result


def calculate_macd(
    prices: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACD:
    """Calculate MACD (Moving Average Convergence Divergence).

    The MACD line is computed pointwise over the whole series and the
    signal line is the EMA of that line; all three values are taken at the
    last index.

    Args:
        prices: Price values
        fast: Fast EMA period (default 12)
        slow: Slow EMA period (default 26)
        signal: Signal line period (default 9)

    Returns:
        MACD reading, all zeros when fewer than ``slow`` prices.
    """
    if len(prices) < slow:
        return MACD(macd_line=0.0, signal_line=0.0, histogram=0.0)

    fast_ema = calculate_ema(prices, fast)
    slow_ema = calculate_ema(prices, slow)
    macd_line = [f - s for f, s in zip(fast_ema, slow_ema)]
    signal_line = calculate_ema(macd_line, signal)

    current_macd = macd_line[-1]
    current_signal = signal_line[-1]

    return MACD(
        macd_line=current_macd,
        signal_line=current_signal,
        histogram=current_macd - current_signal,
    )


def calculate_bollinger_bands(
    prices: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerBands:
    """Calculate Bollinger Bands.

    Args:
        prices: Price values
        period: SMA period (default 20)
        std_dev: Standard deviation multiplier (default 2.0)

    Returns:
        Bands at the latest bar. Uses population standard deviation.
        All three bands equal the last price when fewer than ``period``
        prices are available.
    """
    if len(prices) < period or period < 1:
        last = prices[-1] if prices else 0.0
        return BollingerBands(upper=last, middle=last, lower=last)

    middle = calculate_sma(prices, period)
    window = prices[-period:]
    variance = sum((x - middle) ** 2 for x in window) / period
    std = variance ** 0.5

    return BollingerBands(
        upper=middle + std_dev * std,
        middle=middle,
        lower=middle - std_dev * std,
    )


def calculate_atr(
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    period: int = 14,
) -> float:
    """Calculate Average True Range.

    Simple mean of the last ``period`` true ranges (not Wilder-smoothed).

    Args:
        high: High prices
        low: Low prices
        close: Close prices
        period: ATR period (default 14)

    Returns:
        ATR value, or 1.0 when fewer than ``period + 1`` bars.
    """
    if len(high) < period + 1 or period < 1:
        return ATR_FALLBACK

    true_ranges = [
        _true_range(high[i], low[i], close[i - 1]) for i in range(1, len(high))
    ]
    return sum(true_ranges[-period:]) / period


def calculate_stochastic(
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    period: int = 14,
) -> Stochastic:
    """Calculate Stochastic Oscillator.

    Args:
        high: High prices
        low: Low prices
        close: Close prices
        period: %K lookback (default 14)

    Returns:
        Stochastic with %D equal to %K. Neutral 50/50 when fewer than
        ``period`` bars, %K is 50 when the window has no range.
    """
    if len(high) < period or period < 1:
        return Stochastic(k=50.0, d=50.0)

    highest_high = max(high[-period:])
    lowest_low = min(low[-period:])

    k = 50.0
    if highest_high != lowest_low:
        k = (close[-1] - lowest_low) / (highest_high - lowest_low) * 100

    return Stochastic(k=k, d=k)


def calculate_rsi(prices: Sequence[float], period: int = 14) -> float:
    """Calculate Relative Strength Index with Wilder's smoothing.

    The averages are seeded from the first ``period`` differences and then
    smoothed with ``avg = (avg * (period - 1) + current) / period``.

    Args:
        prices: Price values (typically closes)
        period: RSI period (default 14)

    Returns:
        RSI rounded to 2 decimals. 50 when fewer than ``period + 1`` prices,
        100 whenever the average loss is zero (including a flat series).
    """
    if len(prices) < period + 1 or period < 1:
        return RSI_FALLBACK

    gains = 0.0
    losses = 0.0
    for i in range(1, period + 1):
        diff = prices[i] - prices[i - 1]
        if diff >= 0:
            gains += diff
        else:
            losses -= diff

    avg_gain = gains / period
    avg_loss = losses / period

    for i in range(period + 1, len(prices)):
        diff = prices[i] - prices[i - 1]
        current_gain = diff if diff > 0 else 0.0
        current_loss = -diff if diff < 0 else 0.0

        avg_gain = (avg_gain * (period - 1) + current_gain) / period
        avg_loss = (avg_loss * (period - 1) + current_loss) / period

    if avg_loss == 0:
        return 100.0

    rs = avg_gain / avg_loss
    return round(100 - (100 / (1 + rs)), 2)


def calculate_adx(
    high: Sequence[float],
    low: Sequence[float],
    close: Sequence[float],
    period: int = 14,
) -> float:
    """Calculate a responsive ADX approximation.

    Directional movement and true range are Wilder-smoothed (sum of the
    first ``period`` bars, then ``smooth - smooth / period + new``). The
    returned value is the instantaneous DX from the smoothed +DI / -DI;
    it is not smoothed a second time.

    ADX > 25 usually marks a trend, ADX < 20 a ranging market.

    Args:
        high: High prices
        low: Low prices
        close: Close prices
        period: ADX period (default 14)

    Returns:
        DX rounded to 2 decimals. 20 when fewer than ``2 * period`` bars,
        0 when there is no directional movement at all.
    """
    n = len(high)
    if n < period * 2 or period < 1:
        return ADX_FALLBACK

    tr_list = []
    plus_dm = []
    minus_dm = []

    for i in range(1, n):
        tr_list.append(_true_range(high[i], low[i], close[i - 1]))

        up_move = high[i] - high[i - 1]
        down_move = low[i - 1] - low[i]

        if up_move > down_move and up_move > 0:
            plus_dm.append(up_move)
            minus_dm.append(0.0)
        elif down_move > up_move and down_move > 0:
            plus_dm.append(0.0)
            minus_dm.append(down_move)
        else:
            plus_dm.append(0.0)
            minus_dm.append(0.0)

    smooth_tr = sum(tr_list[:period])
    smooth_plus = sum(plus_dm[:period])
    smooth_minus = sum(minus_dm[:period])

    for i in range(period, len(tr_list)):
        smooth_tr = smooth_tr - smooth_tr / period + tr_list[i]
        smooth_plus = smooth_plus - smooth_plus / period + plus_dm[i]
        smooth_minus = smooth_minus - smooth_minus / period + minus_dm[i]

    if smooth_tr <= 0:
        return 0.0

    plus_di = smooth_plus / smooth_tr * 100
    minus_di = smooth_minus / smooth_tr * 100
    di_sum = plus_di + minus_di

    if di_sum == 0:
        return 0.0

    dx = abs(plus_di - minus_di) / di_sum * 100
    return round(dx, 2)


def _hl2(high: Sequence[float], low: Sequence[float], period: int) -> float:
    """Midpoint of the highest high and lowest low over the trailing window."""
    if len(high) < period:
        return (high[-1] + low[-1]) / 2
    return (max(high[-period:]) + min(low[-period:])) / 2


def calculate_ichimoku(
    high: Sequence[float],
    low: Sequence[float],
    tenkan_period: int = TENKAN_PERIOD,
    kijun_period: int = KIJUN_PERIOD,
) -> Ichimoku:
    """Calculate Ichimoku Tenkan-sen and Kijun-sen.

    The cloud status is a simplified proxy: ABOVE when Tenkan is above
    Kijun, otherwise BELOW. INSIDE is never produced here.

    Args:
        high: High prices
        low: Low prices
        tenkan_period: Conversion line period (default 9)
        kijun_period: Base line period (default 26)

    Returns:
        Ichimoku reading. Each line falls back to the last bar's midpoint
        when its window is not yet full.
    """
    if not high:
        return Ichimoku(tenkan=0.0, kijun=0.0, cloud_status=CloudStatus.INSIDE)

    tenkan = _hl2(high, low, tenkan_period)
    kijun = _hl2(high, low, kijun_period)
    status = CloudStatus.ABOVE if tenkan > kijun else CloudStatus.BELOW

    return Ichimoku(tenkan=tenkan, kijun=kijun, cloud_status=status)


def _window_hl2(
    high: Sequence[float], low: Sequence[float], index: int, period: int
) -> Optional[float]:
    if index < period - 1:
        return None
    start = index - period + 1
    return (max(high[start:index + 1]) + min(low[start:index + 1])) / 2


def generate_ichimoku_series(
    candles: Sequence[Candle],
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> Iterator[tuple[str, ChartPoint]]:
    """Generate Ichimoku chart points for a candle history.

    Yields ``(line, point)`` pairs in bar order, where ``line`` is one of
    ``"tenkan"``, ``"kijun"``, ``"span_a"`` or ``"span_b"``. Points whose
    window is not yet full are skipped. Span A and Span B are shifted
    ``DISPLACEMENT`` bars into the future. Times are epoch seconds.

    Args:
        candles: Candle history, oldest first
        interval_ms: Bar interval used to project the spans forward

    Yields:
        Tuples of (line name, ChartPoint).
    """
    highs = [c.high for c in candles]
    lows = [c.low for c in candles]
    shift = DISPLACEMENT * interval_ms // 1000

    for i, candle in enumerate(candles):
        time = candle.time // 1000

        tenkan = _window_hl2(highs, lows, i, TENKAN_PERIOD)
        if tenkan is not None:
            yield "tenkan", ChartPoint(time=time, value=tenkan)

        kijun = _window_hl2(highs, lows, i, KIJUN_PERIOD)
        if kijun is not None:
            yield "kijun", ChartPoint(time=time, value=kijun)

        if tenkan is not None and kijun is not None:
            yield "span_a", ChartPoint(time=time + shift, value=(tenkan + kijun) / 2)

        span_b = _window_hl2(highs, lows, i, SENKOU_B_PERIOD)
        if span_b is not None:
            yield "span_b", ChartPoint(time=time + shift, value=span_b)


def ichimoku_series(
    candles: Sequence[Candle],
    interval_ms: int = DEFAULT_INTERVAL_MS,
) -> IchimokuSeries:
    """Collect ``generate_ichimoku_series`` output into one record per line."""
    lines: dict[str, list[ChartPoint]] = {
        "tenkan": [],
        "kijun": [],
        "span_a": [],
        "span_b": [],
    }
    for line, point in generate_ichimoku_series(candles, interval_ms):
        lines[line].append(point)

    return IchimokuSeries(**{name: tuple(points) for name, points in lines.items()})


def calculate_pivot_points(high: float, low: float, close: float) -> PivotPoints:
    """Calculate Standard Pivot Points from a single bar.

    Args:
        high: Bar high
        low: Bar low
        close: Bar close

    Returns:
        Pivot with first and second support/resistance levels.
    """
    pivot = (high + low + close) / 3

    return PivotPoints(
        pivot=pivot,
        r1=(2 * pivot) - low,
        s1=(2 * pivot) - high,
        r2=pivot + (high - low),
        s2=pivot - (high - low),
    )
