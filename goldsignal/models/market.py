"""MarketState snapshot model."""

from pydantic import BaseModel, Field

from goldsignal.models.indicators import (
    MACD,
    BollingerBands,
    Ichimoku,
    PivotPoints,
    Stochastic,
)


class MarketState(BaseModel):
    """Immutable market snapshot built on every update cycle.

    Holds the latest price statistics and one instance of every indicator
    result. It has no reference back to the series that produced it.
    """

    price: float = Field(..., description="Last close")
    change: float = Field(default=0.0, description="Change vs reference close")
    change_percent: float = Field(default=0.0, description="Percentage change")
    high: float = Field(..., description="Session high")
    low: float = Field(..., description="Session low")
    volume: float = Field(default=0.0, ge=0, description="Volume of the latest bar")

    rsi: float = Field(default=50.0, description="RSI(14)")
    ma50: float = Field(..., description="SMA(50) of closes")
    ema200: float = Field(..., description="EMA(200) of closes")
    macd: MACD = Field(default_factory=MACD)
    bollinger: BollingerBands
    stochastic: Stochastic = Field(default_factory=Stochastic)
    atr: float = Field(default=1.0, description="ATR(14)")
    adx: float = Field(default=20.0, description="ADX(14) approximation")
    ichimoku: Ichimoku
    pivots: PivotPoints

    time: int = Field(default=0, description="Time of the latest bar (epoch ms)")
    candle_count: int = Field(default=0, ge=0, description="Bars used for the snapshot")

    model_config = {"frozen": True}

    def calibrated(self, offset: float) -> "MarketState":
        """Return a copy with ``offset`` added to every price-bearing field.

        Oscillators, ATR, ADX, volume and the change figures are unaffected.
        """
        if offset == 0:
            return self

        def shift(model, *fields):
            return model.model_copy(
                update={name: getattr(model, name) + offset for name in fields}
            )

        return self.model_copy(
            update={
                "price": self.price + offset,
                "high": self.high + offset,
                "low": self.low + offset,
                "ma50": self.ma50 + offset,
                "ema200": self.ema200 + offset,
                "bollinger": shift(self.bollinger, "upper", "middle", "lower"),
                "ichimoku": shift(self.ichimoku, "tenkan", "kijun"),
                "pivots": shift(self.pivots, "pivot", "r1", "s1", "r2", "s2"),
            }
        )


def calibration_offset(target_price: float, state: MarketState) -> float:
    """Offset that maps the raw feed price onto a broker's quoted price.

    Args:
        target_price: Price shown by the user's broker.
        state: Current uncalibrated market state.

    Returns:
        Additive offset to pass to ``MarketState.calibrated``.

    Raises:
        ValueError: If the target price is not positive.
    """
    if not target_price > 0:
        raise ValueError(f"Calibration price must be positive, got {target_price}")
    return target_price - state.price
