"""Indicator result models.

Plain numeric records returned by the indicator library. They carry no
reference to the series they were computed from.
"""

from enum import Enum

from pydantic import BaseModel, Field


class MACD(BaseModel):
    """MACD (12, 26, 9) reading at the latest bar."""

    macd_line: float = Field(default=0.0, description="EMA12 - EMA26")
    signal_line: float = Field(default=0.0, description="EMA9 of the MACD line")
    histogram: float = Field(default=0.0, description="MACD line - signal line")

    model_config = {"frozen": True}


class BollingerBands(BaseModel):
    """Bollinger Bands (20, 2) at the latest bar."""

    upper: float
    middle: float
    lower: float

    model_config = {"frozen": True}


class Stochastic(BaseModel):
    """Stochastic oscillator. %D equals %K (no separate smoothing)."""

    k: float = Field(default=50.0, description="%K (0-100)")
    d: float = Field(default=50.0, description="%D (0-100)")

    model_config = {"frozen": True}


class CloudStatus(str, Enum):
    """Position relative to the Ichimoku cloud.

    INSIDE is reserved for a full cloud-membership test against Span A/B;
    the scalar Tenkan/Kijun comparison only yields ABOVE or BELOW.
    """

    ABOVE = "ABOVE"
    BELOW = "BELOW"
    INSIDE = "INSIDE"


class Ichimoku(BaseModel):
    """Tenkan-sen / Kijun-sen with a simplified cloud status."""

    tenkan: float
    kijun: float
    cloud_status: CloudStatus = CloudStatus.INSIDE

    model_config = {"frozen": True}


class PivotPoints(BaseModel):
    """Standard pivot points from a single bar."""

    pivot: float
    r1: float
    s1: float
    r2: float
    s2: float

    model_config = {"frozen": True}


class ChartPoint(BaseModel):
    """A single time-indexed value for charting (time in epoch seconds)."""

    time: int
    value: float

    model_config = {"frozen": True}


class IchimokuSeries(BaseModel):
    """The four Ichimoku chart lines.

    Span A and Span B are already shifted forward by the displacement.
    """

    tenkan: tuple[ChartPoint, ...] = ()
    kijun: tuple[ChartPoint, ...] = ()
    span_a: tuple[ChartPoint, ...] = ()
    span_b: tuple[ChartPoint, ...] = ()

    model_config = {"frozen": True}

    def calibrated(self, offset: float) -> "IchimokuSeries":
        """Return a copy with ``offset`` added to every point value."""
        if offset == 0:
            return self

        def shift(points: tuple[ChartPoint, ...]) -> tuple[ChartPoint, ...]:
            return tuple(ChartPoint(time=p.time, value=p.value + offset) for p in points)

        return IchimokuSeries(
            tenkan=shift(self.tenkan),
            kijun=shift(self.kijun),
            span_a=shift(self.span_a),
            span_b=shift(self.span_b),
        )
