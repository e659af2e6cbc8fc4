"""Candle (OHLCV) data model."""

from pydantic import BaseModel, Field


# One-minute buckets are the native resolution of the feed
DEFAULT_INTERVAL_MS = 60_000


class Candle(BaseModel):
    """Represents a single OHLCV candle."""

    time: int = Field(..., description="Bucket open time (epoch milliseconds)")
    open: float = Field(..., ge=0, description="Opening price")
    high: float = Field(..., ge=0, description="High price")
    low: float = Field(..., ge=0, description="Low price")
    close: float = Field(..., ge=0, description="Closing price")
    volume: float = Field(default=0.0, ge=0, description="Traded volume")

    model_config = {"frozen": True}

    def bucket(self, interval_ms: int = DEFAULT_INTERVAL_MS) -> int:
        """Start of the time bucket this candle belongs to."""
        return self.time - (self.time % interval_ms)
