"""Trading signal models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field


class SignalType(str, Enum):
    """Trading signal direction."""

    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"
    WAIT = "WAIT"


class Timeframe(str, Enum):
    """Signal timeframes, fastest first."""

    M1 = "M1"
    M5 = "M5"
    M15 = "M15"

    @property
    def label(self) -> str:
        return TIMEFRAME_LABELS[self]


TIMEFRAME_LABELS = {
    Timeframe.M1: "1 Minute (Scalping)",
    Timeframe.M5: "5 Minutes (Intraday)",
    Timeframe.M15: "15 Minutes (Swing)",
}

# The fastest timeframe gets the tighter stop
FASTEST_TIMEFRAME = Timeframe.M1


class AIModel(str, Enum):
    """Models the signal agent can be pointed at."""

    GPT_4O_MINI = "gpt-4o-mini"
    GPT_4O = "gpt-4o"
    O4_MINI = "o4-mini"


class Signal(BaseModel):
    """A trading signal for one timeframe."""

    type: SignalType = Field(..., description="Signal direction")
    confidence: int = Field(..., ge=0, le=100, description="Confidence 0-100")
    entry_price: float = Field(..., description="Suggested entry")
    stop_loss: float = Field(..., description="Stop-loss level")
    take_profit: float = Field(..., description="Take-profit level")
    reasoning: str = Field(default="", description="Why the signal was produced")
    timestamp: int = Field(..., description="Creation time (epoch ms)")
    source: Literal["ai", "fallback"] = Field(
        default="fallback", description="Which path produced the signal"
    )

    model_config = {"frozen": True}
