"""Signal Agent for per-timeframe trading signals.

Sends the market snapshot to the model, validates the JSON reply against
an explicit schema and converts it into ``Signal`` records. Any failure,
including a missing key, falls back to the rule-based signals.
"""

import json
import logging
import random
import re
import time
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, ValidationError

from goldsignal.agents.base import configure_api_key, create_agent, run_agent_async
from goldsignal.agents.fallback import fallback_signals
from goldsignal.errors import SignalParseError
from goldsignal.models import AIModel, MarketState, Signal, SignalType, Timeframe


logger = logging.getLogger(__name__)

DEFAULT_SIGNAL_MODEL = AIModel.GPT_4O_MINI.value


SIGNAL_INSTRUCTIONS = """You are a market analyst for spot gold (XAU/USD).
You receive a snapshot of technical indicators and return one trading signal
for each of the M1, M5 and M15 timeframes.

Reply with a single JSON object and nothing else, shaped as:
{"M1": {...}, "M5": {...}, "M15": {...}}
where each value has the keys:
  signal       one of "BUY", "SELL", "NEUTRAL", "WAIT"
  confidence   integer 0-100
  entry_price  number
  stop_loss    number (derive the distance from ATR)
  take_profit  number
  reasoning    short text citing the indicators used
"""


class TimeframeSignal(BaseModel):
    """Schema for one timeframe in the model's reply."""

    signal: SignalType
    confidence: int = Field(..., ge=0, le=100)
    entry_price: float = Field(..., validation_alias=AliasChoices("entry_price", "entryPrice"))
    stop_loss: float = Field(..., validation_alias=AliasChoices("stop_loss", "stopLoss"))
    take_profit: float = Field(..., validation_alias=AliasChoices("take_profit", "takeProfit"))
    reasoning: str = ""


class BatchSignalResponse(BaseModel):
    """Schema for the full reply: one signal per timeframe."""

    M1: TimeframeSignal
    M5: TimeframeSignal
    M15: TimeframeSignal


def build_features(state: MarketState) -> dict:
    """Flatten a MarketState into the feature object sent to the model."""
    features = state.model_dump(mode="json")
    features["trend_regime"] = "TRENDING" if state.adx > 25 else "RANGING"
    features["price_vs_kijun"] = "ABOVE" if state.price > state.ichimoku.kijun else "BELOW"
    features["price_vs_ema200"] = "ABOVE" if state.price > state.ema200 else "BELOW"
    return features


def build_prompt(state: MarketState) -> str:
    """Render the snapshot as the user message."""
    return (
        "Market snapshot (calibrated prices):\n"
        f"{json.dumps(build_features(state), indent=2)}\n\n"
        "Return the JSON object described in your instructions."
    )


def _strip_code_fence(text: str) -> str:
    match = re.search(r"```(?:json)?\s*(.*?)```", text, flags=re.DOTALL)
    return match.group(1) if match else text


def parse_signal_response(text: str, timestamp: Optional[int] = None) -> dict[Timeframe, Signal]:
    """Validate a model reply and convert it into signals.

    Args:
        text: Raw model output, optionally wrapped in a markdown code fence.
        timestamp: Signal time in epoch ms, defaults to now.

    Returns:
        Signals keyed by timeframe, with ``source="ai"``.

    Raises:
        SignalParseError: If the reply is not valid JSON or fails the schema.
    """
    if not text or not text.strip():
        raise SignalParseError("Empty response from model")

    try:
        batch = BatchSignalResponse.model_validate_json(_strip_code_fence(text).strip())
    except ValidationError as e:
        raise SignalParseError(f"Response failed schema validation: {e}") from e

    timestamp = timestamp if timestamp is not None else int(time.time() * 1000)

    signals = {}
    for tf in Timeframe:
        raw: TimeframeSignal = getattr(batch, tf.value)
        signals[tf] = Signal(
            type=raw.signal,
            confidence=raw.confidence,
            entry_price=raw.entry_price,
            stop_loss=raw.stop_loss,
            take_profit=raw.take_profit,
            reasoning=raw.reasoning,
            timestamp=timestamp,
            source="ai",
        )
    return signals


class SignalAgent:
    """Agent that turns a market snapshot into per-timeframe signals."""

    def __init__(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
    ):
        """Initialize the Signal Agent.

        Args:
            model: Optional model override, one of ``AIModel``.
            api_key: Optional key, otherwise the SDK reads OPENAI_API_KEY.
            timeout: Seconds to wait for a reply.
        """
        self.model = AIModel(model).value if model else DEFAULT_SIGNAL_MODEL
        self.timeout = timeout
        if api_key:
            configure_api_key(api_key)
        self._agent = create_agent(
            name="Gold Signal Agent",
            instructions=SIGNAL_INSTRUCTIONS,
            model=self.model,
        )

    async def analyze(self, state: MarketState) -> dict[Timeframe, Signal]:
        """Ask the model for signals.

        Raises:
            SignalParseError: If the reply fails validation.
        """
        response = await run_agent_async(
            self._agent,
            build_prompt(state),
            timeout=self.timeout,
        )
        return parse_signal_response(response)


async def analyze_all_timeframes(
    state: MarketState,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    timeout: float = 30.0,
    rng: Optional[random.Random] = None,
) -> dict[Timeframe, Signal]:
    """Get signals for every timeframe, never raising.

    Args:
        state: Calibrated market snapshot.
        model: Model name.
        api_key: Resolved API key, None means the AI path is unconfigured.
        timeout: Seconds to wait for the model.
        rng: Random source for fallback confidence jitter.

    Returns:
        AI signals, or fallback signals if the AI path is unavailable.
    """
    if not api_key:
        logger.warning("API key missing, using rule-based signals")
        return fallback_signals(state, rng=rng)

    try:
        agent = SignalAgent(model=model, api_key=api_key, timeout=timeout)
        return await agent.analyze(state)
    except Exception as e:
        logger.warning("AI analysis failed (%s), using rule-based signals", e)
        return fallback_signals(state, rng=rng)
