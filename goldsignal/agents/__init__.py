"""Signal generation for GoldSignal.

- SignalAgent: AI signals via the OpenAI Agents SDK
- fallback_signals: deterministic rules used when the AI path fails
"""

from goldsignal.agents.fallback import fallback_signal, fallback_signals
from goldsignal.agents.signal import (
    BatchSignalResponse,
    SignalAgent,
    analyze_all_timeframes,
    parse_signal_response,
)

__all__ = [
    "fallback_signal",
    "fallback_signals",
    "BatchSignalResponse",
    "SignalAgent",
    "analyze_all_timeframes",
    "parse_signal_response",
]
