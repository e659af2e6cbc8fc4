"""Snapshot aggregation and the signal scanner."""

from goldsignal.engine.snapshot import (
    SnapshotAggregator,
    build_market_state,
    compute_indicators,
)
from goldsignal.engine.scanner import SignalScanner

__all__ = [
    "SnapshotAggregator",
    "build_market_state",
    "compute_indicators",
    "SignalScanner",
]
