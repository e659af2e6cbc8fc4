"""Interval-driven signal scanner.

The scanner asks for fresh signals on its own timer, independent of the
tick stream. Calls are serialized: when the timer fires while a previous
call is still outstanding, that cycle is skipped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Optional

from goldsignal.agents.signal import analyze_all_timeframes
from goldsignal.config import AIConfig
from goldsignal.engine.snapshot import SnapshotAggregator
from goldsignal.models import MarketState, Signal, Timeframe


logger = logging.getLogger(__name__)

Analyzer = Callable[..., Awaitable[dict[Timeframe, Signal]]]
SignalCallback = Callable[[dict[Timeframe, Signal]], None]


def _log_task_error(task: asyncio.Task) -> None:
    """Surface the error of a finished background scan."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Signal scan failed: %s", error, exc_info=error)


class SignalScanner:
    """Runs the AI signal cycle against the aggregator's latest snapshot."""

    def __init__(
        self,
        aggregator: SnapshotAggregator,
        ai_config: Optional[AIConfig] = None,
        interval: float = 45.0,
        price_offset: float = 0.0,
        on_signals: Optional[SignalCallback] = None,
        analyzer: Analyzer = analyze_all_timeframes,
    ):
        """Initialize the scanner.

        Args:
            aggregator: Source of the latest MarketState.
            ai_config: Model, key and timeout for the AI collaborator.
            interval: Seconds between cycles.
            price_offset: Calibration offset applied before analysis.
            on_signals: Called with every new batch of signals.
            analyzer: Coroutine producing signals from a MarketState.
        """
        self.aggregator = aggregator
        self.ai_config = ai_config or AIConfig()
        self.interval = interval
        self.price_offset = price_offset
        self.on_signals = on_signals
        self._analyzer = analyzer
        self._in_flight = False
        self._task: Optional[asyncio.Task] = None
        self.signals: Optional[dict[Timeframe, Signal]] = None
        self.skipped = 0

    @property
    def is_scanning(self) -> bool:
        return self._in_flight

    def features(self) -> Optional[MarketState]:
        """Calibrated snapshot that the next cycle would analyze."""
        state = self.aggregator.state
        if state is None:
            return None
        return state.calibrated(self.price_offset)

    async def scan_once(self) -> Optional[dict[Timeframe, Signal]]:
        """Run one cycle.

        Returns:
            The new signals, or None if there is no data yet or a previous
            cycle is still running.
        """
        if self._in_flight:
            self.skipped += 1
            logger.info("Previous signal request still running, skipping cycle")
            return None

        state = self.features()
        if state is None:
            logger.debug("No market state yet, skipping cycle")
            return None

        self._in_flight = True
        try:
            signals = await self._analyzer(
                state,
                model=self.ai_config.model,
                api_key=self.ai_config.resolve_api_key(),
                timeout=self.ai_config.timeout,
            )
        finally:
            self._in_flight = False

        self.signals = signals
        if self.on_signals is not None:
            self.on_signals(signals)
        return signals

    async def run(self) -> None:
        """Fire a cycle immediately and then every ``interval`` seconds."""
        pending: set[asyncio.Task] = set()

        def done(task: asyncio.Task) -> None:
            pending.discard(task)
            _log_task_error(task)

        try:
            while True:
                task = asyncio.create_task(self.scan_once())
                pending.add(task)
                task.add_done_callback(done)
                await asyncio.sleep(self.interval)
        finally:
            for task in pending:
                task.cancel()

    def start(self) -> asyncio.Task:
        """Start ``run`` as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
