"""Market data feeds.

A feed supplies an ordered candle history and a stream of live candle
updates. Live updates for the still-open bar carry the same bucket time,
which is how the series knows to amend instead of append.
"""

import asyncio
import logging
import math
import random
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Callable, Sequence
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from goldsignal.config import FeedConfig
from goldsignal.errors import FeedError
from goldsignal.models import Candle


logger = logging.getLogger(__name__)

BINANCE_REST = "https://api.binance.com/api/v3"

BINANCE_INTERVALS = {
    60_000: "1m",
    300_000: "5m",
    900_000: "15m",
    3_600_000: "1h",
}

TWELVEDATA_REST = "https://api.twelvedata.com"

TWELVEDATA_INTERVALS = {
    60_000: "1min",
    300_000: "5min",
    900_000: "15min",
    3_600_000: "1h",
}

# Spot gold reference price for simulated data
SIMULATED_START_PRICE = 2650.0


def _now_ms() -> int:
    return int(time.time() * 1000)


def _log_pump_error(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.error("Tick subscription stopped: %s", error, exc_info=error)


def normalize_kline(row: Sequence[Any]) -> Candle:
    """Convert a raw kline row into a Candle.

    Rows follow the Binance layout ``[open_time, open, high, low, close,
    volume, ...]`` with prices as strings.

    Raises:
        FeedError: If the row is short, unparsable, or has non-finite values.
    """
    if len(row) < 6:
        raise FeedError(f"Kline row has {len(row)} fields, expected at least 6")

    try:
        open_time = int(row[0])
        values = [float(v) for v in row[1:6]]
    except (TypeError, ValueError) as e:
        raise FeedError(f"Unparsable kline row: {row!r}") from e

    if not all(math.isfinite(v) for v in values):
        raise FeedError(f"Non-finite price in kline row: {row!r}")
    if any(v < 0 for v in values):
        raise FeedError(f"Negative value in kline row: {row!r}")

    open_, high, low, close, volume = values
    return Candle(
        time=open_time,
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


def normalize_time_series_row(row: dict[str, Any]) -> Candle:
    """Convert a Twelve Data ``time_series`` value into a Candle.

    Datetimes are requested in UTC. Forex rows usually carry no volume.

    Raises:
        FeedError: If a field is missing, unparsable, or non-finite.
    """
    try:
        opened = datetime.fromisoformat(row["datetime"])
        values = [float(row[key]) for key in ("open", "high", "low", "close")]
        volume = float(row.get("volume") or 0.0)
    except (KeyError, TypeError, ValueError) as e:
        raise FeedError(f"Unparsable time_series row: {row!r}") from e

    if not all(math.isfinite(v) for v in (*values, volume)):
        raise FeedError(f"Non-finite price in time_series row: {row!r}")
    if any(v < 0 for v in (*values, volume)):
        raise FeedError(f"Negative value in time_series row: {row!r}")

    if opened.tzinfo is None:
        opened = opened.replace(tzinfo=timezone.utc)

    open_, high, low, close = values
    return Candle(
        time=int(opened.timestamp() * 1000),
        open=open_,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


class MarketFeed(ABC):
    """Abstract base class for market data feeds."""

    def __init__(self, config: FeedConfig):
        self.config = config

    @abstractmethod
    async def fetch_history(self, limit: Optional[int] = None) -> list[Candle]:
        """Fetch recent candles, oldest first.

        Args:
            limit: Number of candles. Defaults to ``config.history_limit``.
        """

    @abstractmethod
    def ticks(self) -> AsyncIterator[Candle]:
        """Stream live candle updates with non-decreasing times."""

    def subscribe(self, on_tick: Callable[[Candle], None]) -> Callable[[], None]:
        """Deliver live candles to ``on_tick`` from a background task.

        Must be called from a running event loop.

        Returns:
            A function that cancels the subscription.
        """

        async def pump() -> None:
            async for candle in self.ticks():
                on_tick(candle)

        task = asyncio.get_running_loop().create_task(pump())
        task.add_done_callback(_log_pump_error)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def aclose(self) -> None:
        """Release any transport resources."""


class SimulatedFeed(MarketFeed):
    """Random-walk feed for offline use and tests."""

    def __init__(
        self,
        config: Optional[FeedConfig] = None,
        start_price: float = SIMULATED_START_PRICE,
        clock: Callable[[], int] = _now_ms,
    ):
        super().__init__(config or FeedConfig())
        self._rng = random.Random(self.config.seed)
        self._clock = clock
        self._last_price = start_price

    def generate_history(self, limit: int, end_ms: Optional[int] = None) -> list[Candle]:
        """Build ``limit`` closed candles ending before the current bucket."""
        interval = self.config.interval_ms
        now = end_ms if end_ms is not None else self._clock()
        end_bucket = now - (now % interval)

        candles = []
        price = self._last_price
        for i in range(limit, 0, -1):
            change = (self._rng.random() - 0.5) * 1.5
            open_ = price
            close = price + change
            candles.append(
                Candle(
                    time=end_bucket - i * interval,
                    open=open_,
                    high=max(open_, close) + self._rng.random() * 0.5,
                    low=min(open_, close) - self._rng.random() * 0.5,
                    close=close,
                    volume=self._rng.random() * 50 + 10,
                )
            )
            price = close

        self._last_price = price
        return candles

    async def fetch_history(self, limit: Optional[int] = None) -> list[Candle]:
        return self.generate_history(limit or self.config.history_limit)

    def next_tick(self, current: Optional[Candle] = None) -> Candle:
        """Advance the simulated price by one tick.

        Ticks inside the bucket of ``current`` amend it, otherwise a new
        candle is opened.
        """
        interval = self.config.interval_ms
        now = self._clock()
        bucket = now - (now % interval)
        price = max(0.01, self._last_price + (self._rng.random() - 0.5) * 0.75)
        self._last_price = price
        volume = self._rng.random() * 5

        if current is None or bucket > current.time:
            return Candle(time=bucket, open=price, high=price, low=price, close=price, volume=volume)

        return current.model_copy(
            update={
                "high": max(current.high, price),
                "low": min(current.low, price),
                "close": price,
                "volume": current.volume + volume,
            }
        )

    async def ticks(self) -> AsyncIterator[Candle]:
        current = None
        while True:
            await asyncio.sleep(self.config.poll_seconds)
            current = self.next_tick(current)
            yield current


class BinanceFeed(MarketFeed):
    """Binance REST feed.

    History comes from the klines endpoint. Live updates poll the newest
    kline, which Binance keeps amending until its minute closes.
    """

    def __init__(
        self,
        config: Optional[FeedConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = BINANCE_REST,
    ):
        super().__init__(config or FeedConfig(source="binance"))
        if self.config.interval_ms not in BINANCE_INTERVALS:
            raise ValueError(f"Unsupported interval for Binance: {self.config.interval_ms} ms")
        self._client = client or httpx.AsyncClient(timeout=10)
        self._base_url = base_url
        self._fallback = SimulatedFeed(self.config)

    async def _get_klines(self, limit: int) -> list[Candle]:
        params = {
            "symbol": self.config.symbol,
            "interval": BINANCE_INTERVALS[self.config.interval_ms],
            "limit": limit,
        }
        resp = await self._client.get(f"{self._base_url}/klines", params=params)
        resp.raise_for_status()
        rows = resp.json()
        if not isinstance(rows, list):
            raise FeedError(f"Unexpected klines payload: {rows!r}")
        return [normalize_kline(row) for row in rows]

    async def fetch_history(self, limit: Optional[int] = None) -> list[Candle]:
        """Fetch history, falling back to simulated candles on failure."""
        limit = limit or self.config.history_limit
        try:
            return await self._get_klines(limit)
        except (httpx.HTTPError, FeedError) as e:
            logger.warning("Binance history unavailable (%s), using simulated data", e)
            return self._fallback.generate_history(limit)

    async def ticks(self) -> AsyncIterator[Candle]:
        last: Optional[Candle] = None
        while True:
            try:
                candles = await self._get_klines(1)
            except (httpx.HTTPError, FeedError) as e:
                logger.warning("Binance poll failed: %s", e)
                candles = []

            if candles:
                candle = candles[-1]
                # Skip out-of-order responses from a lagging edge node
                if last is None or candle.time >= last.time:
                    if candle != last:
                        yield candle
                    last = candle

            await asyncio.sleep(self.config.poll_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()


class TwelveDataFeed(MarketFeed):
    """Twelve Data REST feed for spot XAU/USD.

    History comes from ``time_series``, which lists bars newest first.
    Live updates poll the quote price and build the open candle locally,
    since the quote endpoint carries no bar boundaries. Without a usable
    response the feed falls back to Binance.
    """

    def __init__(
        self,
        config: Optional[FeedConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        base_url: str = TWELVEDATA_REST,
        clock: Callable[[], int] = _now_ms,
    ):
        super().__init__(config or FeedConfig(source="twelvedata"))
        if self.config.interval_ms not in TWELVEDATA_INTERVALS:
            raise ValueError(f"Unsupported interval for Twelve Data: {self.config.interval_ms} ms")
        if not self.config.twelvedata_api_key:
            raise ValueError("Twelve Data needs feed.twelvedata_api_key")
        self._client = client or httpx.AsyncClient(timeout=10)
        self._base_url = base_url
        self._clock = clock
        self._fallback = BinanceFeed(self.config, client=self._client)
        self._last_candle: Optional[Candle] = None

    async def _get(self, endpoint: str, **params: Any) -> dict:
        params["symbol"] = self.config.twelvedata_symbol
        params["apikey"] = self.config.twelvedata_api_key
        resp = await self._client.get(f"{self._base_url}/{endpoint}", params=params)
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise FeedError(f"Unexpected Twelve Data payload: {data!r}")
        # Errors arrive with HTTP 200 and a status field
        if data.get("status") == "error":
            raise FeedError(f"Twelve Data error: {data.get('message', 'unknown')}")
        return data

    async def _get_history(self, limit: int) -> list[Candle]:
        data = await self._get(
            "time_series",
            interval=TWELVEDATA_INTERVALS[self.config.interval_ms],
            outputsize=limit,
            timezone="UTC",
        )
        values = data.get("values")
        if not isinstance(values, list):
            raise FeedError("Twelve Data response has no values")
        candles = [normalize_time_series_row(row) for row in values]
        candles.reverse()
        return candles

    async def fetch_history(self, limit: Optional[int] = None) -> list[Candle]:
        """Fetch history, falling back to Binance on failure."""
        limit = limit or self.config.history_limit
        try:
            candles = await self._get_history(limit)
        except (httpx.HTTPError, FeedError) as e:
            logger.warning("Twelve Data history unavailable (%s), falling back to Binance", e)
            candles = await self._fallback.fetch_history(limit)

        if candles:
            self._last_candle = candles[-1]
        return candles

    async def _get_price(self) -> float:
        data = await self._get("price")
        try:
            price = float(data["price"])
        except (KeyError, TypeError, ValueError) as e:
            raise FeedError(f"Unparsable Twelve Data price: {data!r}") from e
        if not math.isfinite(price) or price <= 0:
            raise FeedError(f"Invalid Twelve Data price: {price}")
        return price

    def apply_price(self, price: float, current: Optional[Candle] = None) -> Candle:
        """Fold a quote into the open candle, opening a new one per bucket."""
        interval = self.config.interval_ms
        now = self._clock()
        bucket = now - (now % interval)

        if current is None or bucket > current.time:
            return Candle(time=bucket, open=price, high=price, low=price, close=price)

        return current.model_copy(
            update={
                "high": max(current.high, price),
                "low": min(current.low, price),
                "close": price,
            }
        )

    async def ticks(self) -> AsyncIterator[Candle]:
        # Continue the last history bar while its bucket is still open
        current = self._last_candle
        while True:
            try:
                price = await self._get_price()
            except (httpx.HTTPError, FeedError) as e:
                logger.warning("Twelve Data poll failed: %s", e)
            else:
                candle = self.apply_price(price, current)
                if candle != current:
                    yield candle
                current = candle

            await asyncio.sleep(self.config.poll_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()


def create_feed(config: FeedConfig) -> MarketFeed:
    """Build the feed selected by ``config.source``."""
    if config.source == "twelvedata":
        if config.twelvedata_api_key:
            return TwelveDataFeed(config)
        logger.warning("No Twelve Data API key configured, using Binance")
        return BinanceFeed(config)
    if config.source == "binance":
        return BinanceFeed(config)
    return SimulatedFeed(config)
