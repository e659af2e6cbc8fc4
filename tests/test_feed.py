"""Tests for market data feeds.

**Feature: gold-signal**
"""

import asyncio
import logging
from datetime import datetime, timezone

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from goldsignal.config import FeedConfig
from goldsignal.data.feed import (
    BinanceFeed,
    SimulatedFeed,
    TwelveDataFeed,
    create_feed,
    normalize_kline,
    normalize_time_series_row,
)
from goldsignal.errors import FeedError


BASE_MS = 1_700_000_040_000
MINUTE = 60_000


def kline(open_time: int, close: float = 2650.0) -> list:
    return [
        open_time,
        f"{close - 1:.2f}",
        f"{close + 2:.2f}",
        f"{close - 2:.2f}",
        f"{close:.2f}",
        "12.5",
        open_time + MINUTE - 1,
        "0",
        10,
    ]


class Clock:
    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


class TestNormalizeKline:
    def test_parses_string_prices(self):
        candle = normalize_kline(kline(BASE_MS, 2650.0))

        assert candle.time == BASE_MS
        assert candle.open == 2649.0
        assert candle.high == 2652.0
        assert candle.low == 2648.0
        assert candle.close == 2650.0
        assert candle.volume == 12.5

    @pytest.mark.parametrize(
        "row",
        [
            [BASE_MS, "1", "2", "0.5"],
            [BASE_MS, "abc", "2", "0.5", "1", "3"],
            [BASE_MS, "1", "nan", "0.5", "1", "3"],
            [BASE_MS, "1", "inf", "0.5", "1", "3"],
            [BASE_MS, "1", "2", "-0.5", "1", "3"],
            [None, "1", "2", "0.5", "1", "3"],
        ],
    )
    def test_bad_rows_rejected(self, row):
        with pytest.raises(FeedError):
            normalize_kline(row)


class TestSimulatedFeed:
    """
    **Feature: gold-signal, Property 14: Simulated History Shape**

    *For any* history length, simulated candles are bucket-aligned,
    strictly ascending and end before the current bucket.
    """

    @given(limit=st.integers(min_value=1, max_value=300), seed=st.integers(min_value=0, max_value=1000))
    @settings(max_examples=30)
    def test_history_shape(self, limit: int, seed: int):
        now = BASE_MS + 25_000
        feed = SimulatedFeed(FeedConfig(seed=seed), clock=Clock(now))

        history = feed.generate_history(limit)

        assert len(history) == limit
        assert history[-1].time == BASE_MS - MINUTE
        for prev, cur in zip(history, history[1:]):
            assert cur.time - prev.time == MINUTE
            assert cur.open == prev.close
        for candle in history:
            assert candle.time % MINUTE == 0
            assert candle.low <= min(candle.open, candle.close)
            assert candle.high >= max(candle.open, candle.close)

    def test_seed_is_repeatable(self):
        a = SimulatedFeed(FeedConfig(seed=7), clock=Clock(BASE_MS)).generate_history(20)
        b = SimulatedFeed(FeedConfig(seed=7), clock=Clock(BASE_MS)).generate_history(20)
        assert a == b

    def test_fetch_history_uses_config_limit(self):
        feed = SimulatedFeed(FeedConfig(seed=1, history_limit=40), clock=Clock(BASE_MS))
        assert len(asyncio.run(feed.fetch_history())) == 40
        assert len(asyncio.run(feed.fetch_history(5))) == 5

    def test_ticks_amend_then_append(self):
        clock = Clock(BASE_MS + 1_000)
        feed = SimulatedFeed(FeedConfig(seed=3), clock=clock)

        first = feed.next_tick()
        assert first.time == BASE_MS
        assert first.open == first.high == first.low == first.close

        clock.now = BASE_MS + 30_000
        amended = feed.next_tick(first)
        assert amended.time == BASE_MS
        assert amended.open == first.open
        assert amended.high >= max(first.high, amended.close)
        assert amended.low <= min(first.low, amended.close)

        clock.now = BASE_MS + MINUTE + 10
        opened = feed.next_tick(amended)
        assert opened.time == BASE_MS + MINUTE
        assert opened.open == opened.close

    def test_tick_stream(self):
        async def take(n: int):
            feed = SimulatedFeed(FeedConfig(seed=5, poll_seconds=0.001), clock=Clock(BASE_MS))
            out = []
            stream = feed.ticks()
            for _ in range(n):
                out.append(await stream.__anext__())
            await stream.aclose()
            return out

        ticks = asyncio.run(take(3))
        assert [t.time for t in ticks] == [BASE_MS] * 3

    def test_subscribe_and_unsubscribe(self):
        async def scenario():
            feed = SimulatedFeed(FeedConfig(seed=5, poll_seconds=0.001), clock=Clock(BASE_MS))
            received = []
            unsubscribe = feed.subscribe(received.append)
            while len(received) < 2:
                await asyncio.sleep(0.005)
            unsubscribe()
            await asyncio.sleep(0.01)
            count = len(received)
            await asyncio.sleep(0.01)
            return count, len(received)

        before, after = asyncio.run(scenario())
        assert before >= 2
        assert before == after

    def test_subscriber_error_is_logged(self, caplog):
        def explode(candle):
            raise RuntimeError("display crashed")

        async def scenario():
            feed = SimulatedFeed(FeedConfig(seed=5, poll_seconds=0.001), clock=Clock(BASE_MS))
            feed.subscribe(explode)
            for _ in range(20):
                await asyncio.sleep(0.005)

        with caplog.at_level(logging.ERROR, logger="goldsignal.data.feed"):
            asyncio.run(scenario())

        assert "Tick subscription stopped" in caplog.text
        assert "display crashed" in caplog.text


def binance_feed(handler, **config) -> BinanceFeed:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BinanceFeed(FeedConfig(source="binance", seed=1, poll_seconds=0.001, **config), client=client)


class TestBinanceFeed:
    def test_history(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=[kline(BASE_MS + i * MINUTE, 2650 + i) for i in range(3)])

        async def scenario():
            feed = binance_feed(handler)
            try:
                return await feed.fetch_history(3)
            finally:
                await feed.aclose()

        history = asyncio.run(scenario())

        assert [c.close for c in history] == [2650.0, 2651.0, 2652.0]
        assert seen == {"symbol": "XAUUSDT", "interval": "1m", "limit": "3"}

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="unavailable"),
            httpx.Response(200, json={"code": -1121, "msg": "Invalid symbol."}),
            httpx.Response(200, json=[[BASE_MS, "x"]]),
        ],
    )
    def test_history_falls_back_to_simulated(self, response):
        async def scenario():
            feed = binance_feed(lambda request: response)
            try:
                return await feed.fetch_history(10)
            finally:
                await feed.aclose()

        history = asyncio.run(scenario())
        assert len(history) == 10

    def test_ticks_skip_duplicates_and_regressions(self):
        responses = iter([
            [kline(BASE_MS, 2650.0)],
            [kline(BASE_MS, 2650.0)],
            [kline(BASE_MS - MINUTE, 2600.0)],
            [kline(BASE_MS, 2651.0)],
            [kline(BASE_MS + MINUTE, 2652.0)],
        ])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=next(responses))

        async def scenario():
            feed = binance_feed(handler)
            stream = feed.ticks()
            out = [await stream.__anext__() for _ in range(3)]
            await stream.aclose()
            await feed.aclose()
            return out

        ticks = asyncio.run(scenario())
        assert [(t.time, t.close) for t in ticks] == [
            (BASE_MS, 2650.0),
            (BASE_MS, 2651.0),
            (BASE_MS + MINUTE, 2652.0),
        ]

    def test_unsupported_interval(self):
        with pytest.raises(ValueError):
            BinanceFeed(FeedConfig(source="binance", interval_ms=120_000))


class TestCreateFeed:
    def test_simulated(self):
        assert isinstance(create_feed(FeedConfig()), SimulatedFeed)

    def test_binance(self):
        feed = create_feed(FeedConfig(source="binance"))
        assert isinstance(feed, BinanceFeed)
        asyncio.run(feed.aclose())


def ts_row(open_time: int, close: float = 2650.0) -> dict:
    stamp = datetime.fromtimestamp(open_time / 1000, tz=timezone.utc)
    return {
        "datetime": stamp.strftime("%Y-%m-%d %H:%M:%S"),
        "open": f"{close - 1:.5f}",
        "high": f"{close + 2:.5f}",
        "low": f"{close - 2:.5f}",
        "close": f"{close:.5f}",
    }


def twelvedata_feed(handler, clock=None) -> TwelveDataFeed:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    config = FeedConfig(
        source="twelvedata",
        twelvedata_api_key="td-test-key",
        seed=1,
        poll_seconds=0.001,
    )
    return TwelveDataFeed(config, client=client, clock=clock or Clock(BASE_MS))


class TestNormalizeTimeSeriesRow:
    def test_parses_utc_datetime(self):
        candle = normalize_time_series_row(ts_row(BASE_MS, 2650.0))

        assert candle.time == BASE_MS
        assert (candle.open, candle.high, candle.low, candle.close) == (2649.0, 2652.0, 2648.0, 2650.0)
        assert candle.volume == 0.0

    @pytest.mark.parametrize(
        "row",
        [
            {"open": "1", "high": "2", "low": "0.5", "close": "1"},
            {"datetime": "yesterday", "open": "1", "high": "2", "low": "0.5", "close": "1"},
            {"datetime": "2024-01-02 10:00:00", "open": "1", "high": "nan", "low": "0.5", "close": "1"},
            {"datetime": "2024-01-02 10:00:00", "open": "1", "high": "2", "low": "0.5"},
        ],
    )
    def test_bad_rows_rejected(self, row):
        with pytest.raises(FeedError):
            normalize_time_series_row(row)


class TestTwelveDataFeed:
    def test_history_reversed_to_ascending(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen.update(request.url.params)
            # Newest first, as the API returns it
            rows = [ts_row(BASE_MS + i * MINUTE, 2650 + i) for i in reversed(range(3))]
            return httpx.Response(200, json={"status": "ok", "values": rows})

        async def scenario():
            feed = twelvedata_feed(handler)
            try:
                return await feed.fetch_history(3)
            finally:
                await feed.aclose()

        history = asyncio.run(scenario())

        assert [c.time for c in history] == [BASE_MS, BASE_MS + MINUTE, BASE_MS + 2 * MINUTE]
        assert [c.close for c in history] == [2650.0, 2651.0, 2652.0]
        assert seen["path"] == "/time_series"
        assert seen["symbol"] == "XAU/USD"
        assert seen["interval"] == "1min"
        assert seen["apikey"] == "td-test-key"
        assert seen["outputsize"] == "3"

    def test_error_status_falls_back_to_binance(self):
        hosts = []

        def handler(request: httpx.Request) -> httpx.Response:
            hosts.append(request.url.host)
            if request.url.host == "api.twelvedata.com":
                return httpx.Response(200, json={"status": "error", "code": 401, "message": "bad key"})
            return httpx.Response(200, json=[kline(BASE_MS + i * MINUTE, 2600 + i) for i in range(4)])

        async def scenario():
            feed = twelvedata_feed(handler)
            try:
                return await feed.fetch_history(4)
            finally:
                await feed.aclose()

        history = asyncio.run(scenario())

        assert hosts == ["api.twelvedata.com", "api.binance.com"]
        assert [c.close for c in history] == [2600.0, 2601.0, 2602.0, 2603.0]

    def test_both_sources_down_uses_simulated(self):
        async def scenario():
            feed = twelvedata_feed(lambda request: httpx.Response(503))
            try:
                return await feed.fetch_history(10)
            finally:
                await feed.aclose()

        assert len(asyncio.run(scenario())) == 10

    def test_ticks_build_candles_from_quotes(self):
        clock = Clock(BASE_MS + 5_000)
        prices = iter(["2650.0", "2653.5", "oops", "2649.0", "2651.0"])

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/price"
            value = next(prices)
            if value == "oops":
                return httpx.Response(200, json={"status": "error", "message": "rate limited"})
            return httpx.Response(200, json={"price": value})

        async def scenario():
            feed = twelvedata_feed(handler, clock=clock)
            stream = feed.ticks()
            out = [await stream.__anext__() for _ in range(3)]
            clock.now = BASE_MS + MINUTE
            out.append(await stream.__anext__())
            await stream.aclose()
            await feed.aclose()
            return out

        ticks = asyncio.run(scenario())

        first, second, third, fourth = ticks
        assert (first.time, first.open, first.close) == (BASE_MS, 2650.0, 2650.0)
        assert (second.time, second.high, second.close) == (BASE_MS, 2653.5, 2653.5)
        assert (third.time, third.low, third.close, third.high) == (BASE_MS, 2649.0, 2649.0, 2653.5)
        assert (fourth.time, fourth.open, fourth.close) == (BASE_MS + MINUTE, 2651.0, 2651.0)

    def test_ticks_continue_last_history_bar(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/time_series":
                return httpx.Response(200, json={"values": [ts_row(BASE_MS, 2650.0)]})
            return httpx.Response(200, json={"price": "2660.0"})

        async def scenario():
            feed = twelvedata_feed(handler, clock=Clock(BASE_MS + 30_000))
            await feed.fetch_history(1)
            stream = feed.ticks()
            tick = await stream.__anext__()
            await stream.aclose()
            await feed.aclose()
            return tick

        tick = asyncio.run(scenario())

        assert tick.time == BASE_MS
        assert tick.open == 2649.0
        assert tick.high == 2660.0
        assert tick.close == 2660.0

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            TwelveDataFeed(FeedConfig(source="twelvedata"))


class TestCreateTwelveDataFeed:
    def test_with_key(self):
        feed = create_feed(FeedConfig(source="twelvedata", twelvedata_api_key="td-test-key"))
        assert isinstance(feed, TwelveDataFeed)
        asyncio.run(feed.aclose())

    def test_without_key_uses_binance(self):
        feed = create_feed(FeedConfig(source="twelvedata"))
        assert isinstance(feed, BinanceFeed)
        asyncio.run(feed.aclose())
