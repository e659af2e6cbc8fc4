"""Property-based tests for the candle series.

**Feature: gold-signal**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st
from pydantic import ValidationError

from goldsignal.data.series import CandleSeries
from goldsignal.models import Candle


BASE_MS = 1_700_000_040_000
MINUTE = 60_000


def candle_at(index: int, close: float = 2650.0, offset_ms: int = 0) -> Candle:
    """Candle in the ``index``-th minute bucket after BASE_MS."""
    return Candle(
        time=BASE_MS + index * MINUTE + offset_ms,
        open=close,
        high=close + 1.0,
        low=close - 1.0,
        close=close,
        volume=1.0,
    )


class TestEviction:
    """
    **Feature: gold-signal, Property 9: Bounded Capacity**

    *For any* number of appended candles, the series never exceeds its
    capacity and the oldest candle is the one dropped.
    """

    @given(
        capacity=st.integers(min_value=1, max_value=50),
        count=st.integers(min_value=0, max_value=120),
    )
    @settings(max_examples=100)
    def test_length_never_exceeds_capacity(self, capacity: int, count: int):
        series = CandleSeries(capacity=capacity)
        for i in range(count):
            series.append_or_amend(candle_at(i, close=float(i + 1)))

        assert len(series) == min(count, capacity)
        if count:
            assert series.last.time == candle_at(count - 1).time
            assert series.candles[0].time == candle_at(max(0, count - capacity)).time

    def test_oldest_is_dropped(self):
        series = CandleSeries(capacity=3)
        for i in range(3):
            series.append_or_amend(candle_at(i))

        assert series.append_or_amend(candle_at(3)) is True
        assert [c.time for c in series] == [candle_at(i).time for i in (1, 2, 3)]

    def test_default_capacity(self):
        series = CandleSeries()
        for i in range(305):
            series.append_or_amend(candle_at(i))
        assert len(series) == 300

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            CandleSeries(capacity=0)


class TestAmendVsAppend:
    """
    **Feature: gold-signal, Property 10: Amend in Place**

    *For any* two candles in the same bucket, the second replaces the first.
    """

    @given(
        offset=st.integers(min_value=0, max_value=MINUTE - 1),
        close=st.floats(min_value=1.0, max_value=5000.0),
    )
    @settings(max_examples=100)
    def test_same_bucket_replaces_last(self, offset: int, close: float):
        series = CandleSeries()
        series.append_or_amend(candle_at(0))
        series.append_or_amend(candle_at(1))

        appended = series.append_or_amend(candle_at(1, close=close, offset_ms=offset))

        assert appended is False
        assert len(series) == 2
        assert series.last.close == close

    def test_identical_time_does_not_grow(self):
        series = CandleSeries()
        series.append_or_amend(candle_at(0, close=1.0))
        series.append_or_amend(candle_at(0, close=2.0))

        assert len(series) == 1
        assert series.closes == (2.0,)

    def test_next_bucket_appends(self):
        series = CandleSeries()
        series.append_or_amend(candle_at(0))
        assert series.append_or_amend(candle_at(1)) is True
        assert len(series) == 2

    def test_custom_interval(self):
        # Start on a five-minute boundary so minutes 0-4 share one bucket
        aligned = -(BASE_MS % (5 * MINUTE))
        series = CandleSeries(interval_ms=5 * MINUTE)
        series.append_or_amend(candle_at(0, offset_ms=aligned))
        assert series.append_or_amend(candle_at(4, offset_ms=aligned)) is False
        assert len(series) == 1
        assert series.append_or_amend(candle_at(5, offset_ms=aligned)) is True
        assert len(series) == 2


class TestLoadAndViews:
    """History loads replace the series; views are read-only snapshots."""

    def test_load_replaces_contents(self):
        series = CandleSeries()
        series.append_or_amend(candle_at(0))

        series.load([candle_at(i, close=float(i + 10)) for i in range(5)])

        assert len(series) == 5
        assert series.closes == (10.0, 11.0, 12.0, 13.0, 14.0)

    def test_load_keeps_newest_within_capacity(self):
        series = CandleSeries(capacity=10)
        series.load([candle_at(i) for i in range(25)])

        assert len(series) == 10
        assert series.candles[0].time == candle_at(15).time

    def test_projections_follow_mutations(self):
        series = CandleSeries()
        series.load([candle_at(0, close=5.0)])
        assert series.highs == (6.0,)
        assert series.lows == (4.0,)

        series.append_or_amend(candle_at(0, close=7.0))
        assert series.closes == (7.0,)
        assert series.highs == (8.0,)
        assert series.volumes == (1.0,)

    def test_view_is_pinned_to_a_version(self):
        series = CandleSeries()
        series.load([candle_at(i) for i in range(3)])
        view = series.view()

        series.append_or_amend(candle_at(3))

        assert len(view) == 3
        assert len(view.closes) == len(view.highs) == len(view.lows) == 3
        assert series.view().version == view.version + 1
        assert len(series.view()) == 4

    def test_view_cached_until_mutation(self):
        series = CandleSeries()
        series.load([candle_at(0)])
        assert series.view() is series.view()

    def test_views_are_immutable(self):
        series = CandleSeries()
        series.load([candle_at(0)])

        assert isinstance(series.closes, tuple)
        with pytest.raises(ValidationError):
            series.view().version = 99
        with pytest.raises(ValidationError):
            series.last.close = 1.0

    def test_last_and_previous(self):
        series = CandleSeries()
        assert series.last is None
        assert series.previous is None

        series.load([candle_at(0, close=1.0), candle_at(1, close=2.0)])
        assert series.previous.close == 1.0
        assert series.last.close == 2.0

    def test_clear(self):
        series = CandleSeries()
        series.load([candle_at(0)])
        series.clear()
        assert len(series) == 0
        assert series.view().candles == ()
