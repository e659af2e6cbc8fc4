"""Bounded, time-ordered candle series.

The series is the only mutable state in the engine. Consumers never get a
reference to the internal list: every view is a tuple or a ``SeriesView``
snapshot tied to a single mutation version.
"""

from collections import deque
from collections.abc import Iterable, Iterator
from typing import Optional

from pydantic import BaseModel

from goldsignal.models import Candle, DEFAULT_INTERVAL_MS


DEFAULT_CAPACITY = 300


class SeriesView(BaseModel):
    """Immutable snapshot of a series at one version."""

    candles: tuple[Candle, ...] = ()
    closes: tuple[float, ...] = ()
    highs: tuple[float, ...] = ()
    lows: tuple[float, ...] = ()
    version: int = 0

    model_config = {"frozen": True}

    def __len__(self) -> int:
        return len(self.candles)

    @property
    def last(self) -> Optional[Candle]:
        return self.candles[-1] if self.candles else None

    @property
    def previous(self) -> Optional[Candle]:
        return self.candles[-2] if len(self.candles) > 1 else None


class CandleSeries:
    """Ring buffer of candles with amend-or-append semantics.

    The newest candle may be replaced while its time bucket is still open;
    any other candle is appended and, once the capacity is exceeded, the
    oldest one is evicted.

    Input is not validated beyond the bucket comparison: ordering and
    finite prices are the feed's responsibility.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ):
        """Initialize an empty series.

        Args:
            capacity: Maximum number of candles retained.
            interval_ms: Bucket size used to decide amend vs append.
        """
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.interval_ms = interval_ms
        self._candles: deque[Candle] = deque(maxlen=capacity)
        self._version = 0
        self._view: Optional[SeriesView] = None

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self.candles)

    def _touch(self) -> None:
        self._version += 1
        self._view = None

    def append_or_amend(self, candle: Candle) -> bool:
        """Add a candle, replacing the last one if it shares its bucket.

        Args:
            candle: Incoming candle.

        Returns:
            True if the candle was appended, False if it amended the last one.
        """
        last = self._candles[-1] if self._candles else None
        if last is not None and last.bucket(self.interval_ms) == candle.bucket(self.interval_ms):
            self._candles[-1] = candle
            appended = False
        else:
            # deque(maxlen) drops the oldest element on overflow
            self._candles.append(candle)
            appended = True

        self._touch()
        return appended

    def load(self, history: Iterable[Candle]) -> None:
        """Replace the entire series with ``history`` (ascending by time).

        Only the newest ``capacity`` candles are kept.
        """
        self._candles = deque(history, maxlen=self.capacity)
        self._touch()

    def clear(self) -> None:
        self._candles.clear()
        self._touch()

    @property
    def version(self) -> int:
        """Monotonic counter bumped on every mutation."""
        return self._version

    def view(self) -> SeriesView:
        """Snapshot of the current state, cached until the next mutation."""
        if self._view is None:
            candles = tuple(self._candles)
            self._view = SeriesView(
                candles=candles,
                closes=tuple(c.close for c in candles),
                highs=tuple(c.high for c in candles),
                lows=tuple(c.low for c in candles),
                version=self._version,
            )
        return self._view

    @property
    def candles(self) -> tuple[Candle, ...]:
        return self.view().candles

    @property
    def closes(self) -> tuple[float, ...]:
        return self.view().closes

    @property
    def highs(self) -> tuple[float, ...]:
        return self.view().highs

    @property
    def lows(self) -> tuple[float, ...]:
        return self.view().lows

    @property
    def volumes(self) -> tuple[float, ...]:
        return tuple(c.volume for c in self.view().candles)

    @property
    def last(self) -> Optional[Candle]:
        return self.view().last

    @property
    def previous(self) -> Optional[Candle]:
        return self.view().previous
