"""Shared helpers for GoldSignal CLI commands."""

import logging
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from goldsignal.config import AppConfig, load_config
from goldsignal.data.feed import MarketFeed, create_feed
from goldsignal.data.series import CandleSeries
from goldsignal.engine.snapshot import SnapshotAggregator
from goldsignal.models import MarketState, Signal, SignalType, Timeframe, calibration_offset

console = Console()


SIGNAL_COLORS = {
    SignalType.BUY: "green",
    SignalType.SELL: "red",
    SignalType.NEUTRAL: "dim",
    SignalType.WAIT: "yellow",
}


def setup_logging(verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


def get_config(source: Optional[str] = None) -> AppConfig:
    """Load the config file and apply a ``--source`` override."""
    config = load_config()
    if source:
        feed = config.feed.model_copy(update={"source": source})
        config = config.model_copy(update={"feed": feed})
    return config


async def load_snapshot(
    config: AppConfig,
    feed: Optional[MarketFeed] = None,
    limit: Optional[int] = None,
) -> tuple[SnapshotAggregator, MarketState]:
    """Fetch history and build the first snapshot.

    Raises:
        click.ClickException: If the feed returned no candles.
    """
    own_feed = feed is None
    feed = feed or create_feed(config.feed)
    try:
        history = await feed.fetch_history(limit)
    finally:
        if own_feed:
            await feed.aclose()

    aggregator = SnapshotAggregator(
        CandleSeries(capacity=config.engine.capacity, interval_ms=config.feed.interval_ms)
    )
    state = aggregator.on_history(history)
    if state is None:
        raise click.ClickException("No market data available")
    return aggregator, state


def resolve_offset(
    state: MarketState,
    offset: Optional[float],
    calibrate_to: Optional[float],
    default: float = 0.0,
) -> float:
    """Pick the calibration offset from the CLI options."""
    if calibrate_to is not None:
        try:
            return calibration_offset(calibrate_to, state)
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--calibrate-to") from e
    if offset is not None:
        return offset
    return default


def _interpret_rsi(value: float) -> tuple[str, str]:
    if value < 30:
        return "Oversold", "green"
    elif value > 70:
        return "Overbought", "red"
    return "Neutral", "dim"


def _interpret_bb(price: float, upper: float, lower: float) -> tuple[str, str]:
    if price > upper:
        return "Upper Breakout", "red"
    elif price < lower:
        return "Lower Breakout", "green"
    return "Inside", "dim"


def _interpret_adx(value: float) -> tuple[str, str]:
    if value > 25:
        return "Trending", "green"
    elif value < 20:
        return "Ranging", "yellow"
    return "Developing", "dim"


def render_market_state(state: MarketState, title: str = "XAU/USD") -> Table:
    """Build a rich table for a MarketState."""
    change_color = "green" if state.change >= 0 else "red"
    arrow = "▲" if state.change >= 0 else "▼"

    table = Table(
        title=f"{title}  {state.price:.2f}  "
        f"[{change_color}]{arrow} {state.change:+.2f} ({state.change_percent:+.2f}%)[/{change_color}]",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Indicator", style="bold")
    table.add_column("Value", justify="right")
    table.add_column("Reading")

    rsi_text, rsi_color = _interpret_rsi(state.rsi)
    bb_text, bb_color = _interpret_bb(state.price, state.bollinger.upper, state.bollinger.lower)
    adx_text, adx_color = _interpret_adx(state.adx)
    macd = state.macd
    ich = state.ichimoku
    piv = state.pivots

    table.add_row("High / Low", f"{state.high:.2f} / {state.low:.2f}", f"[dim]{state.candle_count} bars[/dim]")
    table.add_row("RSI(14)", f"{state.rsi:.2f}", f"[{rsi_color}]{rsi_text}[/{rsi_color}]")
    table.add_row("MA50 / EMA200", f"{state.ma50:.2f} / {state.ema200:.2f}",
                  "Above EMA200" if state.price > state.ema200 else "Below EMA200")
    table.add_row("MACD", f"{macd.macd_line:.3f} / {macd.signal_line:.3f}",
                  f"Histogram {macd.histogram:+.3f}")
    table.add_row("Bollinger", f"{state.bollinger.lower:.2f} - {state.bollinger.upper:.2f}",
                  f"[{bb_color}]{bb_text}[/{bb_color}]")
    table.add_row("Stochastic", f"{state.stochastic.k:.1f} / {state.stochastic.d:.1f}", "")
    table.add_row("ATR(14)", f"{state.atr:.2f}", "")
    table.add_row("ADX(14)", f"{state.adx:.2f}", f"[{adx_color}]{adx_text}[/{adx_color}]")
    table.add_row("Ichimoku", f"{ich.tenkan:.2f} / {ich.kijun:.2f}", ich.cloud_status.value)
    table.add_row("Pivot", f"{piv.pivot:.2f}",
                  f"S2 {piv.s2:.2f}  S1 {piv.s1:.2f}  R1 {piv.r1:.2f}  R2 {piv.r2:.2f}")

    return table


def render_signals(signals: dict[Timeframe, Signal]) -> Table:
    """Build a rich table with one row per timeframe."""
    table = Table(title="Signals", show_header=True, header_style="bold cyan")
    table.add_column("Timeframe", style="bold")
    table.add_column("Signal")
    table.add_column("Conf.", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Stop", justify="right", style="red")
    table.add_column("Target", justify="right", style="green")
    table.add_column("Source", style="dim")
    table.add_column("Reasoning", overflow="fold")

    for tf in Timeframe:
        signal = signals.get(tf)
        if signal is None:
            table.add_row(tf.label, "-", "-", "-", "-", "-", "-", "")
            continue
        color = SIGNAL_COLORS[signal.type]
        table.add_row(
            tf.label,
            f"[{color}]{signal.type.value}[/{color}]",
            f"{signal.confidence}%",
            f"{signal.entry_price:.2f}",
            f"{signal.stop_loss:.2f}",
            f"{signal.take_profit:.2f}",
            signal.source,
            signal.reasoning,
        )

    return table
