"""Live dashboard command for GoldSignal CLI.

Streams candles from the feed, recomputes the snapshot on every tick and
refreshes signals on an independent timer.
"""

import asyncio
from typing import Optional

import click
from rich.console import Group
from rich.live import Live
from rich.panel import Panel

from goldsignal.agents.fallback import fallback_signals
from goldsignal.agents.signal import analyze_all_timeframes
from goldsignal.cli.common import (
    console,
    get_config,
    load_snapshot,
    render_market_state,
    render_signals,
    resolve_offset,
    setup_logging,
)
from goldsignal.cli.snapshot import SOURCE_CHOICES
from goldsignal.data.feed import create_feed
from goldsignal.engine.scanner import SignalScanner


async def _offline_analyzer(state, **kwargs):
    return fallback_signals(state)


@click.command()
@click.option("-s", "--source", type=click.Choice(SOURCE_CHOICES), help="Market data source")
@click.option("--offline", is_flag=True, help="Skip the AI and use rule-based signals")
@click.option("-i", "--scan-interval", type=float, help="Seconds between signal refreshes")
@click.option("--offset", type=float, help="Calibration offset added to prices")
@click.option("--calibrate-to", type=float, help="Broker price to calibrate against")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def live(
    source: Optional[str],
    offline: bool,
    scan_interval: Optional[float],
    offset: Optional[float],
    calibrate_to: Optional[float],
    verbose: bool,
) -> None:
    """Watch live indicators and signals (Ctrl+C to stop).

    \b
    Examples:
      goldsignal live
      goldsignal live --source binance --scan-interval 60
    """
    setup_logging(verbose)
    config = get_config(source)

    async def run() -> None:
        feed = create_feed(config.feed)
        try:
            aggregator, state = await load_snapshot(config, feed=feed)
            price_offset = resolve_offset(state, offset, calibrate_to, config.engine.price_offset)

            scanner = SignalScanner(
                aggregator,
                ai_config=config.ai,
                interval=scan_interval or config.engine.scan_interval,
                price_offset=price_offset,
                analyzer=_offline_analyzer if offline else analyze_all_timeframes,
            )

            def render() -> Group:
                display = scanner.features()
                parts = [render_market_state(display)]
                if scanner.signals:
                    parts.append(render_signals(scanner.signals))
                else:
                    parts.append(Panel("[dim]Waiting for first signal scan...[/dim]"))
                return Group(*parts)

            with Live(render(), console=console, refresh_per_second=2) as display:
                scanner.on_signals = lambda _: display.update(render())
                scanner.start()
                try:
                    async for candle in feed.ticks():
                        aggregator.on_tick(candle)
                        display.update(render())
                finally:
                    await scanner.stop()
        finally:
            await feed.aclose()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        console.print("\n[dim]Stopped watching.[/dim]")
