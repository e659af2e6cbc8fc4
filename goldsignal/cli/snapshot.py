"""Snapshot commands for GoldSignal CLI.

Loads history from the configured feed and shows the indicator snapshot.
"""

import asyncio
import json
from typing import Optional

import click
from rich.table import Table

from goldsignal.cli.common import (
    console,
    get_config,
    load_snapshot,
    render_market_state,
    resolve_offset,
    setup_logging,
)
from goldsignal.indicators.technical import ichimoku_series


SOURCE_CHOICES = ["simulated", "binance", "twelvedata"]


@click.command()
@click.option("-s", "--source", type=click.Choice(SOURCE_CHOICES), help="Market data source")
@click.option("-n", "--limit", type=int, help="Number of candles to load")
@click.option("--offset", type=float, help="Calibration offset added to displayed prices")
@click.option("--calibrate-to", type=float, help="Broker price to calibrate against")
@click.option("--json", "as_json", is_flag=True, help="Print the snapshot as JSON")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def snapshot(
    source: Optional[str],
    limit: Optional[int],
    offset: Optional[float],
    calibrate_to: Optional[float],
    as_json: bool,
    verbose: bool,
) -> None:
    """Show the current indicator snapshot.

    \b
    Examples:
      goldsignal snapshot
      goldsignal snapshot --source binance --limit 300
      goldsignal snapshot --calibrate-to 2661.40
    """
    setup_logging(verbose)
    config = get_config(source)

    _, state = asyncio.run(load_snapshot(config, limit=limit))
    price_offset = resolve_offset(state, offset, calibrate_to, config.engine.price_offset)
    display = state.calibrated(price_offset)

    if as_json:
        click.echo(json.dumps(display.model_dump(mode="json"), indent=2))
        return

    console.print(render_market_state(display))
    if price_offset:
        console.print(f"[dim]Calibration offset {price_offset:+.2f} applied[/dim]")


@click.command()
@click.option("-s", "--source", type=click.Choice(SOURCE_CHOICES), help="Market data source")
@click.option("-n", "--limit", type=int, help="Number of candles to load")
@click.option("-t", "--tail", default=10, type=int, help="Points to show per line (default: 10)")
@click.option("--offset", type=float, help="Calibration offset added to displayed values")
@click.option("--calibrate-to", type=float, help="Broker price to calibrate against")
@click.option("--json", "as_json", is_flag=True, help="Print every point as JSON")
def ichimoku(
    source: Optional[str],
    limit: Optional[int],
    tail: int,
    offset: Optional[float],
    calibrate_to: Optional[float],
    as_json: bool,
) -> None:
    """Show the Ichimoku chart lines (Span A/B projected forward).

    \b
    Examples:
      goldsignal ichimoku --tail 5
      goldsignal ichimoku --calibrate-to 2661.40
    """
    setup_logging()
    config = get_config(source)

    aggregator, state = asyncio.run(load_snapshot(config, limit=limit))
    price_offset = resolve_offset(state, offset, calibrate_to, config.engine.price_offset)
    lines = ichimoku_series(aggregator.series.candles, config.feed.interval_ms).calibrated(price_offset)

    if as_json:
        click.echo(json.dumps(lines.model_dump(mode="json")))
        return

    table = Table(title="Ichimoku", show_header=True, header_style="bold cyan")
    table.add_column("Line", style="bold")
    table.add_column("Points", justify="right", style="dim")
    table.add_column("Latest values")

    for name in ("tenkan", "kijun", "span_a", "span_b"):
        points = getattr(lines, name)
        latest = ", ".join(f"{p.value:.2f}" for p in points[-tail:]) if tail > 0 else ""
        table.add_row(name, str(len(points)), latest or "[dim]not enough data[/dim]")

    console.print(table)
