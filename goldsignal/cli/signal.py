"""Signal command for GoldSignal CLI.

Builds a snapshot and asks the signal agent for per-timeframe signals.
"""

import asyncio
from typing import Optional

import click

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
from goldsignal.models import AIModel


@click.command()
@click.option("-s", "--source", type=click.Choice(SOURCE_CHOICES), help="Market data source")
@click.option(
    "-m", "--model",
    type=click.Choice([m.value for m in AIModel]),
    help="Model for AI signals (default from config)",
)
@click.option("--offline", is_flag=True, help="Skip the AI and use rule-based signals")
@click.option("--offset", type=float, help="Calibration offset added to prices")
@click.option("--calibrate-to", type=float, help="Broker price to calibrate against")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def signal(
    source: Optional[str],
    model: Optional[str],
    offline: bool,
    offset: Optional[float],
    calibrate_to: Optional[float],
    verbose: bool,
) -> None:
    """Generate M1/M5/M15 trading signals.

    Falls back to rule-based signals when no OpenAI key is configured
    or the model reply cannot be used.

    \b
    Examples:
      goldsignal signal
      goldsignal signal --offline
      goldsignal signal --model gpt-4o --calibrate-to 2661.40
    """
    setup_logging(verbose)
    config = get_config(source)

    async def run():
        _, state = await load_snapshot(config)
        price_offset = resolve_offset(state, offset, calibrate_to, config.engine.price_offset)
        features = state.calibrated(price_offset)

        if offline:
            return features, fallback_signals(features)

        with console.status("[dim]Requesting signals...[/dim]"):
            signals = await analyze_all_timeframes(
                features,
                model=model or config.ai.model,
                api_key=config.ai.resolve_api_key(),
                timeout=config.ai.timeout,
            )
        return features, signals

    features, signals = asyncio.run(run())

    console.print(render_market_state(features))
    console.print(render_signals(signals))
