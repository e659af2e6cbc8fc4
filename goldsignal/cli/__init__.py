"""CLI module for GoldSignal."""

from goldsignal.cli.main import cli, main

__all__ = ["cli", "main"]
