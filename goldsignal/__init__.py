"""GoldSignal - streaming technical indicators and AI trading signals for spot gold."""

__version__ = "0.1.0"
