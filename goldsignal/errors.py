"""Exceptions raised by GoldSignal."""


class GoldSignalError(Exception):
    """Base class for GoldSignal errors."""


class FeedError(GoldSignalError):
    """Market data could not be fetched or failed ingestion checks."""


class SignalParseError(GoldSignalError):
    """An AI response did not match the signal schema."""
