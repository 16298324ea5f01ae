"""Budget assistant backend: conversational tool-calling over live budget data."""

__version__ = "0.1.0"
