"""Driver for the WS-1001 Observer weather station console."""

__version__ = "0.1.0"
