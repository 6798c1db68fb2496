"""Incremental mirror of remote CSV price and catalog feeds."""

__version__ = "1.0.0"
