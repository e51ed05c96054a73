"""Ordinal-aware wallet logic: transaction building, wallet views, sat lookup and an in-memory node."""

__version__ = "0.1.0"