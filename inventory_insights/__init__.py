"""Inventory consumption variance and anomaly detection for restaurant POS data."""

__version__ = "0.1.0"
