"""Incident Risk Center: structured six-step risk reports for school incidents."""

__version__ = "0.1.0"
