"""Cycling power and training-load metrics."""

__version__ = "1.0.0"
