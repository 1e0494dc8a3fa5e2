"""Organize exported photo archives by capture year and album."""

__version__ = "0.1.0"
