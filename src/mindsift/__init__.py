"""Mindsift: turns raw mind dumps into structured, resurfacing-aware thoughts."""

__version__ = "0.1.0"
