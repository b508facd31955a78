"""Momentum scoring, layer classification and topic clustering for developer signals."""

__version__ = "0.1.0"
