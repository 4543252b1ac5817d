"""Screener - rename new screenshots from a vision model description."""

__version__ = "1.0.0"
