"""Rhythmo: a small prefix-command Discord music bot."""

__version__ = "1.2.0"
