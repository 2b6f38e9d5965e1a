"""Bookstage - prerendered book pages with on-demand fallback."""

__version__ = "0.1.0"
