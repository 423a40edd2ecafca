"""Inditex product tracker backend.

Tracks price and per-size stock of product pages on Zara and its sister
sites, recording a history entry whenever either changes.
"""

__version__ = "0.1.0"
