"""Catalog history and vibe search for a coffee vendor."""

__version__ = "0.4.0"
