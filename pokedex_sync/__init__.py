"""Pokedex catalog sync and favorites reconciliation engine."""

__version__ = "0.1.0"
