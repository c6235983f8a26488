"""Oxima client core: reactive configuration store and auth-session mirror."""

__version__ = "0.1.0"
