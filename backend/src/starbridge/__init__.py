"""Starbridge: real-time starship operations session server."""

__version__ = "0.1.0"
