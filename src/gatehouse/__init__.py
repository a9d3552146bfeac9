"""Gatehouse: event-sourced authentication engine."""

__version__ = "0.1.0"
