"""Concrete adapters for the domain service ports."""
