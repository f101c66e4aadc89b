"""Typed GraphQL client bindings for Python."""

__version__ = "0.1.0"
