"""Operator console for the sand booking automation backend."""

__version__ = "0.1.0"
