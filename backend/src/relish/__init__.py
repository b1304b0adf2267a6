"""Relish - encrypted relationship core."""

__version__ = "0.1.0"
