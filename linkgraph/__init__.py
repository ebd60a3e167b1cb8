"""Bounded-depth link graph crawler."""

__version__ = "1.0.0"
