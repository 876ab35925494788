"""Deterministic role casting for narrative storylets."""

__version__ = "1.0.0"
