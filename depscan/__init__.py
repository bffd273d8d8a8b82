"""Dependency analysis across heterogeneous build systems."""

__version__ = "0.4.0"
