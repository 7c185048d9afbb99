"""Randomized concurrent SQL workload generation with tracked schema metadata."""

__version__ = "1.0.1"