"""Audit processes against their configured resource limits."""

__version__ = "0.1.0"
