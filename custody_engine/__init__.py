"""Custodial wallet and token swap execution engine."""

__version__ = "0.1.0"
