"""Typed client for the backpack.tf listing event feed."""

__version__ = "0.1.0"
