"""Delivery and developer-experience metrics for GitHub repositories."""

__version__ = "0.1.0"
