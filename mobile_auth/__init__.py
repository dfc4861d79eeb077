"""Passwordless mobile-number authentication service."""

__version__ = "1.0.0"
