"""Offline-first inspection draft store with background sync."""

__version__ = "0.1.0"
