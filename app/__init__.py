"""Offline-first anime catalog service backed by the Jikan API."""

__version__ = "1.0.0"
