"""Marker scanning for TODO-style comments."""

from gittodos.scanning.marker_scanner import MarkerMatches, MarkerScanner, is_binary

__all__ = ["MarkerMatches", "MarkerScanner", "is_binary"]
