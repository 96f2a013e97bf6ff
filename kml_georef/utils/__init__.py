"""Shared helpers (geodesy, file naming)."""
