"""Overlay measurements: containment, distance and area."""
