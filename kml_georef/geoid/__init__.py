"""Geoid height table for GPS altitude correction."""

from kml_georef.geoid.height_table import GeoidHeightTable

__all__ = ["GeoidHeightTable"]
