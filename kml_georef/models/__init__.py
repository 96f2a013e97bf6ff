"""Data models.

Defines the value types used throughout the engine:
- GeoPoint / ImagePoint / Tiepoint: coordinates and correspondences
- Box / Quad: overlay geometry variants
- Overlay / Folder / Marker: parsed KML features
- MapSource: the container a map was read from
"""

from kml_georef.models.feature import (
    Feature,
    Folder,
    HotspotUnits,
    IconStyle,
    Marker,
    Overlay,
)
from kml_georef.models.geo import GeoPoint, ImagePoint, Tiepoint
from kml_georef.models.geometry import Box, Geometry, Quad
from kml_georef.models.source import MapSource

__all__ = [
    "Box",
    "Feature",
    "Folder",
    "GeoPoint",
    "Geometry",
    "HotspotUnits",
    "IconStyle",
    "ImagePoint",
    "MapSource",
    "Marker",
    "Overlay",
    "Quad",
    "Tiepoint",
]
