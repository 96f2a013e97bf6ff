"""Shared engine constants - single source of truth.

Centralises namespaces, file names, and numeric thresholds used by the
parser, the catalog, the transforms, and the map writer.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# KML namespaces
# ---------------------------------------------------------------------------

KML_NAMESPACE: str = "http://www.opengis.net/kml/2.2"
"""KML 2.2 default namespace."""

GX_NAMESPACE: str = "http://www.google.com/kml/ext/2.2"
"""Google extension namespace (``gx:LatLonQuad``)."""

TIEPOINT_NAMESPACE: str = "urn:tiepoints"
"""Namespace of the ``tie:tiepoint`` extended data written by the map editor."""

# ---------------------------------------------------------------------------
# WGS 84 coordinate bounds
# ---------------------------------------------------------------------------

MIN_LONGITUDE = -180.0
MAX_LONGITUDE = 180.0
MIN_LATITUDE = -90.0
MAX_LATITUDE = 90.0

# ---------------------------------------------------------------------------
# Archive layout
# ---------------------------------------------------------------------------

KML_SUFFIX = ".kml"
KMZ_SUFFIX = ".kmz"

ORIENTATION_FILE_NAME: str = "map_orientation.properties"
"""Side-table mapping image paths to their rotation in degrees."""

KMZ_DOCUMENT_NAME = "doc.kml"
KMZ_IMAGE_DIR = "images"

# ---------------------------------------------------------------------------
# Catalog defaults
# ---------------------------------------------------------------------------

DEFAULT_MAPS_DIR = "maps"
DEFAULT_GEOID_DATA_PATH = "geoid.dat"
DEFAULT_MAP_NAME = "Map without name"

NEAR_MAP_DISTANCE_M = 50_000.0
"""Maps closer than this (but not containing the position) are "near"."""

# ---------------------------------------------------------------------------
# Flat-earth approximation
# ---------------------------------------------------------------------------

METERS_PER_DEGREE = 10_000_000.0 / 90.0
"""Metres per degree of latitude (10 000 km from equator to pole)."""

# ---------------------------------------------------------------------------
# Icon style defaults
# ---------------------------------------------------------------------------

DEFAULT_ICON_SCALE = 1.5
DEFAULT_HOTSPOT = 0.5
