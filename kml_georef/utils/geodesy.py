"""Geodesic helpers on the WGS 84 ellipsoid.

Thin wrappers around ``pyproj.Geod`` so the rest of the engine deals in
``GeoPoint`` values and plain degrees / metres.
"""

from __future__ import annotations

import functools
from typing import TYPE_CHECKING

from kml_georef.models.geo import GeoPoint

if TYPE_CHECKING:
    from pyproj import Geod


@functools.lru_cache(maxsize=1)
def _geod() -> Geod:
    from pyproj import Geod

    return Geod(ellps="WGS84")


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Geodesic distance between two locations in metres."""
    _az12, _az21, dist = _geod().inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return float(dist)


def bearing_deg(a: GeoPoint, b: GeoPoint) -> float:
    """Initial bearing from *a* to *b*, degrees clockwise from north in ``[0, 360)``."""
    az12, _az21, _dist = _geod().inv(a.longitude, a.latitude, b.longitude, b.latitude)
    return normalize_degrees(float(az12))


def destination(origin: GeoPoint, bearing: float, distance: float) -> GeoPoint:
    """Location reached by travelling *distance* metres from *origin* along *bearing*."""
    lon, lat, _back_az = _geod().fwd(origin.longitude, origin.latitude, bearing, distance)
    return GeoPoint(float(lon), float(lat))


def normalize_degrees(angle: float) -> float:
    """Normalise an angle into ``[0, 360)``."""
    result = angle % 360.0
    # -1e-15 % 360 rounds to 360.0
    return 0.0 if result >= 360.0 else result


def normalize_signed_degrees(angle: float) -> float:
    """Normalise an angle into ``[-180, 180)``."""
    return normalize_degrees(angle + 180.0) - 180.0
