"""Containment, distance and area queries for overlays.

Two distance approximations coexist:

- Box geometry (and quads without corner tie points) are measured in a
  *metric frame*: the geo->image transform of an imaginary image whose
  pixel size is the overlay's geodesic width x height in metres. The
  distance is then plain Euclidean distance to that rectangle.
- Quads backed by at least four tie points use a local equirectangular
  projection centred on the overlay (longitude scaled by the cosine of
  the centre latitude) and the distance to the quad's four edges.

Both are accurate to well under a percent at city scale, which is all
the catalog's near / far grouping needs.
"""

from __future__ import annotations

import functools
import math
from typing import TYPE_CHECKING

from kml_georef.core.constants import METERS_PER_DEGREE
from kml_georef.models.geo import unwrap_longitude, wrap_longitude
from kml_georef.models.geometry import Box, Quad
from kml_georef.transforms.geo_to_image import GeoToImageTransform
from kml_georef.utils.geodesy import distance_m

if TYPE_CHECKING:
    from kml_georef.models.feature import Overlay
    from kml_georef.models.geometry import Geometry

# Distance reported for a location exactly on the map boundary: such a
# location is not contained, so its distance must not be 0.
BOUNDARY_DISTANCE_M = math.nextafter(0.0, 1.0)

SQ_METRES_PER_SQ_KM = 1_000_000.0


@functools.lru_cache(maxsize=256)
def metric_size(geometry: Geometry) -> tuple[float, float]:
    """Return ``(width_m, height_m)``: geodesic edge lengths averaged over opposite edges."""
    nw, ne, se, sw = geometry.corners()
    width = (distance_m(nw, ne) + distance_m(sw, se)) / 2.0
    height = (distance_m(nw, sw) + distance_m(ne, se)) / 2.0
    return (width, height)


def metric_frame(geometry: Geometry) -> GeoToImageTransform | None:
    """Geo->"pixel" transform whose pixels are metres."""
    width, height = metric_size(geometry)
    return GeoToImageTransform.for_geometry(geometry, width, height)


def contains(overlay: Overlay, longitude: float, latitude: float) -> bool:
    """Strict containment: locations on the boundary are outside."""
    geometry = overlay.geometry
    lon = wrap_longitude(longitude)
    if isinstance(geometry, Box) and geometry.rotation == 0 and not geometry.spans_antimeridian:
        return geometry.west < lon < geometry.east and geometry.south < latitude < geometry.north

    frame = metric_frame(geometry)
    if frame is None:
        return False
    x, y = frame.lonlat_to_pixel(lon, latitude)
    return 0.0 < x < frame.width and 0.0 < y < frame.height


def distance_from(overlay: Overlay, longitude: float, latitude: float) -> float:
    """Distance in metres from a location to the overlay; 0 exactly when contained.

    Degenerate geometries (no usable transform) are infinitely far.
    """
    if contains(overlay, longitude, latitude):
        return 0.0

    geometry = overlay.geometry
    if isinstance(geometry, Quad) and overlay.has_corner_tiepoints:
        distance = _equirectangular_distance(geometry, longitude, latitude)
    else:
        frame = metric_frame(geometry)
        if frame is None:
            return math.inf
        x, y = frame.lonlat_to_pixel(longitude, latitude)
        dx = max(-x, 0.0, x - frame.width)
        dy = max(-y, 0.0, y - frame.height)
        distance = math.hypot(dx, dy)

    return distance if distance > 0.0 else BOUNDARY_DISTANCE_M


def area_km2(geometry: Geometry) -> float:
    width, height = metric_size(geometry)
    return width * height / SQ_METRES_PER_SQ_KM


def _equirectangular_distance(quad: Quad, longitude: float, latitude: float) -> float:
    from shapely.geometry import LinearRing, Point

    nw, ne, se, sw = quad.corner_lonlats()
    center_lon = (max(ne[0], se[0]) + min(nw[0], sw[0])) / 2.0
    center_lat = (max(nw[1], ne[1]) + min(sw[1], se[1])) / 2.0
    kx = math.cos(math.radians(center_lat)) * METERS_PER_DEGREE
    ky = METERS_PER_DEGREE

    def project(lon: float, lat: float) -> tuple[float, float]:
        return ((lon - center_lon) * kx, (lat - center_lat) * ky)

    ring = LinearRing([project(lon, lat) for lon, lat in (nw, ne, se, sw)])
    location = Point(project(unwrap_longitude(longitude, center_lon), latitude))
    return float(ring.distance(location))
