"""Overlay geometry variants.

An overlay is anchored either by a lat/lon ``Box`` (plus a rotation
angle) or by four explicit corner locations (``Quad``). Both are
immutable and hashable, which lets derived transforms be memoised on
the geometry value itself: replacing a geometry produces a new key and
the stale transform is simply never looked up again.
"""

from __future__ import annotations

from dataclasses import dataclass

from kml_georef.models.geo import GeoPoint, unwrap_longitude


@dataclass(frozen=True, slots=True)
class Box:
    """Lat/lon bounding box with an optional rotation.

    Attributes:
        north: Northern edge latitude.
        south: Southern edge latitude.
        east: Eastern edge longitude. ``east < west`` means the box
            crosses the antimeridian.
        west: Western edge longitude.
        rotation: Degrees the image is rotated about its centre
            (KML ``LatLonBox/rotation``).
    """

    north: float
    south: float
    east: float
    west: float
    rotation: float = 0.0

    @property
    def spans_antimeridian(self) -> bool:
        return self.east < self.west

    @property
    def unwrapped_east(self) -> float:
        """East edge shifted past 180 when the box crosses the antimeridian."""
        return self.east + 360.0 if self.spans_antimeridian else self.east

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            (self.west + self.unwrapped_east) / 2.0,
            (self.north + self.south) / 2.0,
        )

    def corners(self) -> tuple[GeoPoint, GeoPoint, GeoPoint, GeoPoint]:
        """Return the unrotated box corners as ``(nw, ne, se, sw)``."""
        return (
            GeoPoint(self.west, self.north),
            GeoPoint(self.east, self.north),
            GeoPoint(self.east, self.south),
            GeoPoint(self.west, self.south),
        )

    def corner_lonlats(self) -> list[tuple[float, float]]:
        """Corner ``(lon, lat)`` pairs in NW, NE, SE, SW order on a continuous longitude axis."""
        east = self.unwrapped_east
        return [
            (self.west, self.north),
            (east, self.north),
            (east, self.south),
            (self.west, self.south),
        ]


@dataclass(frozen=True, slots=True)
class Quad:
    """Four explicit corner locations (KML ``gx:LatLonQuad``).

    Corner order is fixed NW, NE, SE, SW regardless of the order the
    document listed them in.
    """

    nw: GeoPoint
    ne: GeoPoint
    se: GeoPoint
    sw: GeoPoint

    @property
    def center(self) -> GeoPoint:
        """Centre of the corners' bounding box."""
        lonlats = self.corner_lonlats()
        lons = [lon for lon, _ in lonlats]
        lats = [lat for _, lat in lonlats]
        return GeoPoint((min(lons) + max(lons)) / 2.0, (min(lats) + max(lats)) / 2.0)

    def corners(self) -> tuple[GeoPoint, GeoPoint, GeoPoint, GeoPoint]:
        return (self.nw, self.ne, self.se, self.sw)

    def corner_lonlats(self) -> list[tuple[float, float]]:
        """Corner ``(lon, lat)`` pairs unwrapped around the NW corner's longitude."""
        reference = self.nw.longitude
        return [
            (unwrap_longitude(p.longitude, reference), p.latitude)
            for p in self.corners()
        ]


Geometry = Box | Quad
