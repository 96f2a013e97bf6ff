"""Point value types shared by every component.

``GeoPoint`` is range-normalised on construction so callers never have
to think about longitudes such as ``190`` or ``-540``; ``ImagePoint``
uses the raster convention (origin top-left, y growing downward).
"""

from __future__ import annotations

from dataclasses import dataclass

from kml_georef.core.constants import MAX_LATITUDE, MIN_LATITUDE


def wrap_longitude(longitude: float) -> float:
    """Wrap a longitude into ``[-180, 180)``; in-range values are returned unchanged."""
    if -180.0 <= longitude < 180.0:
        return longitude
    wrapped = (longitude + 180.0) % 360.0 - 180.0
    # Values just below -180 can round up to +180.
    return wrapped - 360.0 if wrapped >= 180.0 else wrapped


def unwrap_longitude(longitude: float, reference: float) -> float:
    """Shift *longitude* by whole turns so it lies within 180 degrees of *reference*."""
    return reference + wrap_longitude(longitude - reference)


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """Geographic location in WGS 84 degrees.

    Attributes:
        longitude: Wrapped to ``[-180, 180)``.
        latitude: Clamped to ``[-90, 90]``.
    """

    longitude: float
    latitude: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "longitude", wrap_longitude(float(self.longitude)))
        lat = min(MAX_LATITUDE, max(MIN_LATITUDE, float(self.latitude)))
        object.__setattr__(self, "latitude", lat)

    def as_tuple(self) -> tuple[float, float]:
        """Return ``(lon, lat)`` - the axis order used throughout the engine."""
        return (self.longitude, self.latitude)


@dataclass(frozen=True, slots=True)
class ImagePoint:
    """Pixel location in an image (origin top-left, y down)."""

    x: float
    y: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class Tiepoint:
    """A correspondence between one image pixel and one geographic location."""

    image: ImagePoint
    geo: GeoPoint
