"""Geographic <-> image pixel mapping derived from an overlay's geometry.

For a ``Box`` the lat/lon rectangle is fitted onto the image's pixel
rectangle and the result is then rotated about the image centre by the
box rotation. For a ``Quad`` the four geo corners are fitted directly
onto the four pixel corners with a projective transform.

Transforms are memoised on ``(geometry, width, height)``. Geometry
values are immutable, so a changed overlay simply produces a new key.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from kml_georef.models.geo import GeoPoint, ImagePoint, unwrap_longitude
from kml_georef.models.geometry import Box
from kml_georef.transforms.projective import (
    Singular,
    invert,
    map_point,
    poly_to_poly,
    rotation_about,
)
from kml_georef.utils.geodesy import distance_m

if TYPE_CHECKING:
    from kml_georef.models.geometry import Geometry
    from kml_georef.transforms.projective import Matrix

logger = logging.getLogger("kml_georef.transforms.geo_to_image")

_TRANSFORM_CACHE_SIZE = 256


class GeoToImageTransform:
    """Bidirectional mapping between lon/lat and pixels of one overlay image.

    Build instances with :meth:`for_geometry`; the constructor expects
    already-fitted matrices.
    """

    def __init__(
        self,
        geometry: Geometry,
        width: float,
        height: float,
        forward: Matrix,
        inverse: Matrix,
    ) -> None:
        self.geometry = geometry
        self.width = width
        self.height = height
        self._forward = forward
        self._inverse = inverse
        lons = [lon for lon, _ in geometry.corner_lonlats()]
        self._reference_lon = (min(lons) + max(lons)) / 2.0

    @classmethod
    def for_geometry(
        cls, geometry: Geometry, width: float, height: float
    ) -> GeoToImageTransform | None:
        """Return the transform for an image of ``width x height`` pixels.

        Returns ``None`` when the geometry is degenerate (zero-size box,
        collinear quad corners) or the image has no area.
        """
        return _build(geometry, float(width), float(height))

    # -- conversions ---------------------------------------------------------

    def geo_to_image(self, point: GeoPoint) -> ImagePoint:
        x, y = self.lonlat_to_pixel(point.longitude, point.latitude)
        return ImagePoint(x, y)

    def lonlat_to_pixel(self, longitude: float, latitude: float) -> tuple[float, float]:
        lon = unwrap_longitude(longitude, self._reference_lon)
        return map_point(self._forward, lon, latitude)

    def image_to_geo(self, point: ImagePoint) -> GeoPoint:
        lon, lat = map_point(self._inverse, point.x, point.y)
        return GeoPoint(lon, lat)

    # -- derived quantities --------------------------------------------------

    def meters_per_pixel(self) -> float:
        """Ground resolution averaged over both image diagonals."""
        w, h = self.width, self.height
        nw = self.image_to_geo(ImagePoint(0.0, 0.0))
        ne = self.image_to_geo(ImagePoint(w, 0.0))
        se = self.image_to_geo(ImagePoint(w, h))
        sw = self.image_to_geo(ImagePoint(0.0, h))
        diagonal_px = (w * w + h * h) ** 0.5
        return (distance_m(nw, se) + distance_m(ne, sw)) / (2.0 * diagonal_px)

    def map_center(self) -> GeoPoint:
        return self.geometry.center


@functools.lru_cache(maxsize=_TRANSFORM_CACHE_SIZE)
def _build(geometry: Geometry, width: float, height: float) -> GeoToImageTransform | None:
    if width <= 0 or height <= 0:
        logger.warning("Image has no area | width=%s | height=%s", width, height)
        return None

    pixel_corners = [(0.0, 0.0), (width, 0.0), (width, height), (0.0, height)]
    fit = poly_to_poly(geometry.corner_lonlats(), pixel_corners)
    if isinstance(fit, Singular):
        logger.warning("Degenerate overlay geometry | geometry=%s | reason=%s", geometry, fit.reason)
        return None

    forward = fit.matrix
    if isinstance(geometry, Box) and geometry.rotation != 0:
        forward = rotation_about(geometry.rotation, width / 2.0, height / 2.0) @ forward

    inverse = invert(forward)
    if isinstance(inverse, Singular):
        logger.warning("Overlay transform not invertible | geometry=%s", geometry)
        return None
    return GeoToImageTransform(geometry, width, height, forward, inverse.matrix)
