"""Fit an overlay's geometry from user-picked tie points.

This is the creation-time inverse of normal display: instead of mapping
a known geometry onto the image, the user pins image pixels to map
locations and the estimator derives the geometry.

- Three or four tie points: projective (four) or affine (three) fit from
  image pixels to lon/lat. The image's pixel corners are pushed through
  the fit and read off as a ``Quad``.
- Two tie points: similarity fit. The rotation comes from comparing the
  geodesic bearing between the two locations with the direction between
  the two pixels; scale is geodesic metres per pixel; the result is a
  rotated ``Box``.

Degenerate input (coincident or collinear points) yields ``WarpFailure``
rather than a guess, so the caller can ask for better-separated points.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from kml_georef.models.geo import GeoPoint, ImagePoint, Tiepoint, unwrap_longitude, wrap_longitude
from kml_georef.models.geometry import Box, Quad
from kml_georef.transforms.geo_to_image import GeoToImageTransform
from kml_georef.transforms.projective import (
    Singular,
    map_point,
    map_points,
    poly_to_poly,
    rotation_about,
)
from kml_georef.utils.geodesy import (
    bearing_deg,
    destination,
    distance_m,
    normalize_signed_degrees,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from kml_georef.models.geometry import Geometry

logger = logging.getLogger("kml_georef.create.warp_estimator")

MAX_FIT_POINTS = 4
MIN_FIT_POINTS = 2

# Two locations closer than this are treated as the same point.
_MIN_SEPARATION_M = 1e-3
_MIN_SEPARATION_PX = 1e-6


@dataclass(frozen=True, slots=True)
class WarpFailure:
    """The tie points do not determine a geometry."""

    reason: str


class WarpEstimator:
    """Derives overlay geometry from tie points."""

    def fit(
        self,
        tiepoints: Sequence[Tiepoint],
        image_width: float,
        image_height: float,
    ) -> Geometry | WarpFailure:
        """Fit a geometry for an image of ``image_width x image_height`` pixels.

        Only the first four tie points are used.

        Returns:
            A ``Quad`` (three or more points), a ``Box`` (two points), or
            ``WarpFailure`` when the points are degenerate.
        """
        points = list(tiepoints)[:MAX_FIT_POINTS]
        if len(points) < MIN_FIT_POINTS:
            return self._fail(points, f"at least {MIN_FIT_POINTS} tie points are needed")
        if image_width <= 0 or image_height <= 0:
            return self._fail(points, f"image has no area ({image_width}x{image_height})")
        if len(points) == 2:
            return self._fit_box(points[0], points[1], float(image_width), float(image_height))
        return self._fit_quad(points, float(image_width), float(image_height))

    # -- three or four points ------------------------------------------------

    def _fit_quad(self, points: list[Tiepoint], width: float, height: float) -> Quad | WarpFailure:
        reference = points[0].geo.longitude
        image = [tp.image.as_tuple() for tp in points]
        geo = [(unwrap_longitude(tp.geo.longitude, reference), tp.geo.latitude) for tp in points]

        fit = poly_to_poly(image, geo)
        if isinstance(fit, Singular) and len(points) == MAX_FIT_POINTS:
            logger.warning(
                "Projective fit singular, falling back to affine fit on 3 points | reason=%s",
                fit.reason,
            )
            fit = poly_to_poly(image[:3], geo[:3])
        if isinstance(fit, Singular):
            return self._fail(points, f"tie points are collinear or coincident ({fit.reason})")

        corners = map_points(
            fit.matrix, [(0.0, 0.0), (width, 0.0), (width, height), (0.0, height)]
        )
        if not np.all(np.isfinite(corners)):
            return self._fail(points, "fitted transform sends an image corner to infinity")
        nw, ne, se, sw = (GeoPoint(float(lon), float(lat)) for lon, lat in corners)
        logger.info("Quad fitted | points=%d | nw=%s | se=%s", len(points), nw, se)
        return Quad(nw=nw, ne=ne, se=se, sw=sw)

    # -- two points ----------------------------------------------------------

    def _fit_box(self, a: Tiepoint, b: Tiepoint, width: float, height: float) -> Box | WarpFailure:
        pixel_dist = math.hypot(b.image.x - a.image.x, b.image.y - a.image.y)
        geo_dist = distance_m(a.geo, b.geo)
        if pixel_dist < _MIN_SEPARATION_PX or geo_dist < _MIN_SEPARATION_M:
            return self._fail([a, b], "tie points are coincident")

        rotation = normalize_signed_degrees(
            _image_heading(a.image, b.image) - bearing_deg(a.geo, b.geo)
        )

        # Undo the rotation so the remaining mapping is axis aligned.
        unrotate = rotation_about(-rotation, width / 2.0, height / 2.0)
        ax, ay = map_point(unrotate, a.image.x, a.image.y)
        bx, by = map_point(unrotate, b.image.x, b.image.y)

        mid_lon = (a.geo.longitude + unwrap_longitude(b.geo.longitude, a.geo.longitude)) / 2.0
        mid_lat = (a.geo.latitude + b.geo.latitude) / 2.0
        deg_lon_per_px, deg_lat_per_px = _degrees_per_pixel(
            GeoPoint(mid_lon, mid_lat), geo_dist / pixel_dist
        )

        mid_x = (ax + bx) / 2.0
        mid_y = (ay + by) / 2.0
        west = mid_lon - mid_x * deg_lon_per_px
        north = mid_lat + mid_y * deg_lat_per_px
        box = Box(
            north=north,
            south=north - height * deg_lat_per_px,
            east=wrap_longitude(west + width * deg_lon_per_px),
            west=wrap_longitude(west),
            rotation=rotation,
        )
        logger.info(
            "Box fitted | north=%.6f | south=%.6f | east=%.6f | west=%.6f | rotation=%.2f",
            box.north,
            box.south,
            box.east,
            box.west,
            box.rotation,
        )
        return box

    @staticmethod
    def _fail(points: Sequence[Tiepoint], reason: str) -> WarpFailure:
        logger.info("Warp fit failed | points=%d | reason=%s", len(points), reason)
        return WarpFailure(reason)

    # -- helpers for the map editor -----------------------------------------

    def guess_geolocation(
        self, tiepoints: Sequence[Tiepoint], image_point: ImagePoint
    ) -> GeoPoint | None:
        """Estimate the location of *image_point* from existing tie points.

        Uses an affine fit of the first three tie points, or with only
        two a geodesic scale / bearing estimate. Returns ``None`` when
        there are too few or degenerate tie points.
        """
        points = list(tiepoints)
        if len(points) >= 3:
            reference = points[0].geo.longitude
            fit = poly_to_poly(
                [tp.image.as_tuple() for tp in points[:3]],
                [(unwrap_longitude(tp.geo.longitude, reference), tp.geo.latitude) for tp in points[:3]],
            )
            if isinstance(fit, Singular):
                return None
            lon, lat = map_point(fit.matrix, image_point.x, image_point.y)
            return GeoPoint(lon, lat)

        if len(points) == 2:
            a, b = points
            pixel_dist = math.hypot(b.image.x - a.image.x, b.image.y - a.image.y)
            geo_dist = distance_m(a.geo, b.geo)
            if pixel_dist < _MIN_SEPARATION_PX or geo_dist < _MIN_SEPARATION_M:
                return None
            rotation = _image_heading(a.image, b.image) - bearing_deg(a.geo, b.geo)
            offset_px = math.hypot(image_point.x - a.image.x, image_point.y - a.image.y)
            if offset_px < _MIN_SEPARATION_PX:
                return a.geo
            bearing = _image_heading(a.image, image_point) - rotation
            return destination(a.geo, bearing, offset_px * geo_dist / pixel_dist)

        return None


def corner_tiepoints(geometry: Geometry, width: float, height: float) -> list[Tiepoint] | None:
    """Pair the image's pixel corners (NW, NE, SE, SW) with their locations.

    Seeds the editor when an existing map without tie points is edited.
    Returns ``None`` for a degenerate geometry.
    """
    transform = GeoToImageTransform.for_geometry(geometry, width, height)
    if transform is None:
        return None
    corners = [
        ImagePoint(0.0, 0.0),
        ImagePoint(width, 0.0),
        ImagePoint(width, height),
        ImagePoint(0.0, height),
    ]
    return [Tiepoint(image=corner, geo=transform.image_to_geo(corner)) for corner in corners]


def _image_heading(start: ImagePoint, end: ImagePoint) -> float:
    """Direction from *start* to *end*, degrees clockwise from image "up"."""
    return 90.0 - math.degrees(math.atan2(-(end.y - start.y), end.x - start.x))


def _degrees_per_pixel(center: GeoPoint, meters_per_px: float) -> tuple[float, float]:
    lon, lat = center.longitude, center.latitude
    m_per_deg_lon = distance_m(GeoPoint(lon - 0.5, lat), GeoPoint(lon + 0.5, lat))
    m_per_deg_lat = distance_m(GeoPoint(lon, lat - 0.5), GeoPoint(lon, lat + 0.5))
    return (meters_per_px / m_per_deg_lon, meters_per_px / m_per_deg_lat)
