"""Display state: the conversion facade used by rendering.

Composes the overlay's geo->image transform with the viewport's
image->screen transform::

    screen = image_to_screen(geo_to_image(geo))

When no map or no viewport is set yet, conversions return ``None``
instead of raising. A ``DisplayState`` is single-owner: the rendering
context that handles gestures is the only one mutating it.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from kml_georef.models.geo import GeoPoint, ImagePoint
from kml_georef.models.geometry import Box
from kml_georef.transforms.geo_to_image import GeoToImageTransform
from kml_georef.transforms.image_to_screen import ImageToScreenTransform
from kml_georef.utils.geodesy import normalize_degrees

if TYPE_CHECKING:
    from kml_georef.models.feature import Overlay

logger = logging.getLogger("kml_georef.transforms.display_state")

# Headings this close to 0 or 360 degrees are reported as exactly north-up.
NORTH_UP_TOLERANCE_DEG = 1e-9


class DisplayState:
    """Current map, viewport, pan and zoom.

    Attributes:
        follow_mode: Whether the caller keeps the GPS location centred.
            Stored for the UI; not interpreted here.
    """

    def __init__(self) -> None:
        self.follow_mode = False
        self._overlay: Overlay | None = None
        self._geo_to_image: GeoToImageTransform | None = None
        self._image_to_screen = ImageToScreenTransform()
        # Bumped on every map change; guards the memoised north heading.
        self._map_version = 0
        self._heading_cache: tuple[int, float] | None = None

    # -- configuration -------------------------------------------------------

    @property
    def overlay(self) -> Overlay | None:
        return self._overlay

    def set_map(
        self,
        overlay: Overlay,
        image_width: float,
        image_height: float,
        orientation: int | None = None,
    ) -> bool:
        """Display *overlay* using an image of the given pixel size.

        The intrinsic image orientation is read from the overlay's source
        unless given explicitly.

        Returns:
            ``False`` if the overlay geometry is degenerate; conversions
            then stay unavailable.

        Raises:
            ValidationError: If the image size or orientation is invalid.
                The previously displayed map stays in place.
        """
        if orientation is None:
            orientation = (
                overlay.source.image_orientation(overlay.image_ref)
                if overlay.source is not None
                else 0
            )
        geo_to_image = GeoToImageTransform.for_geometry(overlay.geometry, image_width, image_height)
        self._image_to_screen.set_image(image_width, image_height, orientation)
        self._overlay = overlay
        self._geo_to_image = geo_to_image
        self._map_version += 1
        logger.info(
            "Map displayed | map=%s | size=%dx%d | orientation=%d",
            overlay.name,
            image_width,
            image_height,
            orientation,
        )
        return self._geo_to_image is not None

    def clear_map(self) -> None:
        self._overlay = None
        self._geo_to_image = None
        self._image_to_screen.clear()
        self._map_version += 1

    def set_viewport(self, width: float, height: float) -> None:
        self._image_to_screen.set_viewport(width, height)

    @property
    def geo_to_image(self) -> GeoToImageTransform | None:
        return self._geo_to_image

    @property
    def image_to_screen(self) -> ImageToScreenTransform:
        return self._image_to_screen

    # -- conversions ---------------------------------------------------------

    def convert_geo_to_screen(self, longitude: float, latitude: float) -> tuple[float, float] | None:
        if self._geo_to_image is None:
            return None
        x, y = self._geo_to_image.lonlat_to_pixel(longitude, latitude)
        return self._image_to_screen.image_to_screen(x, y)

    def convert_screen_to_geo(self, x: float, y: float) -> GeoPoint | None:
        if self._geo_to_image is None:
            return None
        image = self._image_to_screen.screen_to_image(x, y)
        if image is None:
            return None
        return self._geo_to_image.image_to_geo(ImagePoint(*image))

    # -- pan / zoom ----------------------------------------------------------

    def translate(self, dx: float, dy: float) -> bool:
        return self._image_to_screen.translate(dx, dy)

    def zoom(self, factor: float, focus: tuple[float, float] | None = None) -> bool:
        return self._image_to_screen.zoom(factor, focus)

    @property
    def zoom_level(self) -> float:
        return self._image_to_screen.zoom_level

    def set_zoom_level(self, level: float) -> bool:
        return self._image_to_screen.set_zoom_level(level)

    def center_on_geo_location(self, longitude: float, latitude: float) -> bool:
        """Pan so the location sits at the viewport centre.

        Returns:
            ``False`` (and leaves the view alone) if the location is
            outside the map image or nothing is displayed.
        """
        if self._geo_to_image is None or not self._image_to_screen.is_ready:
            return False
        x, y = self._geo_to_image.lonlat_to_pixel(longitude, latitude)
        if not (0.0 <= x <= self._geo_to_image.width and 0.0 <= y <= self._geo_to_image.height):
            return False
        sx, sy = self._image_to_screen.image_to_screen(x, y)  # type: ignore[misc]
        cx, cy = self._image_to_screen.screen_center  # type: ignore[misc]
        self._image_to_screen.translate(cx - sx, cy - sy)
        return True

    # -- derived quantities --------------------------------------------------

    def compute_north_heading(self) -> float:
        """Screen heading of north in degrees, ``[0, 360)``.

        0 means north is straight up; 90 means north points right.
        Returns 0 when no map is displayed.
        """
        if self._heading_cache is not None and self._heading_cache[0] == self._map_version:
            return self._heading_cache[1]
        if self._overlay is None or self._geo_to_image is None:
            return 0.0

        geometry = self._overlay.geometry
        if isinstance(geometry, Box):
            lon = geometry.center.longitude
            south_lat, north_lat = geometry.south, geometry.north
        else:
            nw, _ne, se, _sw = geometry.corner_lonlats()
            lon = (nw[0] + se[0]) / 2.0
            south_lat, north_lat = min(nw[1], se[1]), max(nw[1], se[1])

        sx, sy = self._geo_to_image.lonlat_to_pixel(lon, south_lat)
        nx, ny = self._geo_to_image.lonlat_to_pixel(lon, north_lat)
        dx = nx - sx
        dy = -(ny - sy)
        heading = 90.0 - math.degrees(math.atan2(dy, dx)) + self._image_to_screen.orientation
        heading = normalize_degrees(heading)
        if min(heading, 360.0 - heading) < NORTH_UP_TOLERANCE_DEG:
            heading = 0.0

        self._heading_cache = (self._map_version, heading)
        return heading

    def meters_per_pixel(self) -> float | None:
        """Ground resolution of the unzoomed map image."""
        if self._geo_to_image is None:
            return None
        return self._geo_to_image.meters_per_pixel()

    def screen_center_geo_location(self) -> GeoPoint | None:
        center = self._image_to_screen.screen_center
        if center is None:
            return None
        return self.convert_screen_to_geo(*center)

    def map_center_geo_location(self) -> GeoPoint | None:
        if self._geo_to_image is None:
            return None
        return self._geo_to_image.map_center()
