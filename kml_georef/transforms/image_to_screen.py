"""Image pixel <-> viewport mapping (pan, zoom, intrinsic orientation).

The transform is a 3x3 affine matrix built in three steps:

1. rotate the image by its intrinsic orientation (0/90/180/270) and
   shift it back into the positive quadrant,
2. centre it in the viewport,
3. accumulate user pans (``translate``) and zooms (``zoom``).

Pans and zooms are clamped so that at least one pixel of the image
stays visible: a pan that would push the image off screen is truncated
per axis, and ``translate`` reports whether that happened.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from kml_georef.core.exceptions import ValidationError
from kml_georef.transforms.projective import (
    Singular,
    invert,
    map_point,
    rotation_about,
    scale_about,
    translation,
)

if TYPE_CHECKING:
    from kml_georef.transforms.projective import Matrix

logger = logging.getLogger("kml_georef.transforms.image_to_screen")

VALID_ORIENTATIONS = (0, 90, 180, 270)

# Minimum number of image pixels (in screen units) kept inside the viewport.
_MIN_VISIBLE_PX = 1.0


class ImageToScreenTransform:
    """Viewport mapping for one displayed image.

    The transform is unavailable (conversions return ``None``) until both
    :meth:`set_image` and :meth:`set_viewport` have been called.
    """

    def __init__(self) -> None:
        self._image_size: tuple[float, float] | None = None
        self._orientation = 0
        self._viewport: tuple[float, float] | None = None
        self._matrix: Matrix | None = None
        self._zoom_level = 1.0

    # -- configuration -------------------------------------------------------

    def set_image(self, width: float, height: float, orientation: int = 0) -> None:
        """Display a new image, resetting pan and zoom.

        Raises:
            ValidationError: If the size is not positive or the
                orientation is not a multiple of 90 degrees.
        """
        if width <= 0 or height <= 0:
            msg = f"Image size must be positive, got {width}x{height}"
            raise ValidationError(msg, stage="image_to_screen")
        normalized = int(orientation) % 360
        if normalized not in VALID_ORIENTATIONS:
            msg = f"Image orientation must be a multiple of 90 degrees, got {orientation}"
            raise ValidationError(msg, stage="image_to_screen")
        self._image_size = (float(width), float(height))
        self._orientation = normalized
        self.reset()

    def set_viewport(self, width: float, height: float) -> None:
        """Set the viewport size, keeping the image point at the centre where it was."""
        if width <= 0 or height <= 0:
            msg = f"Viewport size must be positive, got {width}x{height}"
            raise ValidationError(msg, stage="image_to_screen")
        previous = self._viewport
        self._viewport = (float(width), float(height))
        if self._matrix is None or previous is None:
            self.reset()
            return
        shift = translation((width - previous[0]) / 2.0, (height - previous[1]) / 2.0)
        self._matrix = shift @ self._matrix
        self._keep_visible()

    def clear(self) -> None:
        """Forget the image; the viewport size is kept."""
        self._image_size = None
        self._orientation = 0
        self._matrix = None
        self._zoom_level = 1.0

    def reset(self) -> None:
        """Centre the image in the viewport at zoom level 1."""
        self._zoom_level = 1.0
        if self._image_size is None or self._viewport is None:
            self._matrix = None
            return

        width, height = self._image_size
        matrix = rotation_about(self._orientation)
        if self._orientation == 90:
            matrix = translation(height, 0.0) @ matrix
        elif self._orientation == 180:
            matrix = translation(width, height) @ matrix
        elif self._orientation == 270:
            matrix = translation(0.0, width) @ matrix

        rotated_w, rotated_h = (height, width) if self._orientation in (90, 270) else (width, height)
        view_w, view_h = self._viewport
        self._matrix = translation((view_w - rotated_w) / 2.0, (view_h - rotated_h) / 2.0) @ matrix

    # -- state ---------------------------------------------------------------

    @property
    def is_ready(self) -> bool:
        return self._matrix is not None

    @property
    def orientation(self) -> int:
        return self._orientation

    @property
    def image_size(self) -> tuple[float, float] | None:
        return self._image_size

    @property
    def viewport(self) -> tuple[float, float] | None:
        return self._viewport

    @property
    def zoom_level(self) -> float:
        return self._zoom_level

    @property
    def screen_center(self) -> tuple[float, float] | None:
        if self._viewport is None:
            return None
        return (self._viewport[0] / 2.0, self._viewport[1] / 2.0)

    # -- pan / zoom ----------------------------------------------------------

    def translate(self, dx: float, dy: float) -> bool:
        """Pan the image by ``(dx, dy)`` screen pixels.

        Returns:
            ``True`` if the full delta was applied, ``False`` if it was
            truncated to keep the image on screen (or nothing is displayed).
        """
        if self._matrix is None:
            return False
        lo_x, hi_x, lo_y, hi_y = self._allowed_shift()
        applied_dx = _clamp(dx, lo_x, hi_x)
        applied_dy = _clamp(dy, lo_y, hi_y)
        self._matrix = translation(applied_dx, applied_dy) @ self._matrix
        return applied_dx == dx and applied_dy == dy

    def zoom(self, factor: float, focus: tuple[float, float] | None = None) -> bool:
        """Scale the view by *factor* about *focus* (default: viewport centre).

        A focus point outside the image is moved onto the image's nearest
        on-screen edge first. Non-positive factors are rejected.

        Returns:
            ``True`` if the zoom was applied.
        """
        if self._matrix is None or not math.isfinite(factor) or factor <= 0:
            return False
        if focus is None:
            fx, fy = self.screen_center  # type: ignore[misc]
        else:
            left, top, right, bottom = self._image_bounds()
            fx = _clamp(focus[0], left, right)
            fy = _clamp(focus[1], top, bottom)
        self._matrix = scale_about(factor, factor, fx, fy) @ self._matrix
        self._zoom_level *= factor
        self._keep_visible()
        return True

    def set_zoom_level(self, level: float) -> bool:
        """Zoom about the viewport centre to an absolute zoom level."""
        if level <= 0:
            return False
        return self.zoom(level / self._zoom_level)

    # -- conversions ---------------------------------------------------------

    def image_to_screen(self, x: float, y: float) -> tuple[float, float] | None:
        if self._matrix is None:
            return None
        return map_point(self._matrix, x, y)

    def screen_to_image(self, x: float, y: float) -> tuple[float, float] | None:
        if self._matrix is None:
            return None
        inverse = invert(self._matrix)
        if isinstance(inverse, Singular):
            logger.warning("Screen transform not invertible | reason=%s", inverse.reason)
            return None
        return map_point(inverse.matrix, x, y)

    # -- internals -----------------------------------------------------------

    def _image_bounds(self) -> tuple[float, float, float, float]:
        """Axis-aligned ``(left, top, right, bottom)`` of the image on screen."""
        width, height = self._image_size  # type: ignore[misc]
        corners = [
            map_point(self._matrix, x, y)  # type: ignore[arg-type]
            for x, y in ((0.0, 0.0), (width, 0.0), (width, height), (0.0, height))
        ]
        xs = [x for x, _ in corners]
        ys = [y for _, y in corners]
        return (min(xs), min(ys), max(xs), max(ys))

    def _allowed_shift(self) -> tuple[float, float, float, float]:
        """Range of pans ``(lo_x, hi_x, lo_y, hi_y)`` that keep the image visible."""
        left, top, right, bottom = self._image_bounds()
        view_w, view_h = self._viewport  # type: ignore[misc]
        return (
            _MIN_VISIBLE_PX - right,
            view_w - _MIN_VISIBLE_PX - left,
            _MIN_VISIBLE_PX - bottom,
            view_h - _MIN_VISIBLE_PX - top,
        )

    def _keep_visible(self) -> None:
        lo_x, hi_x, lo_y, hi_y = self._allowed_shift()
        dx = _clamp(0.0, lo_x, hi_x)
        dy = _clamp(0.0, lo_y, hi_y)
        if dx or dy:
            logger.debug("Image pushed back on screen | dx=%.1f | dy=%.1f", dx, dy)
            self._matrix = translation(dx, dy) @ self._matrix  # type: ignore[operator]


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(max(value, lo), hi)
