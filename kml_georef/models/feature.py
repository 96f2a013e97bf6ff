"""Data model for parsed KML features.

A parsed document is a list of features: ``Overlay`` (a georeferenced
raster map, KML ``GroundOverlay``), ``Folder`` (one level of grouping)
and ``Marker`` (a point placemark with an optional icon style).

Overlays are the central entity. Their geometric queries (containment,
distance, area) are implemented in ``kml_georef.geometry.measure`` and
exposed here as methods.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from kml_georef.core.constants import DEFAULT_HOTSPOT, DEFAULT_ICON_SCALE
from kml_georef.models.geometry import Quad

if TYPE_CHECKING:
    from pathlib import Path

    from kml_georef.models.geo import GeoPoint, Tiepoint
    from kml_georef.models.geometry import Geometry
    from kml_georef.models.source import MapSource


# ---------------------------------------------------------------------------
# Icon style
# ---------------------------------------------------------------------------


class HotspotUnits(enum.Enum):
    """Units of a KML ``hotSpot`` coordinate."""

    FRACTION = "fraction"
    PIXELS = "pixels"
    INSET_PIXELS = "insetPixels"

    @classmethod
    def parse(cls, text: str | None) -> HotspotUnits:
        """Parse a KML ``xunits`` / ``yunits`` value, defaulting to fraction."""
        for units in cls:
            if units.value == (text or "").strip():
                return units
        return cls.FRACTION


@dataclass(frozen=True, slots=True)
class IconStyle:
    """Marker icon descriptor (KML ``IconStyle``).

    Attributes:
        href: Icon image path, relative to the document's container.
        scale: Icon scale factor.
        hotspot_x: Hotspot x, measured from the left edge.
        hotspot_y: Hotspot y, measured from the bottom edge (KML convention).
        x_units: Units of ``hotspot_x``.
        y_units: Units of ``hotspot_y``.
    """

    href: str = ""
    scale: float = DEFAULT_ICON_SCALE
    hotspot_x: float = DEFAULT_HOTSPOT
    hotspot_y: float = DEFAULT_HOTSPOT
    x_units: HotspotUnits = HotspotUnits.FRACTION
    y_units: HotspotUnits = HotspotUnits.FRACTION

    def anchor_offset(self, width: float, height: float) -> tuple[float, float]:
        """Return the unscaled offset from the marker location to the icon's top-left corner.

        Offsets grow right and down, so an icon anchored at its centre
        yields ``(-width / 2, -height / 2)``.
        """
        if self.x_units is HotspotUnits.PIXELS:
            dx = -self.hotspot_x
        elif self.x_units is HotspotUnits.INSET_PIXELS:
            dx = self.hotspot_x - width
        else:
            dx = -self.hotspot_x * width

        if self.y_units is HotspotUnits.PIXELS:
            dy = self.hotspot_y - height
        elif self.y_units is HotspotUnits.INSET_PIXELS:
            dy = height - self.hotspot_y
        else:
            dy = height * (self.hotspot_y - 1.0)
        return (dx, dy)


# ---------------------------------------------------------------------------
# Features
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, eq=False)
class Overlay:
    """A georeferenced raster map (KML ``GroundOverlay``).

    Equality and hashing use ``(source container, image_ref)``: two
    overlays read from the same container for the same image are the
    same map even when their geometry differs.

    Attributes:
        name: Display name.
        description: Free-text description.
        image_ref: Image path relative to the source container.
        geometry: ``Box`` or ``Quad`` anchoring the image.
        tiepoints: Optional pixel/geo correspondences recorded by the editor.
        source: Container the overlay was read from (``None`` until catalogued).
    """

    name: str
    image_ref: str
    geometry: Geometry
    description: str = ""
    tiepoints: tuple[Tiepoint, ...] = ()
    source: MapSource | None = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Overlay):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    @property
    def identity(self) -> tuple[Path | None, str]:
        container = self.source.container if self.source is not None else None
        return (container, self.image_ref)

    @property
    def is_quad(self) -> bool:
        return isinstance(self.geometry, Quad)

    @property
    def has_corner_tiepoints(self) -> bool:
        """Whether enough tie points exist to outline the map's four corners."""
        return len(self.tiepoints) >= 4

    def with_source(self, source: MapSource) -> Overlay:
        return replace(self, source=source)

    def contains(self, longitude: float, latitude: float) -> bool:
        """Whether the location lies strictly inside the map image."""
        from kml_georef.geometry.measure import contains

        return contains(self, longitude, latitude)

    def distance_from(self, longitude: float, latitude: float) -> float:
        """Distance in metres from the location to the map; 0 when contained."""
        from kml_georef.geometry.measure import distance_from

        return distance_from(self, longitude, latitude)

    def area(self) -> float:
        """Approximate covered area in square kilometres."""
        from kml_georef.geometry.measure import area_km2

        return area_km2(self.geometry)


@dataclass(frozen=True, slots=True)
class Marker:
    """A point placemark.

    ``style_url`` holds the style or style-map id the document referenced;
    ``icon`` is filled in once the enclosing scope's styles are resolved.
    """

    name: str
    point: GeoPoint
    description: str = ""
    style_url: str = ""
    icon: IconStyle | None = None


@dataclass(frozen=True, slots=True)
class Folder:
    """One level of feature grouping (KML ``Folder``)."""

    name: str
    description: str = ""
    children: tuple[Overlay | Marker, ...] = field(default_factory=tuple)

    @property
    def overlays(self) -> list[Overlay]:
        return [child for child in self.children if isinstance(child, Overlay)]

    @property
    def markers(self) -> list[Marker]:
        return [child for child in self.children if isinstance(child, Marker)]


Feature = Overlay | Folder | Marker
