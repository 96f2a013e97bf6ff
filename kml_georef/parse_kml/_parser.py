"""Recursive-descent KML parser.

One method per recognised element. Each method receives the element's
start token, consumes the stream up to and including the matching end
token, and returns the parsed value. Unrecognised children are consumed
with ``skip_subtree``.

Structure handled::

    kml
    ├── Document            (flattened into the top level)
    │   ├── Folder          (one level; nested folders are skipped)
    │   ├── GroundOverlay
    │   ├── Placemark
    │   └── Style / StyleMap
    ├── Folder / GroundOverlay / Placemark / Style / StyleMap
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from kml_georef.core.constants import DEFAULT_HOTSPOT, DEFAULT_ICON_SCALE
from kml_georef.models.feature import Folder, HotspotUnits, IconStyle, Marker, Overlay
from kml_georef.models.geo import GeoPoint, ImagePoint, Tiepoint
from kml_georef.models.geometry import Box, Quad
from kml_georef.parse_kml._constants import NORMAL_STYLE_KEY, Tag
from kml_georef.parse_kml._normalization import parse_coordinate_tuples, parse_pair
from kml_georef.parse_kml._styles import StyleScope, style_id
from kml_georef.parse_kml._validation import (
    KmlParseError,
    KmlValidationError,
    parse_float,
    validate_lonlat,
)

if TYPE_CHECKING:
    from kml_georef.models.feature import Feature
    from kml_georef.parse_kml._reader import Token, TokenStream

logger = logging.getLogger("kml_georef.parse_kml")

_QUAD_CORNER_COUNT = 4


class DocumentParser:
    """Parses one KML document from a :class:`TokenStream`."""

    def __init__(self, stream: TokenStream) -> None:
        self._stream = stream

    def parse(self) -> list[Feature]:
        root = self._stream.next_token()
        if root.tag is not Tag.KML:
            msg = f"Not a KML document - root element is <{root.raw_tag}>"
            raise KmlParseError(msg)
        features = self._parse_scope(root, allow_documents=True)
        self._stream.drain()
        return features

    # -- containers ----------------------------------------------------------

    def _parse_scope(self, start: Token, *, allow_documents: bool) -> list[Feature]:
        """Parse the ``kml`` root or a ``Document`` and resolve its styles."""
        scope = StyleScope()
        features: list[Feature] = []
        for token in self._stream.children(start):
            if token.tag is Tag.DOCUMENT and allow_documents:
                features.extend(self._parse_scope(token, allow_documents=False))
            elif token.tag is Tag.FOLDER:
                features.append(self._parse_folder(token))
            elif not self._parse_leaf_feature(token, features, scope):
                self._stream.skip_subtree(token)
        return scope.resolve(features)

    def _parse_folder(self, start: Token) -> Folder:
        scope = StyleScope()
        name = ""
        description = ""
        children: list[Feature] = []
        for token in self._stream.children(start):
            if token.tag is Tag.NAME:
                name = self._stream.read_text(token)
            elif token.tag is Tag.DESCRIPTION:
                description = self._stream.read_text(token)
            elif not self._parse_leaf_feature(token, children, scope):
                if token.tag is Tag.FOLDER:
                    logger.debug("Skipping nested folder inside '%s'", name)
                self._stream.skip_subtree(token)
        return Folder(
            name=name,
            description=description,
            children=tuple(scope.resolve(children)),  # type: ignore[arg-type]
        )

    def _parse_leaf_feature(self, token: Token, features: list[Feature], scope: StyleScope) -> bool:
        """Handle elements allowed in any scope; return ``False`` if not consumed."""
        if token.tag is Tag.GROUND_OVERLAY:
            features.append(self._parse_ground_overlay(token))
        elif token.tag is Tag.PLACEMARK:
            marker = self._parse_placemark(token)
            if marker is not None:
                features.append(marker)
        elif token.tag is Tag.STYLE:
            self._parse_style(token, scope)
        elif token.tag is Tag.STYLE_MAP:
            self._parse_style_map(token, scope)
        else:
            return False
        return True

    # -- GroundOverlay -------------------------------------------------------

    def _parse_ground_overlay(self, start: Token) -> Overlay:
        name = ""
        description = ""
        href = ""
        box: Box | None = None
        quad: Quad | None = None
        tiepoints: list[Tiepoint] = []
        for token in self._stream.children(start):
            if token.tag is Tag.NAME:
                name = self._stream.read_text(token)
            elif token.tag is Tag.DESCRIPTION:
                description = self._stream.read_text(token)
            elif token.tag is Tag.ICON:
                href = self._parse_icon_href(token)
            elif token.tag is Tag.LAT_LON_BOX:
                box = self._parse_lat_lon_box(token)
            elif token.tag is Tag.LAT_LON_QUAD:
                quad = self._parse_lat_lon_quad(token)
            elif token.tag is Tag.EXTENDED_DATA:
                tiepoints.extend(self._parse_extended_data(token))
            else:
                self._stream.skip_subtree(token)

        geometry = quad if quad is not None else box
        if geometry is None:
            msg = f"GroundOverlay '{name}' has neither <LatLonBox> nor <gx:LatLonQuad>"
            raise KmlValidationError(msg)
        return Overlay(
            name=name,
            description=description,
            image_ref=href,
            geometry=geometry,
            tiepoints=tuple(tiepoints),
        )

    def _parse_icon_href(self, start: Token) -> str:
        href = ""
        for token in self._stream.children(start):
            if token.tag is Tag.HREF:
                href = self._stream.read_text(token)
            else:
                self._stream.skip_subtree(token)
        return href

    def _parse_lat_lon_box(self, start: Token) -> Box:
        values = {Tag.NORTH: 0.0, Tag.SOUTH: 0.0, Tag.EAST: 0.0, Tag.WEST: 0.0, Tag.ROTATION: 0.0}
        for token in self._stream.children(start):
            if token.tag in values:
                values[token.tag] = parse_float(self._stream.read_text(token), token.tag.value)
            else:
                self._stream.skip_subtree(token)

        context = "<LatLonBox>"
        validate_lonlat(values[Tag.WEST], values[Tag.NORTH], context)
        validate_lonlat(values[Tag.EAST], values[Tag.SOUTH], context)
        return Box(
            north=values[Tag.NORTH],
            south=values[Tag.SOUTH],
            east=values[Tag.EAST],
            west=values[Tag.WEST],
            rotation=values[Tag.ROTATION],
        )

    def _parse_lat_lon_quad(self, start: Token) -> Quad:
        coords: list[tuple[float, float]] = []
        for token in self._stream.children(start):
            if token.tag is Tag.COORDINATES:
                coords = parse_coordinate_tuples(self._stream.read_text(token), "gx:LatLonQuad")
            else:
                self._stream.skip_subtree(token)

        if len(coords) != _QUAD_CORNER_COUNT:
            msg = f"<gx:LatLonQuad> needs exactly 4 coordinate tuples, got {len(coords)}"
            raise KmlValidationError(msg)
        for lon, lat in coords:
            validate_lonlat(lon, lat, "<gx:LatLonQuad>")
        # File order is SW, SE, NE, NW (counter-clockwise from lower left).
        sw, se, ne, nw = (GeoPoint(lon, lat) for lon, lat in coords)
        return Quad(nw=nw, ne=ne, se=se, sw=sw)

    def _parse_extended_data(self, start: Token) -> list[Tiepoint]:
        tiepoints: list[Tiepoint] = []
        for token in self._stream.children(start):
            if token.tag is Tag.TIEPOINT:
                tiepoints.append(self._parse_tiepoint(token))
            else:
                self._stream.skip_subtree(token)
        return tiepoints

    def _parse_tiepoint(self, start: Token) -> Tiepoint:
        image: ImagePoint | None = None
        geo: GeoPoint | None = None
        for token in self._stream.children(start):
            if token.tag is Tag.IMAGE:
                if image is not None:
                    msg = "Duplicate <tie:image> in <tie:tiepoint>"
                    raise KmlValidationError(msg)
                image = ImagePoint(*parse_pair(self._stream.read_text(token), "tie:image"))
            elif token.tag is Tag.GEO:
                if geo is not None:
                    msg = "Duplicate <tie:geo> in <tie:tiepoint>"
                    raise KmlValidationError(msg)
                lon, lat = parse_pair(self._stream.read_text(token), "tie:geo")
                validate_lonlat(lon, lat, "<tie:geo>")
                geo = GeoPoint(lon, lat)
            else:
                self._stream.skip_subtree(token)

        if image is None or geo is None:
            missing = "tie:image" if image is None else "tie:geo"
            msg = f"<tie:tiepoint> is missing <{missing}>"
            raise KmlValidationError(msg)
        return Tiepoint(image=image, geo=geo)

    # -- Placemark -----------------------------------------------------------

    def _parse_placemark(self, start: Token) -> Marker | None:
        name = ""
        description = ""
        style_url = ""
        point: GeoPoint | None = None
        for token in self._stream.children(start):
            if token.tag is Tag.NAME:
                name = self._stream.read_text(token)
            elif token.tag is Tag.DESCRIPTION:
                description = self._stream.read_text(token)
            elif token.tag is Tag.STYLE_URL:
                style_url = self._stream.read_text(token)
            elif token.tag is Tag.POINT:
                point = self._parse_point(token)
            else:
                self._stream.skip_subtree(token)

        if point is None:
            logger.debug("Skipping non-point placemark '%s'", name)
            return None
        return Marker(name=name, description=description, point=point, style_url=style_url)

    def _parse_point(self, start: Token) -> GeoPoint | None:
        point: GeoPoint | None = None
        for token in self._stream.children(start):
            if token.tag is Tag.COORDINATES:
                coords = parse_coordinate_tuples(self._stream.read_text(token), "Point")
                if not coords:
                    msg = "<Point> has empty <coordinates>"
                    raise KmlValidationError(msg)
                lon, lat = coords[0]
                validate_lonlat(lon, lat, "<Point>")
                point = GeoPoint(lon, lat)
            else:
                self._stream.skip_subtree(token)
        return point

    # -- Styles --------------------------------------------------------------

    def _parse_style(self, start: Token, scope: StyleScope) -> None:
        style_key = start.attribute("id").strip()
        icon: IconStyle | None = None
        for token in self._stream.children(start):
            if token.tag is Tag.ICON_STYLE:
                icon = self._parse_icon_style(token)
            else:
                self._stream.skip_subtree(token)
        if style_key and icon is not None:
            scope.icon_styles[style_key] = icon

    def _parse_icon_style(self, start: Token) -> IconStyle:
        href = ""
        scale = DEFAULT_ICON_SCALE
        hotspot = (DEFAULT_HOTSPOT, DEFAULT_HOTSPOT, HotspotUnits.FRACTION, HotspotUnits.FRACTION)
        for token in self._stream.children(start):
            if token.tag is Tag.ICON:
                href = self._parse_icon_href(token)
            elif token.tag is Tag.SCALE:
                scale = parse_float(self._stream.read_text(token), "scale")
            elif token.tag is Tag.HOT_SPOT:
                hotspot = (
                    parse_float(token.attribute("x", "0.5"), "hotSpot"),
                    parse_float(token.attribute("y", "0.5"), "hotSpot"),
                    HotspotUnits.parse(token.attribute("xunits")),
                    HotspotUnits.parse(token.attribute("yunits")),
                )
                self._stream.skip_subtree(token)
            else:
                self._stream.skip_subtree(token)
        return IconStyle(
            href=href,
            scale=scale,
            hotspot_x=hotspot[0],
            hotspot_y=hotspot[1],
            x_units=hotspot[2],
            y_units=hotspot[3],
        )

    def _parse_style_map(self, start: Token, scope: StyleScope) -> None:
        map_key = start.attribute("id").strip()
        pairs: list[tuple[str, str]] = []
        for token in self._stream.children(start):
            if token.tag is Tag.PAIR:
                pairs.append(self._parse_pair(token))
            else:
                self._stream.skip_subtree(token)

        target = next((ref for key, ref in pairs if key == NORMAL_STYLE_KEY and ref), "")
        if not target:
            target = next((ref for _key, ref in pairs if ref), "")
        if map_key and target:
            scope.style_maps[map_key] = target

    def _parse_pair(self, start: Token) -> tuple[str, str]:
        key = ""
        ref = ""
        for token in self._stream.children(start):
            if token.tag is Tag.KEY:
                key = self._stream.read_text(token)
            elif token.tag is Tag.STYLE_URL:
                ref = style_id(self._stream.read_text(token))
            else:
                self._stream.skip_subtree(token)
        return (key, ref)
