"""Tag vocabulary of the KML subset understood by the parser."""

from __future__ import annotations

import enum


class Tag(enum.Enum):
    """Recognised element names, resolved once per parser token.

    Names are matched on the local part only, so ``gx:LatLonQuad`` and
    ``{http://www.google.com/kml/ext/2.2}LatLonQuad`` both resolve to
    ``LAT_LON_QUAD``. Anything unrecognised is ``OTHER``.
    """

    KML = "kml"
    DOCUMENT = "Document"
    FOLDER = "Folder"
    GROUND_OVERLAY = "GroundOverlay"
    PLACEMARK = "Placemark"
    NAME = "name"
    DESCRIPTION = "description"
    ICON = "Icon"
    HREF = "href"
    LAT_LON_BOX = "LatLonBox"
    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"
    ROTATION = "rotation"
    LAT_LON_QUAD = "LatLonQuad"
    COORDINATES = "coordinates"
    EXTENDED_DATA = "ExtendedData"
    TIEPOINT = "tiepoint"
    IMAGE = "image"
    GEO = "geo"
    POINT = "Point"
    STYLE_URL = "styleUrl"
    STYLE = "Style"
    STYLE_MAP = "StyleMap"
    PAIR = "Pair"
    KEY = "key"
    ICON_STYLE = "IconStyle"
    SCALE = "scale"
    HOT_SPOT = "hotSpot"
    OTHER = ""

    @classmethod
    def resolve(cls, raw_tag: str) -> Tag:
        return _TAGS_BY_NAME.get(local_name(raw_tag), cls.OTHER)


_TAGS_BY_NAME = {tag.value: tag for tag in Tag if tag is not Tag.OTHER}


def local_name(raw_tag: str) -> str:
    """Strip a ``{namespace}`` or undeclared ``prefix:`` from an element name."""
    return raw_tag.rsplit("}", 1)[-1].rsplit(":", 1)[-1]


# StyleMap pair key whose style is used for display.
NORMAL_STYLE_KEY = "normal"

# Byte-order marks tolerated at the start of a document.
UTF8_BOM = b"\xef\xbb\xbf"
UNICODE_BOM = "\ufeff"
