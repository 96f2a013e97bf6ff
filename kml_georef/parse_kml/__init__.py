"""KML parsing - streaming, recursive-descent.

Parses a KML document into ``Overlay`` / ``Folder`` / ``Marker``
features. The parser is single-pass and forward-only on top of lxml's
``iterparse`` events.

The parsing pipeline is split into focused stages:
- **_constants**: ``Tag`` enum, resolved once per token
- **_reader**: token stream and the ``skip_subtree`` primitive
- **_normalization**: document input (BOM stripping) and coordinate text
- **_validation**: exceptions, strict number parsing, WGS 84 bounds
- **_styles**: scoped Style / StyleMap tables and the icon post-pass
- **_parser**: recursive descent over the supported elements

Supported KML structures:
- ``GroundOverlay`` with ``LatLonBox`` (incl. rotation) or ``gx:LatLonQuad``
- Tie points in ``ExtendedData/tie:tiepoint``
- Point ``Placemark`` features with ``styleUrl``
- ``Document`` and one level of ``Folder``
- Document- and Folder-scoped ``Style`` / ``StyleMap`` icon styles

A malformed value anywhere aborts the whole document: the caller gets
an exception, never a partial feature list.
"""

from __future__ import annotations

import logging
from typing import IO, TYPE_CHECKING

from kml_georef.models.feature import Folder, Marker, Overlay
from kml_georef.parse_kml._constants import Tag
from kml_georef.parse_kml._normalization import (
    open_document,
    parse_coordinate_tuples,
    parse_pair,
)
from kml_georef.parse_kml._parser import DocumentParser
from kml_georef.parse_kml._reader import TokenStream
from kml_georef.parse_kml._validation import (
    InvalidCoordinateError,
    KmlParseError,
    KmlValidationError,
)

if TYPE_CHECKING:
    from pathlib import Path

    from kml_georef.models.feature import Feature

logger = logging.getLogger("kml_georef.parse_kml")

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "InvalidCoordinateError",
    "KmlParseError",
    "KmlValidationError",
    "Tag",
    "parse",
    "parse_coordinate_tuples",
    "parse_kml_file",
    "parse_pair",
]


def parse(document: bytes | str | IO[bytes] | IO[str], *, source_name: str = "") -> list[Feature]:
    """Parse a KML document into top-level features.

    Args:
        document: Raw bytes, text, or an open (binary or text) file object.
        source_name: Name used in log messages.

    Returns:
        Top-level features in document order. Folders hold their own
        children; Document contents are flattened into the top level.

    Raises:
        KmlParseError: If the document is not well-formed KML.
        KmlValidationError: If a value is malformed or a required
            element is missing.
        InvalidCoordinateError: If a coordinate is outside WGS 84 bounds.
    """
    stream = TokenStream(open_document(document))
    features = DocumentParser(stream).parse()

    overlays = sum(
        len(f.overlays) if isinstance(f, Folder) else isinstance(f, Overlay) for f in features
    )
    markers = sum(
        len(f.markers) if isinstance(f, Folder) else isinstance(f, Marker) for f in features
    )
    logger.info(
        "Parsed KML | source=%s | features=%d | overlays=%d | markers=%d",
        source_name or "<stream>",
        len(features),
        overlays,
        markers,
    )
    return features


def parse_kml_file(kml_path: Path | str) -> list[Feature]:
    """Parse a KML file from disk.

    Raises:
        KmlParseError: If the file cannot be read or is not valid KML.
    """
    from pathlib import Path

    kml_path = Path(kml_path)
    try:
        with kml_path.open("rb") as fh:
            return parse(fh, source_name=kml_path.name)
    except OSError as exc:
        msg = f"Cannot read KML file: {exc}"
        raise KmlParseError(msg, source=str(kml_path)) from exc
