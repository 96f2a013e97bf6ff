"""Write created maps as KML documents and KMZ archives.

The output is exactly what the parser reads back: a ``GroundOverlay``
with either a ``LatLonBox`` or a ``gx:LatLonQuad`` (corners in SW, SE,
NE, NW order), plus the tie points the user picked as
``ExtendedData/tie:tiepoint`` so the map can be edited again later.

KMZ layout::

    doc.kml
    images/<image file>
    map_orientation.properties     (only when the image is rotated)
"""

from __future__ import annotations

import logging
import re
import zipfile
from pathlib import Path
from typing import TYPE_CHECKING

from kml_georef.core.constants import (
    GX_NAMESPACE,
    KML_NAMESPACE,
    KMZ_DOCUMENT_NAME,
    KMZ_IMAGE_DIR,
    ORIENTATION_FILE_NAME,
    TIEPOINT_NAMESPACE,
)
from kml_georef.models.geometry import Box

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lxml.etree import _Element

    from kml_georef.models.geo import Tiepoint
    from kml_georef.models.geometry import Geometry

logger = logging.getLogger("kml_georef.create.kmz_writer")

_NON_NAME_CHARS = re.compile(r"[\W_]+")
_FALLBACK_FILE_NAME = "map"


# ---------------------------------------------------------------------------
# File names
# ---------------------------------------------------------------------------


def to_file_name(name: str) -> str:
    """Turn a map name into a file-name stem.

    Letters and digits are kept, every other run of characters becomes a
    single ``_``, and a trailing ``_`` is dropped.
    """
    stem = _NON_NAME_CHARS.sub("_", name).rstrip("_")
    return stem or _FALLBACK_FILE_NAME


def unique_path(directory: Path | str, stem: str, suffix: str) -> Path:
    """Return ``directory/stem+suffix``, numbered (``stem_2``...) if it already exists."""
    directory = Path(directory)
    candidate = directory / f"{stem}{suffix}"
    counter = 2
    while candidate.exists():
        candidate = directory / f"{stem}_{counter}{suffix}"
        counter += 1
    return candidate


# ---------------------------------------------------------------------------
# KML
# ---------------------------------------------------------------------------


def _kml(tag: str) -> str:
    return f"{{{KML_NAMESPACE}}}{tag}"


def _text_element(parent: _Element, tag: str, text: str) -> _Element:
    from lxml import etree  # type: ignore[attr-defined]

    element = etree.SubElement(parent, tag)
    element.text = text
    return element


def build_overlay_kml(
    name: str,
    image_href: str,
    geometry: Geometry,
    *,
    description: str = "",
    tiepoints: Sequence[Tiepoint] = (),
) -> bytes:
    """Serialise one ground overlay as a UTF-8 KML document."""
    from lxml import etree  # type: ignore[attr-defined]

    nsmap = {None: KML_NAMESPACE, "gx": GX_NAMESPACE, "tie": TIEPOINT_NAMESPACE}
    root = etree.Element(_kml("kml"), nsmap=nsmap)  # type: ignore[arg-type]
    overlay = etree.SubElement(root, _kml("GroundOverlay"))
    _text_element(overlay, _kml("name"), name)
    if description:
        _text_element(overlay, _kml("description"), description)
    icon = etree.SubElement(overlay, _kml("Icon"))
    _text_element(icon, _kml("href"), image_href)

    if isinstance(geometry, Box):
        box = etree.SubElement(overlay, _kml("LatLonBox"))
        for tag, value in (
            ("north", geometry.north),
            ("south", geometry.south),
            ("east", geometry.east),
            ("west", geometry.west),
            ("rotation", geometry.rotation),
        ):
            _text_element(box, _kml(tag), repr(float(value)))
    else:
        quad = etree.SubElement(overlay, f"{{{GX_NAMESPACE}}}LatLonQuad")
        corners = (geometry.sw, geometry.se, geometry.ne, geometry.nw)
        coordinates = " ".join(f"{p.longitude!r},{p.latitude!r}" for p in corners)
        _text_element(quad, _kml("coordinates"), coordinates)

    if tiepoints:
        extended = etree.SubElement(overlay, _kml("ExtendedData"))
        for tiepoint in tiepoints:
            element = etree.SubElement(extended, f"{{{TIEPOINT_NAMESPACE}}}tiepoint")
            _text_element(
                element,
                f"{{{TIEPOINT_NAMESPACE}}}image",
                "%d,%d" % (round(tiepoint.image.x), round(tiepoint.image.y)),
            )
            _text_element(
                element,
                f"{{{TIEPOINT_NAMESPACE}}}geo",
                "%.6f,%.6f" % (tiepoint.geo.longitude, tiepoint.geo.latitude),
            )

    return etree.tostring(root, xml_declaration=True, encoding="UTF-8", pretty_print=True)


# ---------------------------------------------------------------------------
# KMZ
# ---------------------------------------------------------------------------


def write_kmz(
    kmz_path: Path | str,
    name: str,
    geometry: Geometry,
    image_path: Path | str,
    *,
    description: str = "",
    tiepoints: Sequence[Tiepoint] = (),
    orientation: int = 0,
) -> Path:
    """Write a map archive holding the document, the image and its orientation.

    Returns:
        The archive path.

    Raises:
        OSError: If the image cannot be read or the archive cannot be written.
    """
    kmz_path = Path(kmz_path)
    image_path = Path(image_path)
    image_href = f"{KMZ_IMAGE_DIR}/{image_path.name.replace(' ', '_')}"
    kml = build_overlay_kml(
        name, image_href, geometry, description=description, tiepoints=tiepoints
    )

    with zipfile.ZipFile(kmz_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(KMZ_DOCUMENT_NAME, kml)
        zf.write(image_path, image_href)
        if orientation % 360:
            zf.writestr(ORIENTATION_FILE_NAME, f"{image_href}={orientation % 360}\n")

    logger.info(
        "KMZ written | path=%s | map=%s | image=%s | orientation=%d",
        kmz_path,
        name,
        image_href,
        orientation % 360,
    )
    return kmz_path
