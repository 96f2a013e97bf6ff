"""Shared pytest fixtures for the kml-georef test suite."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from kml_georef.models.geometry import Box

# ---------------------------------------------------------------------------
# Sample KML documents
# ---------------------------------------------------------------------------

KML_HEADER = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<kml xmlns="http://www.opengis.net/kml/2.2"'
    ' xmlns:gx="http://www.google.com/kml/ext/2.2"'
    ' xmlns:tie="urn:tiepoints">\n'
)
KML_FOOTER = "</kml>\n"


def kml_document(body: str) -> str:
    """Wrap *body* in a ``kml`` root element with the usual namespaces."""
    return KML_HEADER + body + KML_FOOTER


def box_overlay_kml(
    name: str,
    href: str,
    north: float,
    south: float,
    east: float,
    west: float,
    rotation: float = 0.0,
) -> str:
    """Return a ``GroundOverlay`` element anchored by a ``LatLonBox``."""
    return (
        "<GroundOverlay>"
        f"<name>{name}</name>"
        f"<Icon><href>{href}</href></Icon>"
        "<LatLonBox>"
        f"<north>{north}</north><south>{south}</south>"
        f"<east>{east}</east><west>{west}</west>"
        f"<rotation>{rotation}</rotation>"
        "</LatLonBox>"
        "</GroundOverlay>\n"
    )


def placemark_kml(name: str, lon: float, lat: float, style_url: str = "") -> str:
    style = f"<styleUrl>{style_url}</styleUrl>" if style_url else ""
    return (
        f"<Placemark><name>{name}</name>{style}"
        f"<Point><coordinates>{lon},{lat},0</coordinates></Point></Placemark>\n"
    )


SIMPLE_BOX_KML = kml_document(
    "<Document><name>Town</name>\n"
    + box_overlay_kml("Town map", "town.jpg", 10.0, 0.0, 10.0, 0.0)
    + "</Document>\n"
)

# ---------------------------------------------------------------------------
# Geometry fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def unit_box() -> Box:
    """A 10 x 10 degree, north-up box touching the equator and prime meridian."""
    return Box(north=10.0, south=0.0, east=10.0, west=0.0)


# ---------------------------------------------------------------------------
# Map file fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def maps_dir(tmp_path: Path) -> Path:
    """An empty maps directory."""
    directory = tmp_path / "maps"
    directory.mkdir()
    return directory


def write_kml(directory: Path, file_name: str, content: str) -> Path:
    path = directory / file_name
    path.write_text(content, encoding="utf-8")
    return path


def write_kmz(directory: Path, file_name: str, entries: dict[str, str | bytes]) -> Path:
    """Write a zip archive with the given ``name -> content`` entries."""
    path = directory / file_name
    with zipfile.ZipFile(path, "w") as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return path


# ---------------------------------------------------------------------------
# Geoid data
# ---------------------------------------------------------------------------


def geoid_sample(row: int, column: int) -> int:
    """Synthetic geoid value (centimetres) stored at a grid cell; can be negative."""
    return (row * 7 + column * 3) % 2000 - 1000


@pytest.fixture()
def geoid_file(tmp_path: Path) -> Path:
    """A full 181 x 360 big-endian int16 grid filled with ``geoid_sample``."""
    path = tmp_path / "geoid.dat"
    data = bytearray()
    for row in range(181):
        for column in range(360):
            data += geoid_sample(row, column).to_bytes(2, "big", signed=True)
    path.write_bytes(bytes(data))
    return path
