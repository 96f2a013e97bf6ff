"""Input and text normalization helpers for KML parsing.

Responsibilities:
- Turn the caller's document (bytes, text, file object) into a byte
  stream with any leading byte-order mark removed
- Parse KML coordinate tuple text into ``(lon, lat)`` pairs
- Parse ``x,y`` pixel pairs of tie points
"""

from __future__ import annotations

import io
from typing import IO

from kml_georef.parse_kml._constants import UNICODE_BOM, UTF8_BOM
from kml_georef.parse_kml._validation import KmlValidationError, parse_float

# ---------------------------------------------------------------------------
# Document input
# ---------------------------------------------------------------------------


def open_document(document: bytes | str | IO[bytes] | IO[str]) -> IO[bytes]:
    """Return a binary stream over *document* without a leading BOM."""
    data = document if isinstance(document, bytes | str) else document.read()
    if isinstance(data, str):
        data = data.removeprefix(UNICODE_BOM).encode("utf-8")
    return io.BytesIO(data.removeprefix(UTF8_BOM))


# ---------------------------------------------------------------------------
# Coordinate text
# ---------------------------------------------------------------------------


def parse_coordinate_tuples(text: str, element: str = "coordinates") -> list[tuple[float, float]]:
    """Parse whitespace-separated ``lon,lat[,alt]`` tuples, dropping altitude.

    Raises:
        KmlValidationError: If a tuple has fewer than two values or a
            value is not a number.
    """
    coords: list[tuple[float, float]] = []
    for idx, chunk in enumerate(text.split()):
        parts = [p for p in chunk.split(",") if p]
        if len(parts) < 2:
            msg = f"Malformed coordinate tuple {chunk!r} at index {idx} in <{element}>"
            raise KmlValidationError(msg)
        coords.append((parse_float(parts[0], element), parse_float(parts[1], element)))
    return coords


def parse_pair(text: str, element: str) -> tuple[float, float]:
    """Parse an ``a,b`` pair (tie point ``image`` and ``geo`` values).

    Raises:
        KmlValidationError: If the text is not exactly two numbers.
    """
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        msg = f"Expected two comma-separated numbers in <{element}>, got {text!r}"
        raise KmlValidationError(msg)
    return (parse_float(parts[0], element), parse_float(parts[1], element))
