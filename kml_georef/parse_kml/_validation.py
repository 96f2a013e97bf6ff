"""Parse exceptions and value checks for KML parsing.

Responsibilities:
- Exception hierarchy for structural and value failures
- Strict float parsing (a malformed number aborts the document)
- Coordinate bounds checking (WGS 84)
"""

from __future__ import annotations

import math

from kml_georef.core.constants import (
    MAX_LATITUDE,
    MAX_LONGITUDE,
    MIN_LATITUDE,
    MIN_LONGITUDE,
)
from kml_georef.core.exceptions import ValidationError

# ---------------------------------------------------------------------------
# Exceptions (public API, re-exported from __init__)
# ---------------------------------------------------------------------------


class KmlParseError(ValidationError):
    """Raised when a KML document cannot be parsed."""

    default_stage = "parse_kml"
    default_code = "KML_PARSE_FAILED"


class KmlValidationError(KmlParseError):
    """Raised when a KML document is well-formed XML but holds invalid data."""

    default_code = "KML_VALIDATION_FAILED"


class InvalidCoordinateError(KmlValidationError):
    """Raised when coordinates are outside valid WGS 84 bounds."""

    default_code = "KML_COORDINATE_INVALID"


# ---------------------------------------------------------------------------
# Value parsing
# ---------------------------------------------------------------------------


def parse_float(text: str, element: str) -> float:
    """Parse a numeric element value.

    Raises:
        KmlValidationError: If the text is empty, not a number, or not finite.
    """
    try:
        value = float(text)
    except ValueError as exc:
        msg = f"Malformed number {text!r} in <{element}>"
        raise KmlValidationError(msg) from exc
    if not math.isfinite(value):
        msg = f"Non-finite number {text!r} in <{element}>"
        raise KmlValidationError(msg)
    return value


# ---------------------------------------------------------------------------
# Coordinate validation
# ---------------------------------------------------------------------------


def validate_lonlat(lon: float, lat: float, context: str) -> None:
    """Validate that a coordinate is within WGS 84 bounds.

    Raises:
        InvalidCoordinateError: If either value is out of bounds.
    """
    if not (MIN_LONGITUDE <= lon <= MAX_LONGITUDE):
        msg = (
            f"Longitude {lon} out of WGS 84 range [{MIN_LONGITUDE}, {MAX_LONGITUDE}] "
            f"in {context}"
        )
        raise InvalidCoordinateError(msg)
    if not (MIN_LATITUDE <= lat <= MAX_LATITUDE):
        msg = (
            f"Latitude {lat} out of WGS 84 range [{MIN_LATITUDE}, {MAX_LATITUDE}] "
            f"in {context}"
        )
        raise InvalidCoordinateError(msg)
