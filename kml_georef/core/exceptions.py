"""Unified exception taxonomy.

Provides a shared base exception hierarchy for the georeferencing
engine. Every domain exception inherits from ``GeorefError`` and
carries structured context fields so callers (catalog scans, map
creation dialogs) can log and report failures consistently.

Taxonomy categories
-------------------
- ``ValidationError`` - malformed input (documents, tie points, config).
- ``ResourceError``   - a map resource (archive entry, image, data file)
  could not be read.

Geometric fit failures are not exceptions: the warp estimator returns
an explicit failure value instead. Likewise "no map loaded yet" is
reported as ``None`` by the display transforms.
"""

from __future__ import annotations


class GeorefError(Exception):
    """Base exception for all georeferencing-domain errors.

    Attributes:
        message: Human-readable error description.
        stage: Component where the error occurred
            (e.g. ``"parse_kml"``, ``"catalog"``).
        code: Machine-readable error code (e.g. ``"KML_PARSE_FAILED"``).
        source: Description of the document or resource involved.
    """

    #: Default stage for subclasses (override via class attribute or kwarg).
    default_stage: str = ""
    #: Default code for subclasses (override via class attribute or kwarg).
    default_code: str = ""

    def __init__(
        self,
        message: str = "",
        *,
        stage: str = "",
        code: str = "",
        source: str = "",
    ) -> None:
        self.message = message
        self.stage = stage or self.default_stage
        self.code = code or self.default_code
        self.source = source
        super().__init__(message)

    @property
    def category(self) -> str:
        """Return the error category based on concrete class."""
        if isinstance(self, ValidationError):
            return "validation"
        if isinstance(self, ResourceError):
            return "resource"
        return "internal"

    def to_error_dict(self) -> dict[str, object]:
        """Return a structured error payload with stable keys."""
        return {
            "category": self.category,
            "code": self.code,
            "stage": self.stage,
            "message": self.message,
            "source": self.source,
        }


# ---------------------------------------------------------------------------
# Category base classes
# ---------------------------------------------------------------------------


class ValidationError(GeorefError):
    """Input or domain-model validation failure."""

    default_code = "VALIDATION_FAILED"


class ResourceError(GeorefError):
    """A map resource could not be opened or read."""

    default_code = "RESOURCE_UNAVAILABLE"
