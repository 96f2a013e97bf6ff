"""Reference to the container a map was read from.

A ``MapSource`` is deliberately opaque to the geometry code: it only
supplies the document and image bytes, the intrinsic image rotation,
and a ``container`` path used as the overlay identity. Concrete sources
(loose KML files, documents inside KMZ archives) live in
``kml_georef.catalog.sources``.
"""

from __future__ import annotations

import abc
from typing import IO, TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path


class MapSource(abc.ABC):
    """Where an overlay's document and image live."""

    @property
    @abc.abstractmethod
    def container(self) -> Path:
        """Path of the file that owns the document (the identity of a map set)."""

    @abc.abstractmethod
    def open_document(self) -> IO[bytes]:
        """Open the KML document for reading."""

    @abc.abstractmethod
    def open_image(self, image_ref: str) -> IO[bytes]:
        """Open an image referenced by the document.

        Raises:
            FileNotFoundError: If the image does not exist in the container.
        """

    @abc.abstractmethod
    def image_orientation(self, image_ref: str) -> int:
        """Return the image's intrinsic rotation (0, 90, 180 or 270 degrees)."""

    def describe(self) -> str:
        """Human-readable location used in log messages."""
        return str(self.container)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MapSource):
            return NotImplemented
        return self._identity() == other._identity()

    def __hash__(self) -> int:
        return hash(self._identity())

    def _identity(self) -> tuple[object, ...]:
        return (type(self).__name__, str(self.container))
