"""Concrete map sources: loose KML files and documents inside KMZ archives.

Archives are opened per call (``with zipfile.ZipFile(...)``), so no file
handle outlives a single read.

Image orientation comes from an optional ``map_orientation.properties``
side-table (``image/path.jpg=90``) stored at the archive root, or next to
a loose KML file. Any problem reading it is logged and treated as
"no rotation".
"""

from __future__ import annotations

import io
import logging
import posixpath
import zipfile
from pathlib import Path
from typing import IO

from kml_georef.core.constants import KML_SUFFIX, ORIENTATION_FILE_NAME
from kml_georef.models.source import MapSource
from kml_georef.transforms.image_to_screen import VALID_ORIENTATIONS

logger = logging.getLogger("kml_georef.catalog.sources")


# ---------------------------------------------------------------------------
# Orientation side-table
# ---------------------------------------------------------------------------


def parse_orientation_table(text: str) -> dict[str, int]:
    """Parse ``path=degrees`` lines (Java properties syntax).

    Blank lines and ``#`` / ``!`` comments are ignored; ``:`` is accepted
    as a separator. Entries whose value is not a multiple of 90 degrees
    are dropped with a warning.
    """
    table: dict[str, int] = {}
    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line[0] in "#!":
            continue
        cut = min((i for i in (line.find("="), line.find(":")) if i >= 0), default=-1)
        if cut < 0:
            logger.warning("Orientation entry without value | line=%d | text=%r", line_no, line)
            continue
        key = line[:cut].strip()
        value = line[cut + 1 :].strip()
        try:
            degrees = int(float(value)) % 360
        except ValueError:
            logger.warning("Invalid orientation | image=%s | value=%r", key, value)
            continue
        if degrees not in VALID_ORIENTATIONS:
            logger.warning("Orientation not a multiple of 90 | image=%s | value=%r", key, value)
            continue
        table[key] = degrees
    return table


def _lookup_orientation(table: dict[str, int], image_ref: str) -> int:
    if image_ref in table:
        return table[image_ref]
    return table.get(posixpath.normpath(image_ref), 0)


# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------


class KmlFileSource(MapSource):
    """A KML document stored as a plain file; images are relative to its directory."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    def __repr__(self) -> str:
        return f"KmlFileSource({str(self._path)!r})"

    @property
    def container(self) -> Path:
        return self._path

    def open_document(self) -> IO[bytes]:
        return self._path.open("rb")

    def open_image(self, image_ref: str) -> IO[bytes]:
        return (self._path.parent / image_ref).open("rb")

    def image_orientation(self, image_ref: str) -> int:
        table_path = self._path.parent / ORIENTATION_FILE_NAME
        if not table_path.is_file():
            return 0
        try:
            table = parse_orientation_table(table_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Cannot read orientation table | path=%s | error=%s", table_path, exc)
            return 0
        return _lookup_orientation(table, image_ref)


class KmzEntrySource(MapSource):
    """A KML document stored inside a KMZ (zip) archive."""

    def __init__(self, archive: Path | str, entry: str) -> None:
        self._archive = Path(archive)
        self._entry = entry

    def __repr__(self) -> str:
        return f"KmzEntrySource({str(self._archive)!r}, {self._entry!r})"

    @property
    def container(self) -> Path:
        return self._archive

    @property
    def entry(self) -> str:
        return self._entry

    def describe(self) -> str:
        return f"{self._archive}!{self._entry}"

    def open_document(self) -> IO[bytes]:
        with zipfile.ZipFile(self._archive) as zf:
            return io.BytesIO(zf.read(self._entry))

    def open_image(self, image_ref: str) -> IO[bytes]:
        """Open an image entry, resolved relative to the document's directory first.

        Raises:
            FileNotFoundError: If neither candidate entry exists.
        """
        relative = posixpath.normpath(posixpath.join(posixpath.dirname(self._entry), image_ref))
        with zipfile.ZipFile(self._archive) as zf:
            names = set(zf.namelist())
            for candidate in (relative, image_ref):
                if candidate in names:
                    return io.BytesIO(zf.read(candidate))
        msg = f"Image {image_ref!r} not found in {self._archive}"
        raise FileNotFoundError(msg)

    def image_orientation(self, image_ref: str) -> int:
        try:
            with zipfile.ZipFile(self._archive) as zf:
                if ORIENTATION_FILE_NAME not in zf.namelist():
                    return 0
                text = zf.read(ORIENTATION_FILE_NAME).decode("utf-8")
        except (OSError, zipfile.BadZipFile, UnicodeDecodeError) as exc:
            logger.warning(
                "Cannot read orientation table | archive=%s | error=%s", self._archive, exc
            )
            return 0
        return _lookup_orientation(parse_orientation_table(text), image_ref)

    def _identity(self) -> tuple[object, ...]:
        return (type(self).__name__, str(self._archive), self._entry)


def list_kmz_documents(archive: Path) -> list[str]:
    """Return the names of KML documents inside a KMZ archive.

    Raises:
        zipfile.BadZipFile: If the file is not a zip archive.
        OSError: If the file cannot be read.
    """
    with zipfile.ZipFile(archive) as zf:
        return [
            info.filename
            for info in zf.infolist()
            if not info.is_dir() and info.filename.lower().endswith(KML_SUFFIX)
        ]
