"""Map catalog: every overlay found in the maps directory.

``refresh()`` scans the directory for ``.kml`` files and ``.kmz``
archives, parses each document, and replaces the catalog contents with
the overlays found. A document that fails to parse is logged and
skipped; the rest of the scan continues.

Queries rank overlays against a location (usually the current GPS fix):
``group_by_distance`` partitions them into containing / near / far, and
``find_best_map`` picks the most suitable containing map.
"""

from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING

from kml_georef.catalog.sources import KmlFileSource, KmzEntrySource, list_kmz_documents
from kml_georef.core.config import GeorefConfig
from kml_georef.core.constants import KML_SUFFIX, KMZ_SUFFIX
from kml_georef.core.exceptions import ResourceError
from kml_georef.models.feature import Folder, Marker, Overlay
from kml_georef.parse_kml import KmlParseError, parse

if TYPE_CHECKING:
    from collections.abc import Iterator

    from kml_georef.models.feature import Feature
    from kml_georef.models.source import MapSource

logger = logging.getLogger("kml_georef.catalog.map_catalog")


@dataclass(frozen=True, slots=True)
class DistanceGroups:
    """Overlays partitioned by distance from a location.

    Attributes:
        containing: Overlays containing the location.
        near: Overlays closer than the configured near distance.
        far: All other overlays.
    """

    containing: tuple[Overlay, ...] = ()
    near: tuple[Overlay, ...] = ()
    far: tuple[Overlay, ...] = ()


class MapCatalog:
    """Overlays available in one maps directory.

    The catalog holds an immutable snapshot; each ``refresh()`` replaces
    it wholesale.
    """

    def __init__(self, maps_dir: Path | str, *, config: GeorefConfig | None = None) -> None:
        self._maps_dir = Path(maps_dir)
        self._config = config or GeorefConfig()
        self._overlays: tuple[Overlay, ...] = ()
        self._markers: dict[Overlay, tuple[Marker, ...]] = {}

    @property
    def maps_dir(self) -> Path:
        return self._maps_dir

    def __len__(self) -> int:
        return len(self._overlays)

    def __iter__(self) -> Iterator[Overlay]:
        return iter(self._overlays)

    # -- scanning ------------------------------------------------------------

    def refresh(self) -> int:
        """Rescan the maps directory.

        Returns:
            Number of overlays in the new snapshot.
        """
        overlays: list[Overlay] = []
        markers: dict[Overlay, tuple[Marker, ...]] = {}
        documents = 0
        skipped = 0

        for source in self._discover_sources():
            documents += 1
            try:
                found = self._read_source(source)
            except (KmlParseError, ResourceError) as exc:
                skipped += 1
                logger.warning("Skipping map document | source=%s | error=%s", source.describe(), exc)
                continue
            for overlay, overlay_markers in found:
                if overlay in markers:
                    logger.debug(
                        "Duplicate overlay ignored | source=%s | image=%s",
                        source.describe(),
                        overlay.image_ref,
                    )
                    continue
                overlays.append(overlay)
                markers[overlay] = overlay_markers

        self._overlays = tuple(overlays)
        self._markers = markers
        logger.info(
            "Catalog refreshed | dir=%s | maps=%d | documents=%d | skipped=%d",
            self._maps_dir,
            len(overlays),
            documents,
            skipped,
        )
        return len(overlays)

    def load_map(self, source: MapSource, name: str | None = None) -> Overlay | None:
        """Read a single overlay from *source* without touching the snapshot.

        Returns the overlay called *name*, else the document's first
        overlay, else ``None`` (also when the document cannot be read).
        """
        try:
            found = self._read_source(source)
        except (KmlParseError, ResourceError) as exc:
            logger.warning("Cannot load map | source=%s | error=%s", source.describe(), exc)
            return None
        if not found:
            return None
        if name is not None:
            for overlay, _markers in found:
                if overlay.name == name:
                    return overlay
        return found[0][0]

    def parse_local_file(self, path: Path | str) -> Overlay | None:
        """Load the first overlay of a ``.kml`` or ``.kmz`` file anywhere on disk."""
        path = Path(path)
        suffix = path.suffix.lower()
        if suffix == KML_SUFFIX:
            return self.load_map(KmlFileSource(path))
        if suffix == KMZ_SUFFIX:
            try:
                entries = list_kmz_documents(path)
            except (OSError, zipfile.BadZipFile) as exc:
                logger.warning("Cannot open archive | path=%s | error=%s", path, exc)
                return None
            for entry in entries:
                overlay = self.load_map(KmzEntrySource(path, entry))
                if overlay is not None:
                    return overlay
            return None
        logger.warning("Unsupported map file type | path=%s", path)
        return None

    def _discover_sources(self) -> Iterator[MapSource]:
        if not self._maps_dir.is_dir():
            logger.warning("Maps directory does not exist | dir=%s", self._maps_dir)
            return
        for path in sorted(self._maps_dir.iterdir()):
            if not path.is_file():
                continue
            suffix = path.suffix.lower()
            if suffix == KML_SUFFIX:
                yield KmlFileSource(path)
            elif suffix == KMZ_SUFFIX:
                try:
                    entries = list_kmz_documents(path)
                except (OSError, zipfile.BadZipFile) as exc:
                    logger.warning("Skipping unreadable archive | path=%s | error=%s", path, exc)
                    continue
                for entry in entries:
                    yield KmzEntrySource(path, entry)

    def _read_source(self, source: MapSource) -> list[tuple[Overlay, tuple[Marker, ...]]]:
        """Parse one document.

        Raises:
            KmlParseError: If the document is not valid KML.
            ResourceError: If the document cannot be opened or read.
        """
        try:
            with source.open_document() as fh:
                features = parse(fh, source_name=source.describe())
        except (OSError, KeyError, zipfile.BadZipFile) as exc:
            msg = f"Cannot read map document: {exc}"
            raise ResourceError(msg, stage="catalog", source=source.describe()) from exc
        return self._collect(features, source)

    def _collect(
        self, features: list[Feature], source: MapSource
    ) -> list[tuple[Overlay, tuple[Marker, ...]]]:
        """Attach the source and fallback names; pair each overlay with its markers."""
        shared = tuple(f for f in features if isinstance(f, Marker))
        collected: list[tuple[Overlay, tuple[Marker, ...]]] = []
        for feature in features:
            if isinstance(feature, Overlay):
                collected.append((self._finish(feature, "", source), shared))
            elif isinstance(feature, Folder):
                folder_markers = tuple(feature.markers) + shared
                for overlay in feature.overlays:
                    collected.append((self._finish(overlay, feature.name, source), folder_markers))
        return collected

    def _finish(self, overlay: Overlay, folder_name: str, source: MapSource) -> Overlay:
        name = overlay.name.strip() or folder_name.strip() or self._config.default_map_name
        return replace(overlay, name=name, source=source)

    # -- queries -------------------------------------------------------------

    def all_maps(self) -> list[Overlay]:
        """All overlays ordered by case-insensitive name."""
        return sorted(self._overlays, key=lambda overlay: overlay.name.casefold())

    def markers_for(self, overlay: Overlay) -> tuple[Marker, ...]:
        """Markers shown with *overlay*: its folder's markers plus the document's top-level ones."""
        return self._markers.get(overlay, ())

    def map_set(self, overlay: Overlay) -> list[Overlay]:
        """Other overlays read from the same container as *overlay*."""
        if overlay.source is None:
            return []
        container = overlay.source.container
        return [
            other
            for other in self._overlays
            if other != overlay
            and other.source is not None
            and other.source.container == container
        ]

    def is_part_of_map_set(self, overlay: Overlay) -> bool:
        return bool(self.map_set(overlay))

    def maps_containing(self, longitude: float, latitude: float) -> list[Overlay]:
        return [overlay for overlay in self._overlays if overlay.contains(longitude, latitude)]

    def group_by_distance(self, longitude: float, latitude: float) -> DistanceGroups:
        """Partition every overlay into containing / near / far.

        Every overlay lands in exactly one group.
        """
        containing: list[Overlay] = []
        near: list[Overlay] = []
        far: list[Overlay] = []
        for overlay in self._overlays:
            distance = overlay.distance_from(longitude, latitude)
            if distance == 0.0:
                containing.append(overlay)
            elif distance < self._config.near_distance_m:
                near.append(overlay)
            else:
                far.append(overlay)
        return DistanceGroups(tuple(containing), tuple(near), tuple(far))

    def find_best_map(
        self,
        longitude: float,
        latitude: float,
        last_used_name: str | None = None,
    ) -> Overlay | None:
        """Pick the map to display for a location.

        Prefers the containing map named *last_used_name*; otherwise the
        containing map with the smallest area (assumed most detailed).
        Returns ``None`` when no map contains the location.
        """
        candidates = self.maps_containing(longitude, latitude)
        if not candidates:
            return None
        if last_used_name is not None:
            for overlay in candidates:
                if overlay.name == last_used_name:
                    return overlay
        return min(candidates, key=lambda overlay: overlay.area())
