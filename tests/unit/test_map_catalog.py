"""Tests for the map catalog: scanning, grouping and best-map selection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import pytest

from conftest import SIMPLE_BOX_KML, box_overlay_kml, kml_document, placemark_kml, write_kml, write_kmz
from kml_georef.catalog.map_catalog import MapCatalog
from kml_georef.catalog.sources import KmlFileSource, KmzEntrySource
from kml_georef.core.config import GeorefConfig
from kml_georef.models.geometry import Box

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from kml_georef.models.feature import Overlay


def _single_map(name: str, href: str, north: float, south: float, east: float, west: float) -> str:
    return kml_document(box_overlay_kml(name, href, north, south, east, west))


@pytest.fixture()
def catalog(maps_dir: Path) -> MapCatalog:
    """Three maps: a city inside a region, plus a nearby island.

    - ``Region``: 1 x 1 degree around (8.5, 47.5)
    - ``City``: 0.1 x 0.1 degree inside the region
    - ``Island``: 0.1 x 0.1 degree, 0.3 degrees east of the region (about 30 km from the city)
    """
    write_kml(maps_dir, "region.kml", _single_map("Region", "region.jpg", 48.0, 47.0, 9.0, 8.0))
    write_kml(maps_dir, "city.kml", _single_map("City", "city.jpg", 47.45, 47.35, 8.95, 8.85))
    write_kml(maps_dir, "island.kml", _single_map("Island", "island.jpg", 47.55, 47.45, 9.4, 9.3))
    map_catalog = MapCatalog(maps_dir)
    assert map_catalog.refresh() == 3
    return map_catalog


def _names(overlays: Iterable[Overlay]) -> list[str]:
    return sorted(overlay.name for overlay in overlays)


class TestRefresh:
    def test_all_maps_sorted_by_name(self, catalog: MapCatalog) -> None:
        assert [o.name for o in catalog.all_maps()] == ["City", "Island", "Region"]
        assert len(catalog) == 3

    def test_sources_attached(self, catalog: MapCatalog, maps_dir: Path) -> None:
        city = next(o for o in catalog if o.name == "City")
        assert city.source == KmlFileSource(maps_dir / "city.kml")

    def test_missing_directory(self, tmp_path: Path) -> None:
        assert MapCatalog(tmp_path / "nowhere").refresh() == 0

    def test_bad_documents_are_skipped(self, maps_dir: Path) -> None:
        write_kml(maps_dir, "good.kml", _single_map("Good", "g.jpg", 1.0, 0.0, 1.0, 0.0))
        write_kml(maps_dir, "broken.kml", "<kml><Document>")
        write_kml(maps_dir, "bad_value.kml", _single_map("Bad", "b.jpg", 99.0, 0.0, 1.0, 0.0))
        (maps_dir / "broken.kmz").write_bytes(b"not a zip")
        catalog = MapCatalog(maps_dir)
        assert catalog.refresh() == 1
        assert [o.name for o in catalog] == ["Good"]

    def test_non_map_files_ignored(self, maps_dir: Path) -> None:
        write_kml(maps_dir, "notes.txt", "hello")
        subdir = maps_dir / "nested"
        subdir.mkdir()
        write_kml(subdir, "deep.kml", _single_map("Deep", "d.jpg", 1.0, 0.0, 1.0, 0.0))
        assert MapCatalog(maps_dir).refresh() == 0

    def test_uppercase_suffix(self, maps_dir: Path) -> None:
        write_kml(maps_dir, "LOUD.KML", _single_map("Loud", "l.jpg", 1.0, 0.0, 1.0, 0.0))
        assert MapCatalog(maps_dir).refresh() == 1

    def test_refresh_replaces_snapshot(self, catalog: MapCatalog, maps_dir: Path) -> None:
        (maps_dir / "island.kml").unlink()
        assert catalog.refresh() == 2
        assert _names(catalog) == ["City", "Region"]

    def test_duplicate_overlay_ignored(self, maps_dir: Path) -> None:
        body = box_overlay_kml("First", "same.jpg", 1.0, 0.0, 1.0, 0.0) + box_overlay_kml(
            "Second", "same.jpg", 2.0, 0.0, 2.0, 0.0
        )
        write_kml(maps_dir, "dup.kml", kml_document(body))
        catalog = MapCatalog(maps_dir)
        assert catalog.refresh() == 1
        assert [o.name for o in catalog] == ["First"]


class TestNames:
    def test_folder_name_used_for_unnamed_overlay(self, maps_dir: Path) -> None:
        body = "<Folder><name>Valley</name>" + box_overlay_kml("", "v.jpg", 1.0, 0.0, 1.0, 0.0)
        write_kml(maps_dir, "valley.kml", kml_document(body + "</Folder>"))
        catalog = MapCatalog(maps_dir)
        catalog.refresh()
        assert [o.name for o in catalog] == ["Valley"]

    def test_default_name(self, maps_dir: Path) -> None:
        write_kml(maps_dir, "anon.kml", _single_map("", "a.jpg", 1.0, 0.0, 1.0, 0.0))
        catalog = MapCatalog(maps_dir, config=GeorefConfig(default_map_name="Untitled"))
        catalog.refresh()
        assert [o.name for o in catalog] == ["Untitled"]


class TestKmzArchives:
    @pytest.fixture()
    def archive_catalog(self, maps_dir: Path) -> MapCatalog:
        body = (
            "<Document>"
            + placemark_kml("Summit", 0.5, 0.5)
            + "<Folder><name>Sheet 1</name>"
            + box_overlay_kml("Sheet 1", "images/s1.jpg", 1.0, 0.0, 1.0, 0.0)
            + placemark_kml("Hut", 0.2, 0.2)
            + "</Folder><Folder><name>Sheet 2</name>"
            + box_overlay_kml("Sheet 2", "images/s2.jpg", 1.0, 0.0, 2.0, 1.0)
            + "</Folder></Document>"
        )
        write_kmz(maps_dir, "atlas.kmz", {"doc.kml": kml_document(body)})
        write_kml(maps_dir, "solo.kml", _single_map("Solo", "solo.jpg", 1.0, 0.0, 1.0, 0.0))
        catalog = MapCatalog(maps_dir)
        catalog.refresh()
        return catalog

    def test_archive_overlays_loaded(self, archive_catalog: MapCatalog, maps_dir: Path) -> None:
        sheet = next(o for o in archive_catalog if o.name == "Sheet 1")
        assert sheet.source == KmzEntrySource(maps_dir / "atlas.kmz", "doc.kml")

    def test_map_set(self, archive_catalog: MapCatalog) -> None:
        by_name = {o.name: o for o in archive_catalog}
        assert [o.name for o in archive_catalog.map_set(by_name["Sheet 1"])] == ["Sheet 2"]
        assert archive_catalog.is_part_of_map_set(by_name["Sheet 2"])
        assert not archive_catalog.is_part_of_map_set(by_name["Solo"])

    def test_markers_for_overlay(self, archive_catalog: MapCatalog) -> None:
        by_name = {o.name: o for o in archive_catalog}
        assert [m.name for m in archive_catalog.markers_for(by_name["Sheet 1"])] == ["Hut", "Summit"]
        assert [m.name for m in archive_catalog.markers_for(by_name["Sheet 2"])] == ["Summit"]
        assert archive_catalog.markers_for(by_name["Solo"]) == ()


class TestGrouping:
    def test_partition(self, catalog: MapCatalog) -> None:
        groups = catalog.group_by_distance(8.9, 47.4)
        assert _names(groups.containing) == ["City", "Region"]
        assert _names(groups.near) == ["Island"]
        assert groups.far == ()

    def test_every_overlay_in_exactly_one_group(self, catalog: MapCatalog) -> None:
        groups = catalog.group_by_distance(10.5, 47.5)
        total = [*groups.containing, *groups.near, *groups.far]
        assert _names(total) == _names(catalog)

    def test_far_maps(self, catalog: MapCatalog) -> None:
        groups = catalog.group_by_distance(20.0, 47.5)
        assert groups.containing == ()
        assert groups.near == ()
        assert _names(groups.far) == ["City", "Island", "Region"]

    def test_near_distance_is_configurable(self, maps_dir: Path) -> None:
        write_kml(maps_dir, "island.kml", _single_map("Island", "i.jpg", 47.55, 47.45, 9.4, 9.3))
        catalog = MapCatalog(maps_dir, config=GeorefConfig(near_distance_m=1_000.0))
        catalog.refresh()
        assert _names(catalog.group_by_distance(9.0, 47.5).far) == ["Island"]

    def test_maps_containing(self, catalog: MapCatalog) -> None:
        assert _names(catalog.maps_containing(8.2, 47.8)) == ["Region"]


class TestFindBestMap:
    def test_prefers_smallest_area(self, catalog: MapCatalog) -> None:
        best = catalog.find_best_map(8.9, 47.4)
        assert best is not None
        assert best.name == "City"

    def test_prefers_last_used_map(self, catalog: MapCatalog) -> None:
        best = catalog.find_best_map(8.9, 47.4, last_used_name="Region")
        assert best is not None
        assert best.name == "Region"

    def test_last_used_map_must_contain_location(self, catalog: MapCatalog) -> None:
        best = catalog.find_best_map(8.9, 47.4, last_used_name="Island")
        assert best is not None
        assert best.name == "City"

    def test_no_containing_map(self, catalog: MapCatalog) -> None:
        assert catalog.find_best_map(0.0, 0.0) is None


class TestLoadMap:
    def test_load_by_name(self, maps_dir: Path) -> None:
        body = box_overlay_kml("A", "a.jpg", 1.0, 0.0, 1.0, 0.0) + box_overlay_kml(
            "B", "b.jpg", 1.0, 0.0, 1.0, 0.0
        )
        path = write_kml(maps_dir, "two.kml", kml_document(body))
        catalog = MapCatalog(maps_dir)
        overlay = catalog.load_map(KmlFileSource(path), name="B")
        assert overlay is not None
        assert overlay.name == "B"
        assert overlay.geometry == Box(1.0, 0.0, 1.0, 0.0)
        assert len(catalog) == 0

    def test_unknown_name_gives_first(self, maps_dir: Path) -> None:
        path = write_kml(maps_dir, "one.kml", _single_map("A", "a.jpg", 1.0, 0.0, 1.0, 0.0))
        overlay = MapCatalog(maps_dir).load_map(KmlFileSource(path), name="Z")
        assert overlay is not None
        assert overlay.name == "A"

    def test_unreadable_source(self, maps_dir: Path) -> None:
        assert MapCatalog(maps_dir).load_map(KmlFileSource(maps_dir / "gone.kml")) is None

    def test_missing_archive_entry(
        self, maps_dir: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        archive = write_kmz(maps_dir, "a.kmz", {"doc.kml": SIMPLE_BOX_KML})
        with caplog.at_level(logging.WARNING, logger="kml_georef.catalog.map_catalog"):
            overlay = MapCatalog(maps_dir).load_map(KmzEntrySource(archive, "other.kml"))
        assert overlay is None
        assert "Cannot read map document" in caplog.text

    def test_parse_local_kmz(self, tmp_path: Path, maps_dir: Path) -> None:
        archive = write_kmz(
            tmp_path,
            "shared.kmz",
            {"doc.kml": _single_map("Shared", "s.jpg", 1.0, 0.0, 1.0, 0.0)},
        )
        overlay = MapCatalog(maps_dir).parse_local_file(archive)
        assert overlay is not None
        assert overlay.name == "Shared"
        assert overlay.source == KmzEntrySource(archive, "doc.kml")

    def test_parse_local_unsupported(self, tmp_path: Path, maps_dir: Path) -> None:
        path = tmp_path / "map.gpx"
        path.write_text("<gpx/>")
        assert MapCatalog(maps_dir).parse_local_file(path) is None
