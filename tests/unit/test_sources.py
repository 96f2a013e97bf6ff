"""Tests for map sources (loose KML files, KMZ entries) and the orientation side-table."""

from __future__ import annotations

import zipfile
from typing import TYPE_CHECKING

import pytest

from conftest import SIMPLE_BOX_KML, write_kml, write_kmz
from kml_georef.catalog.sources import (
    KmlFileSource,
    KmzEntrySource,
    list_kmz_documents,
    parse_orientation_table,
)

if TYPE_CHECKING:
    from pathlib import Path


class TestOrientationTable:
    def test_parses_entries(self) -> None:
        text = "# rotations\nimages/a.jpg=90\n! legacy comment\nimages/b.jpg : 270\n\nc.png=0\n"
        assert parse_orientation_table(text) == {
            "images/a.jpg": 90,
            "images/b.jpg": 270,
            "c.png": 0,
        }

    def test_values_are_normalised(self) -> None:
        assert parse_orientation_table("a.jpg=-90\nb.jpg=450") == {"a.jpg": 270, "b.jpg": 90}

    @pytest.mark.parametrize("line", ["a.jpg=45", "a.jpg=sideways", "a.jpg"])
    def test_invalid_entries_dropped(self, line: str) -> None:
        assert parse_orientation_table(line) == {}


class TestKmlFileSource:
    def test_open_document(self, tmp_path: Path) -> None:
        path = write_kml(tmp_path, "town.kml", SIMPLE_BOX_KML)
        with KmlFileSource(path).open_document() as fh:
            assert fh.read() == SIMPLE_BOX_KML.encode("utf-8")

    def test_open_image_relative_to_document(self, tmp_path: Path) -> None:
        path = write_kml(tmp_path, "town.kml", SIMPLE_BOX_KML)
        (tmp_path / "town.jpg").write_bytes(b"jpeg")
        with KmlFileSource(path).open_image("town.jpg") as fh:
            assert fh.read() == b"jpeg"

    def test_missing_image(self, tmp_path: Path) -> None:
        source = KmlFileSource(tmp_path / "town.kml")
        with pytest.raises(FileNotFoundError):
            source.open_image("missing.jpg")

    def test_orientation_from_side_table(self, tmp_path: Path) -> None:
        path = write_kml(tmp_path, "town.kml", SIMPLE_BOX_KML)
        write_kml(tmp_path, "map_orientation.properties", "town.jpg=180\n")
        source = KmlFileSource(path)
        assert source.image_orientation("town.jpg") == 180
        assert source.image_orientation("other.jpg") == 0

    def test_orientation_without_side_table(self, tmp_path: Path) -> None:
        path = write_kml(tmp_path, "town.kml", SIMPLE_BOX_KML)
        assert KmlFileSource(path).image_orientation("town.jpg") == 0

    def test_container_and_equality(self, tmp_path: Path) -> None:
        source = KmlFileSource(tmp_path / "town.kml")
        assert source.container == tmp_path / "town.kml"
        assert source == KmlFileSource(str(tmp_path / "town.kml"))
        assert hash(source) == hash(KmlFileSource(tmp_path / "town.kml"))
        assert source.describe() == str(tmp_path / "town.kml")


class TestKmzEntrySource:
    @pytest.fixture()
    def archive(self, tmp_path: Path) -> Path:
        return write_kmz(
            tmp_path,
            "set.kmz",
            {
                "doc.kml": SIMPLE_BOX_KML,
                "maps/north.kml": SIMPLE_BOX_KML,
                "maps/images/n.jpg": b"north",
                "images/a.jpg": b"alpha",
                "map_orientation.properties": "images/a.jpg=90\n",
            },
        )

    def test_open_document(self, archive: Path) -> None:
        with KmzEntrySource(archive, "maps/north.kml").open_document() as fh:
            assert fh.read() == SIMPLE_BOX_KML.encode("utf-8")

    def test_image_relative_to_entry(self, archive: Path) -> None:
        with KmzEntrySource(archive, "maps/north.kml").open_image("images/n.jpg") as fh:
            assert fh.read() == b"north"

    def test_image_falls_back_to_archive_root(self, archive: Path) -> None:
        with KmzEntrySource(archive, "maps/north.kml").open_image("images/a.jpg") as fh:
            assert fh.read() == b"alpha"

    def test_missing_image(self, archive: Path) -> None:
        with pytest.raises(FileNotFoundError, match="missing.jpg"):
            KmzEntrySource(archive, "doc.kml").open_image("missing.jpg")

    def test_orientation(self, archive: Path) -> None:
        source = KmzEntrySource(archive, "doc.kml")
        assert source.image_orientation("images/a.jpg") == 90
        assert source.image_orientation("./images/a.jpg") == 90
        assert source.image_orientation("images/n.jpg") == 0

    def test_orientation_of_broken_archive(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.kmz"
        broken.write_bytes(b"not a zip")
        assert KmzEntrySource(broken, "doc.kml").image_orientation("a.jpg") == 0

    def test_identity_includes_entry(self, archive: Path) -> None:
        first = KmzEntrySource(archive, "doc.kml")
        assert first == KmzEntrySource(archive, "doc.kml")
        assert first != KmzEntrySource(archive, "maps/north.kml")
        assert first.container == archive
        assert first.describe() == f"{archive}!doc.kml"

    def test_list_documents(self, archive: Path) -> None:
        assert sorted(list_kmz_documents(archive)) == ["doc.kml", "maps/north.kml"]

    def test_list_documents_of_non_zip(self, tmp_path: Path) -> None:
        broken = tmp_path / "broken.kmz"
        broken.write_bytes(b"not a zip")
        with pytest.raises(zipfile.BadZipFile):
            list_kmz_documents(broken)
