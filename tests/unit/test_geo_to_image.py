"""Tests for the geographic <-> image pixel transform."""

from __future__ import annotations

import pytest

from kml_georef.models.geo import GeoPoint, ImagePoint
from kml_georef.models.geometry import Box, Quad
from kml_georef.transforms.geo_to_image import GeoToImageTransform


class TestBoxTransform:
    def test_corners_map_to_image_corners(self, unit_box: Box) -> None:
        transform = GeoToImageTransform.for_geometry(unit_box, 100, 200)
        assert transform is not None
        assert transform.lonlat_to_pixel(0.0, 10.0) == pytest.approx((0.0, 0.0), abs=1e-9)
        assert transform.lonlat_to_pixel(10.0, 10.0) == pytest.approx((100.0, 0.0), abs=1e-9)
        assert transform.lonlat_to_pixel(10.0, 0.0) == pytest.approx((100.0, 200.0), abs=1e-9)
        assert transform.lonlat_to_pixel(0.0, 0.0) == pytest.approx((0.0, 200.0), abs=1e-9)

    def test_round_trip(self, unit_box: Box) -> None:
        transform = GeoToImageTransform.for_geometry(unit_box, 100, 100)
        assert transform is not None
        pixel = transform.geo_to_image(GeoPoint(2.5, 7.5))
        assert pixel.as_tuple() == pytest.approx((25.0, 25.0))
        geo = transform.image_to_geo(pixel)
        assert geo.as_tuple() == pytest.approx((2.5, 7.5))

    def test_rotation_turns_about_image_center(self) -> None:
        box = Box(north=10.0, south=0.0, east=10.0, west=0.0, rotation=90.0)
        transform = GeoToImageTransform.for_geometry(box, 100, 100)
        assert transform is not None
        assert transform.lonlat_to_pixel(5.0, 5.0) == pytest.approx((50.0, 50.0))
        # The north-west corner lands top-right after a quarter turn.
        assert transform.lonlat_to_pixel(0.0, 10.0) == pytest.approx((100.0, 0.0), abs=1e-9)

    def test_antimeridian_box(self) -> None:
        box = Box(north=10.0, south=0.0, east=-170.0, west=170.0)
        transform = GeoToImageTransform.for_geometry(box, 100, 100)
        assert transform is not None
        x, _y = transform.lonlat_to_pixel(-175.0, 5.0)
        assert x == pytest.approx(75.0)
        x, _y = transform.lonlat_to_pixel(175.0, 5.0)
        assert x == pytest.approx(25.0)

    def test_map_center(self, unit_box: Box) -> None:
        transform = GeoToImageTransform.for_geometry(unit_box, 10, 10)
        assert transform is not None
        assert transform.map_center().as_tuple() == pytest.approx((5.0, 5.0))

    def test_meters_per_pixel(self) -> None:
        box = Box(north=0.01, south=0.0, east=0.01, west=0.0)
        transform = GeoToImageTransform.for_geometry(box, 1000, 1000)
        assert transform is not None
        # About 1.1 km across on a 1000 pixel image.
        assert transform.meters_per_pixel() == pytest.approx(1.1, rel=0.01)


class TestQuadTransform:
    def test_corners_map_exactly(self) -> None:
        quad = Quad(
            nw=GeoPoint(8.50, 47.40),
            ne=GeoPoint(8.60, 47.41),
            se=GeoPoint(8.61, 47.33),
            sw=GeoPoint(8.49, 47.32),
        )
        transform = GeoToImageTransform.for_geometry(quad, 4000, 3000)
        assert transform is not None
        expected = [(0.0, 0.0), (4000.0, 0.0), (4000.0, 3000.0), (0.0, 3000.0)]
        for corner, pixel in zip(quad.corners(), expected, strict=True):
            assert transform.geo_to_image(corner).as_tuple() == pytest.approx(pixel, abs=1e-6)

    def test_image_to_geo_inverts(self) -> None:
        quad = Quad(
            nw=GeoPoint(0.0, 1.0),
            ne=GeoPoint(1.2, 1.1),
            se=GeoPoint(1.0, 0.0),
            sw=GeoPoint(0.1, -0.1),
        )
        transform = GeoToImageTransform.for_geometry(quad, 500, 500)
        assert transform is not None
        geo = transform.image_to_geo(ImagePoint(123.0, 321.0))
        assert transform.geo_to_image(geo).as_tuple() == pytest.approx((123.0, 321.0))


class TestDegenerateInput:
    def test_zero_size_box(self) -> None:
        assert GeoToImageTransform.for_geometry(Box(1.0, 1.0, 2.0, 2.0), 100, 100) is None

    def test_collinear_quad(self) -> None:
        quad = Quad(
            nw=GeoPoint(0.0, 0.0),
            ne=GeoPoint(1.0, 0.0),
            se=GeoPoint(2.0, 0.0),
            sw=GeoPoint(3.0, 0.0),
        )
        assert GeoToImageTransform.for_geometry(quad, 100, 100) is None

    @pytest.mark.parametrize(("width", "height"), [(0, 100), (100, 0), (-5, 10)])
    def test_image_without_area(self, unit_box: Box, width: int, height: int) -> None:
        assert GeoToImageTransform.for_geometry(unit_box, width, height) is None


class TestMemoisation:
    def test_same_geometry_reuses_transform(self, unit_box: Box) -> None:
        first = GeoToImageTransform.for_geometry(unit_box, 100, 100)
        second = GeoToImageTransform.for_geometry(Box(10.0, 0.0, 10.0, 0.0), 100, 100)
        assert first is second

    def test_changed_geometry_builds_new_transform(self, unit_box: Box) -> None:
        first = GeoToImageTransform.for_geometry(unit_box, 100, 100)
        second = GeoToImageTransform.for_geometry(Box(11.0, 0.0, 10.0, 0.0), 100, 100)
        assert first is not second
