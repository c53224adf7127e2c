"""Tests for viewport mapping and hit testing."""

import math

import pytest

from gerberscope.core.screen import (
    Viewport,
    fit_viewport,
    gerber_to_screen,
    hit_test,
    primitive_to_screen,
    screen_to_gerber,
    to_image,
    to_screen,
)
from gerberscope.domain import (
    BoundingBox,
    LayerGeometry,
    Point,
    Polarity,
    Polygon,
    PrimitiveKind,
    PrimitiveSource,
    RenderablePrimitive,
)


def _square(x: float, y: float, size: float, index: int) -> RenderablePrimitive:
    ring = Polygon.closed([Point(x, y), Point(x + size, y), Point(x + size, y + size), Point(x, y + size)])
    return RenderablePrimitive((ring,), Polarity.DARK, PrimitiveSource(PrimitiveKind.FLASH, index, 10))


@pytest.fixture
def viewport() -> Viewport:
    return Viewport(
        bounds=BoundingBox(-3.0, 2.0, 17.0, 12.0),
        pan=Point(40.0, 25.0),
        zoom=12.5,
        rotation=math.radians(30.0),
    )


class TestViewportMapping:
    """Tests for to_screen and to_image."""

    def test_round_trip(self, viewport: Viewport) -> None:
        for point in (Point(0, 0), Point(-3, 2), Point(17.25, 11.5), Point(1e3, -1e3)):
            back = to_image(to_screen(point, viewport), viewport)
            assert back.x == pytest.approx(point.x, abs=1e-6)
            assert back.y == pytest.approx(point.y, abs=1e-6)

    def test_bounds_min_maps_to_pan(self, viewport: Viewport) -> None:
        screen = to_screen(viewport.bounds.min, viewport)
        assert screen.x == pytest.approx(40.0)
        assert screen.y == pytest.approx(25.0)

    def test_y_axis_down_flips(self) -> None:
        viewport = Viewport(bounds=BoundingBox(0, 0, 10, 10), zoom=2.0)
        assert to_screen(Point(1, 1), viewport) == Point(2.0, -2.0)

    def test_y_axis_up_keeps_orientation(self) -> None:
        viewport = Viewport(bounds=BoundingBox(0, 0, 10, 10), zoom=2.0, y_axis_down=False)
        assert to_screen(Point(1, 1), viewport) == Point(2.0, 2.0)

    def test_non_positive_zoom_rejected(self) -> None:
        viewport = Viewport(bounds=BoundingBox(0, 0, 1, 1), zoom=0.0)
        with pytest.raises(ValueError):
            to_screen(Point(0, 0), viewport)

    def test_aliases(self, viewport: Viewport) -> None:
        assert gerber_to_screen is to_screen
        assert screen_to_gerber is to_image


class TestFitViewport:
    """Tests for fitting content into a screen rectangle."""

    def test_centres_content(self) -> None:
        bounds = BoundingBox(0, 0, 10, 5)
        viewport = fit_viewport(bounds, 800, 600)
        assert viewport.zoom == pytest.approx(80.0)
        center = to_screen(bounds.center, viewport)
        assert center.x == pytest.approx(400.0)
        assert center.y == pytest.approx(300.0)

    def test_content_fills_limiting_axis(self) -> None:
        bounds = BoundingBox(0, 0, 10, 5)
        viewport = fit_viewport(bounds, 800, 600)
        left = to_screen(bounds.min, viewport)
        right = to_screen(bounds.max, viewport)
        assert left.x == pytest.approx(0.0)
        assert right.x == pytest.approx(800.0)
        assert right.y < left.y

    def test_zoom_factor_leaves_margin(self) -> None:
        viewport = fit_viewport(BoundingBox(0, 0, 10, 5), 800, 600, zoom_factor=0.9)
        assert viewport.zoom == pytest.approx(72.0)

    def test_rotated_fit(self) -> None:
        viewport = fit_viewport(BoundingBox(0, 0, 10, 5), 800, 600, rotation=math.pi / 2)
        assert viewport.zoom == pytest.approx(60.0)

    def test_degenerate_bounds(self) -> None:
        viewport = fit_viewport(BoundingBox(1, 1, 1, 1), 100, 100)
        assert viewport.zoom == pytest.approx(1.0)
        center = to_screen(Point(1, 1), viewport)
        assert center == Point(50.0, 50.0)

    @pytest.mark.parametrize("width,height", [(0, 100), (100, -1)])
    def test_invalid_screen_size(self, width: float, height: float) -> None:
        with pytest.raises(ValueError):
            fit_viewport(BoundingBox(0, 0, 1, 1), width, height)


class TestPrimitives:
    """Tests for mapping and hit testing primitives."""

    def test_primitive_to_screen(self) -> None:
        viewport = Viewport(bounds=BoundingBox(0, 0, 1, 1), zoom=10.0)
        mapped = primitive_to_screen(_square(0, 0, 1, 0), viewport)
        assert mapped.bounding_box() == BoundingBox(0, -10, 10, 0)
        assert mapped.source == PrimitiveSource(PrimitiveKind.FLASH, 0, 10)

    def test_hit_test_in_draw_order(self) -> None:
        primitives = (_square(0, 0, 4, 0), _square(2, 2, 4, 1), _square(10, 10, 1, 2))
        geometry = LayerGeometry(primitives=primitives, bounding_box=BoundingBox(0, 0, 11, 11))
        viewport = fit_viewport(geometry.bounding_box, 110, 110)

        assert hit_test(geometry, to_screen(Point(3, 3), viewport), viewport) == [0, 1]
        assert hit_test(geometry, to_screen(Point(10.5, 10.5), viewport), viewport) == [2]
        assert hit_test(geometry, to_screen(Point(8, 1), viewport), viewport) == []
