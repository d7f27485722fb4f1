"""Tests for coordinate transforms and polygon helpers."""

import pytest
from shapely.geometry import Polygon

from py_warmap.core.geometry import (
    WORLD_BOUNDS, Bounds, CanvasTransform, clip_polygon, open_ring, point_in_polygon,
    ring_bounds, settlement_to_world, world_to_canvas,
)
from py_warmap.errors import GeometryError

UNIT_SQUARE = ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0))
L_SHAPE = ((0.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0), (1.0, 2.0), (0.0, 2.0))

# Region whose bounding box matches the feed's per-region extent
REGION = ((0.0, 0.0), (2046.0, 0.0), (2046.0, -1777.0), (0.0, -1777.0))


class TestPointInPolygon:
    """Test the ray-casting containment test."""

    def test_unit_square_inside(self):
        assert point_in_polygon((0.5, 0.5), UNIT_SQUARE)
        assert point_in_polygon((0.01, 0.99), UNIT_SQUARE)

    def test_unit_square_outside(self):
        assert not point_in_polygon((1.5, 0.5), UNIT_SQUARE)
        assert not point_in_polygon((-0.1, 0.5), UNIT_SQUARE)
        assert not point_in_polygon((0.5, 1.5), UNIT_SQUARE)
        assert not point_in_polygon((0.5, -0.5), UNIT_SQUARE)

    def test_unit_square_boundary(self):
        """Left and bottom edges are inside, right and top edges outside."""
        assert point_in_polygon((0.0, 0.5), UNIT_SQUARE)
        assert point_in_polygon((0.5, 0.0), UNIT_SQUARE)
        assert not point_in_polygon((1.0, 0.5), UNIT_SQUARE)
        assert not point_in_polygon((0.5, 1.0), UNIT_SQUARE)

    def test_concave_l_shape(self):
        assert point_in_polygon((0.5, 1.5), L_SHAPE)
        assert point_in_polygon((1.5, 0.5), L_SHAPE)
        assert point_in_polygon((0.5, 0.5), L_SHAPE)
        assert not point_in_polygon((1.5, 1.5), L_SHAPE)

    def test_orientation_independent(self):
        """Clockwise rings give the same answers."""
        reversed_l = tuple(reversed(L_SHAPE))
        assert point_in_polygon((0.5, 1.5), reversed_l)
        assert not point_in_polygon((1.5, 1.5), reversed_l)

    def test_degenerate_ring(self):
        assert not point_in_polygon((0.0, 0.0), ((0.0, 0.0), (1.0, 1.0)))
        assert not point_in_polygon((0.0, 0.0), ())


class TestTransforms:
    """Test world/canvas transforms."""

    def test_world_to_canvas_corners(self):
        """The world's top-left maps to the offset, Y is inverted."""
        assert world_to_canvas((0.0, 0.0), WORLD_BOUNDS, 0.5, (10.0, 20.0)) == (10.0, 20.0)
        assert world_to_canvas((14336.0, -12432.0), WORLD_BOUNDS, 0.5, (10.0, 20.0)) == (7178.0, 6236.0)

    def test_world_to_canvas_y_grows_downward(self):
        _, upper = world_to_canvas((0.0, -100.0), WORLD_BOUNDS, 1.0, (0.0, 0.0))
        _, lower = world_to_canvas((0.0, -200.0), WORLD_BOUNDS, 1.0, (0.0, 0.0))
        assert lower > upper

    def test_fit_uses_limiting_axis(self):
        """The tighter axis decides the scale and the map is centered horizontally."""
        canvas = Bounds(min_x=0.0, min_y=0.0, max_x=2000.0, max_y=1243.2)
        transform = CanvasTransform.fit(WORLD_BOUNDS, canvas)

        assert transform.scale == pytest.approx(0.1)
        assert transform.offset[0] == pytest.approx((2000.0 - 1433.6) / 2)
        assert transform.offset[1] == 0.0

    def test_fit_rejects_empty_world(self):
        with pytest.raises(GeometryError):
            CanvasTransform.fit(Bounds(0.0, 0.0, 0.0, 10.0), Bounds(0.0, 0.0, 100.0, 100.0))

    def test_settlement_to_world(self):
        """Feed positions are relative to the region's top-left corner."""
        assert settlement_to_world(0.0, 0.0, REGION) == (0.0, 0.0)
        assert settlement_to_world(0.5, 0.5, REGION) == (1023.0, -888.5)
        assert settlement_to_world(1.0, 1.0, REGION) == (2046.0, -1777.0)

    def test_settlement_to_world_offset_region(self):
        shifted = tuple((x + 100.0, y - 50.0) for x, y in REGION)
        assert settlement_to_world(0.5, 0.5, shifted) == (1123.0, -938.5)

    def test_settlement_to_world_degenerate_region(self):
        with pytest.raises(GeometryError):
            settlement_to_world(0.5, 0.5, ((0.0, 0.0), (1.0, 1.0)))


class TestRings:
    """Test ring helpers."""

    def test_open_ring_drops_closing_vertex(self):
        assert open_ring([[0, 0], [1, 0], [1, 1], [0, 0]]) == ((0.0, 0.0), (1.0, 0.0), (1.0, 1.0))

    def test_ring_bounds(self):
        bounds = ring_bounds(L_SHAPE)
        assert bounds == Bounds(0.0, 0.0, 2.0, 2.0)
        assert bounds.width == 2.0

    def test_ring_bounds_empty(self):
        with pytest.raises(GeometryError):
            ring_bounds(())


class TestClipPolygon:
    """Test cell clipping."""

    def test_clip_to_region(self):
        cell = ((-1.0, -1.0), (1.0, -1.0), (1.0, 1.0), (-1.0, 1.0))
        ring = clip_polygon(cell, UNIT_SQUARE)

        assert ring is not None
        assert Polygon(ring).area == pytest.approx(1.0)
        assert all(0.0 <= x <= 1.0 and 0.0 <= y <= 1.0 for x, y in ring)

    def test_inner_cell_unchanged(self):
        cell = ((0.25, 0.25), (0.75, 0.25), (0.75, 0.75), (0.25, 0.75))
        ring = clip_polygon(cell, UNIT_SQUARE)
        assert Polygon(ring).area == pytest.approx(0.25)

    def test_closed_input_ring(self):
        cell = UNIT_SQUARE + (UNIT_SQUARE[0],)
        ring = clip_polygon(cell, L_SHAPE)
        assert ring[0] != ring[-1]

    def test_disjoint_is_none(self):
        cell = ((5.0, 5.0), (6.0, 5.0), (6.0, 6.0))
        assert clip_polygon(cell, UNIT_SQUARE) is None

    def test_touching_edge_is_none(self):
        """Sharing only an edge leaves no area."""
        cell = ((1.0, 0.0), (2.0, 0.0), (2.0, 1.0), (1.0, 1.0))
        assert clip_polygon(cell, UNIT_SQUARE) is None

    def test_degenerate_input_is_none(self):
        assert clip_polygon(((0.0, 0.0), (1.0, 1.0)), UNIT_SQUARE) is None
        assert clip_polygon(UNIT_SQUARE, ((0.0, 0.0), (0.0, 0.0), (0.0, 0.0))) is None
