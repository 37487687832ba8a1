"""Tests for geometry primitives."""

import math

import pytest

from geojoin import BBox, PolygonRecord, point_in_polygon, point_in_ring, polygon_problem

SQUARE = [(0, 0), (10, 0), (10, 10), (0, 10), (0, 0)]
HOLE = [(4, 4), (6, 4), (6, 6), (4, 6), (4, 4)]


class TestPointInRing:
    """Tests for point_in_ring."""

    def test_interior_point(self):
        assert point_in_ring((5, 5), SQUARE) is True

    def test_exterior_point(self):
        assert point_in_ring((15, 5), SQUARE) is False

    def test_point_on_edge_is_inside(self):
        """Boundary points count as inside."""
        assert point_in_ring((10, 5), SQUARE) is True
        assert point_in_ring((5, 0), SQUARE) is True

    def test_point_on_vertex_is_inside(self):
        assert point_in_ring((0, 0), SQUARE) is True
        assert point_in_ring((10, 10), SQUARE) is True

    def test_boundary_result_is_stable(self):
        """Repeated boundary tests always agree."""
        results = {point_in_ring((0, 5), SQUARE) for _ in range(50)}
        assert results == {True}

    def test_clockwise_ring(self):
        """Winding direction does not matter."""
        clockwise = list(reversed(SQUARE))
        assert point_in_ring((5, 5), clockwise) is True
        assert point_in_ring((-1, 5), clockwise) is False

    def test_concave_ring_notch(self):
        """Point in the bounding box but in the notch of an L is outside."""
        l_shape = [(0, 0), (10, 0), (10, 5), (5, 5), (5, 10), (0, 10), (0, 0)]
        assert point_in_ring((2, 8), l_shape) is True
        assert point_in_ring((8, 8), l_shape) is False

    def test_degenerate_ring(self):
        assert point_in_ring((0, 0), [(0, 0), (1, 1), (0, 0)]) is False


class TestPointInPolygon:
    """Tests for point_in_polygon with holes and degenerate data."""

    def test_point_in_shell(self):
        assert point_in_polygon((2, 2), [SQUARE, HOLE]) is True

    def test_point_in_hole_is_outside(self):
        assert point_in_polygon((5, 5), [SQUARE, HOLE]) is False

    def test_point_on_hole_edge_is_inside(self):
        """Hole boundaries are polygon boundaries, so they count as inside."""
        assert point_in_polygon((4, 5), [SQUARE, HOLE]) is True

    def test_island_inside_hole(self):
        """Even-odd: a third nested ring makes its interior part of the polygon again."""
        island = [(4.5, 4.5), (5.5, 4.5), (5.5, 5.5), (4.5, 5.5), (4.5, 4.5)]
        assert point_in_polygon((5, 5), [SQUARE, HOLE, island]) is True
        assert point_in_polygon((4.2, 4.2), [SQUARE, HOLE, island]) is False

    def test_multipart_rings(self):
        """Disjoint outer rings each count once."""
        other = [(20, 0), (30, 0), (30, 10), (20, 10), (20, 0)]
        assert point_in_polygon((25, 5), [SQUARE, other]) is True
        assert point_in_polygon((15, 5), [SQUARE, other]) is False

    def test_zero_rings(self):
        assert point_in_polygon((0, 0), []) is False

    def test_too_few_vertices(self):
        """Degenerate polygons return False instead of raising."""
        assert point_in_polygon((0, 0), [[(0, 0), (1, 0), (0, 0)]]) is False

    def test_collinear_ring(self):
        line = [(0, 0), (5, 0), (10, 0), (0, 0)]
        assert point_in_polygon((5, 0), [line]) is False

    def test_non_finite_ring(self):
        ring = [(0, 0), (math.nan, 0), (10, 10), (0, 10), (0, 0)]
        assert point_in_polygon((5, 5), [ring]) is False


class TestPolygonProblem:
    """Tests for degeneracy detection."""

    def test_valid_polygon(self):
        assert polygon_problem([SQUARE, HOLE]) is None

    def test_closed_triangle_is_usable(self):
        triangle = [(0, 0), (4, 0), (0, 4), (0, 0)]

        assert polygon_problem([triangle]) is None
        assert point_in_polygon((1, 1), [triangle]) is True
        assert point_in_polygon((3, 3), [triangle]) is False

    @pytest.mark.parametrize(
        "rings, fragment",
        [
            ([], "no rings"),
            ([[(0, 0), (1, 0), (0, 0)]], "at least 4"),
            ([[(0, 0), (1, 0), (1, 1), (0, 1)]], "not closed"),
            ([[(0, 0), (1, 1), (0, 0), (0, 0)]], "distinct"),
            ([[(0, 0), (1, 1), (2, 2), (0, 0)]], "zero area"),
            ([SQUARE, [(1, 1), (2, 2), (1, 1)]], "ring 1"),
        ],
    )
    def test_degenerate_polygons(self, rings, fragment):
        problem = polygon_problem(rings)
        assert problem is not None
        assert fragment in problem


class TestBBox:
    """Tests for bounding boxes."""

    def test_of_rings(self):
        box = BBox.of_rings([SQUARE, [(12, -3), (14, -3), (14, 1), (12, -3)]])
        assert box == BBox(0, -3, 14, 10)

    def test_area(self):
        assert BBox(0, 0, 2, 5).area == 10

    def test_contains_is_inclusive(self):
        box = BBox(0, 0, 10, 10)
        assert box.contains(0, 0)
        assert box.contains(10, 5)
        assert not box.contains(10.0001, 5)

    def test_union(self):
        assert BBox(0, 0, 1, 1).union(BBox(5, -1, 6, 0)) == BBox(0, -1, 6, 1)

    def test_of_point(self):
        assert BBox.of_point(3, 4).area == 0

    def test_empty_rings_raise(self):
        with pytest.raises(ValueError):
            BBox.of_rings([])


class TestPolygonRecordCovers:
    """PolygonRecord caches its shapes and applies the same policy."""

    def test_covers(self):
        polygon = PolygonRecord("p", [SQUARE, HOLE], {}, "EPSG:4326")
        assert polygon.covers(1, 1)
        assert polygon.covers(10, 10)
        assert not polygon.covers(5, 5)
        assert polygon.is_valid
        assert polygon.bounds == BBox(0, 0, 10, 10)

    def test_degenerate_record_covers_nothing(self):
        polygon = PolygonRecord("bad", [], {}, "EPSG:4326")
        assert polygon.covers(0, 0) is False
        assert polygon.problem == "polygon has no rings"
