"""Geometry primitives: bounding boxes and point-in-polygon tests."""

import math
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple

import shapely
from shapely.geometry import LinearRing
from shapely.geometry import Polygon as ShapelyPolygon

Coordinate = Tuple[float, float]
Ring = Sequence[Coordinate]

# (filled ring, ring boundary) per input ring
RingShapes = List[Tuple[ShapelyPolygon, LinearRing]]


class InvalidGeometryError(Exception):
    """Polygon has degenerate ring data and cannot take part in a join."""

    def __init__(self, polygon_id: object, reason: str):
        self.polygon_id = polygon_id
        self.reason = reason
        super().__init__(f"Invalid geometry for polygon {polygon_id!r}: {reason}")


class BBox(NamedTuple):
    """Axis-aligned bounding box."""

    minx: float
    miny: float
    maxx: float
    maxy: float

    @property
    def area(self) -> float:
        return (self.maxx - self.minx) * (self.maxy - self.miny)

    def contains(self, x: float, y: float) -> bool:
        """Inclusive containment, so points on the box edge are inside."""
        return self.minx <= x <= self.maxx and self.miny <= y <= self.maxy

    def union(self, other: "BBox") -> "BBox":
        return BBox(
            min(self.minx, other.minx),
            min(self.miny, other.miny),
            max(self.maxx, other.maxx),
            max(self.maxy, other.maxy),
        )

    @classmethod
    def of_point(cls, x: float, y: float) -> "BBox":
        return cls(x, y, x, y)

    @classmethod
    def of_rings(cls, rings: Iterable[Ring]) -> "BBox":
        """Bounding box of all coordinates in the rings."""
        xs: List[float] = []
        ys: List[float] = []
        for ring in rings:
            for x, y in ring:
                xs.append(x)
                ys.append(y)
        if not xs:
            raise ValueError("Cannot compute bounds of an empty geometry")
        return cls(min(xs), min(ys), max(xs), max(ys))


def _ring_problem(ring: Ring) -> Optional[str]:
    if len(ring) < 4:
        return f"ring has {len(ring)} coordinates, at least 4 required"
    if not all(math.isfinite(x) and math.isfinite(y) for x, y in ring):
        return "ring has non-finite coordinates"
    if tuple(ring[0]) != tuple(ring[-1]):
        return "ring is not closed"
    if len(set(map(tuple, ring))) < 3:
        return "ring has fewer than 3 distinct vertices"
    return None


def polygon_problem(rings: Sequence[Ring]) -> Optional[str]:
    """
    Describe why a polygon is degenerate.

    Vertex counts include the closing coordinate, so a ring needs at least
    4 coordinates. A closed triangle (4 coordinates, 3 distinct vertices)
    is a usable polygon.

    Returns:
        A human readable reason, or None if the rings are usable
    """
    if not rings:
        return "polygon has no rings"
    for position, ring in enumerate(rings):
        problem = _ring_problem(ring)
        if problem:
            label = "outer ring" if position == 0 else f"ring {position}"
            return f"{label}: {problem}"
    if ShapelyPolygon(rings[0]).area == 0:
        return "outer ring has zero area"
    return None


def ring_shapes(rings: Sequence[Ring]) -> RingShapes:
    """
    Build prepared shapely shapes for each ring.

    Rings must already have passed polygon_problem().
    """
    shapes = []
    for ring in rings:
        filled = ShapelyPolygon(ring)
        boundary = LinearRing(ring)
        shapely.prepare(filled)
        shapely.prepare(boundary)
        shapes.append((filled, boundary))
    return shapes


def covers_point(shapes: RingShapes, x: float, y: float) -> bool:
    """
    Even-odd containment over prebuilt ring shapes.

    A point on any ring boundary is inside. Otherwise the point is inside
    when it lies strictly within an odd number of rings, so holes and
    multipart layouts both fall out of the same count.
    """
    if not shapes:
        return False
    if any(shapely.intersects_xy(boundary, x, y) for _, boundary in shapes):
        return True
    crossings = sum(1 for filled, _ in shapes if shapely.contains_xy(filled, x, y))
    return crossings % 2 == 1


def point_in_ring(point: Coordinate, ring: Ring) -> bool:
    """
    Test a point against a single closed ring.

    Points exactly on an edge or vertex count as inside. Degenerate rings
    never contain anything.
    """
    if _ring_problem(ring) or ShapelyPolygon(ring).area == 0:
        return False
    x, y = point
    return covers_point(ring_shapes([ring]), x, y)


def point_in_polygon(point: Coordinate, rings: Sequence[Ring]) -> bool:
    """
    Test a point against a polygon given as outer ring plus holes.

    Args:
        point: (x, y) pair, x = longitude, y = latitude
        rings: Outer ring first, then hole rings

    Returns:
        True if the point is inside or on the boundary; False for
        degenerate polygons
    """
    if polygon_problem(rings):
        return False
    x, y = point
    return covers_point(ring_shapes(rings), x, y)
