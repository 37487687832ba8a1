"""Spatial index and point-in-polygon lookups."""

import logging
import math
from typing import Dict, List, Optional, Tuple

from geojoin.core.geometry import BBox, InvalidGeometryError
from geojoin.core.records import PolygonCollection

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


class SpatialIndex:
    """
    Uniform grid index for point-in-polygon lookups.

    Each grid cell lists the positions of the polygons whose bounding box
    overlaps it. Cells only hold integer positions into the polygon
    collection, so the index never copies geometry and the same input always
    yields the same candidate lists.
    """

    def __init__(
        self,
        polygons: PolygonCollection,
        cell_size: Optional[float] = None,
    ):
        """
        Build the index.

        Args:
            polygons: Polygon layer to index
            cell_size: Grid cell edge length in CRS units. Defaults to a grid
                of roughly sqrt(n) x sqrt(n) cells over the layer extent.

        Degenerate polygons are left out of the index, logged, and kept in
        ``errors``.
        """
        if cell_size is not None and not cell_size > 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")

        self._polygons = polygons
        self.errors: List[InvalidGeometryError] = []

        valid: List[int] = []
        for position, polygon in enumerate(polygons):
            problem = polygon.problem
            if problem:
                error = InvalidGeometryError(polygon.id, problem)
                logger.warning("Skipping polygon from index: %s", error)
                self.errors.append(error)
            else:
                # Shapes are built here so lookups never write to shared state
                polygon.prepare()
                valid.append(position)

        self._positions = valid
        self._bounds: Optional[BBox] = polygons.bounds
        self._cells: Dict[Cell, List[int]] = {}
        self._cell_w = self._cell_h = 1.0
        self._ncols = self._nrows = 0

        if self._bounds is not None:
            self._build_grid(cell_size)

        logger.debug(
            "Indexed %d of %d polygons on a %dx%d grid",
            len(self._positions),
            len(polygons),
            self._ncols,
            self._nrows,
        )

    def _build_grid(self, cell_size: Optional[float]) -> None:
        bounds = self._bounds
        assert bounds is not None
        width = bounds.maxx - bounds.minx
        height = bounds.maxy - bounds.miny

        if cell_size is None:
            per_axis = max(1, math.ceil(math.sqrt(len(self._positions))))
            self._ncols = self._nrows = per_axis
            self._cell_w = width / per_axis if width > 0 else 1.0
            self._cell_h = height / per_axis if height > 0 else 1.0
        else:
            self._cell_w = self._cell_h = cell_size
            self._ncols = max(1, math.ceil(width / cell_size))
            self._nrows = max(1, math.ceil(height / cell_size))

        for position in self._positions:
            box = self._polygons[position].bounds
            col_lo, row_lo = self._cell_of(box.minx, box.miny)
            col_hi, row_hi = self._cell_of(box.maxx, box.maxy)
            for col in range(col_lo, col_hi + 1):
                for row in range(row_lo, row_hi + 1):
                    self._cells.setdefault((col, row), []).append(position)

    def _cell_of(self, x: float, y: float) -> Cell:
        """Grid cell for a coordinate inside the index extent."""
        bounds = self._bounds
        assert bounds is not None
        col = int((x - bounds.minx) // self._cell_w)
        row = int((y - bounds.miny) // self._cell_h)
        return (
            min(max(col, 0), self._ncols - 1),
            min(max(row, 0), self._nrows - 1),
        )

    def candidates(self, x: float, y: float) -> List[int]:
        """
        Positions of polygons whose bounding box contains the point.

        Returns:
            Ascending collection positions; empty outside the index extent
        """
        if self._bounds is None or not self._bounds.contains(x, y):
            return []
        cell = self._cells.get(self._cell_of(x, y), [])
        return [p for p in cell if self._polygons[p].bounds.contains(x, y)]

    def lookup(self, x: float, y: float) -> Optional[int]:
        """
        Find the position of the polygon containing a point.

        Uses two-phase approach:
        1. Grid cell lookup for bounding-box candidates
        2. Exact boundary-inclusive test on candidates

        If several polygons contain the point, the one with the smallest
        bounding-box area wins, then the lowest collection position.

        Returns:
            Collection position, or None if no polygon contains the point
        """
        matches = []
        for position in self.candidates(x, y):
            polygon = self._polygons[position]
            if polygon.covers(x, y):
                matches.append((polygon.bounds.area, position))

        if not matches:
            return None

        return min(matches)[1]

    @property
    def polygons(self) -> PolygonCollection:
        return self._polygons

    @property
    def bounds(self) -> Optional[BBox]:
        """Extent of all indexed polygons."""
        return self._bounds

    @property
    def cell_size(self) -> Tuple[float, float]:
        return (self._cell_w, self._cell_h)

    @property
    def shape(self) -> Tuple[int, int]:
        """Grid size as (columns, rows)."""
        return (self._ncols, self._nrows)

    @property
    def crs(self) -> str:
        return self._polygons.crs

    def __len__(self) -> int:
        return len(self._positions)
