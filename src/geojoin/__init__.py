"""
geojoin: CRS-aware point-in-polygon joins for Python.

Enrich point records (field samples, geocoded places, sensor sites) with the
attributes of the polygon that contains them (watersheds, counties, zones).

Supports:
- Deterministic grid spatial index with smallest-polygon tie-break
- CRS guard that refuses to join layers tagged with different systems
- Per-record error reporting for malformed points and degenerate polygons
- pandas / geopandas adapters and a command line interface
"""

from geojoin.core.crs import (
    CrsMismatchError,
    InvalidCrsError,
    assert_compatible,
    crs_tag,
    normalize_crs,
)
from geojoin.core.geometry import (
    BBox,
    InvalidGeometryError,
    point_in_polygon,
    point_in_ring,
    polygon_problem,
)
from geojoin.core.join import (
    JoinOptions,
    JoinResult,
    SpatialJoiner,
    spatial_join,
    spatial_join_async,
)
from geojoin.core.records import (
    InvalidPointError,
    JoinedRecord,
    JoinStatus,
    PointCollection,
    PointRecord,
    PolygonCollection,
    PolygonRecord,
)
from geojoin.core.spatial import SpatialIndex
from geojoin.io.frames import (
    points_from_dataframe,
    polygons_from_geodataframe,
    read_points,
    read_polygons,
    write_result,
)

__version__ = "0.1.0"
__all__ = [
    # Main API
    "spatial_join",
    "spatial_join_async",
    "SpatialJoiner",
    "JoinOptions",
    "JoinResult",
    "JoinedRecord",
    "JoinStatus",
    # Records
    "PointRecord",
    "PolygonRecord",
    "PointCollection",
    "PolygonCollection",
    # Geometry and index
    "BBox",
    "SpatialIndex",
    "point_in_ring",
    "point_in_polygon",
    "polygon_problem",
    # CRS
    "assert_compatible",
    "normalize_crs",
    "crs_tag",
    # Exceptions
    "CrsMismatchError",
    "InvalidCrsError",
    "InvalidGeometryError",
    "InvalidPointError",
    # Table adapters
    "points_from_dataframe",
    "polygons_from_geodataframe",
    "read_points",
    "read_polygons",
    "write_result",
]
