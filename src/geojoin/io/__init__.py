"""Table and file adapters for geojoin."""

from geojoin.io.frames import (
    points_from_dataframe,
    polygons_from_geodataframe,
    read_points,
    read_polygons,
    write_result,
)

__all__ = [
    "points_from_dataframe",
    "polygons_from_geodataframe",
    "read_points",
    "read_polygons",
    "write_result",
]
