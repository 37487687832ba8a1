"""Adapters between pandas/geopandas tables and typed join records."""

import logging
from pathlib import Path
from typing import Any, Dict, Hashable, List, Optional, Sequence, Tuple, Union, cast

import geopandas as gpd
import pandas as pd
from shapely.geometry import MultiPolygon
from shapely.geometry import Polygon as ShapelyPolygon

from geojoin.core.crs import InvalidCrsError, crs_tag
from geojoin.core.join import JoinResult
from geojoin.core.records import (
    Attributes,
    PointCollection,
    PointRecord,
    PolygonCollection,
    PolygonRecord,
)

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

VECTOR_SUFFIXES = {".geojson", ".json", ".gpkg", ".shp", ".fgb"}


def _clean_value(value: Any) -> Any:
    """Turn pandas missing markers and numpy scalars into plain Python values."""
    if value is None:
        return None
    if not isinstance(value, (list, tuple, dict)) and bool(pd.isna(value)):
        return None
    item = getattr(value, "item", None)
    if item is not None:
        return item()
    return value


def _attributes(row: Dict[Hashable, Any], exclude: Sequence[Hashable]) -> Attributes:
    return {
        str(key): _clean_value(value) for key, value in row.items() if key not in exclude
    }


def _coordinate(value: Any) -> Optional[float]:
    """Missing or unparsable values become None so the join can report them."""
    value = _clean_value(value)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def points_from_dataframe(
    df: pd.DataFrame,
    x_column: str = "longitude",
    y_column: str = "latitude",
    id_column: Optional[str] = None,
    crs: str = "EPSG:4326",
) -> PointCollection:
    """
    Promote a flat X/Y table to a point collection.

    Rows with missing coordinates are kept; the join reports them as invalid
    instead of failing the whole table.

    Args:
        df: Table with coordinate columns
        x_column: Longitude column
        y_column: Latitude column
        id_column: Column with record ids. Defaults to the DataFrame index.
        crs: CRS tag the coordinates are expressed in

    Returns:
        PointCollection; remaining columns become point attributes

    Raises:
        KeyError: If a named column is missing
    """
    for column in (x_column, y_column, id_column):
        if column is not None and column not in df.columns:
            raise KeyError(f"Column '{column}' not found in point table")

    exclude = [c for c in (x_column, y_column, id_column) if c is not None]
    points = []
    # to_dict keeps per-column types, iterrows would upcast mixed numeric rows
    for label, row in zip(df.index, df.to_dict("records")):
        record_id = row[id_column] if id_column else label
        points.append(
            PointRecord(
                id=_clean_value(record_id),
                x=_coordinate(row[x_column]),
                y=_coordinate(row[y_column]),
                attributes=_attributes(row, exclude),
                crs=crs,
            )
        )

    return PointCollection(points, crs=crs)


def _rings(geometry: Any) -> List[List[Tuple[float, float]]]:
    """
    Flatten a polygon or multipolygon into rings.

    Parts are listed outer ring first; the even-odd rule keeps multipart
    membership intact. Anything else yields no rings (a degenerate polygon).
    """
    if geometry is None or geometry.is_empty:
        return []
    if isinstance(geometry, ShapelyPolygon):
        parts = [geometry]
    elif isinstance(geometry, MultiPolygon):
        parts = list(geometry.geoms)
    else:
        return []

    rings = []
    for part in parts:
        rings.append([(x, y) for x, y, *_ in part.exterior.coords])
        for interior in part.interiors:
            rings.append([(x, y) for x, y, *_ in interior.coords])
    return rings


def polygons_from_geodataframe(
    gdf: gpd.GeoDataFrame,
    id_column: Optional[str] = None,
    crs: Optional[str] = None,
) -> PolygonCollection:
    """
    Convert a polygon GeoDataFrame to a polygon collection.

    Args:
        gdf: Polygon layer with an attribute table
        id_column: Column with record ids. Defaults to the GeoDataFrame index.
        crs: CRS tag to use instead of gdf.crs

    Returns:
        PolygonCollection; non-geometry columns become polygon attributes

    Raises:
        KeyError: If id_column is missing
        InvalidCrsError: If the layer has no CRS and none was given
    """
    if id_column is not None and id_column not in gdf.columns:
        raise KeyError(f"Column '{id_column}' not found in polygon layer")

    tag = crs or crs_tag(gdf.crs)
    if not tag:
        raise InvalidCrsError(None, "polygon layer has no CRS; pass crs= explicitly")

    geometry_column = gdf.geometry.name
    exclude = [c for c in (geometry_column, id_column) if c is not None]

    polygons = []
    for label, row in zip(gdf.index, gdf.to_dict("records")):
        record_id = row[id_column] if id_column else label
        polygons.append(
            PolygonRecord(
                id=_clean_value(record_id),
                rings=_rings(row[geometry_column]),
                attributes=_attributes(row, exclude),
                crs=tag,
            )
        )

    return PolygonCollection(polygons, crs=tag)


def read_points(
    path: PathLike,
    x_column: str = "longitude",
    y_column: str = "latitude",
    id_column: Optional[str] = None,
    crs: str = "EPSG:4326",
) -> PointCollection:
    """
    Read a point table from disk.

    CSV and Parquet files are read as flat tables with coordinate columns.
    Vector formats are read with geopandas and their point geometry
    supplies the coordinates.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix in VECTOR_SUFFIXES:
        gdf = gpd.read_file(path)
        tag = crs_tag(gdf.crs) or crs
        df = pd.DataFrame(gdf.drop(columns=gdf.geometry.name))
        df[x_column] = [g.x if g is not None and not g.is_empty else None for g in gdf.geometry]
        df[y_column] = [g.y if g is not None and not g.is_empty else None for g in gdf.geometry]
        return points_from_dataframe(df, x_column, y_column, id_column, tag)

    if suffix == ".parquet":
        df = pd.read_parquet(path)
    else:
        df = pd.read_csv(path)

    logger.debug("Read %d rows from %s", len(df), path)
    return points_from_dataframe(df, x_column, y_column, id_column, crs)


def read_polygons(
    path: PathLike,
    id_column: Optional[str] = None,
    crs: Optional[str] = None,
) -> PolygonCollection:
    """Read a polygon layer (shapefile, GeoPackage, GeoJSON, GeoParquet)."""
    path = Path(path)
    if path.suffix.lower() == ".parquet":
        gdf = gpd.read_parquet(path)
    else:
        gdf = gpd.read_file(path)

    logger.debug("Read %d polygons from %s", len(gdf), path)
    return polygons_from_geodataframe(cast(gpd.GeoDataFrame, gdf), id_column, crs)


def write_result(result: JoinResult, path: PathLike) -> Path:
    """
    Write joined records to disk, picking the format from the suffix.

    .csv writes a flat table; .parquet writes GeoParquet; .geojson, .json,
    .gpkg, .shp and .fgb write a point layer.

    Returns:
        Path to the written file
    """
    path = Path(path)
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix == ".csv":
        result.to_dataframe().to_csv(path, index=False)
    elif suffix == ".parquet":
        result.to_geodataframe().to_parquet(path)
    elif suffix in VECTOR_SUFFIXES:
        gdf = result.to_geodataframe()
        if suffix in (".geojson", ".json"):
            gdf.to_file(path, driver="GeoJSON")
        else:
            gdf.to_file(path)
    else:
        raise ValueError(
            f"Unsupported output format: {path.suffix}. "
            "Use .csv, .parquet, .geojson, .gpkg, .shp or .fgb."
        )

    logger.debug("Wrote %d records to %s", len(result), path)
    return path
