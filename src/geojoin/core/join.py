"""Point-in-polygon join engine - the primary user interface."""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterator, List, Literal, Optional, Sequence, Tuple, Union, cast

import geopandas as gpd
import pandas as pd
from shapely.geometry import Point

from geojoin.core.crs import assert_compatible
from geojoin.core.geometry import InvalidGeometryError
from geojoin.core.records import (
    OUTPUT_COLUMNS,
    Attributes,
    InvalidPointError,
    JoinedRecord,
    JoinStatus,
    PointCollection,
    PointRecord,
    PolygonCollection,
    point_column,
)
from geojoin.core.spatial import SpatialIndex

logger = logging.getLogger(__name__)

OnUnmatched = Literal["null", "drop"]
JoinError = Union[InvalidPointError, InvalidGeometryError]

COLLISION_SUFFIX = "_right"


@dataclass(frozen=True)
class JoinOptions:
    """Options for a spatial join."""

    # Namespace for merged polygon attribute keys, e.g. "huc_"
    attribute_prefix: Optional[str] = None
    # "null" keeps unmatched points with empty polygon fields, "drop" removes them
    on_unmatched: OnUnmatched = "null"
    workers: int = 1
    progress: bool = False

    def __post_init__(self):
        if self.on_unmatched not in ("null", "drop"):
            raise ValueError(
                f"on_unmatched must be 'null' or 'drop', got {self.on_unmatched!r}"
            )
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")


@dataclass
class JoinResult(Sequence[JoinedRecord]):
    """Ordered joined records plus every per-record error met on the way."""

    records: List[JoinedRecord]
    crs: str
    polygon_fields: Tuple[str, ...] = ()
    errors: List[JoinError] = field(default_factory=list)

    def __getitem__(self, index):
        return self.records[index]

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[JoinedRecord]:
        return iter(self.records)

    def _count(self, status: JoinStatus) -> int:
        return sum(1 for r in self.records if r.status is status)

    @property
    def matched_count(self) -> int:
        return self._count(JoinStatus.MATCHED)

    @property
    def unmatched_count(self) -> int:
        return self._count(JoinStatus.UNMATCHED)

    @property
    def invalid_count(self) -> int:
        """Invalid points in the input, including any dropped from records."""
        return sum(1 for e in self.errors if isinstance(e, InvalidPointError))

    def to_dataframe(self) -> pd.DataFrame:
        """Convert to a DataFrame with one row per record."""
        return pd.DataFrame([r.to_dict() for r in self.records])

    def to_geodataframe(self) -> gpd.GeoDataFrame:
        """
        Convert to a point GeoDataFrame tagged with the join CRS.

        Invalid points get an empty geometry.
        """
        df = self.to_dataframe()
        geometry = [
            None if r.is_invalid else Point(cast(float, r.x), cast(float, r.y))
            for r in self.records
        ]
        return gpd.GeoDataFrame(df, geometry=gpd.GeoSeries(geometry, crs=self.crs))


def _merge_keys(
    polygon_fields: Sequence[str],
    point_keys: Sequence[str],
    prefix: Optional[str],
) -> Dict[str, str]:
    """
    Map polygon attribute names to their names in the joined record.

    A name that would land on a point column or a fixed output column
    (id, x, y, polygon_id, join_status) gets the "_right" suffix.
    """
    taken = {point_column(key) for key in point_keys} | set(OUTPUT_COLUMNS)
    mapping = {}
    for key in polygon_fields:
        name = f"{prefix}{key}" if prefix else key
        mapping[key] = name + COLLISION_SUFFIX if name in taken else name
    return mapping


class SpatialJoiner:
    """
    Joins point layers against one polygon layer.

    Builds the spatial index once and reuses it for every join, which pays
    off when several point layers are joined against the same polygons.

    Example usage:
        >>> joiner = SpatialJoiner(subbasins)
        >>> result = joiner.join(samples, JoinOptions(attribute_prefix="huc_"))
        >>> print(result.matched_count, result.errors)
    """

    def __init__(self, polygons: PolygonCollection, cell_size: Optional[float] = None):
        if polygons is None:
            raise TypeError("polygons must be a PolygonCollection, got None")
        self._polygons = polygons
        self._cell_size = cell_size
        self._index: Optional[SpatialIndex] = None

    @property
    def index(self) -> SpatialIndex:
        """Get or build the spatial index."""
        if self._index is None:
            self._index = SpatialIndex(self._polygons, cell_size=self._cell_size)
        return self._index

    @property
    def polygons(self) -> PolygonCollection:
        return self._polygons

    def _prepare(self, points: PointCollection) -> SpatialIndex:
        if points is None:
            raise TypeError("points must be a PointCollection, got None")
        # Guard runs before any index or geometry work
        assert_compatible(points.crs, self._polygons.crs)
        return self.index

    def _join_point(
        self,
        point: PointRecord,
        index: SpatialIndex,
        key_map: Dict[str, str],
    ) -> Tuple[JoinedRecord, Optional[InvalidPointError]]:
        """Join a single point. Never raises for bad coordinates."""
        problem = point.problem
        if problem:
            error = InvalidPointError(point.id, problem)
            record = JoinedRecord(
                id=point.id,
                x=point.x,
                y=point.y,
                attributes=dict(point.attributes),
                polygon_attributes={name: None for name in key_map.values()},
                status=JoinStatus.INVALID,
                error=str(error),
            )
            return record, error

        x, y = point.validate()
        position = index.lookup(x, y)

        if position is None:
            return (
                JoinedRecord(
                    id=point.id,
                    x=x,
                    y=y,
                    attributes=dict(point.attributes),
                    polygon_attributes={name: None for name in key_map.values()},
                    status=JoinStatus.UNMATCHED,
                ),
                None,
            )

        polygon = self._polygons[position]
        merged: Attributes = {name: None for name in key_map.values()}
        for key, value in polygon.attributes.items():
            merged[key_map[key]] = value

        return (
            JoinedRecord(
                id=point.id,
                x=x,
                y=y,
                attributes=dict(point.attributes),
                polygon_id=polygon.id,
                polygon_attributes=merged,
                status=JoinStatus.MATCHED,
            ),
            None,
        )

    def _key_map(self, points: PointCollection, options: JoinOptions) -> Dict[str, str]:
        point_keys: Dict[str, None] = {}
        for point in points:
            for key in point.attributes:
                point_keys.setdefault(key, None)
        return _merge_keys(self._polygons.fields, list(point_keys), options.attribute_prefix)

    def _join_slice(
        self,
        points: PointCollection,
        index: SpatialIndex,
        key_map: Dict[str, str],
        slots: List[Any],
        start: int,
        stop: int,
        pbar: Any = None,
    ) -> None:
        """Fill slots[start:stop]. Each worker owns a disjoint range."""
        for i in range(start, stop):
            slots[i] = self._join_point(points[i], index, key_map)
            if pbar is not None:
                pbar.update(1)

    def _finish(
        self,
        slots: List[Tuple[JoinedRecord, Optional[InvalidPointError]]],
        index: SpatialIndex,
        key_map: Dict[str, str],
        crs: str,
        options: JoinOptions,
    ) -> JoinResult:
        errors: List[JoinError] = list(index.errors)
        records: List[JoinedRecord] = []

        for record, error in slots:
            if error is not None:
                logger.warning("%s", error)
                errors.append(error)
            if options.on_unmatched == "drop" and not record.is_matched:
                continue
            records.append(record)

        result = JoinResult(
            records=records,
            crs=crs,
            polygon_fields=tuple(key_map.values()),
            errors=errors,
        )
        logger.debug(
            "Joined %d points: %d matched, %d unmatched, %d invalid",
            len(slots),
            sum(1 for r, _ in slots if r.is_matched),
            sum(1 for r, _ in slots if r.status is JoinStatus.UNMATCHED),
            result.invalid_count,
        )
        return result

    def _ranges(self, total: int, workers: int) -> List[Tuple[int, int]]:
        """Split [0, total) into at most `workers` contiguous ranges."""
        workers = max(1, min(workers, total))
        size, extra = divmod(total, workers)
        ranges = []
        start = 0
        for i in range(workers):
            stop = start + size + (1 if i < extra else 0)
            ranges.append((start, stop))
            start = stop
        return ranges

    def _progress_bar(self, total: int, options: JoinOptions) -> Any:
        if not options.progress:
            return None
        from tqdm import tqdm

        return tqdm(total=total, desc="Joining")

    def join(self, points: PointCollection, options: Optional[JoinOptions] = None) -> JoinResult:
        """
        Join every point to the polygon containing it.

        Args:
            points: Point layer, same CRS as the polygons
            options: Join options; defaults to JoinOptions()

        Returns:
            JoinResult in input point order

        Raises:
            CrsMismatchError: If the layers' CRS tags differ
        """
        options = options or JoinOptions()
        index = self._prepare(points)
        key_map = self._key_map(points, options)

        total = len(points)
        slots: List[Any] = [None] * total
        ranges = self._ranges(total, options.workers)

        pbar = self._progress_bar(total, options)

        try:
            if len(ranges) <= 1:
                self._join_slice(points, index, key_map, slots, 0, total, pbar)
            else:
                with ThreadPoolExecutor(max_workers=len(ranges)) as executor:
                    futures = [
                        executor.submit(
                            self._join_slice, points, index, key_map, slots, start, stop, pbar
                        )
                        for start, stop in ranges
                    ]
                    for future in futures:
                        future.result()
        finally:
            if pbar is not None:
                pbar.close()

        return self._finish(slots, index, key_map, points.crs, options)

    async def join_async(
        self,
        points: PointCollection,
        options: Optional[JoinOptions] = None,
    ) -> JoinResult:
        """
        Join concurrently, fanning point ranges out to worker threads.

        Same result as join(); `options.workers` sets the number of ranges
        and `options.progress` shows one bar shared by all of them.
        """
        options = options or JoinOptions()
        index = await asyncio.to_thread(self._prepare, points)
        key_map = self._key_map(points, options)

        total = len(points)
        slots: List[Any] = [None] * total
        pbar = self._progress_bar(total, options)

        try:
            await asyncio.gather(
                *[
                    asyncio.to_thread(
                        self._join_slice, points, index, key_map, slots, start, stop, pbar
                    )
                    for start, stop in self._ranges(total, options.workers)
                ]
            )
        finally:
            if pbar is not None:
                pbar.close()

        return self._finish(slots, index, key_map, points.crs, options)


def _resolve_options(options: Optional[JoinOptions], overrides: Dict[str, Any]) -> JoinOptions:
    options = options or JoinOptions()
    return replace(options, **overrides) if overrides else options


def spatial_join(
    points: PointCollection,
    polygons: PolygonCollection,
    options: Optional[JoinOptions] = None,
    **overrides: Any,
) -> JoinResult:
    """
    Enrich points with the attributes of the polygon that contains them.

    Args:
        points: Point layer
        polygons: Polygon layer with the same CRS tag; may be empty
        options: Join options
        **overrides: Individual JoinOptions fields, e.g. on_unmatched="drop"

    Returns:
        JoinResult with one record per point (unmatched and invalid points
        left out when on_unmatched="drop") and the accumulated errors

    Raises:
        CrsMismatchError: If the CRS tags differ; raised before any index work
    """
    if points is None or polygons is None:
        raise TypeError("spatial_join requires both a point and a polygon collection")
    # Check before building the joiner so nothing touches geometry on mismatch
    assert_compatible(points.crs, polygons.crs)
    return SpatialJoiner(polygons).join(points, _resolve_options(options, overrides))


async def spatial_join_async(
    points: PointCollection,
    polygons: PolygonCollection,
    options: Optional[JoinOptions] = None,
    **overrides: Any,
) -> JoinResult:
    """Async variant of spatial_join()."""
    if points is None or polygons is None:
        raise TypeError("spatial_join requires both a point and a polygon collection")
    assert_compatible(points.crs, polygons.crs)
    return await SpatialJoiner(polygons).join_async(points, _resolve_options(options, overrides))
