"""Typed point/polygon records, their collections, and joined output records."""

import math
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from typing import Any, Dict, Iterable, Iterator, Optional, Sequence, Tuple, TypeVar, Union

import pandas as pd

from geojoin.core.crs import InvalidCrsError, normalize_crs
from geojoin.core.geometry import (
    BBox,
    Coordinate,
    RingShapes,
    covers_point,
    polygon_problem,
    ring_shapes,
)

RecordId = Union[int, str]
AttributeValue = Union[str, int, float, bool, None]
Attributes = Dict[str, AttributeValue]

# Columns every joined row carries; attributes never overwrite them
OUTPUT_COLUMNS = ("id", "x", "y", "polygon_id", "join_status")
POINT_SUFFIX = "_left"


def point_column(key: str) -> str:
    """Name of a point attribute in the joined row."""
    return key + POINT_SUFFIX if key in OUTPUT_COLUMNS else key


class InvalidPointError(Exception):
    """Point has a missing or non-finite coordinate."""

    def __init__(self, point_id: object, reason: str):
        self.point_id = point_id
        self.reason = reason
        super().__init__(f"Invalid point {point_id!r}: {reason}")


def _coordinate_problem(x: Optional[float], y: Optional[float]) -> Optional[str]:
    for axis, value in (("x", x), ("y", y)):
        if value is None:
            return f"missing {axis} coordinate"
        try:
            number = float(value)
        except (TypeError, ValueError):
            return f"{axis} coordinate {value!r} is not a number"
        if not math.isfinite(number):
            return f"{axis} coordinate {value!r} is not finite"
    return None


@dataclass(frozen=True)
class PointRecord:
    """A point with identity, attributes and CRS tag. x is longitude, y latitude."""

    id: RecordId
    x: Optional[float]
    y: Optional[float]
    attributes: Attributes = field(default_factory=dict)
    crs: Optional[str] = None

    @classmethod
    def create(
        cls,
        id: RecordId,
        x: Optional[float],
        y: Optional[float],
        attributes: Optional[Attributes] = None,
        crs: Optional[str] = "EPSG:4326",
    ) -> "PointRecord":
        """
        Promote a tabular row to a spatial point.

        Raises:
            InvalidPointError: If a coordinate is missing or non-finite
            InvalidCrsError: If the CRS tag is empty
        """
        normalize_crs(crs)
        problem = _coordinate_problem(x, y)
        if problem:
            raise InvalidPointError(id, problem)
        return cls(
            id=id,
            x=float(x),  # type: ignore[arg-type]
            y=float(y),  # type: ignore[arg-type]
            attributes=dict(attributes or {}),
            crs=crs,
        )

    @property
    def problem(self) -> Optional[str]:
        """Reason this point cannot be joined, or None."""
        return _coordinate_problem(self.x, self.y)

    @property
    def is_valid(self) -> bool:
        return self.problem is None

    def validate(self) -> Coordinate:
        """
        Return the coordinate pair, raising if it is unusable.

        Raises:
            InvalidPointError: If a coordinate is missing or non-finite
        """
        problem = self.problem
        if problem:
            raise InvalidPointError(self.id, problem)
        return float(self.x), float(self.y)  # type: ignore[arg-type]

    @property
    def bounds(self) -> BBox:
        x, y = self.validate()
        return BBox.of_point(x, y)


@dataclass(frozen=True)
class PolygonRecord:
    """
    A polygon with identity, attributes and CRS tag.

    The first ring is the outer ring, further rings are holes (or extra
    parts of a multipart polygon; membership uses the even-odd rule).
    """

    id: RecordId
    rings: Sequence[Sequence[Coordinate]]
    attributes: Attributes = field(default_factory=dict)
    crs: Optional[str] = None

    def __post_init__(self):
        rings = tuple(tuple((float(x), float(y)) for x, y in ring) for ring in self.rings)
        object.__setattr__(self, "rings", rings)

    @cached_property
    def problem(self) -> Optional[str]:
        """Reason this polygon is degenerate, or None."""
        return polygon_problem(self.rings)

    @property
    def is_valid(self) -> bool:
        return self.problem is None

    @cached_property
    def bounds(self) -> BBox:
        return BBox.of_rings(self.rings)

    @cached_property
    def _shapes(self) -> RingShapes:
        return ring_shapes(self.rings)

    def prepare(self) -> None:
        """Build the cached shapely shapes now rather than on first use."""
        if not self.problem:
            self._shapes

    def covers(self, x: float, y: float) -> bool:
        """Boundary-inclusive containment; degenerate polygons cover nothing."""
        if self.problem:
            return False
        return covers_point(self._shapes, x, y)


R = TypeVar("R", PointRecord, PolygonRecord)


class _RecordCollection(Sequence[R]):
    """Immutable ordered records sharing a single CRS tag."""

    def __init__(self, records: Iterable[R], crs: Optional[str] = None):
        self._records: Tuple[R, ...] = tuple(records)

        if crs is None:
            if not self._records:
                raise InvalidCrsError(None, "an empty collection needs an explicit CRS")
            crs = self._records[0].crs

        expected = normalize_crs(crs)
        for record in self._records:
            if record.crs is not None and normalize_crs(record.crs) != expected:
                raise InvalidCrsError(
                    record.crs,
                    f"record {record.id!r} does not match collection CRS {crs!r}",
                )
        self.crs: str = crs  # type: ignore[assignment]

    def __getitem__(self, index):
        return self._records[index]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[R]:
        return iter(self._records)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self)} records, crs={self.crs!r})"


class PointCollection(_RecordCollection[PointRecord]):
    """Points sharing one CRS."""


class PolygonCollection(_RecordCollection[PolygonRecord]):
    """Polygons sharing one CRS."""

    @property
    def bounds(self) -> Optional[BBox]:
        """Bounds of all non-degenerate polygons, or None if there are none."""
        result: Optional[BBox] = None
        for polygon in self._records:
            if polygon.is_valid:
                result = polygon.bounds if result is None else result.union(polygon.bounds)
        return result

    @property
    def fields(self) -> Tuple[str, ...]:
        """Attribute names across all polygons, in first-seen order."""
        seen: Dict[str, None] = {}
        for polygon in self._records:
            for key in polygon.attributes:
                seen.setdefault(key, None)
        return tuple(seen)


class JoinStatus(Enum):
    """Outcome of joining one point."""

    MATCHED = "matched"
    UNMATCHED = "unmatched"
    INVALID = "invalid"


@dataclass
class JoinedRecord:
    """A point enriched with the attributes of its containing polygon."""

    id: RecordId
    x: Optional[float]
    y: Optional[float]
    attributes: Attributes = field(default_factory=dict)

    # Polygon side, keys already namespaced
    polygon_id: Optional[RecordId] = None
    polygon_attributes: Attributes = field(default_factory=dict)

    status: JoinStatus = JoinStatus.UNMATCHED
    error: Optional[str] = None

    @property
    def is_matched(self) -> bool:
        return self.status is JoinStatus.MATCHED

    @property
    def is_invalid(self) -> bool:
        return self.status is JoinStatus.INVALID

    def to_dict(self) -> Dict[str, Any]:
        """
        Flatten to a single mapping.

        Point attributes named like an output column get a "_left" suffix,
        so the point's id and coordinates always survive.
        """
        return {
            "id": self.id,
            "x": self.x,
            "y": self.y,
            **{point_column(key): value for key, value in self.attributes.items()},
            **self.polygon_attributes,
            "polygon_id": self.polygon_id,
            "join_status": self.status.value,
        }

    def to_series(self) -> pd.Series:
        """Convert to pandas Series."""
        return pd.Series(self.to_dict())
