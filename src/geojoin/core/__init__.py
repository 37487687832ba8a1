"""Core join engine for geojoin."""

from geojoin.core.crs import CrsMismatchError, InvalidCrsError, assert_compatible
from geojoin.core.join import JoinOptions, JoinResult, SpatialJoiner, spatial_join
from geojoin.core.spatial import SpatialIndex

__all__ = [
    "spatial_join",
    "SpatialJoiner",
    "JoinOptions",
    "JoinResult",
    "SpatialIndex",
    "assert_compatible",
    "CrsMismatchError",
    "InvalidCrsError",
]
