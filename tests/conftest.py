"""Pytest fixtures for geojoin tests."""

import ast
import re
from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import MultiPolygon, Polygon

from geojoin import PointCollection, PointRecord, PolygonCollection, PolygonRecord


# =============================================================================
# Public surface guard: test modules may import geojoin and geojoin.cli only
# =============================================================================

PUBLIC_MODULES = (
    re.compile(r"^geojoin$"),
    re.compile(r"^geojoin\.cli(\..+)?$"),
)


def _is_public(module_name: str) -> bool:
    if module_name != "geojoin" and not module_name.startswith("geojoin."):
        return True
    return any(pattern.match(module_name) for pattern in PUBLIC_MODULES)


def _private_imports(filepath: Path) -> list[str]:
    """List every geojoin.core / geojoin.io import in a test module."""
    try:
        tree = ast.parse(filepath.read_text())
    except (SyntaxError, UnicodeDecodeError):
        return []

    found = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules = [alias.name for alias in node.names]
        elif isinstance(node, ast.ImportFrom) and node.module:
            modules = [node.module]
        else:
            continue
        for module in modules:
            if not _is_public(module):
                found.append(f"{filepath}:{node.lineno}: imports {module}")
    return found


def pytest_collect_file(parent, file_path):
    """Refuse to collect test modules that reach past the package root."""
    if file_path.suffix == ".py" and file_path.name.startswith("test_"):
        found = _private_imports(file_path)
        if found:
            pytest.fail(
                "\n\ngeojoin tests must go through the exported names:\n"
                + "\n".join(found)
                + "\n\nRe-export the name from geojoin/__init__.py and import it as\n"
                "  from geojoin import SpatialIndex, spatial_join, ...\n"
            )


# =============================================================================
# Record fixtures
# =============================================================================

WGS84 = "EPSG:4326"


def square(minx, miny, maxx, maxy):
    """Closed counter-clockwise ring for an axis-aligned box."""
    return [(minx, miny), (maxx, miny), (maxx, maxy), (minx, maxy), (minx, miny)]


@pytest.fixture
def sample_polygons():
    """Three tiles covering (0, 0) - (100, 100): two bottom halves and a top strip."""
    return PolygonCollection(
        [
            PolygonRecord("SW", [square(0, 0, 50, 50)], {"name": "south-west", "zone": 1}, WGS84),
            PolygonRecord("SE", [square(50, 0, 100, 50)], {"name": "south-east", "zone": 2}, WGS84),
            PolygonRecord("N", [square(0, 50, 100, 100)], {"name": "north", "zone": 3}, WGS84),
        ],
        crs=WGS84,
    )


@pytest.fixture
def sample_points():
    """One point per tile plus one outside the layer."""
    return PointCollection(
        [
            PointRecord(1, 25, 25, {"site": "a"}, WGS84),
            PointRecord(2, 75, 25, {"site": "b"}, WGS84),
            PointRecord(3, 50, 75, {"site": "c"}, WGS84),
            PointRecord(4, 200, 200, {"site": "d"}, WGS84),
        ],
        crs=WGS84,
    )


@pytest.fixture
def huc_polygons():
    """Single subwatershed polygon around (-84.5, 33.5)."""
    return PolygonCollection(
        [
            PolygonRecord(
                "A",
                [[(-85, 34), (-85, 33), (-84, 33), (-84, 34), (-85, 34)]],
                {"name": "HUC-A"},
                WGS84,
            )
        ],
        crs=WGS84,
    )


# =============================================================================
# Table fixtures
# =============================================================================


@pytest.fixture
def sample_point_table():
    """Flat X/Y table as a CSV reader would produce it."""
    return pd.DataFrame(
        {
            "sample_id": [101, 102, 103, 104],
            "species": ["Trillium", "Sarracenia", "Kalmia", "Quercus"],
            "count": [3, 1, 7, 2],
            "longitude": [25.0, 75.0, None, 50.0],
            "latitude": [25.0, 25.0, 60.0, 75.0],
        }
    )


@pytest.fixture
def sample_polygon_gdf():
    """Polygon layer as a vector file reader would produce it."""
    return gpd.GeoDataFrame(
        {
            "HUC": ["0001", "0002", "0003"],
            "NAME": ["South West", "South East", "North"],
            "AREA_KM2": [2500.0, 2500.0, 5000.0],
        },
        geometry=[
            Polygon(square(0, 0, 50, 50)),
            Polygon(square(50, 0, 100, 50)),
            MultiPolygon(
                [Polygon(square(0, 50, 40, 100)), Polygon(square(60, 50, 100, 100))]
            ),
        ],
        crs=WGS84,
    )
