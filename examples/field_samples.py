"""Example of enriching a CSV of field samples with watershed attributes."""

import pandas as pd
import geopandas as gpd
from shapely.geometry import Polygon

from geojoin import (
    points_from_dataframe,
    polygons_from_geodataframe,
    spatial_join,
)

# Sample table as it would come from pd.read_csv("herbarium_records.csv")
samples = pd.DataFrame(
    {
        "record_id": [1, 2, 3, 4],
        "species": ["Trillium", "Sarracenia", "Kalmia", "Quercus"],
        "longitude": [-84.37, -83.61, None, -79.0],
        "latitude": [33.93, 33.20, 33.5, 35.0],
    }
)

# Polygon layer as it would come from gpd.read_file("subwatersheds.shp")
subwatersheds = gpd.GeoDataFrame(
    {"HUC10": ["0313000101", "0313000102"], "NAME": ["Upper Creek", "Lower Creek"]},
    geometry=[
        Polygon([(-85, 34), (-85, 33), (-84, 33), (-84, 34)]),
        Polygon([(-84, 34), (-84, 33), (-83, 33), (-83, 34)]),
    ],
    crs="EPSG:4326",
)

# Promote the flat X/Y table to points tagged with a CRS
points = points_from_dataframe(samples, id_column="record_id", crs="EPSG:4326")
polygons = polygons_from_geodataframe(subwatersheds, id_column="HUC10")

# Join, keeping unmatched and invalid rows so nothing silently disappears
result = spatial_join(points, polygons, attribute_prefix="ws_")

print("\nResults:")
print(result.to_dataframe()[["id", "species", "ws_NAME", "polygon_id", "join_status"]])

# Data-quality report
for error in result.errors:
    print(f"Warning: {error}")

print(f"\nMatch rate: {result.matched_count}/{len(points)}")

# Save to file (from geojoin import write_result)
# write_result(result, "samples_with_watersheds.geojson")
# write_result(result, "samples_with_watersheds.csv")
