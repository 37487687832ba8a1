"""Basic example of using geojoin."""

from geojoin import (
    JoinOptions,
    PointCollection,
    PointRecord,
    PolygonCollection,
    PolygonRecord,
    spatial_join,
)

# Build the layers
# - Points: sample sites with longitude/latitude and a few attributes
# - Polygons: subwatersheds with their HUC names
# Both layers must carry the same CRS tag, nothing is reprojected
sites = PointCollection(
    [
        PointRecord.create(1, -84.37, 33.93, {"species": "Trillium"}),
        PointRecord.create(2, -83.50, 33.40, {"species": "Kalmia"}),
        PointRecord.create(3, -80.00, 30.00, {"species": "Quercus"}),
    ],
    crs="EPSG:4326",
)

subwatersheds = PolygonCollection(
    [
        PolygonRecord(
            "A",
            [[(-85, 34), (-85, 33), (-84, 33), (-84, 34), (-85, 34)]],
            {"name": "HUC-A"},
            "EPSG:4326",
        ),
        PolygonRecord(
            "B",
            [[(-84, 34), (-84, 33), (-83, 33), (-83, 34), (-84, 34)]],
            {"name": "HUC-B"},
            "EPSG:4326",
        ),
    ],
    crs="EPSG:4326",
)

print("=" * 60)
print("Point-in-Polygon Join")
print("=" * 60)

result = spatial_join(sites, subwatersheds, JoinOptions(attribute_prefix="huc_"))

for record in result:
    if record.is_matched:
        print(f"Site {record.id}: {record.polygon_attributes['huc_name']}")
    else:
        print(f"Site {record.id}: outside every subwatershed")

print(f"\nMatched: {result.matched_count}/{len(sites)}")
