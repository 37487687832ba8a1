"""CLI commands for geojoin."""

import json
import logging
from typing import Optional

import click

from geojoin import (
    CrsMismatchError,
    InvalidCrsError,
    JoinOptions,
    SpatialIndex,
    read_points,
    read_polygons,
    spatial_join,
    write_result,
)


@click.group()
@click.version_option(package_name="geojoin")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Geojoin: enrich points with the attributes of their containing polygon."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


@cli.command()
@click.argument("points_file", type=click.Path(exists=True))
@click.argument("polygons_file", type=click.Path(exists=True))
@click.argument("output_file", type=click.Path())
@click.option("--x-column", "-x", default="longitude", help="Longitude column in the point table")
@click.option("--y-column", "-y", default="latitude", help="Latitude column in the point table")
@click.option("--id-column", default=None, help="Point id column (defaults to row number)")
@click.option("--crs", default="EPSG:4326", help="CRS tag of the point coordinates")
@click.option("--polygon-id-column", default=None, help="Polygon id column")
@click.option("--prefix", "-p", default=None, help="Prefix for merged polygon attributes")
@click.option("--drop-unmatched", is_flag=True, help="Leave out points outside every polygon")
@click.option("--workers", "-w", default=1, type=click.IntRange(min=1), help="Worker threads")
@click.option("--progress/--no-progress", default=False, help="Show a progress bar")
def join(
    points_file: str,
    polygons_file: str,
    output_file: str,
    x_column: str,
    y_column: str,
    id_column: Optional[str],
    crs: str,
    polygon_id_column: Optional[str],
    prefix: Optional[str],
    drop_unmatched: bool,
    workers: int,
    progress: bool,
):
    """Join a point table to a polygon layer and write the result."""
    try:
        points = read_points(points_file, x_column, y_column, id_column, crs)
        polygons = read_polygons(polygons_file, id_column=polygon_id_column)
    except KeyError as e:
        raise click.ClickException(str(e.args[0]))
    except InvalidCrsError as e:
        raise click.ClickException(str(e))

    options = JoinOptions(
        attribute_prefix=prefix,
        on_unmatched="drop" if drop_unmatched else "null",
        workers=workers,
        progress=progress,
    )

    try:
        result = spatial_join(points, polygons, options)
    except CrsMismatchError as e:
        raise click.ClickException(str(e))

    try:
        write_result(result, output_file)
    except ValueError as e:
        raise click.ClickException(str(e))

    for error in result.errors:
        click.echo(f"  Warning: {error}", err=True)

    total = len(points)
    matched = result.matched_count
    click.echo(f"Joined {total} points -> {output_file}")
    if total:
        click.echo(f"Matched: {matched}/{total} ({100 * matched / total:.1f}%)")
    else:
        click.echo("Matched: 0/0")
    click.echo(f"Invalid points: {result.invalid_count}")


@cli.command()
@click.argument("polygons_file", type=click.Path(exists=True))
@click.option("--id-column", default=None, help="Polygon id column")
def info(polygons_file: str, id_column: Optional[str]):
    """Show information about a polygon layer."""
    try:
        polygons = read_polygons(polygons_file, id_column=id_column)
    except (KeyError, InvalidCrsError) as e:
        raise click.ClickException(str(e))

    index = SpatialIndex(polygons)

    click.echo(f"\nLayer: {polygons_file}")
    click.echo(f"CRS: {polygons.crs}")
    click.echo(f"Polygons: {len(polygons)} ({len(index)} indexed)")
    if index.bounds is not None:
        minx, miny, maxx, maxy = index.bounds
        click.echo(f"Bounds: ({minx}, {miny}) - ({maxx}, {maxy})")
    cols, rows = index.shape
    click.echo(f"Grid: {cols}x{rows} cells")
    if polygons.fields:
        click.echo(f"Fields: {', '.join(polygons.fields)}")

    if index.errors:
        click.echo(f"\nDegenerate polygons ({len(index.errors)}):")
        for error in index.errors:
            click.echo(f"  {error.polygon_id}: {error.reason}")


@cli.command()
@click.argument("polygons_file", type=click.Path(exists=True))
@click.argument("x", type=float)
@click.argument("y", type=float)
@click.option("--id-column", default=None, help="Polygon id column")
def locate(polygons_file: str, x: float, y: float, id_column: Optional[str]):
    """Find the polygon containing a coordinate (x = longitude, y = latitude)."""
    try:
        polygons = read_polygons(polygons_file, id_column=id_column)
    except (KeyError, InvalidCrsError) as e:
        raise click.ClickException(str(e))

    position = SpatialIndex(polygons).lookup(x, y)
    if position is None:
        click.echo("No polygon found for these coordinates.")
        return

    polygon = polygons[position]
    click.echo(
        json.dumps(
            {"polygon_id": polygon.id, **polygon.attributes},
            indent=2,
            default=str,
        )
    )


if __name__ == "__main__":
    cli()
