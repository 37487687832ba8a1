"""Command line interface for geojoin."""
