"""Coordinate reference system tags and the compatibility guard."""

from typing import Any, Optional


class CrsMismatchError(Exception):
    """Two layers are tagged with different coordinate reference systems."""

    def __init__(self, crs_a: Optional[str], crs_b: Optional[str]):
        self.crs_a = crs_a
        self.crs_b = crs_b
        super().__init__(
            f"CRS mismatch: {crs_a!r} vs {crs_b!r}. "
            "Reproject one layer so both share a reference system before joining."
        )


class InvalidCrsError(Exception):
    """A CRS tag is missing, or a collection mixes several tags."""

    def __init__(self, tag: Optional[str], reason: str):
        self.tag = tag
        self.reason = reason
        super().__init__(f"Invalid CRS {tag!r}: {reason}")


def normalize_crs(tag: Optional[str]) -> str:
    """
    Normalize a CRS tag for comparison.

    Args:
        tag: Reference identifier such as "EPSG:4326" or a proj string

    Returns:
        The tag stripped of surrounding whitespace and case-folded

    Raises:
        InvalidCrsError: If the tag is missing or blank
    """
    if tag is None or not str(tag).strip():
        raise InvalidCrsError(tag, "CRS tag is empty")
    return str(tag).strip().casefold()


def same_crs(tag_a: Optional[str], tag_b: Optional[str]) -> bool:
    """Check whether two tags name the same reference system."""
    return normalize_crs(tag_a) == normalize_crs(tag_b)


def assert_compatible(tag_a: Optional[str], tag_b: Optional[str]) -> None:
    """
    Fail unless both tags name the same reference system.

    No coordinate transformation is attempted: layers must already be
    expressed in a common reference.

    Raises:
        CrsMismatchError: If the normalized tags differ
        InvalidCrsError: If either tag is empty
    """
    if not same_crs(tag_a, tag_b):
        raise CrsMismatchError(tag_a, tag_b)


def crs_tag(crs: Any) -> Optional[str]:
    """
    Convert a CRS object to a tag string.

    Accepts strings and pyproj CRS objects (as found on GeoDataFrame.crs).
    Objects with an authority code become "AUTH:CODE", anything else falls
    back to its string form.
    """
    if crs is None:
        return None
    if isinstance(crs, str):
        return crs
    to_authority = getattr(crs, "to_authority", None)
    if to_authority is not None:
        authority = to_authority()
        if authority:
            return f"{authority[0]}:{authority[1]}"
    to_string = getattr(crs, "to_string", None)
    if to_string is not None:
        return to_string()
    return str(crs)
