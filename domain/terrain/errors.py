"""Terrain Bounded Context - Error Hierarchy.

Custom exceptions for tile decoding and elevation grid assembly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from domain.terrain.value_objects import BoundingBox, GeoPoint


class TerrainError(Exception):
    """Base error for terrain operations."""


# ---------------------------------------------------------------------------
# Tile decoding
# ---------------------------------------------------------------------------
class DecodeError(TerrainError):
    """Tile file is malformed and cannot be decoded."""


class SizeMismatchError(DecodeError):
    """Tile byte length does not match resolution^2 * 2.

    Attributes:
        expected: Expected byte count (None if no tier matched)
        actual: Byte count found
    """

    def __init__(self, expected: int | None, actual: int) -> None:
        self.expected = expected
        self.actual = actual
        if expected is None:
            message = f"Tile size {actual}B does not match any SRTM resolution"
        else:
            message = f"Tile size {actual}B, expected {expected}B"
        super().__init__(message)


class InvalidTileNameError(TerrainError):
    """Filename does not follow the {N|S}dd{E|W}ddd.hgt convention."""


# ---------------------------------------------------------------------------
# Grid assembly
# ---------------------------------------------------------------------------
class PointOutOfBoundsError(TerrainError):
    """Point is outside the tile or grid bounds.

    Attributes:
        point: The offending GeoPoint
        bounds: The tile's or grid's BoundingBox
    """

    def __init__(self, point: "GeoPoint", bounds: "BoundingBox") -> None:
        self.point = point
        self.bounds = bounds
        super().__init__(
            f"Point ({point.latitude:.6f}, {point.longitude:.6f}) outside bounds "
            f"[lat: {bounds.min_y:.6f} to {bounds.max_y:.6f}, "
            f"lon: {bounds.min_x:.6f} to {bounds.max_x:.6f}]"
        )


class UnsupportedRegionError(TerrainError):
    """Bounding box crosses the antimeridian/poles or spans too many tiles."""


class InsufficientMemoryError(TerrainError):
    """Assembled grid would exceed the allowed memory budget."""


class RasterWriteError(TerrainError):
    """Grid could not be written as a raster file."""
