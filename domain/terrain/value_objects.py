"""Terrain Bounded Context - Value Objects.

Immutable data structures representing geographic concepts.
All validation occurs at construction time via Pydantic.

Lattice convention: SRTM coordinates refer to sample CENTERS, so every
cell boundary sits half a cell off the integer-degree lines. A tile named
``(lat0, lon0)`` covers latitude ``[lat0 - c/2, lat0 + 1 - c/2]`` with
``c = 1 / cells_per_degree`` once its duplicated top row and rightmost
column have been dropped. Adjacent tiles then tile the plane exactly.
"""

from __future__ import annotations

import math

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, Field, model_validator

from domain.terrain.errors import PointOutOfBoundsError

# ---------------------------------------------------------------------------
# SRTM Constants
# ---------------------------------------------------------------------------
VOID = -32768  # Reserved "no data" sample value

SRTM3_RESOLUTION = 1201  # three arc-second tiles, samples per side
SRTM1_RESOLUTION = 3601  # one arc-second tiles, samples per side
SRTM_RESOLUTIONS = (SRTM3_RESOLUTION, SRTM1_RESOLUTION)

# Tolerance (in cells) absorbing float noise when snapping to the lattice
LATTICE_TOLERANCE = 1e-6


def lattice_edge(index: int, cells_per_degree: int) -> float:
    """Coordinate of the lower/left boundary of lattice cell ``index``.

    Cell ``index`` is centered on ``index / cells_per_degree`` degrees.
    Every boundary in the system is computed through this function so that
    equal boundaries are bit-identical floats.
    """
    return (index - 0.5) / cells_per_degree


def lattice_index(coordinate: float, cells_per_degree: int) -> int:
    """Lattice cell index whose extent contains ``coordinate``."""
    return math.floor(coordinate * cells_per_degree + 0.5 + LATTICE_TOLERANCE)


class GeoPoint(BaseModel):
    """Geographic coordinate in WGS84 (Value Object).

    Invariants:
        GP-1: latitude in [-90, 90]
        GP-2: longitude in [-180, 180]
    """

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    model_config = ConfigDict(frozen=True)


class BoundingBox(BaseModel):
    """Axis-oriented geographic extent in EPSG:4326 (Value Object).

    Invariants are enforced at construction time - an empty, inverted or
    out-of-range BoundingBox cannot be instantiated.
    """

    min_x: float  # Western boundary (longitude)
    min_y: float  # Southern boundary (latitude)
    max_x: float  # Eastern boundary (longitude)
    max_y: float  # Northern boundary (latitude)

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def validate_bounds(self) -> "BoundingBox":
        # Longitude range
        if not (-180 <= self.min_x <= 180):
            raise ValueError(f"min_x longitude out of range: {self.min_x}")
        if not (-180 <= self.max_x <= 180):
            raise ValueError(f"max_x longitude out of range: {self.max_x}")
        # Latitude range
        if not (-90 <= self.min_y <= 90):
            raise ValueError(f"min_y latitude out of range: {self.min_y}")
        if not (-90 <= self.max_y <= 90):
            raise ValueError(f"max_y latitude out of range: {self.max_y}")
        # Ordering (degenerate boxes rejected)
        if not (self.min_x < self.max_x):
            raise ValueError(
                f"Invalid x ordering: min_x={self.min_x} >= max_x={self.max_x}"
            )
        if not (self.min_y < self.max_y):
            raise ValueError(
                f"Invalid y ordering: min_y={self.min_y} >= max_y={self.max_y}"
            )
        return self

    @classmethod
    def from_corners(cls, lower_left: GeoPoint, upper_right: GeoPoint) -> "BoundingBox":
        """Build a box from its lower-left and upper-right corners."""
        return cls(
            min_x=lower_left.longitude,
            min_y=lower_left.latitude,
            max_x=upper_right.longitude,
            max_y=upper_right.latitude,
        )

    @property
    def lower_left(self) -> GeoPoint:
        return GeoPoint(latitude=self.min_y, longitude=self.min_x)

    @property
    def upper_right(self) -> GeoPoint:
        return GeoPoint(latitude=self.max_y, longitude=self.max_x)

    @property
    def upper_left(self) -> GeoPoint:
        return GeoPoint(latitude=self.max_y, longitude=self.min_x)

    @property
    def lower_right(self) -> GeoPoint:
        return GeoPoint(latitude=self.min_y, longitude=self.max_x)

    def contains(self, point: GeoPoint) -> bool:
        """Check if point is within bounds (inclusive)."""
        return (
            self.min_x <= point.longitude <= self.max_x
            and self.min_y <= point.latitude <= self.max_y
        )

    def intersects(self, other: "BoundingBox") -> bool:
        """True if the boxes overlap with positive area.

        Boxes that only share an edge or a corner do not intersect.
        """
        return (
            self.min_x < other.max_x
            and other.min_x < self.max_x
            and self.min_y < other.max_y
            and other.min_y < self.max_y
        )

    def intersection(self, other: "BoundingBox") -> "BoundingBox | None":
        """Return the overlapping box, or None when there is no overlap."""
        if not self.intersects(other):
            return None
        return BoundingBox(
            min_x=max(self.min_x, other.min_x),
            min_y=max(self.min_y, other.min_y),
            max_x=min(self.max_x, other.max_x),
            max_y=min(self.max_y, other.max_y),
        )


def _freeze_int16(data: NDArray[np.int16]) -> NDArray[np.int16]:
    # Owned, contiguous, read-only copy; caller arrays are never touched
    frozen = np.array(data, dtype=np.int16, copy=True, order="C")
    frozen.flags.writeable = False
    return frozen


class ElevationTile(BaseModel):
    """One decoded 1x1 degree SRTM tile (Value Object).

    ``data`` holds the trimmed ``(resolution - 1) x (resolution - 1)`` sample
    block: the source's duplicated top row and rightmost column are already
    discarded. Row 0 is the northernmost kept row.
    """

    latitude: int = Field(ge=-90, le=89)  # lower-left corner, integer degrees
    longitude: int = Field(ge=-180, le=179)
    resolution: int = Field(ge=2)  # samples per side in the source file
    data: NDArray[np.int16]

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_tile(self) -> "ElevationTile":
        expected = (self.resolution - 1, self.resolution - 1)
        if self.data.shape != expected:
            raise ValueError(
                f"Tile data shape {self.data.shape} does not match {expected}"
            )
        if self.data.dtype != np.int16:
            raise ValueError(f"Tile data must be int16, got {self.data.dtype}")
        object.__setattr__(self, "data", _freeze_int16(self.data))
        return self

    @property
    def cells_per_degree(self) -> int:
        return self.resolution - 1

    @property
    def bounds(self) -> BoundingBox:
        """Geographic extent covered by the kept samples."""
        n = self.cells_per_degree
        return BoundingBox(
            min_x=lattice_edge(self.longitude * n, n),
            min_y=lattice_edge(self.latitude * n, n),
            max_x=lattice_edge((self.longitude + 1) * n, n),
            max_y=lattice_edge((self.latitude + 1) * n, n),
        )

    def coordinate_to_index(self, point: GeoPoint) -> tuple[int, int]:
        """Map a coordinate to ``(row, col)`` in the trimmed sample block.

        Rows are inverted because samples are stored north-first.

        Raises:
            PointOutOfBoundsError: If the point is not covered by this tile
        """
        n = self.cells_per_degree
        row = n - 1 - (lattice_index(point.latitude, n) - self.latitude * n)
        col = lattice_index(point.longitude, n) - self.longitude * n
        if not (0 <= row < n and 0 <= col < n):
            raise PointOutOfBoundsError(point, self.bounds)
        return row, col

    def index_to_coordinate(self, row: int, col: int) -> GeoPoint:
        """Return the sample-center coordinate of ``(row, col)``."""
        n = self.cells_per_degree
        if not (0 <= row < n and 0 <= col < n):
            raise IndexError(f"Tile index ({row}, {col}) out of range")
        return GeoPoint(
            latitude=self.latitude + (n - 1 - row) / n,
            longitude=self.longitude + col / n,
        )


class ElevationDataGrid(BaseModel):
    """Assembled elevation matrix covering a lattice-snapped box (Value Object).

    Row 0 is the north edge and column 0 the west edge. The data array is
    read-only after construction; one grid may be handed to any number of
    concurrent sweeps.
    """

    data: NDArray[np.int16]  # 2D int16 array (height x width), read-only
    bounds: BoundingBox  # Snapped extent in EPSG:4326
    resolution: int = Field(ge=2)  # SRTM tier used to build the grid

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @model_validator(mode="after")
    def validate_grid(self) -> "ElevationDataGrid":
        if self.data.ndim != 2:
            raise ValueError(f"Data must be 2D, got {self.data.ndim}D")
        if self.data.shape[0] == 0 or self.data.shape[1] == 0:
            raise ValueError(f"Data cannot be empty: {self.data.shape}")
        if self.data.dtype != np.int16:
            raise ValueError(f"Data must be int16, got {self.data.dtype}")
        n = self.cells_per_degree
        expected = (
            round((self.bounds.max_y - self.bounds.min_y) * n),
            round((self.bounds.max_x - self.bounds.min_x) * n),
        )
        if self.data.shape != expected:
            raise ValueError(
                f"Data shape {self.data.shape} does not match bounds {expected}"
            )
        object.__setattr__(self, "data", _freeze_int16(self.data))
        return self

    @property
    def cells_per_degree(self) -> int:
        return self.resolution - 1

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape[0], self.data.shape[1]

    def contains_index(self, row: int, col: int) -> bool:
        height, width = self.shape
        return 0 <= row < height and 0 <= col < width

    def coordinate_to_index(self, point: GeoPoint) -> tuple[int, int]:
        """Map a coordinate to ``(row, col)`` of the cell containing it.

        Raises:
            PointOutOfBoundsError: If the point is outside the grid
        """
        n = self.cells_per_degree
        row = math.floor((self.bounds.max_y - point.latitude) * n)
        col = math.floor((point.longitude - self.bounds.min_x) * n)
        if not self.contains_index(row, col):
            raise PointOutOfBoundsError(point, self.bounds)
        return row, col

    def index_to_coordinate(self, row: int, col: int) -> GeoPoint:
        """Return the cell-center coordinate of ``(row, col)``."""
        if not self.contains_index(row, col):
            raise IndexError(f"Grid index ({row}, {col}) out of range")
        n = self.cells_per_degree
        return GeoPoint(
            latitude=self.bounds.max_y - (row + 0.5) / n,
            longitude=self.bounds.min_x + (col + 0.5) / n,
        )

    def void_ratio(self) -> float:
        """Fraction of samples that are VOID (0.0 to 1.0)."""
        return float(np.count_nonzero(self.data == VOID)) / self.data.size
