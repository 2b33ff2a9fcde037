"""Terrain Bounded Context - Domain Services.

Pure domain logic for lattice snapping and elevation grid assembly.
NO file I/O - tiles are obtained through the TileRepository port, whose
adapters live under ``src/infrastructure/terrain/``.
"""

from __future__ import annotations

import logging
import math

import numpy as np
from pyproj import Geod

from domain.terrain.errors import InsufficientMemoryError, UnsupportedRegionError
from domain.terrain.repositories import TileRepository
from domain.terrain.tiles import tile_filename
from domain.terrain.value_objects import (
    LATTICE_TOLERANCE,
    SRTM3_RESOLUTION,
    VOID,
    BoundingBox,
    ElevationDataGrid,
    GeoPoint,
    lattice_edge,
    lattice_index,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_MAX_TILES_PER_AXIS = 2  # 2x2 tile neighbourhood
VOID_WARNING_PCT = 80.0

# WGS84 ellipsoid for geodesic calculations (same as GPS, EPSG:4326)
_geod = Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Lattice Snapping
# ---------------------------------------------------------------------------
def _lattice_ceil(coordinate: float, cells_per_degree: int) -> int:
    """Smallest cell index whose lower boundary is at or above ``coordinate``."""
    return math.ceil(coordinate * cells_per_degree + 0.5 - LATTICE_TOLERANCE)


def _snap_indices(
    box: BoundingBox, cells_per_degree: int
) -> tuple[int, int, int, int]:
    """Return ``(lat_lo, lat_hi, lon_lo, lon_hi)`` half-open lattice ranges.

    Lower-left is expanded downward and upper-right upward so the result
    always contains ``box``.
    """
    n = cells_per_degree
    lat_lo = lattice_index(box.min_y, n)
    lon_lo = lattice_index(box.min_x, n)
    lat_hi = max(_lattice_ceil(box.max_y, n), lat_lo + 1)
    lon_hi = max(_lattice_ceil(box.max_x, n), lon_lo + 1)

    if lattice_edge(lon_lo, n) < -180 or lattice_edge(lon_hi, n) > 180:
        raise UnsupportedRegionError(
            f"Box crosses the antimeridian once snapped: "
            f"lon [{box.min_x}, {box.max_x}]"
        )
    if lattice_edge(lat_lo, n) < -90 or lattice_edge(lat_hi, n) > 90:
        raise UnsupportedRegionError(
            f"Box reaches a pole once snapped: lat [{box.min_y}, {box.max_y}]"
        )
    return lat_lo, lat_hi, lon_lo, lon_hi


def snap_to_lattice(box: BoundingBox, resolution: int = SRTM3_RESOLUTION) -> BoundingBox:
    """Expand a box outward to the tile sampling lattice.

    The snapped boundaries coincide with tile cell boundaries, so assembly
    copies samples without any resampling. Snapping is idempotent.

    Raises:
        UnsupportedRegionError: If the snapped box leaves [-180, 180] x [-90, 90]
    """
    n = resolution - 1
    lat_lo, lat_hi, lon_lo, lon_hi = _snap_indices(box, n)
    return BoundingBox(
        min_x=lattice_edge(lon_lo, n),
        min_y=lattice_edge(lat_lo, n),
        max_x=lattice_edge(lon_hi, n),
        max_y=lattice_edge(lat_hi, n),
    )


def tiles_covering(
    box: BoundingBox, resolution: int = SRTM3_RESOLUTION
) -> list[tuple[int, int]]:
    """List ``(latitude, longitude)`` corners of every tile the snapped box overlaps.

    Ordered south to north, then west to east.
    """
    n = resolution - 1
    lat_lo, lat_hi, lon_lo, lon_hi = _snap_indices(box, n)
    return [
        (lat0, lon0)
        for lat0 in range(lat_lo // n, (lat_hi - 1) // n + 1)
        for lon0 in range(lon_lo // n, (lon_hi - 1) // n + 1)
    ]


# ---------------------------------------------------------------------------
# Main Service: assemble_elevation_grid
# ---------------------------------------------------------------------------
def assemble_elevation_grid(
    box: BoundingBox,
    repository: TileRepository,
    resolution: int = SRTM3_RESOLUTION,
    *,
    max_bytes: int | None = None,
    max_tiles_per_axis: int | None = DEFAULT_MAX_TILES_PER_AXIS,
) -> ElevationDataGrid:
    """Compose one contiguous elevation matrix covering ``box``.

    Args:
        box: Requested extent (EPSG:4326)
        repository: Source of tiles, owned by the caller
        resolution: SRTM tier (samples per tile side)
        max_bytes: Optional memory budget for the int16 result
        max_tiles_per_axis: Largest tile span accepted per axis (None = unlimited)

    Returns:
        ElevationDataGrid over the snapped box; areas without a tile are VOID

    Raises:
        UnsupportedRegionError: Antimeridian/pole crossing, or too many tiles
        InsufficientMemoryError: Estimated grid exceeds ``max_bytes``
    """
    n = resolution - 1
    lat_lo, lat_hi, lon_lo, lon_hi = _snap_indices(box, n)
    height = lat_hi - lat_lo
    width = lon_hi - lon_lo

    lat_tiles = range(lat_lo // n, (lat_hi - 1) // n + 1)
    lon_tiles = range(lon_lo // n, (lon_hi - 1) // n + 1)
    if max_tiles_per_axis is not None and (
        len(lat_tiles) > max_tiles_per_axis or len(lon_tiles) > max_tiles_per_axis
    ):
        raise UnsupportedRegionError(
            f"Box spans {len(lat_tiles)}x{len(lon_tiles)} tiles, "
            f"limit is {max_tiles_per_axis} per axis"
        )
    if lat_tiles.start <= -90 or lon_tiles.start <= -180:
        raise UnsupportedRegionError("Tiles at the south pole or antimeridian")

    # Memory budget check BEFORE allocation
    if max_bytes is not None:
        est_bytes = height * width * 2  # int16 = 2 bytes
        if est_bytes > max_bytes:
            raise InsufficientMemoryError(
                f"Estimated grid size {est_bytes}B exceeds budget {max_bytes}B"
            )

    snapped = BoundingBox(
        min_x=lattice_edge(lon_lo, n),
        min_y=lattice_edge(lat_lo, n),
        max_x=lattice_edge(lon_hi, n),
        max_y=lattice_edge(lat_hi, n),
    )
    data = np.full((height, width), VOID, dtype=np.int16)
    half = 0.5 / n

    for lat0 in lat_tiles:
        for lon0 in lon_tiles:
            name = tile_filename(lat0, lon0)
            tile = repository.get_tile(lat0, lon0, resolution)
            if tile is None:
                logger.info("Tile %s not available; filling with VOID", name)
                continue
            if tile.resolution != resolution:
                logger.warning(
                    "Tile %s has resolution %d, expected %d; treating as absent",
                    name,
                    tile.resolution,
                    resolution,
                )
                continue

            area = tile.bounds.intersection(snapped)
            if area is None:
                continue

            # Read from the upper-left of the intersection to its lower-right,
            # addressing sample centers half a cell inside the edges
            north_west = GeoPoint(latitude=area.max_y - half, longitude=area.min_x + half)
            south_east = GeoPoint(latitude=area.min_y + half, longitude=area.max_x - half)
            src_top, src_left = tile.coordinate_to_index(north_west)
            src_bottom, src_right = tile.coordinate_to_index(south_east)

            dst_top = lat_hi - 1 - lattice_index(north_west.latitude, n)
            dst_left = lattice_index(north_west.longitude, n) - lon_lo
            rows = src_bottom - src_top + 1
            cols = src_right - src_left + 1

            data[dst_top : dst_top + rows, dst_left : dst_left + cols] = tile.data[
                src_top : src_bottom + 1, src_left : src_right + 1
            ]
            logger.debug("Tile %s: copied %dx%d samples", name, cols, rows)

    grid = ElevationDataGrid(data=data, bounds=snapped, resolution=resolution)

    void_pct = grid.void_ratio() * 100.0
    if void_pct > VOID_WARNING_PCT:
        logger.warning("Assembled grid: %.1f%% VOID samples", void_pct)
    logger.debug(
        "Assembled %dx%d grid from %d tile slots",
        width,
        height,
        len(lat_tiles) * len(lon_tiles),
    )
    return grid


# ---------------------------------------------------------------------------
# Geodesic Helpers
# ---------------------------------------------------------------------------
def geodesic_distance(start: GeoPoint, end: GeoPoint) -> float:
    """Calculate geodesic distance between two points in meters.

    Uses WGS84 ellipsoid for millimeter-level precision.
    """
    _, _, distance = _geod.inv(
        start.longitude, start.latitude, end.longitude, end.latitude
    )
    return float(abs(distance))


def cell_size_m(grid: ElevationDataGrid, point: GeoPoint) -> tuple[float, float]:
    """Ground size ``(east_west_m, north_south_m)`` of one grid cell at a point.

    Measured geodesically rather than with a cos(lat) approximation.
    """
    return cell_size_at(point, grid.cells_per_degree)


def cell_size_at(point: GeoPoint, cells_per_degree: int) -> tuple[float, float]:
    """Ground size of one lattice cell at a point, for a given tile tier."""
    step = 1.0 / cells_per_degree
    _, _, x_m = _geod.inv(
        point.longitude, point.latitude, point.longitude + step, point.latitude
    )
    _, _, y_m = _geod.inv(
        point.longitude, point.latitude, point.longitude, point.latitude - step
    )
    return float(abs(x_m)), float(abs(y_m))
