#!/usr/bin/env python3
"""Compute a viewshed from a directory of SRTM tiles.

Usage:
    python scripts/run_viewshed.py --lat 0.5 --lon 0.5 --height 10 \
        --distance 2000 --out viewshed.tif

Tile directory, resolution, limits and worker count come from the
``VIEWSHED_*`` environment variables (see infrastructure.config); the
command-line flags override them.
"""

from __future__ import annotations

import argparse
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from domain.terrain.errors import TerrainError
from domain.terrain.services import assemble_elevation_grid
from domain.terrain.value_objects import BoundingBox, GeoPoint
from domain.visibility.errors import VisibilityError
from domain.visibility.services import (
    check_window,
    compute_viewshed,
    observer_at,
    observer_window_box,
    radius_for_distance,
)
from infrastructure.config import ViewshedSettings
from infrastructure.terrain import GeoTiffGridWriter, HgtTileRepository

logger = logging.getLogger("run_viewshed")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--lat", type=float, required=True)
    parser.add_argument("--lon", type=float, required=True)
    parser.add_argument(
        "--height", type=float, default=0.0, help="Eye height above ground (m)."
    )
    parser.add_argument(
        "--distance", type=float, required=True, help="Viewing distance (m)."
    )
    parser.add_argument(
        "--quadrants", type=int, default=1, choices=(1, 2, 4),
        help="Number of independent perimeter sweeps (default 1).",
    )
    parser.add_argument("--tiles", type=Path, help="Tile directory.")
    parser.add_argument("--out", type=Path, help="Write visibility GeoTIFF here.")
    parser.add_argument("--elevation-out", type=Path, help="Write elevation GeoTIFF here.")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def request_box(
    point: GeoPoint, distance_m: float, resolution: int
) -> tuple[BoundingBox, int]:
    """Radius in cells for ``distance_m`` and the box holding that window.

    The radius is counted in the finer of the two cell sides, so the box is
    sized in cells on both axes rather than in meters.
    """
    radius = radius_for_distance(point, distance_m, resolution)
    return observer_window_box(point, radius, resolution), radius


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    settings = ViewshedSettings.from_env()
    tile_dir = args.tiles or settings.tile_dir
    repository = HgtTileRepository(tile_dir, settings.resolution)

    try:
        point = GeoPoint(latitude=args.lat, longitude=args.lon)
        box, radius = request_box(point, args.distance, settings.resolution)
        grid = assemble_elevation_grid(
            box,
            repository,
            settings.resolution,
            max_bytes=settings.max_bytes,
            max_tiles_per_axis=settings.max_tiles_per_axis,
        )
        observer = observer_at(grid, point, args.height, radius)
        check_window(grid, observer)
        with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
            visibility = compute_viewshed(grid, observer, args.quadrants, executor)
    except (TerrainError, VisibilityError) as e:
        logger.error("Viewshed failed: %s", e)
        return 1

    total = visibility.data.size - 1
    logger.info(
        "Observer (%d, %d), radius %d cells: %d of %d cells visible",
        observer.x,
        observer.y,
        radius,
        visibility.visible_count(),
        total,
    )

    writer = GeoTiffGridWriter()
    try:
        if args.elevation_out is not None:
            writer.write_elevation(grid, args.elevation_out)
        if args.out is not None:
            writer.write_visibility(visibility, grid, args.out)
    except TerrainError as e:
        logger.error("Export failed: %s", e)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
