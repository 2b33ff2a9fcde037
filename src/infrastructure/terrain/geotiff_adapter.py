"""GeoTIFF export of elevation and visibility grids.

Writes domain grids with rasterio in EPSG:4326 so the external rendering
layer can drape them on a map. Georeferencing comes straight from the
snapped lattice: no resampling happens on the way out.

Lifecycle (to avoid resource leaks):
1) Validate the destination path (extension allowlist)
2) Build the affine transform from the grid's snapped bounds
3) Open the dataset with a context manager inside rasterio.Env
4) Write band 1 and exit contexts to release GDAL handles
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import rasterio
from affine import Affine
from rasterio.crs import CRS
from rasterio.errors import RasterioError

from domain.terrain.errors import RasterWriteError
from domain.terrain.value_objects import VOID, ElevationDataGrid
from domain.visibility.value_objects import VisibilityGrid

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)

# Target CRS for all output (constructed once)
_TARGET_CRS = CRS.from_epsg(4326)

_ALLOWED_SUFFIXES = (".tif", ".tiff")


def grid_transform(grid: ElevationDataGrid, row: int = 0, col: int = 0) -> Affine:
    """Affine transform whose origin is the top-left corner of cell ``(row, col)``."""
    cell = 1.0 / grid.cells_per_degree
    west = grid.bounds.min_x + col * cell
    north = grid.bounds.max_y - row * cell
    return Affine.translation(west, north) * Affine.scale(cell, -cell)


class GeoTiffGridWriter:
    """Infrastructure adapter writing grids to single-band GeoTIFF files."""

    def write_elevation(self, grid: ElevationDataGrid, file_path: Path | str) -> Path:
        """Write the assembled elevation (int16, nodata = VOID)."""
        return self._write(
            Path(file_path),
            grid.data,
            grid_transform(grid),
            nodata=VOID,
        )

    def write_visibility(
        self,
        visibility: VisibilityGrid,
        grid: ElevationDataGrid,
        file_path: Path | str,
    ) -> Path:
        """Write a visibility window georeferenced against its source grid.

        Cell values are kept as-is: -1 observer, 0 occluded, 1 visible.
        """
        row0, col0 = visibility.observer.window_origin
        return self._write(
            Path(file_path),
            visibility.data.astype(np.int16),
            grid_transform(grid, row0, col0),
            nodata=None,
        )

    def _write(
        self,
        path: Path,
        data: np.ndarray,
        transform: Affine,
        nodata: int | None,
    ) -> Path:
        if path.suffix.lower() not in _ALLOWED_SUFFIXES:
            raise RasterWriteError(f"Unsupported file extension: {path.suffix}")

        height, width = data.shape
        kwargs = {
            "driver": "GTiff",
            "height": height,
            "width": width,
            "count": 1,
            "dtype": "int16",
            "crs": _TARGET_CRS,
            "transform": transform,
        }
        if nodata is not None:
            kwargs["nodata"] = nodata

        try:
            with rasterio.Env():
                with rasterio.open(path, "w", **kwargs) as dst:
                    dst.write(np.asarray(data, dtype=np.int16), 1)
        except PermissionError as e:
            # Re-raise with filename only to avoid leaking full path in logs
            raise PermissionError(path.name) from e
        except RasterioError as e:
            raise RasterWriteError(f"Could not write raster: {e}") from e

        # Log only filename, not full path
        logger.debug("Wrote %s (%dx%d)", path.name, width, height)
        return path
