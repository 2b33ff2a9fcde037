"""Infrastructure adapters for the terrain bounded context.

This module provides the infrastructure layer implementations for terrain
operations: serving SRTM tiles from disk and exporting grids to GeoTIFF.
"""

from .geotiff_adapter import GeoTiffGridWriter
from .hgt_adapter import HgtTileRepository, MappingTileRepository

__all__ = ["GeoTiffGridWriter", "HgtTileRepository", "MappingTileRepository"]
