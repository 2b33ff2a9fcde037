"""SRTM ``.hgt`` directory adapter for TileRepository.

Locates tiles by filename inside one directory and decodes them on demand.
Each repository instance owns its cache; nothing is kept in module state.

Lifecycle of one tile load:
1) Validate the path (extension allowlist, no symlinks, non-empty)
2) Read the raw bytes
3) Decode via ``domain.terrain.tiles.decode_tile`` (size check, trimming)
4) Cache the ElevationTile for later requests
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path

from domain.terrain.errors import DecodeError, InvalidTileNameError
from domain.terrain.tiles import (
    TILE_SUFFIX,
    decode_tile,
    parse_tile_filename,
    tile_filename,
)
from domain.terrain.value_objects import ElevationTile

# Module-level logger (reused across all calls)
logger = logging.getLogger(__name__)


class HgtTileRepository:
    """Infrastructure adapter serving tiles from a directory of ``.hgt`` files.

    Parameters
    ----------
    root: Path | str
        Directory holding files named ``{N|S}dd{E|W}ddd.hgt``.
    resolution: int | None
        Expected samples per side; inferred from each file's length if None.
    preload: bool
        Decode every tile in the directory up front instead of on demand.
    """

    def __init__(
        self,
        root: Path | str,
        resolution: int | None = None,
        preload: bool = False,
    ) -> None:
        self.root = Path(root)
        self.resolution = resolution
        self._cache: dict[tuple[int, int, int], ElevationTile] = {}
        if preload:
            self.preload()

    def path_for(self, latitude: int, longitude: int) -> Path:
        return self.root / tile_filename(latitude, longitude)

    def available(self) -> list[tuple[int, int]]:
        """Corners of every well-named tile file in the directory."""
        corners = []
        for path in sorted(self.root.glob(f"*{TILE_SUFFIX}")):
            try:
                corners.append(parse_tile_filename(path.name))
            except InvalidTileNameError:
                logger.debug("Ignoring %s: not an SRTM tile name", path.name)
        return corners

    def load_tile(self, file_path: Path | str, resolution: int | None = None) -> ElevationTile:
        """Read and decode one tile file.

        Raises:
            FileNotFoundError: If the file does not exist
            InvalidTileNameError: If the name does not encode a tile corner
            DecodeError: If the file is empty, a symlink or the wrong size
        """
        path = Path(file_path)

        # Missing files surface as FileNotFoundError, not DecodeError
        if not path.exists():
            raise FileNotFoundError(str(path))

        if path.suffix.lower() != TILE_SUFFIX:
            raise DecodeError(f"Unsupported file extension: {path.suffix}")
        latitude, longitude = parse_tile_filename(path.name)

        try:
            if path.is_symlink():
                raise DecodeError("Symlinks are not permitted")
            if path.stat().st_size == 0:
                raise DecodeError("Empty file")
            raw = path.read_bytes()
        except OSError as e:
            # Log only filename, errno, and strerror to avoid leaking absolute paths
            logger.error(
                "Failed to read %s (errno=%s, strerror=%s)",
                path.name,
                getattr(e, "errno", "unknown"),
                getattr(e, "strerror", "unknown"),
            )
            raise

        tile = decode_tile(raw, latitude, longitude, resolution or self.resolution)
        logger.debug(
            "Tile %s: decoded %dx%d samples",
            path.name,
            tile.resolution,
            tile.resolution,
        )
        return tile

    def get_tile(
        self, latitude: int, longitude: int, resolution: int
    ) -> ElevationTile | None:
        """Load-on-demand lookup; None when the tile is absent or undecodable.

        Raises:
            OSError: A path under the tile name exists but cannot be read
                (a directory, or no read permission)
        """
        key = (latitude, longitude, resolution)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        path = self.path_for(latitude, longitude)
        if not path.exists():
            logger.debug("Tile %s not found", path.name)
            return None

        try:
            tile = self.load_tile(path, resolution)
        except DecodeError as e:
            logger.warning("Tile %s: %s; treating as absent", path.name, e)
            return None

        self._cache[key] = tile
        return tile

    def preload(self) -> int:
        """Decode every tile in the directory up front; return how many loaded."""
        loaded = 0
        for latitude, longitude in self.available():
            path = self.path_for(latitude, longitude)
            try:
                tile = self.load_tile(path)
            except DecodeError as e:
                logger.warning("Tile %s: %s; skipped", path.name, e)
                continue
            self._cache[(latitude, longitude, tile.resolution)] = tile
            loaded += 1
        logger.info("Preloaded %d tile(s)", loaded)
        return loaded


class MappingTileRepository:
    """Tile repository over tiles already held by the caller."""

    def __init__(
        self,
        tiles: Mapping[tuple[int, int], ElevationTile] | Iterable[ElevationTile] = (),
    ) -> None:
        if isinstance(tiles, Mapping):
            self._tiles = dict(tiles)
        else:
            self._tiles = {(t.latitude, t.longitude): t for t in tiles}

    def add(self, tile: ElevationTile) -> None:
        self._tiles[(tile.latitude, tile.longitude)] = tile

    def get_tile(
        self, latitude: int, longitude: int, resolution: int
    ) -> ElevationTile | None:
        tile = self._tiles.get((latitude, longitude))
        if tile is None or tile.resolution != resolution:
            return None
        return tile
