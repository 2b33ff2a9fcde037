"""Domain Port(s) for Terrain I/O.

Defines interfaces (Protocols) that infrastructure adapters must implement.
No concrete I/O here.
"""

from __future__ import annotations

from typing import Protocol

from .value_objects import ElevationTile


class TileRepository(Protocol):
    """Port for obtaining elevation tiles by their lower-left corner.

    The repository is owned by the caller of the assembler; nothing in the
    domain keeps tiles in module-level state. Implementations live in
    infrastructure (e.g., the ``.hgt`` directory adapter).
    """

    def get_tile(
        self, latitude: int, longitude: int, resolution: int
    ) -> ElevationTile | None:
        """Return the tile at a corner, or None when it is not available.

        A missing or undecodable tile is not an error: the assembler fills
        its area with VOID. Other I/O failures (a directory or unreadable
        file under a tile name) propagate as ``OSError`` and abort assembly.
        """
        ...
