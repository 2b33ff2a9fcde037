"""Terrain Bounded Context.

Responsible for elevation data and geographic addressing:
- Value Objects: GeoPoint, BoundingBox, ElevationTile, ElevationDataGrid
- Tiles: SRTM ``.hgt`` naming and decoding
- Services: snap_to_lattice, assemble_elevation_grid
- Ports: TileRepository
"""
