"""Fog Viewshed Domain Layer.

This package contains the core logic organized by bounded contexts:
- terrain: SRTM tiles, bounding boxes, elevation grid assembly
- visibility: sight-line rasterization, radial sweep, quadrant partition/merge
"""

# Imports alphabetized per project style (isort)
from domain import terrain, visibility

__all__ = ["terrain", "visibility"]
